"""
Unit tests for account snapshot decoding

Encodes accounts byte-for-byte in the program's layout and checks the
parsers read every field from the right offset.
"""

import base64
import sys
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from account_fixtures import (
    AMM_CONFIG,
    MINT_0,
    MINT_1,
    POOL,
    bitmap_limbs,
    encode_amm_config,
    encode_bitmap_extension,
    encode_mint,
    encode_personal_position,
    encode_pool_state,
    encode_reward_info,
    encode_tick_array,
    key_str,
)
from clmm_client.errors import SnapshotDecodeError
from clmm_client.raydium.constants import TOKEN_2022_PROGRAM_ID, TOKEN_PROGRAM_ID
from clmm_client.raydium.pool_parser import (
    decode_account_data,
    parse_amm_config,
    parse_mint,
    parse_pool_state,
    parse_tick_array_bitmap_extension,
)
from clmm_client.raydium.position_parser import parse_personal_position, parse_tick_array


class TestDecodeAccountData:
    """Tests for account data normalization"""

    def test_bytes_and_base64(self):
        raw = b"\x01\x02\x03"
        encoded = base64.b64encode(raw).decode()
        assert decode_account_data(raw) == raw
        assert decode_account_data(bytearray(raw)) == raw
        assert decode_account_data(encoded) == raw
        assert decode_account_data([encoded, "base64"]) == raw

    def test_invalid(self):
        with pytest.raises(SnapshotDecodeError):
            decode_account_data("!!not base64!!")
        with pytest.raises(SnapshotDecodeError):
            decode_account_data(12345)


class TestAmmConfig:
    """Tests for parse_amm_config"""

    def test_fields(self):
        config = parse_amm_config(AMM_CONFIG, encode_amm_config(index=4, trade_fee_rate=500, tick_spacing=10), slot=7)
        assert config.index == 4
        assert config.trade_fee_rate == 500
        assert config.tick_spacing == 10
        assert config.protocol_fee_rate == 120_000
        assert config.fund_fee_rate == 40_000
        assert config.owner == key_str(50)
        assert config.fund_owner == key_str(51)
        assert config.slot == 7

    def test_wrong_discriminator(self):
        data = bytearray(encode_amm_config())
        data[0] ^= 0xFF
        with pytest.raises(SnapshotDecodeError):
            parse_amm_config(AMM_CONFIG, bytes(data))

    def test_too_short(self):
        with pytest.raises(SnapshotDecodeError):
            parse_amm_config(AMM_CONFIG, encode_amm_config()[:100])


class TestPoolState:
    """Tests for parse_pool_state"""

    def test_fields(self):
        limbs = bitmap_limbs((-600, 0))
        data = encode_pool_state(
            liquidity=123_456_789,
            sqrt_price_x64=2 ** 63,
            tick_current=-13_864,
            bitmap=limbs,
            open_time=1_700_000_000,
        )
        pool = parse_pool_state(POOL, data, slot=42)

        assert pool.amm_config == AMM_CONFIG
        assert pool.mint_0 == MINT_0
        assert pool.mint_1 == MINT_1
        assert pool.vault_0 == key_str(20)
        assert pool.vault_1 == key_str(21)
        assert pool.observation == key_str(22)
        assert pool.decimals_0 == 6
        assert pool.tick_spacing == 10
        assert pool.liquidity == 123_456_789
        assert pool.sqrt_price_x64 == 2 ** 63
        assert pool.tick_current == -13_864
        assert pool.fee_growth_global_0_x64 == 7
        assert pool.fee_growth_global_1_x64 == 9
        assert pool.protocol_fees_0 == 11
        assert pool.protocol_fees_1 == 13
        assert pool.tick_array_bitmap == limbs
        assert pool.open_time == 1_700_000_000
        assert pool.slot == 42

    def test_rewards(self):
        reward = encode_reward_info(reward_state=2, token_mint=key_str(30), token_vault=key_str(31))
        pool = parse_pool_state(POOL, encode_pool_state(rewards=[reward]))
        assert len(pool.reward_infos) == 3
        assert pool.reward_infos[0].token_mint == key_str(30)
        assert pool.reward_infos[0].token_vault == key_str(31)
        assert [r.token_mint for r in pool.initialized_rewards] == [key_str(30)]

    def test_zero_tick_spacing(self):
        with pytest.raises(SnapshotDecodeError):
            parse_pool_state(POOL, encode_pool_state(tick_spacing=0))

    def test_base64_input(self):
        data = base64.b64encode(encode_pool_state()).decode()
        assert parse_pool_state(POOL, [data, "base64"]).mint_0 == MINT_0


class TestPersonalPosition:
    """Tests for parse_personal_position"""

    def test_fields(self):
        nft_mint = key_str(71)
        data = encode_personal_position(
            nft_mint, tick_lower=-128, tick_upper=128, liquidity=5_000, fees_owed=(3, 4), rewards_owed=(1, 0, 0)
        )
        position = parse_personal_position(key_str(70), data, slot=9)

        assert position.nft_mint == nft_mint
        assert position.pool_id == POOL
        assert position.tick_lower == -128
        assert position.tick_upper == 128
        assert position.liquidity == 5_000
        assert position.token_fees_owed_0 == 3
        assert position.token_fees_owed_1 == 4
        assert position.reward_infos[0].reward_amount_owed == 1
        assert position.nft_token_program == TOKEN_2022_PROGRAM_ID
        assert not position.is_empty
        assert position.is_in_range(0)

    def test_inverted_range(self):
        data = encode_personal_position(key_str(71), tick_lower=128, tick_upper=-128)
        with pytest.raises(SnapshotDecodeError):
            parse_personal_position(key_str(70), data)


class TestTickArray:
    """Tests for parse_tick_array"""

    def test_ticks(self):
        data = encode_tick_array(-600, {-590: (1_000, 1_000), -10: (-1_000, 1_000)})
        tick_array = parse_tick_array(key_str(90), data)

        assert tick_array.pool_id == POOL
        assert tick_array.start_tick_index == -600
        assert len(tick_array.ticks) == 60
        assert tick_array.ticks[1].tick == -590
        assert tick_array.ticks[1].liquidity_net == 1_000
        assert tick_array.ticks[59].liquidity_net == -1_000
        assert tick_array.initialized_tick_count == 2
        assert [t.tick for t in tick_array.initialized_ticks()] == [-590, -10]


class TestBitmapExtension:
    """Tests for parse_tick_array_bitmap_extension"""

    def test_bitmaps(self):
        data = encode_bitmap_extension(positive={0: 1}, negative={13: 1 << 511})
        extension = parse_tick_array_bitmap_extension(key_str(91), data)

        assert extension.pool_id == POOL
        assert len(extension.positive_bitmaps) == 14
        assert len(extension.negative_bitmaps) == 14
        assert extension.positive_bitmaps[0][0] == 1
        assert extension.negative_bitmaps[13][7] == 1 << 63


class TestMint:
    """Tests for parse_mint"""

    def test_decimals_and_program(self):
        mint = parse_mint(MINT_0, encode_mint(decimals=9), TOKEN_2022_PROGRAM_ID, slot=3)
        assert mint.decimals == 9
        assert mint.is_token_2022
        assert mint.slot == 3

    def test_wrong_owner(self):
        with pytest.raises(SnapshotDecodeError):
            parse_mint(MINT_0, encode_mint(), key_str(99))

    def test_uninitialized(self):
        with pytest.raises(SnapshotDecodeError):
            parse_mint(MINT_0, encode_mint(initialized=False), TOKEN_PROGRAM_ID)
