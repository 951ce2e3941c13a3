"""
Unit tests for ClmmClient

Loads snapshots from encoded account bytes and drives the lp / swap
modules end to end up to unsigned transactions.
"""

import sys
from decimal import Decimal
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from solders.hash import Hash

from account_fixtures import (
    MINT_0,
    MINT_1,
    OWNER,
    POOL,
    POOL_LIQUIDITY,
    bitmap_limbs,
    encode_amm_config,
    encode_bitmap_extension,
    encode_mint,
    encode_personal_position,
    encode_pool_state,
    encode_reward_info,
    encode_tick_array,
    key_str,
    make_mint,
    make_position,
    make_reward,
    make_snapshot,
)
from clmm_client import ClmmClient
from clmm_client.config import Config, SolanaConfig, TxConfig
from clmm_client.errors import ConfigurationError
from clmm_client.raydium.constants import TOKEN_2022_PROGRAM_ID, TOKEN_PROGRAM_ID, WRAPPED_SOL_MINT
from clmm_client.raydium.token_accounts import get_associated_token_address
from clmm_client.types import OperationKind, Phase, SwapRequest


def _client(**tx):
    settings = Config(tx=TxConfig(**tx), solana=SolanaConfig(wsol_wrap_buffer=10_000))
    return ClmmClient(OWNER, settings=settings)


def _mints():
    return {
        MINT_0: (encode_mint(decimals=6), TOKEN_PROGRAM_ID),
        MINT_1: (encode_mint(decimals=9), TOKEN_2022_PROGRAM_ID),
    }


def _tick_arrays(client):
    from clmm_client.raydium.pda import derive_tick_array

    return {
        str(derive_tick_array(POOL, -600, 10, client.program_id).address):
            encode_tick_array(-600, {-590: (POOL_LIQUIDITY, POOL_LIQUIDITY)}),
        str(derive_tick_array(POOL, 0, 10, client.program_id).address):
            encode_tick_array(0, {590: (-POOL_LIQUIDITY, POOL_LIQUIDITY)}),
    }


class TestLoadPool:
    """Tests for decoding raw accounts into snapshots"""

    def test_full_snapshot(self):
        client = _client()
        snapshot = client.load_pool(
            POOL,
            encode_pool_state(bitmap=bitmap_limbs((-600, 0))),
            _mints(),
            amm_config_data=encode_amm_config(),
            bitmap_extension_data=encode_bitmap_extension(),
            tick_arrays=_tick_arrays(client),
            slot=77,
        )

        assert snapshot.address == POOL
        assert snapshot.mint_1.decimals == 9
        assert snapshot.mint_1.is_token_2022
        assert snapshot.amm_config.trade_fee_rate == 2500
        assert snapshot.bitmap_extension is not None
        assert snapshot.get_tick_array(-600).initialized_tick_count == 1
        assert all(slot == 77 for _, slot in snapshot.markers())

        quote = client.swap.quote(snapshot, MINT_0, 1_000_000)
        assert 997_000 < quote.amount_out <= 997_500

    def test_reward_mints(self):
        reward_mint = key_str(30)
        mints = _mints()
        mints[reward_mint] = (encode_mint(), TOKEN_2022_PROGRAM_ID)
        reward = encode_reward_info(reward_state=2, token_mint=reward_mint, token_vault=key_str(31))

        snapshot = _client().load_pool(POOL, encode_pool_state(rewards=[reward]), mints)
        assert [m.address for m in snapshot.reward_mints] == [reward_mint]

    def test_missing_mint(self):
        mints = _mints()
        del mints[MINT_1]
        with pytest.raises(ConfigurationError):
            _client().load_pool(POOL, encode_pool_state(), mints)

    def test_load_position(self):
        position = _client().load_position(key_str(70), encode_personal_position(key_str(71)), slot=5)
        assert position.nft_mint == key_str(71)
        assert position.slot == 5


class TestSessions:
    """Tests for build sessions and preparation"""

    def test_prepare_packs_requests(self):
        client = _client()
        snapshot = make_snapshot()
        packages = client.prepare(
            SwapRequest(snapshot, MINT_0, 1_000_000),
            SwapRequest(snapshot, MINT_1, 1_000_000),
        )

        assert len(packages) == 1
        assert len(packages[0].labels) == 2
        tx = packages[0].to_unsigned_transaction(Hash.default())
        assert len(tx.signatures) == 1

    def test_prepare_requires_requests(self):
        with pytest.raises(ConfigurationError):
            _client().prepare()

    def test_new_session_forgets_created_accounts(self):
        client = _client()
        snapshot = make_snapshot()

        first = client.swap.swap(snapshot, MINT_0, 1_000)
        repeat = client.swap.swap(snapshot, MINT_0, 1_000)
        client.new_session()
        fresh = client.swap.swap(snapshot, MINT_0, 1_000)

        assert len(first.created_accounts) == 2
        assert repeat.created_accounts == ()
        assert len(fresh.created_accounts) == 2

    def test_mark_existing_survives_sessions(self):
        client = _client()
        client.mark_existing(
            get_associated_token_address(OWNER, MINT_0),
            get_associated_token_address(OWNER, MINT_1),
        )
        client.new_session()
        result = client.swap.swap(make_snapshot(), MINT_0, 1_000)
        assert result.created_accounts == ()

    def test_assembler_uses_tx_settings(self):
        client = _client(max_instructions=5, compute_unit_price=0)
        assert client.assembler.config.max_instructions == 5
        assert client.assembler.config.compute_unit_price == 0


class TestModules:
    """Tests for the lp / swap / rewards facades"""

    def test_open_close_flow(self):
        client = _client()
        snapshot = make_snapshot()

        open_set = client.lp.open(snapshot, -100, 100, amount=1_000_000)
        close_set = client.lp.close(make_position(), snapshot)
        packages = client.assemble(open_set, close_set)

        assert open_set.kind == OperationKind.OPEN_POSITION
        assert close_set.kind == OperationKind.CLOSE_POSITION
        assert sum(len(p.labels) for p in packages) == 2
        # The position NFT keypair signs the open
        assert open_set.signers[0] in packages[0].signers

    def test_open_by_price_widens_range(self):
        client = _client()
        result = client.lp.open_by_price(make_snapshot(), Decimal("0.99"), Decimal("1.01"), liquidity=10 ** 9)
        assert result.kind == OperationKind.OPEN_POSITION
        assert "[-110, 100]" in result.label

    def test_wrap_for_deposit(self):
        client = _client()
        snapshot = make_snapshot(mint_0=WRAPPED_SOL_MINT)

        open_set = client.lp.open(snapshot, -100, 100, amount=2_000_000)
        wrap_set = client.lp.wrap_for_deposit(open_set, snapshot)

        assert wrap_set.amounts["lamports"] == 2_010_000
        # The open already created the wrapped SOL account
        assert [s.phase for s in wrap_set.ordered_steps()] == [Phase.WRAP, Phase.WRAP]

    def test_wrap_not_needed(self):
        client = _client()
        snapshot = make_snapshot()
        open_set = client.lp.open(snapshot, -100, 100, amount=1_000)
        assert client.lp.wrap_for_deposit(open_set, snapshot) is None

    def test_reward_flow(self):
        client = _client()
        reward_mint = make_mint(key_str(30))

        opened = client.rewards.initialize(make_snapshot(), reward_mint, 0, 3_600, Decimal(10))
        assert opened.kind == OperationKind.INITIALIZE_REWARD
        assert opened.amounts["reward_amount"] == 36_000

        snapshot = make_snapshot(rewards=(make_reward(reward_mint.address, key_str(31), state=1),))
        changed = client.rewards.set_params(snapshot, 0, 0, 7_200, Decimal(5))
        assert changed.kind == OperationKind.SET_REWARD_PARAMS
        assert changed.amounts["reward_amount"] == 36_000
        assert client.rewards is client.rewards

    def test_repr(self):
        assert repr(_client()).startswith("ClmmClient(owner=")
