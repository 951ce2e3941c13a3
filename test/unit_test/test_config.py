"""
Unit tests for environment-driven configuration and logging setup
"""

import logging
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from clmm_client.config import ClmmConfig, Config, LoggingConfig, SolanaConfig, TxConfig, setup_logging


class TestClmmConfig:
    """Tests for ClmmConfig environment parsing"""

    def test_defaults(self, monkeypatch):
        for name in ("CLMM_PROGRAM_ID", "CLMM_ENABLE_ROUTED_SWAPS", "CLMM_SWAP_TICK_ARRAY_COUNT"):
            monkeypatch.delenv(name, raising=False)
        config = ClmmConfig()
        assert config.program_id == "CAMMCzo5YL8w4VFF8KVHrK22GGUsp5VTaW7grrKgrWqK"
        assert config.enable_routed_swaps is False
        assert config.swap_tick_array_count == 3

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("CLMM_ENABLE_ROUTED_SWAPS", "yes")
        monkeypatch.setenv("CLMM_SWAP_TICK_ARRAY_COUNT", "5")
        monkeypatch.setenv("DEFAULT_SLIPPAGE_BPS", "25")
        config = ClmmConfig()
        assert config.enable_routed_swaps is True
        assert config.swap_tick_array_count == 5
        assert config.default_slippage_bps == 25

    def test_invalid_int_falls_back(self, monkeypatch, caplog):
        monkeypatch.setenv("CLMM_SWAP_TICK_ARRAY_COUNT", "many")
        with caplog.at_level(logging.WARNING):
            config = ClmmConfig()
        assert config.swap_tick_array_count == 3
        assert "CLMM_SWAP_TICK_ARRAY_COUNT" in caplog.text

    def test_explicit_values_win(self, monkeypatch):
        monkeypatch.setenv("CLMM_ENABLE_ROUTED_SWAPS", "true")
        assert ClmmConfig(enable_routed_swaps=False).enable_routed_swaps is False


class TestTxAndSolanaConfig:
    """Tests for transaction and Solana settings"""

    def test_tx_overrides(self, monkeypatch):
        monkeypatch.setenv("TX_MAX_INSTRUCTIONS", "8")
        monkeypatch.setenv("TX_COMPUTE_UNIT_PRICE", "0")
        config = TxConfig()
        assert config.max_instructions == 8
        assert config.compute_unit_price == 0

    def test_wrap_buffer(self, monkeypatch):
        monkeypatch.setenv("SOLANA_WSOL_WRAP_BUFFER", "1234")
        assert SolanaConfig().wsol_wrap_buffer == 1234

    def test_reload(self, monkeypatch):
        monkeypatch.setenv("TX_MAX_SIZE", "1000")
        assert Config.reload().tx.max_transaction_size == 1000


class TestLogging:
    """Tests for setup_logging"""

    def test_level(self):
        assert LoggingConfig(log_level="debug").level == logging.DEBUG
        assert LoggingConfig(log_level="nonsense").level == logging.WARNING

    def test_env(self, monkeypatch):
        monkeypatch.setenv("CLMM_LOG_LEVEL", "info")
        monkeypatch.setenv("CLMM_LOG_DEBUG_MODULES", "raydium.swap_math, infra.tx_builder,")
        log_config = LoggingConfig()
        assert log_config.level == logging.INFO
        assert log_config.debug_modules == ("raydium.swap_math", "infra.tx_builder")

    def test_file_output(self, tmp_path):
        log_file = tmp_path / "logs" / "clmm.log"
        log_config = LoggingConfig(log_file=str(log_file), log_level="INFO")

        logger = setup_logging(log_config, logger_name="clmm_client_test")
        logger.info("hello")
        for handler in logger.handlers:
            handler.flush()

        assert log_file.exists()
        assert "hello" in log_file.read_text(encoding="utf-8")

        # Reconfiguring replaces handlers instead of stacking them
        setup_logging(log_config, logger_name="clmm_client_test")
        assert len(logger.handlers) == 2
        for handler in logger.handlers[:]:
            handler.close()
            logger.removeHandler(handler)

    def test_debug_modules(self, tmp_path):
        log_file = tmp_path / "clmm.log"
        log_config = LoggingConfig(
            log_file=str(log_file),
            log_level="WARNING",
            debug_modules=("modules.liquidity",),
        )

        logger = setup_logging(log_config, logger_name="clmm_client_dbg")
        logging.getLogger("clmm_client_dbg.modules.liquidity").debug("sorted mints")
        logging.getLogger("clmm_client_dbg.modules.swap").debug("hidden")
        for handler in logger.handlers:
            handler.flush()

        text = log_file.read_text(encoding="utf-8")
        assert "sorted mints" in text
        assert "[clmm_client_dbg.modules.liquidity]" in text
        assert "hidden" not in text
        for handler in logger.handlers[:]:
            handler.close()
            logger.removeHandler(handler)
