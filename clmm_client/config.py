"""
Configuration management for CLMM Client

Loads settings from environment variables and .env file.
Includes logging setup for the clmm_client logger tree.
"""

import os
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple

from dotenv import load_dotenv


def _load_env_file():
    """Load .env file from project root"""
    current = Path(__file__).parent.parent  # clmm_client package parent
    env_file = current / ".env"

    if env_file.exists():
        load_dotenv(env_file)


# Load .env on module import
_load_env_file()


def _get_env(key: str, default: Optional[str] = "") -> Optional[str]:
    """Get environment variable with default"""
    value = os.getenv(key)
    if value is None:
        return default
    return value


def _get_env_int(key: str, default: int) -> int:
    """Get environment variable as int"""
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        logging.getLogger(__name__).warning(
            f"Invalid int value for {key}='{value}', using default={default}"
        )
        return default


def _get_env_bool(key: str, default: bool) -> bool:
    """Get environment variable as bool"""
    value = os.getenv(key)
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes", "on")


@dataclass
class ClmmConfig:
    """
    CLMM program and builder configuration

    program_id is threaded explicitly into every address derivation;
    this is only the default the client hands out.
    """
    program_id: str = field(default_factory=lambda: _get_env(
        "CLMM_PROGRAM_ID", "CAMMCzo5YL8w4VFF8KVHrK22GGUsp5VTaW7grrKgrWqK"
    ))
    # Routed swaps stay off until the deployment is known to support them
    enable_routed_swaps: bool = field(default_factory=lambda: _get_env_bool("CLMM_ENABLE_ROUTED_SWAPS", False))
    # Tick arrays passed to a swap: the current one plus initialized arrays in the trade direction
    swap_tick_array_count: int = field(default_factory=lambda: _get_env_int("CLMM_SWAP_TICK_ARRAY_COUNT", 3))
    default_slippage_bps: int = field(default_factory=lambda: _get_env_int("DEFAULT_SLIPPAGE_BPS", 50))
    default_lp_slippage_bps: int = field(default_factory=lambda: _get_env_int("DEFAULT_LP_SLIPPAGE_BPS", 100))
    # Initialize Token-2022 metadata on position NFTs
    with_metadata: bool = field(default_factory=lambda: _get_env_bool("CLMM_WITH_METADATA", True))


@dataclass
class TxConfig:
    """Transaction assembly configuration"""
    compute_units: int = field(default_factory=lambda: _get_env_int("TX_COMPUTE_UNITS", 200_000))
    # LP operations that touch tick arrays need a higher budget
    lp_compute_units: int = field(default_factory=lambda: _get_env_int("TX_LP_COMPUTE_UNITS", 600_000))
    compute_unit_price: int = field(default_factory=lambda: _get_env_int("TX_COMPUTE_UNIT_PRICE", 1_000))
    max_instructions: int = field(default_factory=lambda: _get_env_int("TX_MAX_INSTRUCTIONS", 12))
    # Solana packet data size
    max_transaction_size: int = field(default_factory=lambda: _get_env_int("TX_MAX_SIZE", 1232))


@dataclass
class SolanaConfig:
    """Solana-specific configuration"""
    # WSOL wrap safety buffer in lamports (covers rounding on deposits)
    wsol_wrap_buffer: int = field(default_factory=lambda: _get_env_int("SOLANA_WSOL_WRAP_BUFFER", 10_000))


def _get_env_list(key: str) -> Tuple[str, ...]:
    """Get comma-separated environment variable as a tuple of non-empty items"""
    return tuple(item.strip() for item in _get_env(key, "").split(",") if item.strip())


@dataclass
class LoggingConfig:
    """
    Logging for the clmm_client logger tree

    Builders log decisions (sorted mints, skipped reward slots, tick arrays
    to be initialized) at DEBUG and packing results at INFO.

    Environment variables:
        CLMM_LOG_LEVEL: Level of the clmm_client logger (default: WARNING)
        CLMM_LOG_FILE: Append records to this file (empty disables it)
        CLMM_LOG_DEBUG_MODULES: Comma-separated submodules forced to DEBUG,
            e.g. "raydium.swap_math,infra.tx_builder"
    """
    log_level: str = field(default_factory=lambda: _get_env("CLMM_LOG_LEVEL", "WARNING"))
    log_file: str = field(default_factory=lambda: _get_env("CLMM_LOG_FILE", ""))
    debug_modules: Tuple[str, ...] = field(default_factory=lambda: _get_env_list("CLMM_LOG_DEBUG_MODULES"))
    log_format: str = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

    @property
    def level(self) -> int:
        """Get numeric log level"""
        return getattr(logging, self.log_level.upper(), logging.WARNING)


@dataclass
class Config:
    """
    Main configuration container

    Usage:
        from clmm_client.config import config

        print(config.clmm.program_id)
        print(config.tx.max_transaction_size)
    """
    clmm: ClmmConfig = field(default_factory=ClmmConfig)
    tx: TxConfig = field(default_factory=TxConfig)
    solana: SolanaConfig = field(default_factory=SolanaConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def reload(cls) -> "Config":
        """Reload configuration from environment"""
        _load_env_file()
        return cls()


# Global config instance
config = Config()


def get_config() -> Config:
    """Get global configuration instance"""
    return config


def reload_config() -> Config:
    """Reload and return new configuration"""
    global config
    config = Config.reload()
    return config


def setup_logging(
    log_config: Optional[LoggingConfig] = None,
    logger_name: str = "clmm_client",
) -> logging.Logger:
    """
    Attach handlers to the clmm_client logger

    Replaces handlers from an earlier call, so calling it again after
    reload_config() applies the new settings. Records always go to stderr
    and, with log_file set, to that file as well.

    Args:
        log_config: Logging configuration (uses global config if None)
        logger_name: Root of the logger tree to configure

    Returns:
        Configured logger
    """
    if log_config is None:
        log_config = config.logging

    logger = logging.getLogger(logger_name)
    logger.setLevel(log_config.level)

    # Close before removing to release file handles on reload
    for handler in logger.handlers[:]:
        handler.close()
        logger.removeHandler(handler)

    formatter = logging.Formatter(log_config.log_format)
    handlers: List[logging.Handler] = [logging.StreamHandler()]

    if log_config.log_file:
        log_path = Path(log_config.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path, encoding="utf-8"))

    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    for module in log_config.debug_modules:
        logging.getLogger(f"{logger_name}.{module}").setLevel(logging.DEBUG)

    if log_config.log_file:
        logger.info(f"Logging to {log_config.log_file} at {log_config.log_level.upper()}")

    return logger
