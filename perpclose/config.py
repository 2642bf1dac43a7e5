"""Configuration for perpclose.

Settings live in the ``[close]`` table of ``~/.config/perpclose/config.toml``.
Every key is optional; missing keys fall back to the protocol defaults below.

Example:
    [close]
    slippage_bps = 50
    keep_leverage = false
"""

import logging
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

CONFIG_PATH = Path.home() / ".config" / "perpclose" / "config.toml"


class ConfigError(Exception):
    """Raised when the configuration file cannot be used."""


class CloseSettings(BaseModel):
    """Session preferences and risk constants used by the close calculator."""

    slippage_bps: int = Field(default=30, ge=0, lt=10_000, description="Allowed slippage")
    keep_leverage: bool = Field(default=True, description="Default keep-leverage preference")
    orders_enabled: bool = Field(
        default=True, description="Conditional orders available (else market only)"
    )
    include_pnl_in_leverage: bool = Field(
        default=False, description="Count unrealized PnL as collateral in leverage"
    )
    margin_fee_bps: int = Field(default=10, ge=0, lt=10_000, description="Closing fee")
    dust_usd: int = Field(default=1, ge=0, description="Remaining size treated as full close")
    min_leftover_usd: int = Field(default=10, ge=0, description="Smallest allowed remainder")
    liquidation_fee_usd: int = Field(default=5, ge=0, description="Liquidation fee")
    min_leverage_bps: int = Field(default=11_000, ge=0, description="Lowest leverage after close")
    max_leverage_bps: int = Field(default=305_000, ge=0, description="Highest leverage after close")
    max_liquidation_leverage_bps: int = Field(
        default=1_000_000, gt=0, description="Leverage at which a position is liquidated"
    )
    min_profit_time: int = Field(
        default=12 * 60 * 60, ge=0, description="Seconds the minimum-profit rule applies"
    )
    min_profit_bps: int = Field(
        default=150, ge=0, lt=10_000, description="Profit threshold within the window"
    )
    decrease_order_execution_fee: int = Field(
        default=3 * 10**15, ge=0, description="Keeper fee for trigger orders (wei)"
    )
    usd_pegged_address: str = Field(
        default="0x45096e7aA921f27590f8F19e457794EB09678141",
        description="USD-pegged pseudo-token converted at a fixed 1:1 scale",
    )
    wrapped_native_address: str = Field(
        default="0x82aF49447D8a07e3bd95BD0d56f35241523fBab1",
        description="Wrapped native token used by the order book",
    )

    model_config = {"frozen": True}


def load_settings(path: Optional[Path] = None) -> CloseSettings:
    """Load close settings from a TOML file.

    Args:
        path: Config file; defaults to ``~/.config/perpclose/config.toml``.

    Returns:
        Settings with defaults for anything the file omits.

    Raises:
        ConfigError: If the file is not valid TOML or holds invalid values.
    """
    import toml

    config_path = path or CONFIG_PATH

    if not config_path.exists():
        logger.debug("No config at %s, using defaults", config_path)
        return CloseSettings()

    try:
        data = toml.load(config_path)
    except (toml.TomlDecodeError, OSError) as e:
        raise ConfigError(f"Could not read {config_path}: {e}") from e

    try:
        return CloseSettings(**data.get("close", {}))
    except ValidationError as e:
        raise ConfigError(f"Invalid settings in {config_path}:\n{e}") from e
