"""
Tidewater Configuration Management

Pydantic-based settings with environment variable overrides for
logging, exchange credentials, strategy defaults and risk limits.
"""

from typing import Annotated, List, Optional
from enum import Enum

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from core.models import RiskLimits, StrategyConfig


class Environment(str, Enum):
    """Environment types for deployment configuration."""
    LOCAL = "local"
    DEVELOPMENT = "development"
    TESTING = "testing"
    PRODUCTION = "production"


class LogLevel(str, Enum):
    """Logging levels for application output."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class Settings(BaseSettings):
    """
    Tidewater application settings with validation.

    All settings can be overridden via environment variables
    (case-insensitive) or a local .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        validate_assignment=True,
        extra="ignore",
    )

    # Application Metadata
    app_name: str = "Tidewater"
    version: str = "1.0.0"
    environment: Environment = Environment.LOCAL
    debug: bool = False

    # Logging Configuration
    log_level: LogLevel = LogLevel.INFO
    log_to_file: bool = False
    log_file_path: str = "logs/tidewater.log"
    log_json_format: bool = False
    log_rotation_size: str = "50MB"
    log_retention_days: int = Field(default=14, ge=1, le=365)
    log_compression: str = "zip"

    # Exchange API
    binance_api_key: Optional[str] = None
    binance_api_secret: Optional[str] = None
    binance_testnet: bool = True
    binance_timeout: float = Field(
        default=10.0,
        gt=0,
        le=120.0,
        description="HTTP request timeout in seconds"
    )

    # Trading Configuration
    # NoDecode lets SYMBOLS be a plain comma separated list
    symbols: Annotated[List[str], NoDecode] = Field(
        default_factory=lambda: ["ETHUSDT", "BTCUSDT", "SOLUSDT"]
    )
    poll_interval: float = Field(
        default=60.0,
        gt=0,
        description="Seconds between price polls per symbol"
    )

    # Strategy Defaults
    drop_threshold: float = Field(default=0.05, gt=0, le=1)
    rise_threshold: float = Field(default=0.10, gt=0, le=1)
    buy_percentage: float = Field(default=0.10, gt=0, le=1)
    sell_percentage: float = Field(default=0.20, gt=0, le=1)
    twap_slices: int = Field(default=5, ge=1, le=100)
    twap_interval: float = Field(
        default=60.0,
        ge=0,
        description="Seconds between TWAP child orders"
    )
    twap_slices_from_config: bool = Field(
        default=False,
        description="Use twap_slices instead of the fixed slice count"
    )

    # Risk Management
    max_position_size: float = Field(
        default=100.0,
        gt=0,
        description="Maximum quantity per single order"
    )
    max_daily_loss: float = Field(
        default=0.05,
        ge=0,
        le=1,
        description="Cash headroom fraction for live orders"
    )
    max_trade_size: float = Field(
        default=50000.0,
        gt=0,
        description="Maximum notional value per single order"
    )

    # Backtest Configuration
    initial_cash: float = Field(default=100000.0, ge=0)
    backtest_days: int = Field(default=30, ge=1, le=3650)

    @field_validator("symbols", mode="before")
    @classmethod
    def split_symbols(cls, v):
        """Accept a comma separated string of symbols."""
        if isinstance(v, str):
            return [s.strip().upper() for s in v.split(",") if s.strip()]
        return v

    @model_validator(mode="after")
    def validate_symbols_present(self):
        """Require at least one tracked symbol."""
        if not self.symbols:
            raise ValueError("At least one symbol must be configured")
        return self

    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == Environment.PRODUCTION

    def has_credentials(self) -> bool:
        """Check if both exchange credentials are configured."""
        return bool(self.binance_api_key and self.binance_api_secret)

    def strategy_config(self) -> StrategyConfig:
        """
        Build strategy configuration from settings.

        Returns:
            StrategyConfig: Strategy parameters
        """
        return StrategyConfig(
            drop_threshold=self.drop_threshold,
            rise_threshold=self.rise_threshold,
            buy_percentage=self.buy_percentage,
            sell_percentage=self.sell_percentage,
            twap_slices=self.twap_slices,
            twap_interval=self.twap_interval,
        )

    def risk_limits(self) -> RiskLimits:
        """
        Build risk limits from settings.

        Returns:
            RiskLimits: Risk limits for a run
        """
        return RiskLimits(
            max_position_size=self.max_position_size,
            max_daily_loss=self.max_daily_loss,
            max_trade_size=self.max_trade_size,
        )


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """
    Get application settings.

    Returns:
        Settings: Configured application settings
    """
    return settings


def reload_settings() -> Settings:
    """
    Re-read settings from the environment.

    Returns:
        Settings: Fresh settings instance
    """
    global settings
    settings = Settings()
    return settings
