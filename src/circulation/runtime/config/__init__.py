from .config_data import (
    AppConfig,
    ConfigData,
    CORSConfig,
    DatabaseConfig,
    LendingConfig,
    LoggingConfig,
)

__all__ = [
    "AppConfig",
    "ConfigData",
    "CORSConfig",
    "DatabaseConfig",
    "LendingConfig",
    "LoggingConfig",
]
