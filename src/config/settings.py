"""
Configuration settings using Pydantic Settings.

All deployment-specific configuration is loaded from environment variables
(or a local ``.env`` file). Never hardcode credentials in the code.
"""

from pydantic import AliasChoices, Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Order: init kwargs > .env (dotenv) > env vars > file secrets
    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ):
        return (
            init_settings,
            dotenv_settings,
            env_settings,
            file_secret_settings,
        )

    # Database Configuration
    database_url: str = Field(
        "postgresql://localhost/crewstats",
        validation_alias=AliasChoices("DATABASE_URL", "POSTGRES_URL"),
    )
    database_pool_min_size: int = Field(2, alias="DATABASE_POOL_MIN_SIZE")
    database_pool_size: int = Field(20, alias="DATABASE_POOL_SIZE")
    database_pool_timeout: int = Field(30, alias="DATABASE_POOL_TIMEOUT")

    # Leaderboard defaults used by the service layer (the store takes them explicitly)
    stats_leaderboard_min: int = Field(
        3,
        ge=0,
        alias="STATS_LEADERBOARD_MIN",
        description="Minimum shared games before a pair shows up in teammate rankings",
    )
    stats_leaderboard_size: int = Field(
        10,
        ge=1,
        alias="STATS_LEADERBOARD_SIZE",
        description="Maximum rows returned by size-limited leaderboards",
    )

    # Application Configuration
    app_name: str = Field("crewstats", alias="APP_NAME")
    app_version: str = Field("0.1.0", alias="APP_VERSION")
    app_env: str = Field("development", alias="APP_ENV")
    app_debug: bool = Field(False, alias="APP_DEBUG")
    app_log_level: str = Field("INFO", alias="APP_LOG_LEVEL")

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.app_env == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.app_env == "development"


# Global settings instance loaded from the environment
settings = Settings()


def get_settings() -> Settings:
    """Get the global settings instance.

    This function provides dependency injection support for settings.
    """
    return settings
