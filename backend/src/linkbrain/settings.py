"""Application settings and configuration."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "linkbrain"
    env: str = "development"
    log_level: str = "INFO"
    log_format: str = "console"  # "console" or "json"
    allowed_origins: str = "http://localhost:5173"

    # Database
    database_url: str = "sqlite:///./linkbrain.db"

    # Invite codes
    invite_codes_per_user: int = 5
    code_generation_max_attempts: int = 10
    redeem_max_attempts: int = 3  # Re-reads after a concurrent ledger update

    # Trial
    trial_duration_days: int = 15
    trial_extension_days: int = 2  # Added to the inviter's trial per redemption

    # Rate Limiting
    invite_rate_limit: str = "30/minute"


# Global settings instance
settings = Settings()
