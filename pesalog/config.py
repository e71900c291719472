"""Configuration management using Pydantic Settings"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database
    database_url: str = "sqlite:///./pesalog.db"

    # Service
    service_name: str = "pesalog-core"
    log_level: str = "INFO"

    # Parsing
    default_currency: str = "KES"
    two_digit_year_cutover: int = 50  # YY below this is 20YY, otherwise 19YY

    # Debt ledger
    facility_category_name: str = "Fuliza"
    due_soon_days: int = 7

    # Pull channel
    poll_watermark_key: str = "last_sms_poll_timestamp"
    poll_lookback_hours: int = 24


settings = Settings()
