"""Application configuration."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Loads and validates application settings from the environment."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    DATABASE_URL: str = "sqlite://db.sqlite3"
    LOG_LEVEL: str = "INFO"

    BOT_TOKEN: str = "YOUR_TELEGRAM_BOT_TOKEN"
    ADMIN_IDS: list[int] = []
    BOT_LANDLORD_ID: str | None = None

    # Payment gateway (IPN callbacks)
    GATEWAY_PARTNER_CODE: str = "MOMO"
    GATEWAY_ACCESS_KEY: str = "CHANGE_ME"
    GATEWAY_SECRET_KEY: str = "CHANGE_ME"
    GATEWAY_IPN_URL: str = "http://localhost:8000/payments/gateway/ipn"
    GATEWAY_REDIRECT_URL: str = "http://localhost:3000/payment/return"

    SMTP_HOST: str | None = None
    SMTP_PORT: int = 587
    SMTP_USER: str | None = None
    SMTP_PASSWORD: str | None = None
    SMTP_USE_TLS: bool = True
    MAIL_FROM: str = "billing@roomledger.local"

    INVOICE_DUE_DAY: int = 10
    INVOICE_CURRENCY: str = "VND"
    INVOICE_AUTO_SEND: bool = True
    MIN_PERIOD_YEAR: int = 2000

    SCHEDULER_ENABLED: bool = True


settings = Settings()
