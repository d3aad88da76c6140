from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        validate_assignment=True,
    )

    app_env: str = "dev"

    whatsapp_verify_token: str
    whatsapp_access_token: str
    whatsapp_phone_number_id: str
    whatsapp_app_secret: str | None = None  # App Secret for webhook signature verification
    whatsapp_dry_run: bool = True  # Set to False in production to enable real sending
    whatsapp_graph_version: str = "v20.0"

    # Outbound retry (5xx only): delay = base * 2 ** (attempt - 1)
    whatsapp_send_max_attempts: int = 3
    whatsapp_retry_base_delay_seconds: float = 1.0

    admin_api_key: str | None = (
        None  # Optional - if not set, admin endpoints are unprotected (dev mode)
    )

    # Lead export: Apps Script web app URL (JSON POST) takes precedence over the Sheets API
    google_sheets_url: str | None = None
    google_sheets_enabled: bool = False  # Set to True when Google Sheets API is configured
    google_sheets_spreadsheet_id: str | None = None
    google_sheets_credentials_json: str | None = (
        None  # Path to service account JSON or JSON content
    )
    feature_sheets_enabled: bool = True

    # Business info (shown to users and attached to exported leads)
    business_name: str = "Castello360"
    business_phone: str = "+56971219394"
    business_website: str = "https://castello360.com"

    # Conversation lifecycle
    conversation_ttl_hours: int = 24
    expiry_sweep_interval_seconds: int = 3600
    timezone: str = "America/Santiago"

    # Demo mode (development/demo only - must be False in production)
    demo_mode: bool = False


# Settings will load from environment variables or .env file
# Required fields will raise ValidationError if missing (fail-fast)
settings = Settings()
