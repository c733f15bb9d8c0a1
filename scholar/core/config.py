from pydantic import AliasChoices, Field, model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # App
    app_name: str = "Scholar AI"
    environment: str = "development"  # development, production, test
    log_level: str = ""  # DEBUG, INFO, WARNING, ERROR, CRITICAL (empty = auto based on environment)
    log_to_file: bool = True  # Enable file logging
    port: int = 5000

    # MongoDB (empty URI = in-memory user storage only)
    mongodb_uri: str = ""
    mongodb_db_name: str = "scholar_ai"
    mongodb_user_collection: str = "users"
    mongodb_timeout_ms: int = 2000

    # AI credentials used by the generation functions, in rotation priority order.
    # When none are set, generation requests are proxied to ai_proxy_url.
    ai_api_key_1: str = ""
    ai_api_key_2: str = ""
    ai_api_key_3: str = ""
    ai_api_key_4: str = ""
    ai_api_key_5: str = ""
    # Server-side fallbacks, appended after the AI_API_KEY_* values
    api_key: str = ""
    api_key_2: str = ""
    api_key_3: str = ""
    api_key_4: str = ""
    api_key_5: str = ""

    # Anthropic Claude (key held by the /api/ai/generate proxy)
    anthropic_api_key: str = ""
    claude_model: str = "claude-sonnet-4-5-20250929"
    ai_max_tokens: int = 8192
    ai_proxy_url: str = ""  # empty = this server's own /api/ai/generate on PORT
    ai_proxy_timeout_seconds: float = 120.0

    # Auth
    otp_ttl_minutes: int = 5
    bcrypt_rounds: int = 10
    rate_limit_enabled: bool = True

    # Frontend
    frontend_url: str = "http://localhost:5173"

    # CORS (comma-separated origins, empty = allow local dev origins)
    allowed_origins: str = ""

    # Email
    sendgrid_api_key: str = ""
    from_email: str = "noreply@scholar-ai.app"
    # Gmail SMTP (used when SendGrid is not configured)
    smtp_host: str = "smtp.gmail.com"
    smtp_port: int = 587
    smtp_user: str = Field(default="", validation_alias=AliasChoices("smtp_user", "email_user"))
    smtp_password: str = Field(default="", validation_alias=AliasChoices("smtp_password", "email_pass"))  # Gmail App Password

    class Config:
        env_file = ".env"
        extra = "ignore"

    @model_validator(mode="after")
    def default_proxy_url(self) -> "Settings":
        if not self.ai_proxy_url:
            self.ai_proxy_url = f"http://localhost:{self.port}/api/ai/generate"
        return self

    def credential_sources(self) -> list[str]:
        """AI credential candidates in rotation priority order (may contain blanks/duplicates)."""
        return [
            self.ai_api_key_1,
            self.ai_api_key_2,
            self.ai_api_key_3,
            self.ai_api_key_4,
            self.ai_api_key_5,
            self.api_key,
            self.api_key_2,
            self.api_key_3,
            self.api_key_4,
            self.api_key_5,
        ]

    def secret_values(self) -> list[str]:
        """Credentials that must never appear in logs."""
        return [
            *self.credential_sources(),
            self.anthropic_api_key,
            self.sendgrid_api_key,
            self.smtp_password,
            self.mongodb_uri,
        ]

    @property
    def email_configured(self) -> bool:
        return bool(self.sendgrid_api_key or (self.smtp_user and self.smtp_password))


settings = Settings()

# Production must be able to deliver OTP emails; dev/test simulate them instead.
if settings.environment == "production" and not settings.email_configured:
    raise RuntimeError(
        "No email provider configured. Set SENDGRID_API_KEY or "
        "SMTP_USER/SMTP_PASSWORD (EMAIL_USER/EMAIL_PASS) before starting in production."
    )
