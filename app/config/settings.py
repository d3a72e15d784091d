from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, List


class Settings(BaseSettings):
    # Supabase
    supabase_url: str = ""
    supabase_key: str = ""
    supabase_service_role_key: Optional[str] = None  # Required for webhook sync and admin auth operations

    # Clerk (user lifecycle webhooks, signed by Svix)
    clerk_webhook_secret: Optional[str] = None

    # Chatbase widget identity verification
    chatbase_secret_key: Optional[str] = None

    # Public site URL used to build redirect links
    site_url: str = "http://localhost:3000"

    # Storage
    attachment_url_ttl_seconds: int = 3600
    project_file_url_ttl_seconds: int = 300
    document_url_ttl_seconds: int = 3600
    max_attachment_size: int = 10 * 1024 * 1024
    max_avatar_size: int = 2 * 1024 * 1024
    max_portfolio_image_size: int = 5 * 1024 * 1024
    max_portfolio_images: int = 6

    # Profile operation reconciliation
    reconcile_interval_seconds: int = 300  # 0 disables the background loop
    reconcile_stale_after_seconds: int = 60

    # App
    app_name: str = "riglii-backend"
    debug: bool = False
    environment: str = "development"  # development | staging | production
    log_level: str = "INFO"
    cors_origins: str = "http://localhost:3000,http://127.0.0.1:3000"
    rate_limit: str = "100/minute"  # slowapi format, e.g. "100/minute"
    rate_limit_enabled: bool = True

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def get_cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    def site_link(self, path: str) -> str:
        return f"{self.site_url.rstrip('/')}{path}"

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        env_prefix="",  # No prefix needed
        extra="ignore"
    )


settings = Settings()
