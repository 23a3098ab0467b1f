from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, List


class Settings(BaseSettings):
    # Supabase
    supabase_url: str = ""
    supabase_key: str = ""
    supabase_service_role_key: Optional[str] = None  # Required for admin operations (approvals, password updates, biometric sessions)

    # Storage for parking documents (Supabase Storage unless S3 is configured)
    parking_docs_bucket: str = "parking-docs"
    aws_access_key_id: Optional[str] = None
    aws_secret_access_key: Optional[str] = None
    aws_region: str = "sa-east-1"
    s3_bucket_name: Optional[str] = None

    # WebAuthn relying party
    webauthn_rp_id: str = "localhost"
    webauthn_rp_name: str = "Guardião GSD-SP"
    webauthn_origin: str = "http://localhost:5173"
    webauthn_challenge_ttl_seconds: int = 300

    # Domain
    omis_suffix: str = "GSD-SP"
    notifications_enabled: bool = True

    # App
    app_name: str = "guardiao-backend"
    debug: bool = False
    environment: str = "development"  # development | staging | production
    log_level: str = "INFO"
    cors_origins: str = "http://localhost:3000,http://localhost:5173,http://127.0.0.1:3000,http://127.0.0.1:5173"
    rate_limit: str = "100/minute"  # slowapi format, e.g. "100/minute"
    public_rate_limit: str = "10/minute"  # login and the public parking form

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def get_cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    def get_webauthn_origins(self) -> List[str]:
        return [o.strip() for o in self.webauthn_origin.split(",") if o.strip()]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        env_prefix="",  # No prefix needed
        extra="ignore"
    )


settings = Settings()
