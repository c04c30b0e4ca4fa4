from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Application
    app_name: str = "SignBox"
    app_version: str = "1.0.0"
    environment: str = "production"
    debug: bool = False
    log_level: str = "INFO"
    public_app_url: str = "http://localhost:3000"

    # Database
    database_url: str = "postgresql+asyncpg://signbox:signbox@db:5432/signbox"

    # Auth (tokens are issued by the identity provider)
    secret_key: str = "CHANGE_ME"
    jwt_algorithm: str = "HS256"

    # MinIO
    minio_endpoint: str = "minio:9000"
    minio_root_user: str = "signbox"
    minio_root_password: str = "CHANGE_ME"
    minio_bucket: str = "signbox-documents"
    minio_use_ssl: bool = False
    presigned_url_ttl_hours: int = 24

    # Redis
    redis_url: str = "redis://redis:6379/0"

    # Email (Resend)
    resend_api_key: str = ""
    resend_api_url: str = "https://api.resend.com/emails"
    email_sender: str = "SignBox <noreply@signbox.local>"
    email_timeout_seconds: float = 10.0

    # Documents
    max_upload_bytes: int = 50 * 1024 * 1024

    # Signature pad
    signature_canvas_width: int = 900
    signature_canvas_height: int = 300
    signature_history_depth: int = 50

    # CORS
    backend_cors_origins: list[str] = ["http://localhost", "http://localhost:3000"]

    model_config = {"env_file": ".env", "case_sensitive": False}


settings = Settings()
