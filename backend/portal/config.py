from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # App
    environment: str = "development"
    debug: bool = True
    allowed_origins: str = "http://localhost:3000,http://localhost:5173"

    # API client
    api_base_url: str = "http://localhost:5000"
    request_timeout_seconds: float = 10.0
    token_store_path: str = ".portal/storage.json"

    # Auth / JWT
    secret_key: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60
    password_hash_iterations: int = 120_000

    # Rate limiting
    rate_limit_enabled: bool = True
    rate_limit_requests: int = 100
    rate_limit_authenticated_requests: int = 500
    rate_limit_window_seconds: int = 60

    # Views
    default_page_size: int = 10

    # Uploads
    max_upload_bytes: int = 5 * 1024 * 1024  # 5 MB

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "env_prefix": "PORTAL_"}


settings = Settings()
