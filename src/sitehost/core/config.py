from functools import lru_cache
from pathlib import Path
from typing import Literal, cast
from urllib.parse import urlparse

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # App
    app_name: str = "sitehost"
    app_env: str = "development"  # development, testing, production
    debug: bool = False
    enable_openapi: bool = True
    base_url: str = "http://localhost:8080"  # Public URL used to build site links

    # Files
    data_path: Path = Path("./data")
    sites_path: Path | None = None  # Defaults to <data_path>/sites
    tmp_path: Path | None = None  # Defaults to <data_path>/tmp
    max_upload_size: int = 250 * 1024 * 1024  # 250 MiB

    # Storage
    storage_backend: Literal["sql", "redis"] = "sql"
    database_url: str = "sqlite+aiosqlite:///./data/sitehost.db"
    database_pool_size: int = 5
    database_max_overflow: int = 10
    database_auto_create: bool = True  # create_all on startup
    database_run_migrations: bool = False  # alembic upgrade head on startup instead
    alembic_config: str = "alembic.ini"
    redis_url: str | None = None  # Required when storage_backend == "redis"
    redis_pool_size: int = 10

    # Shutdown
    shutdown_grace_period: int = 30

    # Auth
    jwt_secret_key: str
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24
    argon2_time_cost: int = 3
    argon2_memory_cost: int = 65536
    argon2_parallelism: int = 1

    # Admin reports (disabled when unset)
    admin_api_key: str | None = None

    # CORS
    cors_origins: list[str] = ["http://localhost:3000"]

    # Metrics
    metrics_api_key: str | None = None  # If set, /metrics requires this key

    @field_validator("jwt_secret_key")
    @classmethod
    def validate_jwt_secret(cls, v: str) -> str:
        if v == "change-this-to-a-secure-random-string":
            raise ValueError(
                "JWT_SECRET_KEY must be changed from default value. "
                "Generate a secure secret with: openssl rand -hex 32"
            )
        if len(v) < 32:
            raise ValueError("JWT_SECRET_KEY must be at least 32 characters")
        return v

    @field_validator("cors_origins")
    @classmethod
    def validate_cors_origins(cls, v: list[str]) -> list[str]:
        """Validate CORS origins - reject wildcards when credentials are used."""
        for origin in v:
            if origin == "*":
                raise ValueError(
                    "CORS wildcard '*' is not allowed when allow_credentials=True. "
                    "Specify explicit origins instead."
                )
        return v

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        parsed = urlparse(v)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(f"BASE_URL '{v}' does not look like a valid http(s) URL")
        return v.rstrip("/")

    @model_validator(mode="after")
    def derive_paths(self) -> "Settings":
        if self.sites_path is None:
            self.sites_path = self.data_path / "sites"
        if self.tmp_path is None:
            self.tmp_path = self.data_path / "tmp"
        if self.storage_backend == "redis" and not self.redis_url:
            raise ValueError("REDIS_URL is required when STORAGE_BACKEND=redis")
        return self

    @property
    def sites_dir(self) -> Path:
        return cast(Path, self.sites_path)

    @property
    def tmp_dir(self) -> Path:
        return cast(Path, self.tmp_path)


@lru_cache
def get_settings() -> Settings:
    return Settings()  # type: ignore[call-arg]
