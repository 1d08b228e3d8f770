from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "PDF Dashboard"
    debug: bool = False
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8000

    storage_backend: Literal["local", "minio"] = "local"
    bucket: str = "pdf-files"
    upload_dir: str = "tmp/uploads"
    public_base_url: str = "http://localhost:8000"
    cache_control: str = "3600"

    max_upload_bytes: int = Field(default=50 * 1024 * 1024, ge=1)
    list_page_size: int = Field(default=100, ge=1, le=1000)
    resolve_scan_limit: int = Field(default=1000, ge=1)

    minio_endpoint: str = "localhost:9000"
    minio_access_key: str = "minioadmin"
    minio_secret_key: str = "minioadmin"
    minio_secure: bool = False
    minio_public_url: str | None = None

    viewer_incompatibility_tokens: list[str] = Field(
        default_factory=lambda: ["incompatible", "not supported", "unsupported"]
    )

    @property
    def upload_path(self) -> Path:
        path = Path(self.upload_dir)
        path.mkdir(parents=True, exist_ok=True)
        return path


settings = Settings()
