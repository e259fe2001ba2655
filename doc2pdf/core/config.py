from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Service settings, read from the environment (DOC2PDF_*) or a .env file."""

    model_config = SettingsConfigDict(
        env_prefix="DOC2PDF_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "doc2pdf"
    app_version: str = "0.1.0"

    host: str = "0.0.0.0"
    port: int = 3000
    max_body_mb: int = 50

    base_dir: Path = Field(default_factory=Path.cwd)
    temp_dir: Optional[Path] = None
    log_dir: Optional[Path] = None

    log_level: str = "DEBUG"
    log_colors: bool = True
    log_max_bytes: int = 20 * 1024 * 1024
    log_retention_days: int = 60
    log_compress: bool = True

    soffice_path: Optional[Path] = None
    conversion_timeout: Optional[float] = None

    @property
    def max_body_bytes(self) -> int:
        return self.max_body_mb * 1024 * 1024

    def configure_paths(self) -> None:
        """Resolve the working directories and create them when missing."""
        self.base_dir = self.base_dir.resolve()
        self.temp_dir = (self.temp_dir or (self.base_dir / "tmp")).resolve()
        self.log_dir = (self.log_dir or (self.base_dir / "logs")).resolve()

        for directory in (self.temp_dir, self.log_dir):
            directory.mkdir(parents=True, exist_ok=True)


@lru_cache()
def get_settings() -> Settings:
    settings = Settings()
    settings.configure_paths()
    return settings
