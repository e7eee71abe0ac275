from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import AliasChoices, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

LogFormat = Literal["json", "console"]
ReleaseSinkKind = Literal["directory", "github"]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="FILESORTER_RELEASE_",
        env_file=".env",
        extra="ignore",
    )

    source_dir: Path = Field(default=Path("."))
    run_root: Path = Field(default=Path("_runs"))
    log_level: str = Field(default="INFO")
    log_format: LogFormat = Field(default="console")

    # Cells are independent; this only bounds local parallelism.
    max_workers: int = Field(default=4, ge=1)

    release_sink: ReleaseSinkKind = Field(default="directory")
    release_root: Path = Field(default=Path("_releases"))

    github_repository: str | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "FILESORTER_RELEASE_GITHUB_REPOSITORY", "GITHUB_REPOSITORY"
        ),
    )
    github_api_url: str = Field(default="https://api.github.com")
    github_uploads_url: str = Field(default="https://uploads.github.com")
    publish_token: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "FILESORTER_RELEASE_PUBLISH_TOKEN", "GITHUB_TOKEN"
        ),
    )


@lru_cache(maxsize=1)
def load_settings() -> Settings:
    return Settings()
