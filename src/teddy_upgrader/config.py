"""Configuration management for the Teddy upgrader."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from pathlib import PurePosixPath, PureWindowsPath

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_RESOURCE_DIRECTORIES = [
    "config",
    "sites/travelbook/assets",
    "sites/travelbook/languages",
    "sites/travelbook/pages",
    "sites/travelbook/web",
    "system/",
    "themes/bear",
]

DEFAULT_RESOURCE_FILES = [
    ".gitignore",
    "build.js",
    "LICENSE",
    "package.json",
    "package-lock.json",
    "README.md",
    "sites/travelbook/site.json",
]

# Build output not tracked in version control; always removed on upgrade.
DEFAULT_GENERATED_DIRECTORIES = [
    "sites/travelbook/build",
    "sites/travelbook/public",
]


@dataclass(frozen=True)
class InstallationManifest:
    """Ordered set of relative paths that make up an installation."""

    directories: tuple[str, ...]
    files: tuple[str, ...]

    def entries(self) -> tuple[str, ...]:
        """All entries in manifest order, directories first."""
        return self.directories + self.files


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="TEDDY_UPGRADER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    environment: str = Field(default="production", description="Environment name")
    log_level: str = Field(default="INFO", description="Logging level")

    # Log files
    log_to_file: bool = Field(default=True, description="Write logs to rotating files")
    log_directory: str = Field(default="logs", description="Directory for log files")
    log_file_max_bytes: int = Field(
        default=10 * 1024 * 1024, description="Max size of a log file before rotation"
    )
    log_file_backup_count: int = Field(default=14, description="Rotated log files to keep")
    log_error_file_enabled: bool = Field(
        default=False, description="Also write WARNING+ records to a separate file"
    )

    # Working directories
    backup_dir: str = Field(default="./working/backups", description="Backup root")
    download_dir: str = Field(default="./working/downloads", description="Download root")

    # Releases; every template substitutes {version}
    releases_latest_url: str = Field(
        default="https://api.github.com/repos/teddyful/teddy/releases/latest",
        description="Endpoint returning the latest release metadata",
    )
    releases_notes_url: str = Field(
        default="https://github.com/teddyful/teddy/releases",
        description="Human-facing release notes",
    )
    release_tag_url: str = Field(
        default="https://github.com/teddyful/teddy/releases/tag/v{version}",
    )
    download_base_url: str = Field(
        default="https://github.com/teddyful/teddy/releases/download/v{version}",
    )
    archive_filename: str = Field(default="teddy-{version}.zip")
    checksums_filename: str = Field(default="teddy-{version}-checksums.txt")
    archive_root_name: str = Field(default="teddy-{version}")

    # Installation manifest
    resource_directories: list[str] = Field(
        default_factory=lambda: list(DEFAULT_RESOURCE_DIRECTORIES)
    )
    resource_files: list[str] = Field(default_factory=lambda: list(DEFAULT_RESOURCE_FILES))
    generated_directories: list[str] = Field(
        default_factory=lambda: list(DEFAULT_GENERATED_DIRECTORIES)
    )
    dependency_cache_dir: str = Field(
        default="node_modules", description="Subtree excluded from backups"
    )

    # Installed version
    version_file: str = Field(default="package.json")
    version_field: str = Field(default="version")

    # Dependency installation
    install_command: list[str] = Field(default_factory=lambda: ["npm", "install"])
    install_timeout_seconds: int = Field(default=600)

    # Network
    http_timeout_seconds: float = Field(default=30.0, gt=0)
    http_retries: int = Field(default=0, ge=0, description="Connection-level retries")
    download_chunk_size: int = Field(default=64 * 1024, gt=0)

    exit_delay_seconds: float = Field(default=2.0, ge=0)

    @field_validator("resource_directories", "resource_files", "generated_directories")
    @classmethod
    def validate_relative_paths(cls, v: list[str]) -> list[str]:
        """Ensure every manifest entry is a non-empty relative path."""
        for entry in v:
            if not entry or not entry.strip():
                raise ValueError("manifest entries must be non-empty")
            if PurePosixPath(entry).is_absolute() or PureWindowsPath(entry).is_absolute():
                raise ValueError(f"manifest entry must be relative: {entry!r}")
            if ".." in PurePosixPath(entry).parts:
                raise ValueError(f"manifest entry must not leave the installation: {entry!r}")
        return v

    @field_validator("install_command")
    @classmethod
    def validate_install_command(cls, v: list[str]) -> list[str]:
        if not v:
            raise ValueError("install_command must not be empty")
        return v

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment.lower() == "development"

    @property
    def log_file_path(self) -> str:
        return f"{self.log_directory}/teddy-upgrader.log"

    @property
    def error_log_file_path(self) -> str:
        return f"{self.log_directory}/teddy-upgrader-error.log"

    @property
    def manifest(self) -> InstallationManifest:
        return InstallationManifest(
            directories=tuple(self.resource_directories),
            files=tuple(self.resource_files),
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
