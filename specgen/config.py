from __future__ import annotations

from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppConfig(BaseSettings):
    """Application configuration loaded from environment variables."""

    output_suffix: str = Field(default=".spec", description="File suffix for generated specification documents")
    scan_concurrency: int = Field(default=4, description="Max modules scanned concurrently")
    log_level: str = Field(default="ERROR", description="Log level used by the CLI; warnings are summarised separately")

    # Directory discovery
    include_globs: List[str] = Field(
        default_factory=lambda: [
            "**/test_*.py",
            "**/*_test.py",
            "**/*_spec.py",
            "**/*_specs.py",
        ]
    )
    ignore_globs: List[str] = Field(
        default_factory=lambda: [
            "**/.git/**",
            "**/.venv/**",
            "**/node_modules/**",
            "**/dist/**",
            "**/build/**",
            "**/__pycache__/**",
        ]
    )

    model_config = SettingsConfigDict(env_file=".env", env_prefix="SPECGEN_", extra="ignore")
