"""Centralised build configuration using pydantic-settings.

All environment variables are read through the Settings class.
Consumers call ``get_settings()`` to obtain a cached, validated instance.
Tests construct ``Settings(_env_file=None, ...)`` directly for isolation.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Sub-models (one per configuration domain)
# ---------------------------------------------------------------------------
class BuildConfig(BaseModel):
    """Input/output locations and pipeline behaviour."""

    input_path: Path = Path("index.dev.html")
    output_path: Path = Path("index.html")
    concurrency: int = Field(default=1, ge=1)
    verify_finished_scripts: bool = True
    log_dir: Path | None = None


class ObfuscatorConfig(BaseModel):
    """javascript-obfuscator CLI invocation."""

    npx_command: str = "npx"
    package: str = "javascript-obfuscator"
    target: str = "browser"
    options_preset: str = "medium-obfuscation"
    compact: bool = True
    string_array_encoding: str = "base64"
    extra_args: list[str] = []
    timeout_seconds: float | None = Field(default=300.0, gt=0)


class MinifierConfig(BaseModel):
    """html-minifier-terser CLI invocation.

    Script minification is not configurable: obfuscated output must reach
    the artifact byte for byte.
    """

    npx_command: str = "npx"
    package: str = "html-minifier-terser"
    collapse_whitespace: bool = True
    remove_comments: bool = True
    minify_css: bool = True
    minify_js: bool = False
    extra_args: list[str] = []
    timeout_seconds: float | None = Field(default=300.0, gt=0)

    @field_validator("minify_js")
    @classmethod
    def _script_minification_stays_off(cls, value: bool) -> bool:
        if value:
            msg = (
                "MINIFIER__MINIFY_JS must stay false: "
                "it would re-minify obfuscated scripts"
            )
            raise ValueError(msg)
        return value


# ---------------------------------------------------------------------------
# Root settings
# ---------------------------------------------------------------------------
class Settings(BaseSettings):
    """Build settings with automatic .env loading and type validation.

    Environment variables use double-underscore delimiter for nesting:
    ``BUILD__INPUT_PATH``, ``OBFUSCATOR__OPTIONS_PRESET``,
    ``MINIFIER__REMOVE_COMMENTS``, etc. A ``.env`` file in the working
    directory is loaded if present.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_nested_delimiter="__",
        extra="ignore",
    )

    build: BuildConfig = BuildConfig()
    obfuscator: ObfuscatorConfig = ObfuscatorConfig()
    minifier: MinifierConfig = MinifierConfig()


# ---------------------------------------------------------------------------
# Singleton access
# ---------------------------------------------------------------------------
@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance.

    Call ``get_settings.cache_clear()`` in tests to reset.
    """
    settings = Settings()

    env_file = settings.model_config.get("env_file")
    if env_file is not None and Path(str(env_file)).is_file():
        logger.info("Settings loaded .env from: %s", Path(str(env_file)).absolute())
    else:
        logger.debug("Settings: no .env file found, using env vars and defaults")

    return settings
