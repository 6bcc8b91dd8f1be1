"""Configuration management for palaver."""

from __future__ import annotations

import os

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from palaver.errors import ApiKeyNotConfiguredError, InvalidModelFormatError, ModelNotConfiguredError
from palaver.render.tree import HtmlPolicy
from palaver.session.controller import DEFAULT_CANCELLED_TEXT, DEFAULT_ERROR_TEXT
from palaver.types import GenerationConfig

DEFAULT_MODEL = "gemini:gemini-1.5-flash"
KEYLESS_PROVIDERS = frozenset({"ollama", "lmstudio", "local"})


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_prefix="PALAVER_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Backend
    model: str = Field(default=DEFAULT_MODEL, description="Model as provider:model")
    api_key: str | None = Field(default=None, description="API key for the LLM provider")
    api_base: str | None = Field(default=None, description="Optional API base URL")
    timeout_seconds: float | None = Field(default=60, description="Maximum wait for one chunk")

    # Generation
    temperature: float = Field(default=1.0, ge=0.0)
    top_p: float = Field(default=0.95, gt=0.0, le=1.0)
    top_k: int | None = Field(default=40, ge=1)
    max_tokens: int = Field(default=8192, ge=1, description="Maximum output tokens")
    output_mode: str = Field(default="text/plain", description="Response MIME type")

    # Rendering
    html_policy: HtmlPolicy = Field(default=HtmlPolicy.SANITIZE)
    code_theme: str = Field(default="monokai")
    error_text: str = Field(default=DEFAULT_ERROR_TEXT)
    cancelled_text: str = Field(default=DEFAULT_CANCELLED_TEXT)

    # Logging
    log_level: str = Field(default="WARNING", description="Log level")

    @property
    def provider(self) -> str:
        provider, _, _ = self.model.partition(":")
        return provider

    def require_model(self) -> str:
        if not self.model.strip():
            raise ModelNotConfiguredError("Model is not configured. Set PALAVER_MODEL.")
        provider, separator, name = self.model.partition(":")
        if not separator or not provider or not name:
            raise InvalidModelFormatError(f"Model must be provider:model, got {self.model!r}")
        return self.model

    @property
    def resolved_api_key(self) -> str | None:
        """The configured key, or the provider's own environment variable.

        Local providers and custom API bases may run without a key.
        """
        if self.api_key:
            return self.api_key
        fallback = os.getenv(f"{self.provider.upper()}_API_KEY")
        if fallback:
            return fallback
        if self.api_base or self.provider.lower() in KEYLESS_PROVIDERS:
            return None
        raise ApiKeyNotConfiguredError(
            f"API key not configured. Set PALAVER_API_KEY or {self.provider.upper()}_API_KEY."
        )

    def generation_config(self) -> GenerationConfig:
        return GenerationConfig(
            temperature=self.temperature,
            top_p=self.top_p,
            top_k=self.top_k,
            max_output_tokens=self.max_tokens,
            output_mode=self.output_mode,
        )


def get_settings(**overrides: object) -> Settings:
    """Get application settings, with explicit overrides taking precedence."""
    values = {key: value for key, value in overrides.items() if value is not None}
    return Settings(**values)  # type: ignore[arg-type]
