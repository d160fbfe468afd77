"""Application settings loaded from environment variables."""

from __future__ import annotations

from typing import Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """CareNexa health server configuration."""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    # Server
    # Loopback by default: the server has no auth layer and holds personal health data.
    carenexa_host: str = "127.0.0.1"
    carenexa_port: int = 8001
    carenexa_log_level: str = "info"
    carenexa_allow_insecure_bind: bool = False
    # stdio serves a single local MCP client and never opens a socket.
    carenexa_transport: Literal["streamable-http", "stdio"] = "streamable-http"

    # Remote generative-language service behind Dr. Echo
    llm_provider: Literal["gemini", "anthropic", "openai", "mock"] = "gemini"
    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.0-flash"
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta/openai/"
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-sonnet-4-5-20250929"
    openai_api_key: str = ""
    openai_model: str = "gpt-4o"

    # Assistant pipeline
    assistant_agent_type: str = "general"
    assistant_max_tokens: int = 1024
    assistant_temperature: float = 0.7
    assistant_streaming: bool = True
    fallback_token_delay_s: float = 0.02
    # Recorded on lab report receipts when the caller names no model
    lab_extraction_model: str = "gemini-1.5-flash"

    # Storage (browser local-storage equivalent)
    storage_path: str = "~/.carenexa/store.db"

    # Encryption at rest (optional Fernet keys, comma-separated, current first)
    encryption_key: str = ""


def get_settings() -> Settings:
    """Create and return a Settings instance."""
    return Settings()
