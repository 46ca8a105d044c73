"""
Configuration for the Lumina study pipeline
===========================================

Central configuration for model identifiers, retry policy, audio output and the
proxy endpoint. Values come from environment variables (a local ``.env`` file
is honoured through python-dotenv) on top of the defaults declared here.

The Gemini API key is only read by the proxy server; clients never see it.
"""

import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

# Load environment variables from .env file
load_dotenv()

TRUTHY_ENV_VALUES = {"1", "true", "yes", "on"}


class ModelSettings(BaseModel):
    """Upstream model identifiers used by each request shape."""

    text_model: str = Field(
        default="gemini-2.5-flash-preview-09-2025",
        description="Model for quiz analysis, explanations, flashcards, study guides and performance feedback",
    )
    document_model: str = Field(
        default="gemini-2.0-flash",
        description="Model for long document analysis, answer evaluation and persona content",
    )
    tts_model: str = Field(
        default="gemini-2.5-flash-preview-tts",
        description="Model for speech synthesis",
    )


class RetrySettings(BaseModel):
    """Retry policy for transient upstream overload (HTTP 503)."""

    max_retries: int = Field(default=3, ge=0, description="Retries after the initial attempt")
    base_delay_seconds: float = Field(
        default=1.0,
        ge=0.0,
        description="Delay before retry n is base_delay_seconds * 2**n",
    )
    retry_status: int = Field(default=503, description="The only status that triggers a retry")


class AudioSettings(BaseModel):
    """Speech synthesis and WAVE wrapping parameters."""

    voice_name: str = Field(default="Kore", description="Prebuilt voice used for speech synthesis")
    sample_rate: int = Field(default=24000, gt=0, description="Sample rate of the PCM returned upstream")


class ProxySettings(BaseModel):
    """Settings for the same-origin proxy and the client calling it."""

    url: str = Field(
        default="http://localhost:8000/api/gemini",
        description="Proxy endpoint the clients POST {model, payload} to",
    )
    upstream_base_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        description="Base URL of the upstream generative API (proxy side)",
    )
    upstream_timeout_seconds: float = Field(
        default=120.0,
        gt=0,
        description="Timeout for the proxy's own upstream call",
    )
    client_timeout_seconds: Optional[float] = Field(
        default=None,
        description="Client side total timeout; None leaves slow responses unbounded",
    )


class Config(BaseModel):
    """Configuration settings for the Lumina study pipeline."""

    GEMINI_API_KEY: str = Field(default="", description="Server-held Gemini API key (proxy only)")

    MODELS: ModelSettings = Field(default_factory=ModelSettings)
    RETRY: RetrySettings = Field(default_factory=RetrySettings)
    AUDIO: AudioSettings = Field(default_factory=AudioSettings)
    PROXY: ProxySettings = Field(default_factory=ProxySettings)

    DOCUMENT_MAX_CHARS: int = Field(default=20000, gt=0, description="Document text sent for analysis is cut here")

    LOG_LEVEL: str = Field(default="INFO", description="Root log level")

    # FastAPI Configuration
    APP_HOST: str = Field(default="0.0.0.0", description="Proxy server host")
    APP_PORT: int = Field(default=8000, description="Proxy server port")
    APP_RELOAD: bool = Field(default=False, description="Uvicorn reload mode")

    def __init__(self, **data):
        super().__init__(**data)
        self.load_from_environment()

    def load_from_environment(self):
        """Load configuration from environment variables."""
        self.GEMINI_API_KEY = (
            os.getenv("GEMINI_API_KEY", "") or os.getenv("GOOGLE_API_KEY", "") or self.GEMINI_API_KEY
        )

        self.MODELS.text_model = os.getenv("LUMINA_TEXT_MODEL", self.MODELS.text_model)
        self.MODELS.document_model = os.getenv("LUMINA_DOCUMENT_MODEL", self.MODELS.document_model)
        self.MODELS.tts_model = os.getenv("LUMINA_TTS_MODEL", self.MODELS.tts_model)

        self.RETRY.max_retries = max(0, int(os.getenv("LUMINA_MAX_RETRIES", str(self.RETRY.max_retries))))
        self.RETRY.base_delay_seconds = max(
            0.0, float(os.getenv("LUMINA_RETRY_BASE_DELAY", str(self.RETRY.base_delay_seconds)))
        )

        self.AUDIO.voice_name = os.getenv("LUMINA_TTS_VOICE", self.AUDIO.voice_name)

        self.PROXY.url = os.getenv("LUMINA_PROXY_URL", self.PROXY.url)
        self.PROXY.upstream_base_url = os.getenv("GEMINI_API_BASE", self.PROXY.upstream_base_url).rstrip("/")
        self.PROXY.upstream_timeout_seconds = float(
            os.getenv("PROXY_UPSTREAM_TIMEOUT", str(self.PROXY.upstream_timeout_seconds))
        )
        # 0 disables the client timeout
        client_timeout = os.getenv("LUMINA_REQUEST_TIMEOUT")
        if client_timeout is not None:
            seconds = float(client_timeout)
            self.PROXY.client_timeout_seconds = seconds if seconds > 0 else None

        self.DOCUMENT_MAX_CHARS = int(os.getenv("DOCUMENT_MAX_CHARS", str(self.DOCUMENT_MAX_CHARS)))

        self.LOG_LEVEL = os.getenv("LOG_LEVEL", self.LOG_LEVEL).upper()
        self.APP_HOST = os.getenv("APP_HOST", self.APP_HOST)
        self.APP_PORT = int(os.getenv("APP_PORT", str(self.APP_PORT)))
        self.APP_RELOAD = os.getenv("APP_RELOAD", str(self.APP_RELOAD)).lower() in TRUTHY_ENV_VALUES

    def has_api_key(self) -> bool:
        return bool(self.GEMINI_API_KEY)


# Global configuration instance
config = Config()
