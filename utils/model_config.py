"""
Model configuration and runtime settings for practice generation.
Centralized model management; settings are explicit values injected into
the clients instead of module-level globals.
"""

import os
import logging
from typing import Dict, Any, Optional
from enum import Enum

from dotenv import load_dotenv
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class ModelProvider(str, Enum):
    OPENAI = "openai"
    GROQ = "groq"


# Model configurations
MODEL_CONFIGS: Dict[str, Dict[str, Any]] = {
    "gpt-4o-mini": {
        "provider": ModelProvider.OPENAI,
        "model": "gpt-4o-mini",
        "max_tokens": 3000,
        "temperature": 0.7
    },
    "gpt-4o": {
        "provider": ModelProvider.OPENAI,
        "model": "gpt-4o",
        "max_tokens": 3000,
        "temperature": 0.7
    },
    "llama-4-scout": {
        "provider": ModelProvider.GROQ,
        "model": "meta-llama/llama-4-scout-17b-16e-instruct",
        "max_tokens": 3000,
        "temperature": 0.7
    }
}

DEFAULT_MODEL = "gpt-4o-mini"

# Environment variable holding the credential for each provider
PROVIDER_API_KEY_ENV = {
    ModelProvider.OPENAI: "OPENAI_API_KEY",
    ModelProvider.GROQ: "GROQ_API_KEY",
}

# Values shipped in example .env files; treated as "no key configured"
PLACEHOLDER_API_KEYS = {"", "your_openai_api_key_here", "your_groq_api_key_here"}

DEFAULT_GENERATION_TIMEOUT = 45.0
DEFAULT_FETCH_TIMEOUT = 30.0
DEFAULT_EXTRACTION_WORKERS = 4


class ModelConfig:
    """Model configuration manager"""

    @staticmethod
    def get_config(model_key: Optional[str] = None) -> Dict[str, Any]:
        """Get configuration for specified model or default"""
        key = model_key or DEFAULT_MODEL

        if key not in MODEL_CONFIGS:
            raise ValueError(f"Unknown model: {key}. Available: {list(MODEL_CONFIGS.keys())}")

        return MODEL_CONFIGS[key]


def normalize_api_key(value: Optional[str]) -> Optional[str]:
    """Return the key stripped, or None for empty/placeholder values"""
    if value is None:
        return None
    value = value.strip()
    if value in PLACEHOLDER_API_KEYS:
        return None
    return value


class GenerationSettings(BaseModel):
    """Everything the generation client needs; injected at construction"""
    provider: ModelProvider = ModelProvider.OPENAI
    api_key: Optional[str] = None
    model: str = MODEL_CONFIGS[DEFAULT_MODEL]["model"]
    temperature: float = 0.7
    max_tokens: int = Field(3000, gt=0)
    timeout_seconds: float = Field(DEFAULT_GENERATION_TIMEOUT, gt=0)
    base_url: Optional[str] = None

    @property
    def has_api_key(self) -> bool:
        return normalize_api_key(self.api_key) is not None

    @classmethod
    def from_model_key(cls, model_key: Optional[str] = None, **overrides: Any) -> "GenerationSettings":
        config = ModelConfig.get_config(model_key)
        values = {
            "provider": config["provider"],
            "model": config["model"],
            "temperature": config.get("temperature", 0.7),
            "max_tokens": config.get("max_tokens", 3000),
        }
        values.update(overrides)
        return cls(**values)

    @classmethod
    def from_env(cls, model_key: Optional[str] = None) -> "GenerationSettings":
        """Build settings from the environment (.env supported)"""
        load_dotenv()
        key = model_key or os.getenv("PRACTICE_MODEL") or DEFAULT_MODEL
        config = ModelConfig.get_config(key)
        api_key = normalize_api_key(os.getenv(PROVIDER_API_KEY_ENV[config["provider"]]))
        if api_key is None:
            logger.warning(
                f"{PROVIDER_API_KEY_ENV[config['provider']]} not set. "
                "Practice questions will use the offline generator."
            )
        timeout = float(os.getenv("PRACTICE_GENERATION_TIMEOUT", DEFAULT_GENERATION_TIMEOUT))
        return cls.from_model_key(
            key,
            api_key=api_key,
            timeout_seconds=timeout,
            base_url=os.getenv("PRACTICE_BASE_URL") or None,
        )


class ExtractionSettings(BaseModel):
    """Bounds for downloading and scanning course documents"""
    fetch_timeout_seconds: float = Field(DEFAULT_FETCH_TIMEOUT, gt=0)
    max_workers: int = Field(DEFAULT_EXTRACTION_WORKERS, ge=1)

    @classmethod
    def from_env(cls) -> "ExtractionSettings":
        load_dotenv()
        return cls(
            fetch_timeout_seconds=float(os.getenv("DOCUMENT_FETCH_TIMEOUT", DEFAULT_FETCH_TIMEOUT)),
            max_workers=int(os.getenv("EXTRACTION_MAX_WORKERS", DEFAULT_EXTRACTION_WORKERS)),
        )
