"""
Gemini model manager.

Vertex AI is initialized once per process and model handles are cached per
model name, so every gateway instance shares them.
"""

from __future__ import annotations

import os
from functools import lru_cache

from dmpilot.infrastructure.settings import GEMINI_LOCATION, GOOGLE_CLOUD_PROJECT
from dmpilot.observability.logging import get_logger

logger = get_logger(__name__)


class GeminiInitializationError(RuntimeError):
    """Raised when Vertex AI or a Gemini model cannot be initialized."""


@lru_cache(maxsize=1)
def _init_vertexai() -> None:
    # Read env vars fresh: settings may have been imported before dotenv ran
    project = os.getenv("GOOGLE_CLOUD_PROJECT") or GOOGLE_CLOUD_PROJECT
    location = os.getenv("GEMINI_LOCATION") or GEMINI_LOCATION or "us-central1"

    if not project:
        raise GeminiInitializationError("GOOGLE_CLOUD_PROJECT not set")

    import vertexai

    vertexai.init(project=project, location=location)
    logger.info("Initialized Vertex AI: project=%s, location=%s", project, location)


@lru_cache(maxsize=8)
def get_gemini_model(model_name: str):
    """
    Get or create a shared GenerativeModel for `model_name`.

    Raises:
        GeminiInitializationError: If Vertex AI cannot be initialized
    """
    _init_vertexai()

    from vertexai.generative_models import GenerativeModel

    logger.info("Loaded Gemini model: %s", model_name)
    return GenerativeModel(model_name)


@lru_cache(maxsize=4)
def get_embedding_model(model_name: str):
    """Get or create a shared TextEmbeddingModel."""
    _init_vertexai()

    from vertexai.language_models import TextEmbeddingModel

    logger.info("Loaded embedding model: %s", model_name)
    return TextEmbeddingModel.from_pretrained(model_name)


def has_credentials() -> bool:
    """True when a Vertex AI project is configured."""
    return bool(os.getenv("GOOGLE_CLOUD_PROJECT") or GOOGLE_CLOUD_PROJECT)


def clear_model_cache() -> None:
    """Forget cached models and the Vertex AI init (tests and reconfiguration)."""
    get_gemini_model.cache_clear()
    get_embedding_model.cache_clear()
    _init_vertexai.cache_clear()
