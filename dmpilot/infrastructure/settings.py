"""
Application-wide settings and environment configuration
"""

from __future__ import annotations

import os
from pathlib import Path

# Project paths
PACKAGE_ROOT = Path(__file__).parent.parent

ENV = os.getenv("DMPILOT_ENV", "development")

# API Configuration
API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", "8000"))

# Google Cloud / Gemini
GOOGLE_CLOUD_PROJECT = os.getenv("GOOGLE_CLOUD_PROJECT", "")
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.0-flash-001")  # Vertex AI model
GEMINI_LOCATION = os.getenv("GEMINI_LOCATION", "us-central1")
EMBEDDING_MODEL = os.getenv("EMBEDDING_MODEL", "text-embedding-004")

# CORS
ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.getenv("DMPILOT_ALLOWED_ORIGINS", "http://localhost:8081").split(",")
    if origin.strip()
]


def is_production() -> bool:
    """Check if running in production"""
    return ENV == "production"
