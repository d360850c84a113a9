"""Shared helpers for prompt text and client-facing errors."""
