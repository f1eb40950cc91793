"""Codelens - Telegram assistant that explains code using an LLM."""

__version__ = "1.0.0"
