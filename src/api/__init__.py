"""REST API module for the YouTube Comment Insight service."""

from src.api.app import app, create_app

__all__ = [
    "app",
    "create_app",
]
