"""YouTube Comment Insight - Fetch videos, analyze their comments, cache the results."""

__version__ = "1.0.0"
