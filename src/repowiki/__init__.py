"""Streaming wiki generation and Q&A for GitHub repositories."""

__version__ = "0.1.0"
