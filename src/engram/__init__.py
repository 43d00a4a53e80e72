"""Engram: file-backed memory lifecycle engine for conversational assistants."""

__version__ = "0.1.0"
