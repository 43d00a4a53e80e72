"""Command line interface for Engram."""
