"""Shared exceptions and utilities for Engram."""
