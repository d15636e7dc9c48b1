"""Shared utilities: logging and exception types."""
