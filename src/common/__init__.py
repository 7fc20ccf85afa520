"""Shared helpers: HTTP, logging and progress output."""
