"""Dependency tree resolution."""
