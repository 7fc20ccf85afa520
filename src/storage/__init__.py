"""Caches with per-run and cross-run lifetimes."""
