"""Tarball download, naming, archiving and publishing."""
