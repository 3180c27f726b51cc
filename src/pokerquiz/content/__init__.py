"""Bundled scenario content."""
