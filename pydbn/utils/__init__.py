"""Pydbn utils package."""
