"""Pydbn models package."""
