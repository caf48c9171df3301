"""Core configuration, errors and request helpers."""
