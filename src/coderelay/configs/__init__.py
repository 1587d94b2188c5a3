"""Configuration (pydantic-settings)."""
