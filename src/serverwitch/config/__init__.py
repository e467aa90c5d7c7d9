"""Configuration management for serverwitch.

Loads and validates YAML-based configuration with Pydantic models.
Supports environment variable overrides.
"""

from serverwitch.config.settings import Settings, load_settings

__all__ = ["Settings", "load_settings"]
