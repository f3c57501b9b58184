"""Configuration loading."""

from expression_clustering.config.settings_loader import ConfigManager, Settings, get_settings

__all__ = ["ConfigManager", "Settings", "get_settings"]
