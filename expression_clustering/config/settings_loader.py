"""
settings_loader.py

Configuration management for the expression clustering pipeline.
Loads and validates settings from YAML configuration with environment variable substitution.

Features:
- YAML configuration loading with validation
- Environment variable substitution (${VAR_NAME} syntax)
- Singleton pattern for global settings access
- Type-safe configuration with Pydantic models
- Default values when no configuration file exists
"""

import os
import re
import yaml
import logging
from typing import Any, List, Optional
from pydantic import BaseModel, Field, ValidationError, field_validator
from pathlib import Path

from expression_clustering.utils.error_handling import ConfigurationError

logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Models (Pydantic)
# =============================================================================

class ServiceSettings(BaseModel):
    """General settings."""
    name: str = Field(default="expression-clustering", description="Service name")
    version: str = Field(default="1.0.0", description="Service version")


class ClusteringSettings(BaseModel):
    """K-Means model selection settings."""
    candidate_ks: List[int] = Field(default_factory=lambda: [2, 4, 7], description="Cluster counts to compare, in order")
    n_restarts: int = Field(default=10, ge=1, description="Random initializations per candidate")
    max_iter: int = Field(default=300, ge=1, description="Lloyd iteration cap")
    random_state: int = Field(default=42, ge=0, description="Random seed")
    n_jobs: int = Field(default=1, ge=1, description="Worker threads for restarts and candidates")

    @field_validator("candidate_ks")
    @classmethod
    def validate_candidate_ks(cls, v: List[int]) -> List[int]:
        if not v:
            raise ValueError("candidate_ks must not be empty")
        if any(k < 1 for k in v):
            raise ValueError("candidate_ks must be positive integers")
        return v


class HierarchicalSettings(BaseModel):
    """Dendrogram diagnostic settings."""
    metric: str = Field(default="euclidean", description="Distance metric")
    linkage: str = Field(default="complete", description="Linkage method (complete, average, single)")

    @field_validator("metric")
    @classmethod
    def validate_metric(cls, v: str) -> str:
        allowed = {"euclidean", "sqeuclidean", "manhattan", "cosine", "correlation"}
        if v not in allowed:
            raise ValueError(f"metric must be one of {sorted(allowed)}")
        return v

    @field_validator("linkage")
    @classmethod
    def validate_linkage(cls, v: str) -> str:
        allowed = {"complete", "average", "single"}
        if v not in allowed:
            raise ValueError(f"linkage must be one of {sorted(allowed)}")
        return v


class LoggingSettings(BaseModel):
    """Logging configuration."""
    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="json", description="Output format (json or console)")
    file: Optional[str] = Field(default=None, description="Optional log file path")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        v = v.upper()
        if v not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid log level: {v}")
        return v

    @field_validator("format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        if v not in {"json", "console"}:
            raise ValueError("format must be 'json' or 'console'")
        return v


class Settings(BaseModel):
    """Root configuration model."""
    service: ServiceSettings = Field(default_factory=ServiceSettings)
    clustering: ClusteringSettings = Field(default_factory=ClusteringSettings)
    hierarchical: HierarchicalSettings = Field(default_factory=HierarchicalSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


# =============================================================================
# Configuration Manager (Singleton)
# =============================================================================

class ConfigManager:
    """
    Singleton configuration manager that loads and caches settings.

    Features:
    - Loads YAML configuration from file
    - Substitutes environment variables using ${VAR_NAME} syntax
    - Validates configuration using Pydantic models
    - Provides global access to settings
    """

    _instance: Optional['ConfigManager'] = None
    _settings: Optional[Settings] = None

    def __new__(cls):
        """Ensure singleton pattern."""
        if cls._instance is None:
            cls._instance = super(ConfigManager, cls).__new__(cls)
        return cls._instance

    @classmethod
    def load_config(cls, config_path: Optional[str] = None) -> Settings:
        """
        Load configuration from YAML file with environment variable substitution.

        Args:
            config_path: Path to configuration file. If None, searches the
                default locations and falls back to built-in defaults.

        Returns:
            Settings object with validated configuration

        Raises:
            ConfigurationError: If an explicit path is missing or the content is invalid
        """
        if cls._settings is not None:
            return cls._settings

        if config_path is None:
            possible_paths = [
                Path(os.getenv("EXPRESSION_CLUSTERING_CONFIG", "config/settings.yaml")),
                Path("config/settings.yaml"),
                Path("../config/settings.yaml"),
            ]

            config_path_obj = None
            for path in possible_paths:
                if path.exists():
                    config_path_obj = path
                    break

            if config_path_obj is None:
                logger.warning(
                    f"Configuration file not found in any of: {[str(p) for p in possible_paths]}. "
                    "Using defaults."
                )
                cls._settings = Settings()
                return cls._settings
        else:
            config_path_obj = Path(config_path)
            if not config_path_obj.exists():
                raise ConfigurationError(
                    f"Configuration file not found: {config_path}",
                    details={"path": str(config_path)},
                )

        logger.info(f"Loading configuration from: {config_path_obj}")

        try:
            with open(config_path_obj, 'r') as f:
                raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            logger.error(f"Failed to load YAML configuration: {e}")
            raise ConfigurationError(f"Invalid YAML configuration: {e}")

        config_dict = cls._substitute_env_vars(raw_config or {})

        try:
            cls._settings = Settings(**config_dict)
        except ValidationError as e:
            logger.error(f"Configuration validation failed: {e}")
            raise ConfigurationError(
                f"Invalid configuration: {e}",
                details={"errors": e.errors(include_url=False)},
            )

        logger.info("Configuration loaded and validated successfully")
        return cls._settings

    @classmethod
    def get_settings(cls) -> Settings:
        """
        Get cached settings. Loads from default path if not already loaded.

        Returns:
            Settings object
        """
        if cls._settings is None:
            cls.load_config()
        return cls._settings

    @classmethod
    def _substitute_env_vars(cls, config: Any) -> Any:
        """
        Recursively substitute environment variables in configuration.

        Supports ${VAR_NAME} and ${VAR_NAME:default_value} syntax.

        Args:
            config: Configuration dictionary or value

        Returns:
            Configuration with substituted values
        """
        if isinstance(config, dict):
            return {k: cls._substitute_env_vars(v) for k, v in config.items()}
        elif isinstance(config, list):
            return [cls._substitute_env_vars(item) for item in config]
        elif isinstance(config, str):
            pattern = r'\$\{([^}:]+)(?::([^}]*))?\}'

            def replace_var(match):
                var_name = match.group(1)
                default_value = match.group(2) if match.group(2) is not None else ""
                return os.getenv(var_name, default_value)

            return re.sub(pattern, replace_var, config)
        else:
            return config

    @classmethod
    def reload_config(cls, config_path: Optional[str] = None) -> Settings:
        """
        Reload configuration from file.

        Args:
            config_path: Path to configuration file

        Returns:
            Reloaded Settings object
        """
        cls._settings = None
        return cls.load_config(config_path)


# =============================================================================
# Convenience Functions
# =============================================================================

def get_settings() -> Settings:
    """
    Get application settings (convenience function).

    Returns:
        Settings object
    """
    return ConfigManager.get_settings()
