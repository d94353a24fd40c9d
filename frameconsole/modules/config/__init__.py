"""
Config Module - Black Box Interface

Purpose: Console configuration management
Interface: get_config(), ConfigModule.get()
Hidden: Config sources, validation logic, environment parsing

Can be replaced with different config systems (Consul, etcd, AWS Parameter Store).
"""

import os
from typing import Any, Dict, List


# Configuration Contract: Required and Optional Keys

REQUIRED_CONFIG_KEYS = {
    "last_evaluation_variable": "Name the last evaluated value is bound to",
    "use_distributed_storage": "Mirror sessions into Redis and look them up there",
    "session_ttl": "Distributed session time-to-live in seconds",
    "lookup_policy": "Session lookup policy (exclusive or fallback)",
    "log_level": "Logging level (DEBUG, INFO, WARNING, ERROR)",
}

OPTIONAL_CONFIG_KEYS = {
    "redis_url": {
        "description": "Redis connection URL for the distributed tier",
        "default": "redis://localhost:6379/0",
    },
    "redis_timeout": {
        "description": "Seconds a single Redis operation may take",
        "default": 5.0,
    },
    "allowed_networks": {
        "description": "Networks allowed to use the console",
        "default": ["127.0.0.0/8", "::1"],
    },
}


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def _parse_list(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class ConfigModule:
    """Configuration management module."""

    def __init__(self):
        """Initialize with environment variables."""
        self._config = self._load_from_env()
        self._validate_required_keys()

    def _validate_required_keys(self) -> None:
        """
        Validate that all required configuration keys are present and sane.

        Raises:
            ValueError: If required keys are missing or invalid
        """
        missing_keys = [
            key for key in REQUIRED_CONFIG_KEYS if self._config.get(key) in (None, "")
        ]
        if missing_keys:
            raise ValueError(
                f"Missing required configuration keys: {', '.join(missing_keys)}. "
                f"Check environment variables and deployment configuration."
            )

        if not self._config["last_evaluation_variable"].isidentifier():
            raise ValueError(
                f"last_evaluation_variable must be a valid identifier, "
                f"got {self._config['last_evaluation_variable']!r}"
            )
        if self._config["session_ttl"] <= 0:
            raise ValueError("session_ttl must be a positive number of seconds")

    def _load_from_env(self) -> Dict[str, Any]:
        """Load configuration from environment."""
        return {
            # Evaluation settings
            "last_evaluation_variable": os.getenv("CONSOLE_LAST_EVALUATION_VARIABLE", "_"),
            # Storage settings
            "use_distributed_storage": _parse_bool(
                os.getenv("CONSOLE_USE_DISTRIBUTED_STORAGE", "true")
            ),
            "session_ttl": int(os.getenv("CONSOLE_SESSION_TTL", "3600")),
            "lookup_policy": os.getenv("CONSOLE_LOOKUP_POLICY", "exclusive"),
            "redis_url": os.getenv("REDIS_URL", OPTIONAL_CONFIG_KEYS["redis_url"]["default"]),
            "redis_timeout": float(os.getenv("CONSOLE_REDIS_TIMEOUT", "5")),
            # Request settings
            "allowed_networks": _parse_list(
                os.getenv("CONSOLE_ALLOWED_NETWORKS", "127.0.0.0/8,::1")
            ),
            "log_level": os.getenv("LOG_LEVEL", "INFO"),
        }

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value."""
        return self._config.get(key, default)


# Singleton instance
_instance = None


def get_config() -> ConfigModule:
    """Get the configuration module singleton."""
    global _instance
    if _instance is None:
        _instance = ConfigModule()
    return _instance


def reset_config() -> None:
    """Drop the singleton so the next get_config() re-reads the environment."""
    global _instance
    _instance = None


__all__ = ["ConfigModule", "get_config", "reset_config"]
