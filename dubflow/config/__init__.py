"""Configuration module for dubflow."""

from dubflow.config.settings import AppConfig, load_config

__all__ = ["AppConfig", "load_config"]
