"""Configuration package for the interview dialogue engine."""
from .app_config import AppConfig, LlmRoute, load_config
from .registry import GENERATOR_KEY, bind_model, get_model, has_model, unbind_model
from .settings import Settings, settings

__all__ = [
    "AppConfig",
    "LlmRoute",
    "load_config",
    "GENERATOR_KEY",
    "bind_model",
    "get_model",
    "has_model",
    "unbind_model",
    "Settings",
    "settings",
]
