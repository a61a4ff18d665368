"""Configuration package for the clinical safety engine."""

from .engine_config import ClinicalEngineConfig, get_engine_config, reload_config

__all__ = ["ClinicalEngineConfig", "get_engine_config", "reload_config"]
