"""
Clinical Engine Configuration

Loads and validates configuration from config/clinical_engine.yaml.
Provides typed models for the tunable thresholds of each engine. Clinical
tables themselves are not configurable; only matching and scoring knobs are.
"""

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional

import yaml


@dataclass
class ResolverConfig:
    """Substance name matching configuration."""
    min_substring_alias_length: int = 5   # shorter aliases match whole words only
    suggestion_threshold: float = 0.75    # similarity needed to suggest a spelling
    max_suggestions: int = 3


@dataclass
class DoseConfig:
    """Dose adjuster configuration."""
    geriatric_age: float = 65.0
    prefer_ckd_epi: bool = False          # use CKD-EPI even when weight is known


@dataclass
class FollowUpConfig:
    """Follow-up statistics configuration."""
    bp_trend_threshold: float = 5.0       # mmHg systolic
    glycemia_trend_threshold: float = 0.15  # g/L
    weight_trend_threshold: float = 0.5   # kg
    weight_in_range_percent: float = 5.0  # of baseline
    trend_window_days: int = 7
    weight_increase_is_worse: bool = True


@dataclass
class SafetyScoreConfig:
    """Weights of the overall safety score."""
    contraindicated_penalty: int = 50
    unsafe_penalty: int = 30
    caution_penalty: int = 15
    contraindicated_medication_penalty: int = 20
    adjusted_medication_penalty: int = 5
    cannot_miss_bonus: int = 10


def _section(cls, data: Optional[Dict[str, Any]]):
    """Build a section dataclass, ignoring unknown keys."""
    if not data:
        return cls()
    known = {f.name for f in fields(cls)}
    return cls(**{k: v for k, v in data.items() if k in known})


@dataclass
class ClinicalEngineConfig:
    """Complete clinical engine configuration."""
    log_level: str = "INFO"
    resolver: ResolverConfig = field(default_factory=ResolverConfig)
    dose: DoseConfig = field(default_factory=DoseConfig)
    follow_up: FollowUpConfig = field(default_factory=FollowUpConfig)
    safety_score: SafetyScoreConfig = field(default_factory=SafetyScoreConfig)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ClinicalEngineConfig":
        """Create config from dictionary (parsed YAML)."""
        return cls(
            log_level=str(data.get("log_level", "INFO")).upper(),
            resolver=_section(ResolverConfig, data.get("resolver")),
            dose=_section(DoseConfig, data.get("dose")),
            follow_up=_section(FollowUpConfig, data.get("follow_up")),
            safety_score=_section(SafetyScoreConfig, data.get("safety_score")),
        )

    @classmethod
    def from_yaml(cls, path: Optional[str] = None) -> "ClinicalEngineConfig":
        """Load config from YAML file."""
        if path is None:
            path = os.getenv("CLINICAL_ENGINE_CONFIG", "config/clinical_engine.yaml")

        config_path = Path(path)
        if not config_path.is_absolute():
            config_path = Path.cwd() / path

        if not config_path.exists():
            # Return default config if file doesn't exist
            return cls()

        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        return cls.from_dict(data)

    @classmethod
    def from_env(cls) -> "ClinicalEngineConfig":
        """
        Create config from environment variables.

        Environment variables override YAML config.
        """
        config = cls.from_yaml()

        if os.getenv("LOG_LEVEL"):
            config.log_level = os.getenv("LOG_LEVEL").upper()

        if os.getenv("MIN_SUBSTRING_ALIAS_LENGTH"):
            config.resolver.min_substring_alias_length = int(os.getenv("MIN_SUBSTRING_ALIAS_LENGTH"))

        if os.getenv("GERIATRIC_AGE"):
            config.dose.geriatric_age = float(os.getenv("GERIATRIC_AGE"))

        if os.getenv("PREFER_CKD_EPI"):
            config.dose.prefer_ckd_epi = os.getenv("PREFER_CKD_EPI").lower() in ("1", "true", "yes")

        if os.getenv("BP_TREND_THRESHOLD"):
            config.follow_up.bp_trend_threshold = float(os.getenv("BP_TREND_THRESHOLD"))

        if os.getenv("GLYCEMIA_TREND_THRESHOLD"):
            config.follow_up.glycemia_trend_threshold = float(os.getenv("GLYCEMIA_TREND_THRESHOLD"))

        if os.getenv("WEIGHT_TREND_THRESHOLD"):
            config.follow_up.weight_trend_threshold = float(os.getenv("WEIGHT_TREND_THRESHOLD"))

        return config


# Global config instance (lazy loaded)
_config: Optional[ClinicalEngineConfig] = None


def get_engine_config() -> ClinicalEngineConfig:
    """Get the global engine configuration (lazy loaded)."""
    global _config
    if _config is None:
        _config = ClinicalEngineConfig.from_env()
    return _config


def reload_config(path: Optional[str] = None) -> ClinicalEngineConfig:
    """Reload configuration from file."""
    global _config
    _config = ClinicalEngineConfig.from_yaml(path)
    return _config
