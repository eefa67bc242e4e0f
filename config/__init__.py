"""Configuration package for the interview engine."""
from .interview import (
    DIFFICULTY_LADDER,
    AppConfig,
    InterviewPlan,
    LlmRoute,
    ScoringSettings,
    ScoringWeights,
    default_config,
    load_config,
)
from .settings import Settings, settings

__all__ = [
    "DIFFICULTY_LADDER",
    "AppConfig",
    "InterviewPlan",
    "LlmRoute",
    "ScoringSettings",
    "ScoringWeights",
    "default_config",
    "load_config",
    "Settings",
    "settings",
]
