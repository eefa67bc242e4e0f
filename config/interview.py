from __future__ import annotations  # Interview plan, scoring and LLM route configuration

from pathlib import Path
from typing import Dict, List, Literal

from pydantic import BaseModel, Field, model_validator

from .settings import Settings

SlotType = Literal["spoken", "mcq", "coding"]
Difficulty = Literal["very_easy", "easy", "medium", "hard", "expert"]

DIFFICULTY_LADDER: List[str] = ["very_easy", "easy", "medium", "hard", "expert"]

DEFAULT_SLOT_TYPES: List[SlotType] = [
    "spoken",
    "spoken",
    "spoken",
    "mcq",
    "spoken",
    "spoken",
    "mcq",
    "spoken",
    "coding",
    "spoken",
]
DEFAULT_DIFFICULTIES: List[Difficulty] = [
    "easy",
    "easy",
    "medium",
    "medium",
    "medium",
    "medium",
    "hard",
    "hard",
    "medium",
    "hard",
]


class LlmRoute(BaseModel):  # LLM endpoint configuration
    name: str
    base_url: str
    endpoint: str
    model: str
    timeout_s: float = Field(ge=0.1)
    max_retries: int = Field(default=2, ge=0)
    api_key_env: str | None = None
    extra_headers: Dict[str, str] = Field(default_factory=dict)
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    sequential: bool = False


class InterviewPlan(BaseModel):  # Slot sequence fixed for every interview
    slot_types: List[SlotType] = Field(default_factory=lambda: list(DEFAULT_SLOT_TYPES))
    difficulties: List[Difficulty] = Field(default_factory=lambda: list(DEFAULT_DIFFICULTIES))
    max_follow_ups: int = Field(default=2, ge=0)

    @model_validator(mode="after")
    def _check_alignment(self) -> "InterviewPlan":
        if not self.slot_types:
            raise ValueError("slot_types must not be empty")
        if len(self.slot_types) != len(self.difficulties):
            raise ValueError("slot_types and difficulties must have the same length")
        if self.slot_types[0] != "spoken":
            raise ValueError("the first slot must be spoken")
        return self

    @property
    def total_slots(self) -> int:
        return len(self.slot_types)

    def difficulty_for(self, index: int, preference: str = "medium") -> str:
        """Shift the configured slot difficulty by the candidate's preference."""

        base = DIFFICULTY_LADDER.index(self.difficulties[index])
        offset = DIFFICULTY_LADDER.index(preference) - DIFFICULTY_LADDER.index("medium")
        shifted = min(max(base + offset, 0), len(DIFFICULTY_LADDER) - 1)
        return DIFFICULTY_LADDER[shifted]


class ScoringWeights(BaseModel):  # Composite weights, must sum to 1.0
    answer_quality: float = 0.30
    depth_stability: float = 0.20
    mcq_accuracy: float = 0.15
    coding_score: float = 0.15
    behavioral_trust: float = 0.10
    consistency: float = 0.10

    @model_validator(mode="after")
    def _check_sum(self) -> "ScoringWeights":
        total = sum(self.model_dump().values())
        if abs(total - 1.0) > 1e-6:
            raise ValueError(f"scoring weights must sum to 1.0, got {total:.3f}")
        return self


class ScoringSettings(BaseModel):  # Neutral defaults and behavioral thresholds
    weights: ScoringWeights = Field(default_factory=ScoringWeights)

    neutral_depth_stability_no_spoken: float = 50.0
    neutral_depth_stability_no_pairs: float = 60.0
    neutral_mcq_accuracy: float = 50.0
    neutral_coding_score: float = 50.0
    neutral_consistency: float = 70.0

    paste_penalty: float = 15.0
    paste_penalty_cap: float = 30.0
    instant_keystroke_ms: int = 3000
    instant_keystroke_penalty: float = 20.0
    fast_coding_total_ms: int = 30000
    fast_coding_penalty: float = 15.0
    fast_spoken_ms: int = 5000
    fast_spoken_max_count: int = 3
    fast_spoken_penalty: float = 15.0

    vocabulary_jump_chars: float = 2.5
    vocabulary_min_spoken_words: int = 10
    vocabulary_min_justification_words: int = 5


class AppConfig(BaseModel):  # Application configuration root
    llm_routes: Dict[str, LlmRoute]
    oracle_route: str
    interview: InterviewPlan = Field(default_factory=InterviewPlan)
    scoring: ScoringSettings = Field(default_factory=ScoringSettings)

    @model_validator(mode="after")
    def _check_route(self) -> "AppConfig":
        if self.oracle_route not in self.llm_routes:
            raise ValueError(f"Route '{self.oracle_route}' missing for the oracle")
        return self

    @property
    def route(self) -> LlmRoute:
        return self.llm_routes[self.oracle_route]


def load_config(path: Path) -> AppConfig:  # Load configuration from disk
    data = path.read_text(encoding="utf-8")
    return AppConfig.model_validate_json(data)


def default_config(cfg: Settings) -> AppConfig:  # Build configuration from environment settings
    if cfg.APP_CONFIG_PATH:
        return load_config(Path(cfg.APP_CONFIG_PATH))
    route = LlmRoute(
        name="oracle",
        base_url=cfg.ORACLE_BASE_URL,
        endpoint=cfg.ORACLE_ENDPOINT,
        model=cfg.ORACLE_MODEL,
        timeout_s=cfg.ORACLE_TIMEOUT_S,
        max_retries=cfg.ORACLE_MAX_RETRIES,
        api_key_env=cfg.ORACLE_API_KEY_ENV,
        extra_headers={"X-Title": "Interview Readiness"},
    )
    return AppConfig(
        llm_routes={route.name: route},
        oracle_route=route.name,
        interview=InterviewPlan(max_follow_ups=cfg.MAX_FOLLOW_UPS),
    )
