"""Readiness scoring and risk detection for completed interviews."""
from __future__ import annotations

import math
from typing import List, Optional, Tuple

from config.interview import ScoringSettings
from interview.models import (
    SKIPPED_ANSWER,
    CodingSlot,
    Grade,
    MCQSlot,
    RiskFlag,
    ScoreBreakdown,
    ScoreReport,
    Session,
    SpokenSlot,
)

GRADE_BANDS: List[Tuple[int, str, str]] = [
    (90, "A+", "Exceptional"),
    (80, "A", "Excellent"),
    (70, "B+", "Very Good"),
    (60, "B", "Good"),
    (50, "C+", "Average"),
    (40, "C", "Below Average"),
    (30, "D", "Needs Improvement"),
]
FAILING_GRADE = Grade(letter="F", label="Not Ready")

DEFAULT_SCORING = ScoringSettings()


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _mean(values: List[float]) -> float:
    return sum(values) / len(values)


def _partition(session: Session) -> Tuple[List[SpokenSlot], List[MCQSlot], List[CodingSlot]]:
    spoken: List[SpokenSlot] = []
    mcq: List[MCQSlot] = []
    coding: List[CodingSlot] = []
    for slot in session.slots:
        if slot.skipped:
            continue
        if isinstance(slot, SpokenSlot):
            spoken.append(slot)
        elif isinstance(slot, MCQSlot):
            mcq.append(slot)
        elif isinstance(slot, CodingSlot):
            coding.append(slot)
        else:
            raise TypeError(f"Unsupported slot type: {type(slot).__name__}")
    return spoken, mcq, coding


def _follow_up_scores(slot: SpokenSlot) -> List[int]:
    return [fu.evaluation.quality for fu in slot.follow_ups if fu.evaluation is not None]


def answer_quality(spoken: List[SpokenSlot]) -> float:
    """Mean of main and follow-up quality (1-10) scaled to 0-100."""

    scores: List[int] = []
    for slot in spoken:
        if slot.evaluation is not None:
            scores.append(slot.evaluation.quality)
        scores.extend(_follow_up_scores(slot))
    if not scores:
        return 0.0
    return _mean(scores) * 10


def _stability_points(drop: int) -> float:
    if drop <= 0:
        return 100.0
    if drop <= 2:
        return 70.0
    if drop <= 4:
        return 40.0
    return 10.0


def depth_stability(spoken: List[SpokenSlot], cfg: ScoringSettings = DEFAULT_SCORING) -> float:
    """How well answer quality holds up under follow-up probing."""

    if not spoken:
        return cfg.neutral_depth_stability_no_spoken
    points: List[float] = []
    for slot in spoken:
        if slot.evaluation is None:
            continue
        main = slot.evaluation.quality
        points.extend(_stability_points(main - score) for score in _follow_up_scores(slot))
    if not points:
        return cfg.neutral_depth_stability_no_pairs
    return _mean(points)


def mcq_accuracy(mcq: List[MCQSlot], cfg: ScoringSettings = DEFAULT_SCORING) -> float:
    if not mcq:
        return cfg.neutral_mcq_accuracy
    total = 0.0
    for slot in mcq:
        points = 50.0 if slot.is_correct else 0.0
        if slot.justification_evaluation is not None:
            points += slot.justification_evaluation.quality * 5
        elif slot.is_correct:
            points += 25.0
        total += points
    return total / len(mcq)


def coding_score(coding: List[CodingSlot], cfg: ScoringSettings = DEFAULT_SCORING) -> float:
    if not coding:
        return cfg.neutral_coding_score
    total = 0.0
    for slot in coding:
        if slot.evaluation is not None:
            total += (slot.evaluation.code_quality + slot.evaluation.logic_score) / 2 * 10
    return total / len(coding)


def paste_count(session: Session) -> int:
    """Paste events from coding telemetry plus session-level paste signals."""

    from_slots = sum(
        slot.behavior_data.paste_count
        for slot in session.slots
        if isinstance(slot, CodingSlot) and slot.behavior_data is not None
    )
    from_signals = sum(1 for signal in session.behavior_signals if signal.type == "paste")
    return from_slots + from_signals


def _instant_start(slot: CodingSlot, cfg: ScoringSettings) -> bool:
    data = slot.behavior_data
    return (
        data is not None
        and data.time_to_first_keystroke_ms is not None
        and data.time_to_first_keystroke_ms < cfg.instant_keystroke_ms
    )


def _fast_finish(slot: CodingSlot, cfg: ScoringSettings) -> bool:
    data = slot.behavior_data
    return data is not None and data.total_time_ms is not None and data.total_time_ms < cfg.fast_coding_total_ms


def behavioral_trust(
    session: Session,
    spoken: List[SpokenSlot],
    coding: List[CodingSlot],
    cfg: ScoringSettings = DEFAULT_SCORING,
) -> float:
    trust = 100.0
    pastes = paste_count(session)
    if pastes:
        trust -= min(cfg.paste_penalty_cap, pastes * cfg.paste_penalty)
    for slot in coding:
        if _instant_start(slot, cfg):
            trust -= cfg.instant_keystroke_penalty
        if _fast_finish(slot, cfg):
            trust -= cfg.fast_coding_penalty
    fast_answers = sum(
        1
        for slot in spoken
        if slot.response_time_ms is not None and slot.response_time_ms < cfg.fast_spoken_ms
    )
    if fast_answers > cfg.fast_spoken_max_count:
        trust -= cfg.fast_spoken_penalty
    return max(0.0, trust)


def consistency(spoken: List[SpokenSlot], mcq: List[MCQSlot], cfg: ScoringSettings = DEFAULT_SCORING) -> float:
    """Agreement between spoken performance and MCQ performance."""

    if not spoken or not mcq:
        return cfg.neutral_consistency
    gap = abs(answer_quality(spoken) / 10 - mcq_accuracy(mcq, cfg) / 10)
    if gap <= 2:
        return 100.0
    if gap <= 4:
        return 70.0
    if gap <= 6:
        return 40.0
    return 15.0


def _word_lengths(texts: List[Optional[str]]) -> List[int]:
    lengths: List[int] = []
    for text in texts:
        if text and text != SKIPPED_ANSWER:
            lengths.extend(len(word) for word in text.split())
    return lengths


def detect_risk_flags(
    session: Session,
    spoken: List[SpokenSlot],
    mcq: List[MCQSlot],
    coding: List[CodingSlot],
    cfg: ScoringSettings = DEFAULT_SCORING,
) -> List[RiskFlag]:
    flags: List[RiskFlag] = []

    for slot in spoken:
        follow_ups = _follow_up_scores(slot)
        if slot.evaluation is None or not follow_ups:
            continue
        main = slot.evaluation.quality
        avg_follow_up = _mean(follow_ups)
        if main >= 7 and avg_follow_up <= 3:
            flags.append(
                RiskFlag(
                    type="confidence_decay",
                    severity="warning",
                    label="Shallow Understanding",
                    detail=(
                        f"Q{slot.index + 1}: Strong initial answer ({main}/10) "
                        f"but collapsed on follow-up ({avg_follow_up:.1f}/10)"
                    ),
                )
            )

    pastes = paste_count(session)
    if pastes:
        flags.append(
            RiskFlag(
                type="paste_detected",
                severity="danger",
                label="Code Pasted",
                detail=f"{pastes} paste event(s) detected in coding editor",
            )
        )

    for slot in coding:
        if _instant_start(slot, cfg):
            seconds = slot.behavior_data.time_to_first_keystroke_ms / 1000
            flags.append(
                RiskFlag(
                    type="instant_coding",
                    severity="danger",
                    label="Suspiciously Fast Coding",
                    detail=f"Q{slot.index + 1}: Started typing in {seconds:.1f}s, possible pre-written code",
                )
            )

    spoken_lengths = _word_lengths([slot.answer for slot in spoken])
    justification_lengths = _word_lengths([slot.justification for slot in mcq])
    if (
        len(spoken_lengths) >= cfg.vocabulary_min_spoken_words
        and len(justification_lengths) >= cfg.vocabulary_min_justification_words
    ):
        avg_spoken = _mean(spoken_lengths)
        avg_justification = _mean(justification_lengths)
        if avg_justification > avg_spoken + cfg.vocabulary_jump_chars:
            flags.append(
                RiskFlag(
                    type="vocabulary_jump",
                    severity="warning",
                    label="Vocabulary Inconsistency",
                    detail=(
                        f"Spoken avg word length: {avg_spoken:.1f} vs justification: "
                        f"{avg_justification:.1f} (possible AI-generated text)"
                    ),
                )
            )

    for slot in mcq:
        evaluation = slot.justification_evaluation
        if slot.is_correct and evaluation is not None and evaluation.quality <= 3:
            flags.append(
                RiskFlag(
                    type="mcq_spoken_mismatch",
                    severity="warning",
                    label="Surface Knowledge",
                    detail=(
                        f"Q{slot.index + 1}: Got MCQ correct but couldn't explain why "
                        f"(justification: {evaluation.quality}/10)"
                    ),
                )
            )

    return flags


def grade_for(score: int) -> Grade:
    for floor, letter, label in GRADE_BANDS:
        if score >= floor:
            return Grade(letter=letter, label=label)
    return FAILING_GRADE


def compute_score(session: Session, cfg: Optional[ScoringSettings] = None) -> ScoreReport:
    """Derive the readiness report from stored slot data without mutating it."""

    cfg = cfg or DEFAULT_SCORING
    weights = cfg.weights
    spoken, mcq, coding = _partition(session)

    dimensions = {
        "answer_quality": answer_quality(spoken),
        "depth_stability": depth_stability(spoken, cfg),
        "mcq_accuracy": mcq_accuracy(mcq, cfg),
        "coding_score": coding_score(coding, cfg),
        "behavioral_trust": behavioral_trust(session, spoken, coding, cfg),
        "consistency": consistency(spoken, mcq, cfg),
    }
    composite = sum(getattr(weights, name) * value for name, value in dimensions.items())
    overall = min(100, max(0, round_half_up(composite)))

    skipped = sum(1 for slot in session.slots if slot.skipped)
    return ScoreReport(
        overall=overall,
        breakdown=ScoreBreakdown(**{name: round_half_up(value) for name, value in dimensions.items()}),
        grade=grade_for(overall),
        risk_flags=detect_risk_flags(session, spoken, mcq, coding, cfg),
        total_answered=len(session.slots) - skipped,
        total_skipped=skipped,
    )


__all__ = [
    "GRADE_BANDS",
    "answer_quality",
    "behavioral_trust",
    "coding_score",
    "compute_score",
    "consistency",
    "depth_stability",
    "detect_risk_flags",
    "grade_for",
    "mcq_accuracy",
    "paste_count",
    "round_half_up",
]
