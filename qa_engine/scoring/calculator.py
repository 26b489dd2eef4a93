"""Section and overall score computation.

Deductions are taken from the section's *raw* score:

    deduction = raw_score * impact_percentage / 100
    adjusted  = max(0, raw_score - deduction)

The impact is the one of the highest-severity classification present in the
section (major > moderate > minor > none), never a sum over parameters.
Every call site (job completion, moderation, publish, reads) goes through
``compute`` so the basis is the same everywhere.
"""
import math
from typing import Iterable, Optional

from .records import (NOT_APPLICABLE, EvaluationParameter, HumanOverlay,
                      OverallScore, SectionScore, SectionScoreSnapshot)
from .rubric import Classification, RubricDefinition

DEDUCTION_BASIS = "raw"

# guards against float noise such as 6.300000000000001 in stored snapshots
_PRECISION = 6


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def percentage_of(score: float, max_score: float) -> int:
    if max_score <= 0:
        return 0
    return round_half_up(score / max_score * 100)


def effective_score(param: EvaluationParameter, overlay: Optional[HumanOverlay]) -> float:
    override = overlay.override_for(param.name) if overlay else None
    if override is not None and override.human_score is not None:
        return override.human_score
    return param.score if param.score is not None else 0


def effective_classification(name, rubric_classification, overlay: Optional[HumanOverlay]) -> Classification:
    override = overlay.override_for(name) if overlay else None
    if override is not None and override.classification_override is not None:
        return override.classification_override
    return rubric_classification


class _Section:
    def __init__(self, group):
        self.group = group
        self.raw = 0.0
        self.max = 0.0
        self.count = 0
        self.highest = None

    def add(self, score, max_score, classification):
        self.raw += score
        self.max += max_score
        self.count += 1
        if self.highest is None or classification.severity > self.highest.severity:
            self.highest = classification


def compute(parameters: Iterable[EvaluationParameter], rubric: RubricDefinition,
            overlay: Optional[HumanOverlay] = None) -> SectionScoreSnapshot:
    sections = {g.id: _Section(g) for g in rubric.groups}

    for param in parameters:
        definition = rubric.parameter(param.name)
        if definition is None:
            continue
        score = effective_score(param, overlay)
        if score == NOT_APPLICABLE:
            continue
        score = min(max(0.0, float(score)), definition.max_score)
        classification = effective_classification(param.name, definition.classification, overlay)
        sections[definition.group].add(score, definition.max_score, classification)

    results = []
    overall_raw = overall_adjusted = overall_max = 0.0
    for section in sections.values():
        impact = rubric.impact_of(section.highest)
        deduction = section.raw * impact / 100.0
        adjusted = round(max(0.0, section.raw - deduction), _PRECISION)
        results.append(SectionScore(
            group_id=section.group.id,
            name=section.group.name,
            raw_score=round(section.raw, _PRECISION),
            max_score=round(section.max, _PRECISION),
            adjusted_score=adjusted,
            percentage=percentage_of(adjusted, section.max),
            highest_classification=section.highest,
            highest_classification_impact=impact,
            parameter_count=section.count,
        ))
        overall_raw += section.raw
        overall_adjusted += adjusted
        overall_max += section.max

    overall_adjusted = round(overall_adjusted, _PRECISION)
    return SectionScoreSnapshot(
        sections=tuple(results),
        overall=OverallScore(
            raw_score=round(overall_raw, _PRECISION),
            adjusted_score=overall_adjusted,
            max_score=round(overall_max, _PRECISION),
            percentage=percentage_of(overall_adjusted, overall_max),
        ),
    )


class ScoreCalculator:
    """Stateless wrapper so services can take the scorer as a dependency."""

    basis = DEDUCTION_BASIS

    def compute(self, parameters, rubric, overlay=None) -> SectionScoreSnapshot:
        return compute(parameters, rubric, overlay)
