"""Value types shared by the scorer, the moderation workflow and the worker."""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Optional, Tuple

from ..errors import InvalidRubric, InvalidSubmission
from .rubric import Classification

NOT_APPLICABLE = -1


def _number(value, what):
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise InvalidSubmission(f"{what} must be a number")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise InvalidSubmission(f"{what} must be a number, got {value!r}")


@dataclass(frozen=True)
class EvaluationParameter:
    name: str
    score: Optional[float]
    explanation: str = ""
    confidence: Optional[float] = None

    def to_dict(self):
        return {"name": self.name, "score": self.score,
                "explanation": self.explanation, "confidence": self.confidence}

    @classmethod
    def from_dict(cls, data):
        return cls(
            name=data["name"],
            score=_number(data.get("score"), f"score of {data['name']!r}"),
            explanation=data.get("explanation") or "",
            confidence=_number(data.get("confidence"), f"confidence of {data['name']!r}"),
        )


@dataclass(frozen=True)
class EvaluationRecord:
    """Raw AI output for one interaction. Never mutated once stored."""
    interaction_id: int
    rubric_id: str
    parameters: Tuple[EvaluationParameter, ...]
    summary: str = ""

    def parameter_list(self):
        return [p.to_dict() for p in self.parameters]


@dataclass(frozen=True)
class ParameterOverride:
    human_score: Optional[float] = None
    human_explanation: Optional[str] = None
    classification_override: Optional[Classification] = None

    def to_dict(self):
        return {
            "humanScore": self.human_score,
            "humanExplanation": self.human_explanation,
            "classificationOverride": self.classification_override.value if self.classification_override else None,
        }

    @classmethod
    def from_dict(cls, name, data):
        if not isinstance(data, dict):
            raise InvalidSubmission(f"Override for {name!r} must be an object")
        try:
            classification = Classification.parse(data.get("classificationOverride"))
        except InvalidRubric as e:
            raise InvalidSubmission(e.message)
        return cls(
            human_score=_number(data.get("humanScore"), f"humanScore of {name!r}"),
            human_explanation=data.get("humanExplanation"),
            classification_override=classification,
        )


@dataclass
class HumanOverlay:
    parameters: Dict[str, ParameterOverride] = field(default_factory=dict)
    additional_comments: str = ""
    agent_comments: Optional[str] = None
    is_moderated: bool = False
    is_published: bool = False
    moderated_by: Optional[str] = None
    moderated_at: Optional[datetime] = None

    def override_for(self, name) -> Optional[ParameterOverride]:
        return self.parameters.get(name)

    def parameters_dict(self):
        return {name: o.to_dict() for name, o in self.parameters.items()}

    @classmethod
    def from_submission(cls, payload: dict) -> "HumanOverlay":
        params = payload.get("parameters") or {}
        if not isinstance(params, dict):
            raise InvalidSubmission("parameters must be an object keyed by parameter name")
        comments = payload.get("additionalComments") or ""
        if not isinstance(comments, str):
            raise InvalidSubmission("additionalComments must be a string")
        return cls(
            parameters={name: ParameterOverride.from_dict(name, data) for name, data in params.items()},
            additional_comments=comments,
        )


@dataclass(frozen=True)
class SectionScore:
    group_id: str
    name: str
    raw_score: float
    max_score: float
    adjusted_score: float
    percentage: int
    highest_classification: Optional[Classification]
    highest_classification_impact: float
    parameter_count: int

    def to_dict(self):
        return {
            "name": self.name,
            "rawScore": self.raw_score,
            "maxScore": self.max_score,
            "adjustedScore": self.adjusted_score,
            "percentage": self.percentage,
            "highestClassification": self.highest_classification.value if self.highest_classification else None,
            "highestClassificationImpact": self.highest_classification_impact,
            "parameterCount": self.parameter_count,
        }


@dataclass(frozen=True)
class OverallScore:
    raw_score: float
    adjusted_score: float
    max_score: float
    percentage: int

    def to_dict(self):
        return {"rawScore": self.raw_score, "adjustedScore": self.adjusted_score,
                "maxScore": self.max_score, "percentage": self.percentage}


@dataclass(frozen=True)
class SectionScoreSnapshot:
    sections: Tuple[SectionScore, ...]
    overall: OverallScore

    def section(self, group_id) -> Optional[SectionScore]:
        for s in self.sections:
            if s.group_id == group_id:
                return s
        return None

    def to_dict(self):
        return {
            "sections": {s.group_id: s.to_dict() for s in self.sections},
            "overall": self.overall.to_dict(),
        }
