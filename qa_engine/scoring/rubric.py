"""Typed rubric definitions and the read-only rubric catalog.

Rubrics are stored as JSON on the ``rubrics`` table. They are parsed once
into frozen dataclasses; the parameter map is built at load time so scoring
never re-parses the stored JSON.
"""
import enum
import json
import logging
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from ..errors import InvalidRubric, RubricNotFound

logger = logging.getLogger(__name__)


class Classification(str, enum.Enum):
    NONE = "none"
    MINOR = "minor"
    MODERATE = "moderate"
    MAJOR = "major"

    @property
    def severity(self) -> int:
        return _SEVERITY[self]

    @classmethod
    def parse(cls, value, default=None):
        if value is None or value == "":
            return default
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise InvalidRubric(f"Unknown classification: {value!r}")


_SEVERITY = {
    Classification.NONE: 0,
    Classification.MINOR: 1,
    Classification.MODERATE: 2,
    Classification.MAJOR: 3,
}

DEFAULT_IMPACTS = {
    Classification.NONE: 0.0,
    Classification.MINOR: 10.0,
    Classification.MODERATE: 25.0,
    Classification.MAJOR: 50.0,
}

SCORING_TYPES = ("binary", "variable")


@dataclass(frozen=True)
class Group:
    id: str
    name: str


@dataclass(frozen=True)
class Parameter:
    name: str
    group: str
    max_score: float = 5
    scoring_type: str = "variable"
    classification: Classification = Classification.NONE
    context: str = ""
    description: str = ""

    def accepts(self, score) -> bool:
        """True when ``score`` is a legal value for this parameter (-1 is N/A)."""
        if score == -1:
            return True
        if self.scoring_type == "binary":
            return score in (0, self.max_score)
        return 0 <= score <= self.max_score


@dataclass(frozen=True)
class ClassificationImpact:
    type: Classification
    percentage: float


@dataclass(frozen=True)
class RubricDefinition:
    id: str
    name: str
    groups: Tuple[Group, ...]
    parameters: Tuple[Parameter, ...]
    impacts: Tuple[ClassificationImpact, ...]
    _by_name: Dict[str, Parameter] = field(default_factory=dict, repr=False, compare=False)
    _impact_map: Dict[Classification, float] = field(default_factory=dict, repr=False, compare=False)

    def __post_init__(self):
        group_ids = {g.id for g in self.groups}
        by_name = {}
        for p in self.parameters:
            if p.group not in group_ids:
                raise InvalidRubric(f"Parameter {p.name!r} references undeclared group {p.group!r}")
            if p.name in by_name:
                raise InvalidRubric(f"Duplicate parameter name {p.name!r}")
            by_name[p.name] = p
        impact_map = {Classification.NONE: 0.0}
        for impact in self.impacts:
            if not 0 <= impact.percentage <= 100:
                raise InvalidRubric(
                    f"Impact for {impact.type.value!r} must be within 0-100, got {impact.percentage}")
            impact_map[impact.type] = float(impact.percentage)
        missing = [c.value for c in (Classification.MINOR, Classification.MODERATE, Classification.MAJOR)
                   if c not in impact_map]
        if missing:
            raise InvalidRubric(f"Classification impacts missing for: {', '.join(missing)}")
        # frozen dataclass: populate the lookup tables in place
        self._by_name.update(by_name)
        self._impact_map.update(impact_map)

    def parameter(self, name) -> Optional[Parameter]:
        return self._by_name.get(name)

    def impact_of(self, classification: Optional[Classification]) -> float:
        if classification is None:
            return 0.0
        return self._impact_map.get(classification, 0.0)

    def group(self, group_id) -> Optional[Group]:
        for g in self.groups:
            if g.id == group_id:
                return g
        return None

    @classmethod
    def from_dict(cls, rubric_id, data: dict) -> "RubricDefinition":
        """Build a definition from the stored JSON shape.

        ``data`` keys: ``name``, ``groups`` ([{id, name}]), ``parameters``
        ([{name, group, maxScore, scoringType, classification, context}]) and
        ``classifications`` ([{type, impactPercentage}]). Missing impacts fall
        back to the defaults (minor 10, moderate 25, major 50).
        """
        groups = tuple(
            Group(id=str(g["id"]), name=g.get("name") or str(g["id"]))
            for g in (data.get("groups") or [{"id": "default", "name": "Default Group"}])
        )
        params = []
        for p in data.get("parameters") or []:
            if not p.get("name"):
                raise InvalidRubric("Parameter without a name")
            scoring_type = p.get("scoringType") or p.get("scoring_type") or "variable"
            if scoring_type not in SCORING_TYPES:
                raise InvalidRubric(f"Unknown scoring type {scoring_type!r} on {p['name']!r}")
            max_score = p.get("maxScore", p.get("max_score", 5))
            try:
                max_score = float(max_score)
            except (TypeError, ValueError):
                raise InvalidRubric(f"Invalid maxScore on {p['name']!r}")
            if max_score <= 0:
                raise InvalidRubric(f"maxScore must be positive on {p['name']!r}")
            params.append(Parameter(
                name=p["name"],
                group=str(p.get("group") or "default"),
                max_score=max_score,
                scoring_type=scoring_type,
                classification=Classification.parse(p.get("classification"), Classification.NONE),
                context=p.get("context") or "",
                description=p.get("description") or "",
            ))

        impacts = dict(DEFAULT_IMPACTS)
        for c in data.get("classifications") or []:
            ctype = Classification.parse(c.get("type"))
            pct = c.get("impactPercentage", c.get("percentage"))
            try:
                impacts[ctype] = float(pct)
            except (TypeError, ValueError):
                raise InvalidRubric(f"Invalid impact percentage for {ctype.value!r}")

        return cls(
            id=str(rubric_id),
            name=data.get("name") or "",
            groups=groups,
            parameters=tuple(params),
            impacts=tuple(ClassificationImpact(type=k, percentage=v) for k, v in impacts.items()),
        )


class RubricCatalog:
    """Read-only access to rubric definitions.

    Definitions are cached per rubric id and keyed on the stored JSON, so an
    edited rubric is re-parsed on the next lookup.
    """

    def __init__(self):
        self._cache = {}

    def get(self, rubric_id) -> RubricDefinition:
        from ..models.rubric import Rubric

        if rubric_id in (None, ""):
            raise RubricNotFound("Rubric reference is empty")
        row = Rubric.query.get(int(rubric_id)) if str(rubric_id).isdigit() else None
        if row is None:
            raise RubricNotFound(f"Rubric {rubric_id} not found")
        data = row.definition_dict()
        key = json.dumps(data, sort_keys=True, default=str)
        cached = self._cache.get(row.id)
        if cached and cached[0] == key:
            return cached[1]
        definition = RubricDefinition.from_dict(row.id, data)
        self._cache[row.id] = (key, definition)
        logger.debug("Loaded rubric %s (%d parameters)", row.id, len(definition.parameters))
        return definition
