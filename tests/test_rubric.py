import os
import sys

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import pytest

from qa_engine.errors import InvalidRubric, RubricNotFound
from qa_engine.extensions import db
from qa_engine.scoring import Classification, RubricDefinition


def test_from_dict_applies_defaults():
    rubric = RubricDefinition.from_dict(3, {
        "name": "Chat",
        "groups": [{"id": "g1", "name": "Tone"}],
        "parameters": [{"name": "Polite", "group": "g1"}],
    })
    polite = rubric.parameter("Polite")
    assert rubric.id == "3"
    assert polite.max_score == 5
    assert polite.scoring_type == "variable"
    assert polite.classification == Classification.NONE
    assert rubric.impact_of(Classification.MINOR) == 10
    assert rubric.impact_of(Classification.MODERATE) == 25
    assert rubric.impact_of(Classification.MAJOR) == 50
    assert rubric.impact_of(Classification.NONE) == 0


def test_parameter_must_reference_declared_group():
    with pytest.raises(InvalidRubric):
        RubricDefinition.from_dict(1, {
            "groups": [{"id": "g1", "name": "Tone"}],
            "parameters": [{"name": "Polite", "group": "missing"}],
        })


def test_duplicate_parameter_names_rejected():
    with pytest.raises(InvalidRubric):
        RubricDefinition.from_dict(1, {
            "groups": [{"id": "g1", "name": "Tone"}],
            "parameters": [{"name": "Polite", "group": "g1"}, {"name": "Polite", "group": "g1"}],
        })


def test_impact_percentage_out_of_range_rejected():
    with pytest.raises(InvalidRubric):
        RubricDefinition.from_dict(1, {
            "groups": [{"id": "g1", "name": "Tone"}],
            "parameters": [],
            "classifications": [{"type": "major", "impactPercentage": 120}],
        })


def test_unknown_classification_rejected():
    with pytest.raises(InvalidRubric):
        Classification.parse("critical")


def test_binary_parameter_accepts_only_zero_or_max():
    rubric = RubricDefinition.from_dict(1, {
        "groups": [{"id": "g1", "name": "Tone"}],
        "parameters": [{"name": "Farewell", "group": "g1", "maxScore": 2, "scoringType": "binary"}],
    })
    farewell = rubric.parameter("Farewell")
    assert farewell.accepts(0)
    assert farewell.accepts(2)
    assert farewell.accepts(-1)
    assert not farewell.accepts(1)


def test_catalog_reloads_edited_rubric(app, services, rubric):
    first = services.catalog.get(rubric.id)
    assert first is services.catalog.get(str(rubric.id))
    assert first.parameter("Greeting").classification == Classification.MINOR

    params = [dict(p) for p in rubric.parameters]
    params[0]["classification"] = "major"
    rubric.parameters = params
    db.session.commit()

    reloaded = services.catalog.get(rubric.id)
    assert reloaded.parameter("Greeting").classification == Classification.MAJOR


def test_catalog_unknown_rubric(app, services):
    with pytest.raises(RubricNotFound):
        services.catalog.get(999)
