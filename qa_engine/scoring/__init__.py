from .rubric import (Classification, ClassificationImpact, Group, Parameter,
                     RubricCatalog, RubricDefinition)
from .records import (NOT_APPLICABLE, EvaluationParameter, EvaluationRecord,
                      HumanOverlay, ParameterOverride, SectionScore,
                      SectionScoreSnapshot)
from .calculator import DEDUCTION_BASIS, ScoreCalculator, compute
