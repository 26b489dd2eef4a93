"""Exception types raised by the evaluation engine.

Each error carries the HTTP status it maps to; ``create_app`` registers a
single handler that renders any of them as ``{"error": message}``.
"""


class QAEngineError(Exception):
    status_code = 500

    def __init__(self, message=None):
        super().__init__(message or self.__class__.__doc__ or self.__class__.__name__)
        self.message = str(self.args[0])


class ValidationError(QAEngineError):
    """Invalid input."""
    status_code = 400


class InvalidCronExpression(ValidationError):
    """Invalid cron expression."""

    def __init__(self, expression):
        super().__init__(f"Invalid cron expression: {expression!r}")
        self.expression = expression


class MissingContentError(ValidationError):
    """Interaction has no retrievable content for its channel."""


class MissingRubricReference(ValidationError):
    """Selection profile does not reference an evaluation form."""


class InvalidSubmission(ValidationError):
    """Moderation submission is invalid."""


class InvalidRubric(ValidationError):
    """Rubric definition is invalid."""


class NotFoundError(QAEngineError):
    status_code = 404


class EvaluationNotFound(NotFoundError):
    """Evaluation not found."""


class RubricNotFound(NotFoundError):
    """Rubric not found."""


class ProfileNotFound(NotFoundError):
    """Profile not found."""


class InteractionNotFound(NotFoundError):
    """Interaction not found."""


class JobNotFound(NotFoundError):
    """Job not found."""


class AccessDenied(QAEngineError):
    """Access denied."""
    status_code = 403


class InvalidTransition(QAEngineError):
    """Transition not allowed from the current evaluation status."""
    status_code = 409

    def __init__(self, current, action):
        super().__init__(f"Cannot {action} an evaluation in status '{current}'")
        self.current = current
        self.action = action


class CommentNotAllowed(InvalidTransition):
    status_code = 403


class ScoringServiceError(QAEngineError):
    """Scoring model call failed."""
    status_code = 502
