"""Job records and retry policy shared by the queue backends."""
import enum
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


class JobState(str, enum.Enum):
    WAITING = "waiting"
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"


class JobPriority:
    # lower value runs first
    HIGH = 1
    NORMAL = 5


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    backoff_base: float = 5.0
    backoff_factor: float = 2.0

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after failed attempt number ``attempt`` (1-based)."""
        return self.backoff_base * self.backoff_factor ** (attempt - 1)

    def intervals(self) -> List[float]:
        return [self.delay_for(n) for n in range(1, self.max_attempts)]

    def to_dict(self):
        return {"type": "exponential", "maxAttempts": self.max_attempts,
                "delay": self.backoff_base, "factor": self.backoff_factor}


@dataclass
class JobRecord:
    id: str
    payload: Dict[str, Any]
    priority: int = JobPriority.NORMAL
    attempts: int = 0
    max_attempts: int = 3
    retry_policy: RetryPolicy = field(default_factory=RetryPolicy)
    state: JobState = JobState.WAITING
    result: Any = None
    error: Optional[str] = None
    available_at: float = 0.0
    finished_at: Optional[float] = None
    sequence: int = 0

    def to_dict(self):
        return {
            "id": self.id,
            "payload": self.payload,
            "priority": self.priority,
            "attempts": self.attempts,
            "maxAttempts": self.max_attempts,
            "backoff": self.retry_policy.to_dict(),
            "state": self.state.value,
            "result": self.result,
            "error": self.error,
        }
