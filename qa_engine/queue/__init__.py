from .jobs import JobPriority, JobRecord, JobState, RetryPolicy
