from datetime import datetime, timezone


def utcnow():
    """Naive UTC now, matching the naive DateTime columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
