from datetime import datetime, timezone


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, matching how timestamps are stored."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def get_now() -> datetime:
    """Dependency returning "now" once per request. Tests override this."""
    return utcnow()
