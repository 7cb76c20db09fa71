"""
Shared utility functions for the yeahbuddy service.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone


def utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(timezone.utc)


def redact_token(token: object, keep: int = 6) -> str:
    """
    Shorten a bearer token for log output.

    Only the first few characters survive so log lines can be correlated
    without the log itself becoming a credential store.
    """
    if not isinstance(token, str):
        return f"<{type(token).__name__}>"
    if len(token) <= keep:
        return "***"
    return f"{token[:keep]}***"


_QUERY_TOKEN = re.compile(r"([?&]token=)([^&#\s]*)")


def redact_query_tokens(text: str) -> str:
    """Redact the value of every ``token=`` query parameter in a URL or log line."""
    return _QUERY_TOKEN.sub(lambda m: m.group(1) + redact_token(m.group(2)), text)
