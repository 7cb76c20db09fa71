"""
Access log redaction.

Tutors may pass their token as ``?token=``; uvicorn's access log prints the
full request line, so its records are rewritten before they are emitted.
"""

from __future__ import annotations

import logging

from yeahbuddy.core.utils import redact_query_tokens

ACCESS_LOGGER = "uvicorn.access"


class TokenRedactingFilter(logging.Filter):
    """Rewrites ``token=`` query values in a record's message and arguments."""

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = redact_query_tokens(record.msg)
        if isinstance(record.args, tuple):
            record.args = tuple(
                redact_query_tokens(arg) if isinstance(arg, str) else arg
                for arg in record.args
            )
        return True


def install_access_log_redaction(logger_name: str = ACCESS_LOGGER) -> TokenRedactingFilter:
    """Attach the filter to the access logger once; returns the installed filter."""
    logger = logging.getLogger(logger_name)
    for existing in logger.filters:
        if isinstance(existing, TokenRedactingFilter):
            return existing
    redacting = TokenRedactingFilter()
    logger.addFilter(redacting)
    return redacting
