"""Trace and span identifier generation.

Identifiers double as join keys across independently running processes,
so they are drawn from ``secrets`` rather than ``random``.
"""

from __future__ import annotations

import re
import secrets


TRACE_ID_BYTES = 16
SPAN_ID_BYTES = 8

INVALID_TRACE_ID = "0" * (TRACE_ID_BYTES * 2)
INVALID_SPAN_ID = "0" * (SPAN_ID_BYTES * 2)

_TRACE_ID_RE = re.compile(r"^[0-9a-f]{32}$")
_SPAN_ID_RE = re.compile(r"^[0-9a-f]{16}$")


def generate_trace_id() -> str:
    """Generate a 128-bit trace ID as 32 lowercase hex characters."""
    while True:
        trace_id = secrets.token_hex(TRACE_ID_BYTES)
        if trace_id != INVALID_TRACE_ID:
            return trace_id


def generate_span_id() -> str:
    """Generate a 64-bit span ID as 16 lowercase hex characters."""
    while True:
        span_id = secrets.token_hex(SPAN_ID_BYTES)
        if span_id != INVALID_SPAN_ID:
            return span_id


def is_valid_trace_id(value: str) -> bool:
    """Check that ``value`` is 32 lowercase hex chars and not all zeros."""
    return bool(_TRACE_ID_RE.match(value)) and value != INVALID_TRACE_ID


def is_valid_span_id(value: str) -> bool:
    """Check that ``value`` is 16 lowercase hex chars and not all zeros."""
    return bool(_SPAN_ID_RE.match(value)) and value != INVALID_SPAN_ID
