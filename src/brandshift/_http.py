"""Small HTTP-related constants shared across brandshift.

This module is intentionally tiny to avoid circular imports and drift.
"""

from __future__ import annotations

# Statuses where trying again later is a reasonable suggestion to the user.
TRANSIENT_STATUS_CODES: frozenset[int] = frozenset({408, 409, 429, 500, 502, 503, 504})

DEFAULT_UPLOAD_PATH = "/api/upload"
DEFAULT_AGENT_PATH = "/api/agent"
