"""Error message sanitization to prevent credential leakage."""

from __future__ import annotations

import os
import re


def sanitize_error(message: str) -> str:
    """Sanitize executor error messages before they reach the console."""
    if not message:
        return message

    sanitized = message
    # Redact credential patterns
    sanitized = re.sub(r"Bearer\s+\S+", "Bearer [REDACTED]", sanitized)
    sanitized = re.sub(r"Authorization:\s*\S+", "Authorization: [REDACTED]", sanitized)
    sanitized = re.sub(r"(?i)(-Password\s+)\S+", r"\1[REDACTED]", sanitized)
    sanitized = re.sub(r"(?i)(password\s*=\s*)[^;\s]+", r"\1[REDACTED]", sanitized)

    # Redact user home paths
    home = os.environ.get("USERPROFILE") or os.environ.get("HOME") or ""
    if home:
        sanitized = sanitized.replace(home, "[USER_HOME]")

    return sanitized
