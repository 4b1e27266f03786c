"""Error message sanitization to prevent credential leakage."""

from __future__ import annotations

import os
import re


def sanitize_error(message: str) -> str:
    """Sanitize error messages to prevent key, token and path leakage."""
    if not message:
        return message

    sanitized = message
    # SAS query strings carry the signature in sig=
    sanitized = re.sub(r"([?&]sig=)[^&\s]+", r"\1[REDACTED]", sanitized)
    sanitized = re.sub(r"type%3D(master|resource)%26ver%3D[^&\s]+", "[REDACTED_TOKEN]", sanitized)
    sanitized = re.sub(r"type=(master|resource)&ver=\S+", "[REDACTED_TOKEN]", sanitized)
    sanitized = re.sub(r"Bearer\s+\S+", "Bearer [REDACTED]", sanitized)
    sanitized = re.sub(r"api-key:\s*\S+", "api-key: [REDACTED]", sanitized)
    sanitized = re.sub(r"Authorization:\s*\S+", "Authorization: [REDACTED]", sanitized)

    # Redact user home paths
    home = os.environ.get("USERPROFILE") or os.environ.get("HOME") or ""
    if home and home != "/":
        sanitized = sanitized.replace(home, "[USER_HOME]")

    return sanitized
