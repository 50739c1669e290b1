"""Secret redaction for logs, error messages and config display.

Shopify access tokens travel in headers and config files; nothing that
reaches a log line, an API error body or `config show` output may
contain one.
"""

import re

# Substring patterns matched case-insensitively against dict keys
_SENSITIVE_KEY_PATTERNS = frozenset({
    "secret", "token", "authorization", "password", "api_key", "credential",
})

# Keys whose entire value is redacted regardless of content type
_CONTAINER_KEYS = frozenset({"headers", "credentials"})

_REDACTED = "***REDACTED***"

_SENSITIVE_KEYWORDS = (
    r"x-shopify-access-token|access_token|api_key|secret|token|password|authorization"
)
_SENSITIVE_VALUE_PATTERNS = re.compile(
    r"(?i)"
    r"(?:"
    # Bare Shopify tokens: shpat_, shpca_, shppa_, shpss_ prefixes
    r"\bshp(?:at|ca|pa|ss)_[A-Za-z0-9]+"
    r"|"
    # Authorization: Bearer <token>
    r"Authorization\s*:\s*Bearer\s+\S+"
    r"|"
    # JSON-style "key": "value"
    r'"(?:' + _SENSITIVE_KEYWORDS + r')"\s*:\s*"[^"]*"'
    r"|"
    # key=value or key: value
    r"(?:" + _SENSITIVE_KEYWORDS + r")\s*[=:]\s*\S+"
    r")",
)


def _is_sensitive_key(key: str) -> bool:
    key_lower = key.lower()
    return any(pattern in key_lower for pattern in _SENSITIVE_KEY_PATTERNS)


def redact_for_logging(obj: dict) -> dict:
    """Return a copy of ``obj`` with sensitive values replaced.

    Args:
        obj: Dict to redact (not mutated).

    Returns:
        New dict with sensitive values replaced by '***REDACTED***'.
        Nested dicts and lists of dicts are handled recursively.
    """
    result = {}
    for key, value in obj.items():
        if key.lower() in _CONTAINER_KEYS or _is_sensitive_key(key):
            # Empty values stay visible so "token not configured" is obvious
            result[key] = _REDACTED if value else value
        elif isinstance(value, dict):
            result[key] = redact_for_logging(value)
        elif isinstance(value, list):
            result[key] = [
                redact_for_logging(item) if isinstance(item, dict) else item
                for item in value
            ]
        else:
            result[key] = value
    return result


def sanitize_error_message(msg: str | None, max_length: int = 2000) -> str | None:
    """Redact secret-looking fragments from free text and truncate it.

    Args:
        msg: Message to sanitize (None passes through).
        max_length: Maximum length of the result.

    Returns:
        Sanitized and truncated message, or None.
    """
    if msg is None:
        return None
    sanitized = _SENSITIVE_VALUE_PATTERNS.sub(_REDACTED, msg)
    if len(sanitized) > max_length:
        sanitized = sanitized[:max_length - 3] + "..."
    return sanitized
