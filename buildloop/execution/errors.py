"""Classification of sandbox connectivity failures and user-facing messages."""

from __future__ import annotations

# Lowercase substrings that mark an error as a sandbox connectivity failure
SANDBOX_ERROR_PATTERNS: tuple[str, ...] = (
    "unexpected eof",
    "connection refused",
    "connection reset",
    "sandbox not found",
    "timeout",
    "econnreset",
    "enotfound",
    "network error",
    "502 bad gateway",
    "503 service unavailable",
    "504 gateway timeout",
)

# Returned to the model from inside a tool
SANDBOX_RETRY_HINT = (
    "Sandbox connection lost. The environment may have timed out. Please retry your request."
)

# Persisted as the assistant turn when the whole run hits a dead sandbox
SANDBOX_EXPIRED_MESSAGE = (
    "The sandbox environment has timed out or lost connection. Please try sending your "
    "message again to continue development with a fresh environment."
)

# Persisted when a run finishes without a summary or without files
GENERIC_FAILURE_MESSAGE = "Something went wrong. Please try again."


def is_sandbox_error(error: object) -> bool:
    """Return True if ``error`` (or an exception it was raised from) is a connectivity failure.

    Matching is done on the lowercased ``"<ExceptionType>: <message>"`` text so
    exceptions with an empty message (e.g. a bare ``TimeoutError``) still
    classify by type name.
    """
    seen: set[int] = set()
    current = error
    while isinstance(current, BaseException) and id(current) not in seen:
        seen.add(id(current))
        text = f"{type(current).__name__}: {current}".lower()
        if any(pattern in text for pattern in SANDBOX_ERROR_PATTERNS):
            return True
        current = current.__cause__
    return False
