"""Log guard utilities.

Never-log policy:
- API keys and bearer tokens
- Rendered prompts and system instructions
- Message content (user or assistant)
- Extracted file text

Allowed (with suffix):
- _chars, _length: length of text
- _sha256, _hash: hash of text
- Token counts, provider request ID

Strictness is set once at startup from the validated settings
(``set_strict_log_keys``); local and test raise, staging and prod warn.
"""

import structlog

FORBIDDEN_KEYS = frozenset(
    {
        "prompt",
        "content",
        "message",
        "instructions",
        "api_key",
        "bearer",
        "token",
        "secret",
        "extracted_text",
        "file_text",
        "raw_body",
    }
)

REDACTED_SUFFIXES = ("_sha256", "_hash", "_length", "_chars")

_strict = True


def set_strict_log_keys(strict: bool) -> None:
    """Choose whether a forbidden key raises (True) or is only reported (False)."""
    global _strict
    _strict = strict


def _has_redacted_suffix(key: str) -> bool:
    return any(key.endswith(suffix) for suffix in REDACTED_SUFFIXES)


def safe_kv(**kwargs) -> dict:
    """Validate that no forbidden keys are present unless already redacted.

    Usage:
        logger.info("llm.request.started", **safe_kv(
            provider="openai",
            model_name="gpt-4o-mini",
            message_chars=1234,       # OK: _chars suffix
            # prompt="hello world",   # BLOCKED: forbidden key
        ))

    Returns:
        The same kwargs dict, after validation.

    Raises:
        ValueError: A forbidden key was used while strict mode is on.
    """
    violations = [
        key for key in kwargs if key in FORBIDDEN_KEYS and not _has_redacted_suffix(key)
    ]

    if violations:
        msg = f"Forbidden log keys without redacted suffix: {violations}"
        if _strict:
            raise ValueError(msg)

        structlog.get_logger("parley.services.redact").warning(
            "safe_kv_violation", forbidden_keys=violations
        )

    return kwargs
