import re
from typing import Any

_SECRET_PATTERN = re.compile(r"(sk|key|dtn)-[A-Za-z0-9_-]+")


def success_response(**payload: Any) -> dict:
    return {"success": True, **payload}


def error_response(message: str, **extra: Any) -> dict:
    return {"error": message, **extra}


def mask_secrets(message: str) -> str:
    """Hide API keys that providers echo back in error messages."""
    return _SECRET_PATTERN.sub(lambda m: f"{m.group(1)}-***", message)
