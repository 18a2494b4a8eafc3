import re

_UNSAFE = re.compile(r"[^a-zA-Z0-9._-]")


def safe_filename(name: str) -> str:
    """Replace anything outside ``[A-Za-z0-9._-]`` so the name is shell and path safe."""
    cleaned = _UNSAFE.sub("_", name or "")
    return cleaned.lstrip(".") or "upload.bin"
