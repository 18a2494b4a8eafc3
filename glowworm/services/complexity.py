"""Classify an uploaded file into a processing complexity tier."""
from glowworm.schemas.analysis import Complexity, MediaKind

_MB = 1024 * 1024

# (exclusive upper bound in MB, tier); the last tier applies above every bound
_THRESHOLDS: dict[MediaKind, tuple[list[tuple[float, Complexity]], Complexity]] = {
    MediaKind.IMAGE: (
        [(5, Complexity.SIMPLE), (20, Complexity.MEDIUM), (100, Complexity.COMPLEX)],
        Complexity.ENTERPRISE,
    ),
    MediaKind.VIDEO: (
        [(50, Complexity.MEDIUM), (500, Complexity.COMPLEX)],
        Complexity.ENTERPRISE,
    ),
    MediaKind.AUDIO: (
        [(10, Complexity.SIMPLE), (50, Complexity.MEDIUM)],
        Complexity.COMPLEX,
    ),
    MediaKind.DOCUMENT: (
        [(10, Complexity.SIMPLE), (50, Complexity.MEDIUM)],
        Complexity.COMPLEX,
    ),
}


def classify(mime_type: str, size_bytes: int) -> Complexity:
    """Map a MIME type and byte size to a complexity tier.

    Bounds are exclusive: an image of exactly 5MB is ``medium``.
    Unknown MIME prefixes use the document brackets.
    """
    size_mb = size_bytes / _MB
    brackets, ceiling = _THRESHOLDS[MediaKind.from_mime(mime_type)]
    for bound, tier in brackets:
        if size_mb < bound:
            return tier
    return ceiling
