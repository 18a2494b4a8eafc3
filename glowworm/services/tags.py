from collections.abc import Iterable

from glowworm.schemas.analysis import AnalysisResult

MAX_TAGS = 10
MAX_OBJECT_TAGS = 5
MAX_COLOR_TAGS = 3


def confidence_bucket(confidence: float) -> str:
    if confidence > 0.8:
        return "high-confidence"
    if confidence > 0.6:
        return "medium-confidence"
    return "low-confidence"


def dedupe_tags(tags: Iterable[str], limit: int = MAX_TAGS) -> list[str]:
    """Drop blanks and repeats, keep first-seen order, cap at ``limit``."""
    seen: dict[str, None] = {}
    for tag in tags:
        if not isinstance(tag, str):
            continue
        tag = tag.strip()
        if tag and tag not in seen:
            seen[tag] = None
    return list(seen)[:limit]


def synthesize_tags(analysis: AnalysisResult | None, base_tags: Iterable[str] = ()) -> list[str]:
    """Build the tag list for an analysis.

    Order: base tags, up to five objects, the mood, up to three colors and
    one confidence bucket label.
    """
    candidates = list(base_tags)
    if analysis is not None:
        candidates.extend(analysis.objects[:MAX_OBJECT_TAGS])
        candidates.append(analysis.mood)
        candidates.extend(analysis.colors[:MAX_COLOR_TAGS])
        candidates.append(confidence_bucket(analysis.confidence))
    return dedupe_tags(candidates)
