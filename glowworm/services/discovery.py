"""Search and recommendations over a user's analyzed files."""
import json
import logging
from datetime import datetime

from openai import AsyncOpenAI

from glowworm.schemas.media import CatalogFile, ScoredFile
from glowworm.utils.llm import build_api_kwargs, load_prompt, strip_code_fence

logger = logging.getLogger(__name__)

MAX_RECOMMENDATIONS = 12
MIN_RECOMMENDATION_SCORE = 0.1


def _describe(file: CatalogFile) -> str:
    ai = file.ai_analysis
    return (
        f"ID: {file.id}\n"
        f"Name: {file.name}\n"
        f"Description: {(ai.description if ai else None) or 'No description'}\n"
        f"Tags: {', '.join(file.tags) or 'No tags'}\n"
        f"Objects: {', '.join(ai.objects) if ai and ai.objects else 'No objects'}\n"
        f"Colors: {', '.join(ai.colors) if ai and ai.colors else 'No colors'}\n"
        f"Mood: {(ai.mood if ai else None) or 'No mood'}"
    )


def text_match(query: str, files: list[CatalogFile]) -> list[ScoredFile]:
    term = query.lower().strip()
    if not term:
        return []
    results: list[ScoredFile] = []
    for file in files:
        score = 0.0
        reasons = []
        if term in file.name.lower():
            score += 0.8
            reasons.append("filename match")
        if any(term in tag.lower() for tag in file.tags):
            score += 0.6
            reasons.append("tag match")
        description = (file.ai_analysis.description if file.ai_analysis else None) or ""
        if term in description.lower():
            score += 0.4
            reasons.append("description match")
        if score > 0:
            results.append(ScoredFile(id=file.id, score=round(score, 4), reason=", ".join(reasons)))
    return sorted(results, key=lambda r: r.score, reverse=True)


class SearchService:
    def __init__(self, client: AsyncOpenAI | None, model: str):
        self._client = client
        self._model = model

    async def search(self, query: str, files: list[CatalogFile]) -> list[ScoredFile]:
        """Rank ``files`` for ``query`` with the chat model, falling back to text matching."""
        if self._client is None or not files:
            return text_match(query, files)

        catalog = "\n---\n".join(_describe(f) for f in files)
        messages = [
            {"role": "system", "content": load_prompt("media_search.txt")},
            {"role": "user", "content": f'Search query: "{query}"\n\nAvailable files:\n{catalog}'},
        ]
        known_ids = {f.id for f in files}
        try:
            response = await self._client.chat.completions.create(
                **build_api_kwargs(self._model, messages, max_tokens=1000)
            )
            raw = response.choices[0].message.content if response.choices else None
            ranked = json.loads(strip_code_fence(raw or ""))
            if not isinstance(ranked, list):
                raise ValueError("search reply is not a list")
            results = [ScoredFile.model_validate(item) for item in ranked]
        except Exception as e:
            logger.warning("Semantic search failed, using text matching: %s", e)
            return text_match(query, files)

        return [r for r in results if r.id in known_ids]


def _overlap(a: list[str], b: list[str]) -> float:
    if not a or not b:
        return 0.0
    shared = len([item for item in a if item in b])
    return shared / max(len(a), len(b))


def _parse_time(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def recommend(file_id: str, files: list[CatalogFile]) -> list[dict]:
    """Files most similar to ``file_id``; raises ``LookupError`` when it is not in ``files``."""
    target = next((f for f in files if f.id == file_id), None)
    if target is None:
        raise LookupError(file_id)

    target_ai = target.ai_analysis
    target_time = _parse_time(target.uploaded_at)
    recommendations = []
    for file in files:
        if file.id == file_id:
            continue
        ai = file.ai_analysis
        score = 0.0
        reasons = []

        if target_ai and ai and target_ai.mood and ai.mood == target_ai.mood:
            score += 0.4
            reasons.append("similar mood")

        color_overlap = _overlap(target_ai.colors if target_ai else [], ai.colors if ai else [])
        if color_overlap:
            score += color_overlap * 0.3
            reasons.append("similar colors")

        object_overlap = _overlap(target_ai.objects if target_ai else [], ai.objects if ai else [])
        if object_overlap:
            score += object_overlap * 0.3
            reasons.append("similar objects")

        tag_overlap = _overlap(target.tags, file.tags)
        if tag_overlap:
            score += tag_overlap * 0.2
            reasons.append("similar tags")

        if target.type and target.type == file.type:
            score += 0.1
            reasons.append("same type")

        file_time = _parse_time(file.uploaded_at)
        if target_time and file_time:
            try:
                days_apart = abs((target_time - file_time).total_seconds()) / 86400
            except TypeError:
                days_apart = None
            if days_apart is not None and days_apart < 7:
                score += 0.1
                reasons.append("uploaded recently")

        score = min(round(score, 4), 1.0)
        if score > MIN_RECOMMENDATION_SCORE:
            recommendations.append({
                "id": file.id,
                "score": score,
                "reason": ", ".join(reasons),
                "file": file.model_dump(by_alias=True),
            })

    recommendations.sort(key=lambda r: r["score"], reverse=True)
    return recommendations[:MAX_RECOMMENDATIONS]
