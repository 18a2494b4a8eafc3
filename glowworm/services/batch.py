"""Analyze many files in fixed-width concurrent groups."""
import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass

from glowworm.schemas.analysis import EnhancedAnalysisResult, MediaDescriptor
from glowworm.services.analysis import error_stub
from glowworm.services.outcome import AnalysisOutcome, Failed

logger = logging.getLogger(__name__)

AnalyzeFn = Callable[[bytes, MediaDescriptor, str], Awaitable[AnalysisOutcome[EnhancedAnalysisResult]]]


@dataclass(frozen=True)
class BatchItem:
    descriptor: MediaDescriptor
    content: bytes


class BatchCoordinator:
    def __init__(self, analyze: AnalyzeFn, batch_size: int = 3):
        self._analyze = analyze
        self._batch_size = max(1, batch_size)

    async def _run_one(self, item: BatchItem, user_id: str) -> AnalysisOutcome[EnhancedAnalysisResult]:
        try:
            return await self._analyze(item.content, item.descriptor, user_id)
        except Exception as e:
            logger.exception("Failed to analyze file %s", item.descriptor.name)
            return Failed(e)

    async def batch_outcomes(
        self,
        files: Sequence[BatchItem],
        user_id: str,
    ) -> list[AnalysisOutcome[EnhancedAnalysisResult]]:
        """Outcomes in input order; groups run one after another."""
        total_groups = -(-len(files) // self._batch_size)
        logger.info("Starting batch analysis of %d files in %d groups", len(files), total_groups)

        outcomes: list[AnalysisOutcome[EnhancedAnalysisResult]] = []
        for index, start in enumerate(range(0, len(files), self._batch_size), start=1):
            group = files[start:start + self._batch_size]
            outcomes.extend(await asyncio.gather(*(self._run_one(item, user_id) for item in group)))
            logger.info("Completed batch group %d/%d", index, total_groups)

        return outcomes

    async def batch_analyze(self, files: Sequence[BatchItem], user_id: str) -> list[EnhancedAnalysisResult]:
        """One result per file, same order as ``files``; failures become error stubs."""
        outcomes = await self.batch_outcomes(files, user_id)
        return [
            error_stub(item.descriptor) if isinstance(outcome, Failed) else outcome.result
            for item, outcome in zip(files, outcomes)
        ]
