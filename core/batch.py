"""
AuditReady Batch Extraction

Fans evidence documents out to an extractor with bounded concurrency and
joins on all of them before anything is aggregated. Results are independent,
so completion order does not affect the summary.

An extractor that raises still yields a failed FileResult carrying the error,
so every submitted document that resolves has exactly one result. If the
batch is cancelled, ``BatchRunner.resolved`` holds only the documents that
actually finished; nothing is fabricated for the rest.

Example usage:
    runner = BatchRunner(extractor, max_concurrency=4)
    results = await runner.run(documents, spec)
    outcome = summarize(blueprint, results)
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence

from core.models import FileResult, PipelineSpecDSL, ValidationOutcome
from core.policy import get_engine_settings
from core.providers import Extractor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EvidenceDocument:
    """An evidence file handed to the extractor. The payload is opaque to the engine."""
    file_id: str
    filename: str = ""
    payload: Any = None


def failed_result(document: EvidenceDocument, spec: PipelineSpecDSL, error: str,
                  timing_ms: float = 0.0) -> FileResult:
    """Build the failed FileResult recorded when extraction raises."""
    return FileResult(
        file_id=document.file_id,
        filename=document.filename,
        pipeline_id=spec.pipeline_id,
        success=False,
        validation=ValidationOutcome(errors=[error]),
        timing_ms=timing_ms,
    )


class BatchRunner:
    """
    Runs one extraction per document with at most ``max_concurrency`` in flight.

    Args:
        extractor: Extraction provider
        max_concurrency: Fan-out bound; defaults to BATCH_MAX_CONCURRENCY
    """

    def __init__(self, extractor: Extractor, max_concurrency: Optional[int] = None):
        self.extractor = extractor
        self.max_concurrency = max_concurrency or get_engine_settings()['batch_max_concurrency']
        self._resolved: List[FileResult] = []

    @property
    def resolved(self) -> List[FileResult]:
        """Results of documents that finished, in completion order."""
        return list(self._resolved)

    async def _extract_one(self, semaphore: asyncio.Semaphore, document: EvidenceDocument,
                           spec: PipelineSpecDSL) -> FileResult:
        async with semaphore:
            started = time.perf_counter()
            try:
                result = await self.extractor.extract(document, spec)
                if isinstance(result, dict):
                    result = FileResult.model_validate(result)
            except Exception as e:
                elapsed_ms = (time.perf_counter() - started) * 1000
                logger.error(
                    f"Extraction failed for {document.file_id}: {e}",
                    extra={"file_id": document.file_id, "pipeline_id": spec.pipeline_id},
                )
                result = failed_result(document, spec, f"Extraction failed: {e}", elapsed_ms)

            self._resolved.append(result)
            return result

    async def run(self, documents: Sequence[EvidenceDocument], spec: PipelineSpecDSL) -> List[FileResult]:
        """
        Extract every document and return results in submission order.

        Raises:
            asyncio.CancelledError: If the batch is cancelled; ``resolved``
                keeps the results that finished before cancellation
        """
        self._resolved = []
        semaphore = asyncio.Semaphore(self.max_concurrency)
        logger.info(
            f"Extracting {len(documents)} documents with pipeline {spec.pipeline_id} "
            f"(concurrency {self.max_concurrency})"
        )

        try:
            results = await asyncio.gather(
                *(self._extract_one(semaphore, document, spec) for document in documents)
            )
        except asyncio.CancelledError:
            logger.warning(
                f"Batch cancelled after {len(self._resolved)} of {len(documents)} documents resolved"
            )
            raise

        return list(results)
