"""Sequential, paced batch optimization with per-job failure isolation."""
import asyncio
import logging
from typing import Any, Awaitable, Callable, List

from .errors import OptimizerError, ValidationError
from .optimizer import OptimizationOrchestrator
from .schemas import BatchError, BatchItem, BatchResult, BatchSummary

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class BatchRunner:
    """Runs jobs one after another; concurrency would only trip the AI rate limit."""

    def __init__(self, orchestrator: OptimizationOrchestrator, pause_seconds: float = 2.0,
                 sleep: Sleep = asyncio.sleep):
        self.orchestrator = orchestrator
        self.pause_seconds = pause_seconds
        self._sleep = sleep

    async def run_batch(self, job_ids: List[Any]) -> BatchResult:
        if not isinstance(job_ids, list) or not job_ids:
            raise ValidationError("jobIds must be a non-empty array")

        results: List[BatchItem] = []
        errors: List[BatchError] = []
        last = len(job_ids) - 1

        for i, job_id in enumerate(job_ids):
            if not isinstance(job_id, str) or not job_id.strip():
                errors.append(BatchError(jobId=job_id, error="Invalid job id"))
                continue
            try:
                await self.orchestrator.optimize_stored(job_id)
            except OptimizerError as e:
                logger.error(f"Error optimizing job {job_id}: {e.message}")
                errors.append(BatchError(jobId=job_id, error=e.message))
                continue
            except Exception as e:
                logger.exception(f"Unexpected error optimizing job {job_id}")
                errors.append(BatchError(jobId=job_id, error=str(e) or type(e).__name__))
                continue

            results.append(BatchItem(jobId=job_id, status="success"))
            if i < last and self.pause_seconds > 0:
                await self._sleep(self.pause_seconds)

        summary = BatchSummary(total=len(job_ids), successful=len(results), failed=len(errors))
        logger.info(f"Batch finished: {summary.successful}/{summary.total} succeeded")
        return BatchResult(results=results, errors=errors, summary=summary)
