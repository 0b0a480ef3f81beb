"""
Cascade queue: successor resolution as an explicit, retryable job.

Every step completion publishes a CascadeJob. A worker consumes the job
and calls PlaybookOrchestrator.trigger_next_step(), which dispatches the
next step (and may publish the next job in turn). Failures are retried
per RetryStrategy; a job that exhausts its retries is written to the
dead-letter table and logged. Nothing is ever raised back to the caller
that completed the step.

Backends (CASCADE_BACKEND):
    memory  asyncio.Queue consumed by a worker task in the API process
    celery  worker.tasks.playbook.resolve_next_step on the "playbooks" queue
"""

import asyncio
from dataclasses import asdict, dataclass
from typing import Awaitable, Callable, Optional

import structlog
from sqlalchemy.ext.asyncio import async_sessionmaker

from playbook.retry_strategies import RetryStrategy, execute_with_retry
from services.cascade_failure_service import CascadeFailureService

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CascadeJob:
    """Resolve and dispatch the successor of a completed execution step."""

    tenant_id: str
    execution_id: str
    completed_step_id: str

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "CascadeJob":
        return cls(
            tenant_id=data["tenant_id"],
            execution_id=data["execution_id"],
            completed_step_id=data["completed_step_id"],
        )


class CascadeRunner:
    """Processes one cascade job: retry transient failures, dead-letter the rest."""

    def __init__(
        self,
        orchestrator,
        session_factory: async_sessionmaker,
        strategy: Optional[RetryStrategy] = None,
    ):
        self._orchestrator = orchestrator
        self._session_factory = session_factory
        self._strategy = strategy or RetryStrategy.exponential()

    async def process(self, job: CascadeJob) -> bool:
        """Run the job. Returns False if it was dead-lettered."""
        log = logger.bind(**job.to_dict())

        def _on_retry(attempt: int, error: Exception, delay: float) -> None:
            log.warning("Cascade job failed, retrying", attempt=attempt, delay=delay, error=str(error))

        try:
            await execute_with_retry(
                self._orchestrator.trigger_next_step,
                self._strategy,
                job.tenant_id,
                job.execution_id,
                job.completed_step_id,
                on_retry=_on_retry,
            )
            return True
        except Exception as e:
            attempts = getattr(e, "retry_attempts", 1)
            log.error(
                "Cascade job dead-lettered",
                error=str(e),
                error_type=type(e).__name__,
                attempts=attempts,
            )
            await self._dead_letter(job, e, attempts)
            return False

    async def _dead_letter(self, job: CascadeJob, error: Exception, attempts: int) -> None:
        try:
            async with self._session_factory() as session:
                await CascadeFailureService(session).record(
                    tenant_id=job.tenant_id,
                    execution_id=job.execution_id,
                    step_id=job.completed_step_id,
                    error=error,
                    attempts=attempts,
                )
                await session.commit()
        except Exception:
            logger.exception("Could not record cascade failure", **job.to_dict())


class InMemoryCascadeQueue:
    """asyncio.Queue of cascade jobs drained by a single worker task."""

    def __init__(self):
        self._queue: asyncio.Queue[CascadeJob] = asyncio.Queue()
        self._handler: Optional[Callable[[CascadeJob], Awaitable[bool]]] = None
        self._worker: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    async def publish(self, job: CascadeJob) -> None:
        self._queue.put_nowait(job)
        logger.debug("Cascade job queued", **job.to_dict())

    def start(self, handler: Callable[[CascadeJob], Awaitable[bool]]) -> None:
        """Start consuming jobs with `handler` (normally CascadeRunner.process)."""
        if self.is_running:
            return
        self._handler = handler
        self._worker = asyncio.create_task(self._consume(), name="playbook-cascade-worker")
        logger.info("Cascade worker started")

    async def stop(self) -> None:
        if self._worker is None:
            return
        self._worker.cancel()
        try:
            await self._worker
        except asyncio.CancelledError:
            pass
        self._worker = None
        logger.info("Cascade worker stopped", pending=self.pending)

    async def join(self) -> None:
        """Wait until every queued job, and every job they publish, is processed."""
        await self._queue.join()

    async def _consume(self) -> None:
        while True:
            job = await self._queue.get()
            try:
                await self._handler(job)
            except Exception:
                logger.exception("Cascade handler crashed", **job.to_dict())
            finally:
                self._queue.task_done()


class CeleryCascadeDispatcher:
    """Publishes cascade jobs to the Celery `playbooks` queue."""

    async def publish(self, job: CascadeJob) -> None:
        from worker.tasks.playbook import resolve_next_step

        resolve_next_step.delay(**job.to_dict())
        logger.debug("Cascade job sent to Celery", **job.to_dict())


def create_cascade_publisher(backend: str):
    """Publisher for the configured CASCADE_BACKEND."""
    if backend == "memory":
        return InMemoryCascadeQueue()
    if backend == "celery":
        return CeleryCascadeDispatcher()
    raise RuntimeError(f"Unknown CASCADE_BACKEND: {backend!r} (expected 'memory' or 'celery')")
