"""Celery task for cascade jobs.

Used when CASCADE_BACKEND=celery: every step completion in the API
process publishes resolve_next_step, and the worker resolves and
dispatches the successor step. Retries and dead-lettering happen inside
CascadeRunner, so the task itself never raises.
"""

import asyncio
import logging

from worker.celery_app import celery_app

logger = logging.getLogger(__name__)


async def _resolve(job) -> bool:
    from actions.registry import get_action_registry
    from app.config import get_settings
    from db.worker_session import worker_session_factory
    from playbook.cascade import CascadeRunner, CeleryCascadeDispatcher
    from playbook.orchestrator import PlaybookOrchestrator
    from playbook.retry_strategies import RetryStrategy

    async with worker_session_factory() as session_factory:
        orchestrator = PlaybookOrchestrator(
            session_factory,
            action_registry=get_action_registry(),
            publisher=CeleryCascadeDispatcher(),
        )
        runner = CascadeRunner(
            orchestrator,
            session_factory,
            RetryStrategy.from_settings(get_settings()),
        )
        return await runner.process(job)


@celery_app.task(
    name="worker.tasks.playbook.resolve_next_step",
    bind=True,
    acks_late=True,
    queue="playbooks",
)
def resolve_next_step(
    self,
    tenant_id: str,
    execution_id: str,
    completed_step_id: str,
):
    """Resolve and dispatch the successor of a completed execution step."""
    from playbook.cascade import CascadeJob

    job = CascadeJob(
        tenant_id=tenant_id,
        execution_id=execution_id,
        completed_step_id=completed_step_id,
    )
    logger.info(f"Resolving successor of step {completed_step_id} (execution: {execution_id})")

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        processed = loop.run_until_complete(_resolve(job))
        return {"status": "processed" if processed else "dead_lettered", **job.to_dict()}
    finally:
        loop.close()
