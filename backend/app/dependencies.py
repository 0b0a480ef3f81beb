"""FastAPI dependency injection functions."""

import logging
from typing import AsyncIterator

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from playbook.gates import ApprovalGate, InputGate
from playbook.orchestrator import PlaybookOrchestrator

logger = logging.getLogger(__name__)


async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    """
    Provide a database session for API endpoints.

    Yields an async SQLAlchemy session that is automatically
    committed on success or rolled back on error.
    """
    async with request.app.state.session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception as e:
            logger.error(f"Database error: {str(e)}")
            await session.rollback()
            raise


def get_orchestrator(request: Request) -> PlaybookOrchestrator:
    """The orchestrator built at startup."""
    return request.app.state.orchestrator


def get_approval_gate(
    orchestrator: PlaybookOrchestrator = Depends(get_orchestrator),
) -> ApprovalGate:
    return ApprovalGate(orchestrator)


def get_input_gate(
    orchestrator: PlaybookOrchestrator = Depends(get_orchestrator),
) -> InputGate:
    return InputGate(orchestrator)
