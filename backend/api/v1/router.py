"""API v1 aggregated router.

All v1 endpoints are registered here and mounted under /api/v1 in main.py.
"""

from fastapi import APIRouter

from api.routes import actions, approvals, executions, inputs, playbooks

api_v1_router = APIRouter()

# Executions (registered before playbooks so /playbooks/executions is not
# captured by /playbooks/{playbook_id})
api_v1_router.include_router(
    executions.router,
    prefix="/playbooks/executions",
    tags=["Executions"],
)

# Playbook templates and run
api_v1_router.include_router(
    playbooks.router,
    prefix="/playbooks",
    tags=["Playbooks"],
)

# Approval gate
api_v1_router.include_router(
    approvals.router,
    prefix="/approvals",
    tags=["Approvals"],
)

# Analyst input gate
api_v1_router.include_router(
    inputs.router,
    prefix="/inputs",
    tags=["Inputs"],
)

# Action registry
api_v1_router.include_router(
    actions.router,
    prefix="/actions",
    tags=["Actions"],
)
