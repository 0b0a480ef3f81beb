"""
Action Registry: Central registry for all playbook response actions.

Maps action ids to their implementations and carries the risk metadata
the orchestrator uses to decide whether a step needs sign-off.
"""

from typing import Dict, Optional

import structlog

from actions.base_action import ActionContext, ActionResult, BaseAction
from actions.implementations.containment import CONTAINMENT_ACTIONS
from actions.implementations.notification import NOTIFICATION_ACTIONS
from core.exceptions import ActionFailureError

logger = structlog.get_logger(__name__)


class ActionRegistry:
    """Central registry for all action implementations."""

    def __init__(self, register_builtins: bool = True):
        self._actions: Dict[str, BaseAction] = {}
        if register_builtins:
            self._register_builtin_actions()

    def _register_builtin_actions(self):
        """Register all built-in actions."""
        # Containment (firewall, identity, EDR)
        for action_class in CONTAINMENT_ACTIONS.values():
            self.register(action_class())

        # Notifications
        for action_class in NOTIFICATION_ACTIONS.values():
            self.register(action_class())

    def register(self, action: BaseAction):
        """Register an action instance under its action_id."""
        self._actions[action.action_id] = action

    def get(self, action_id: str) -> Optional[BaseAction]:
        """Get an action by id."""
        return self._actions.get(action_id)

    async def execute(self, action_id: str, ctx: ActionContext) -> ActionResult:
        """Invoke an action.

        Raises:
            ActionFailureError: If no action is registered under action_id
        """
        action = self.get(action_id)
        if action is None:
            raise ActionFailureError(f"Action {action_id!r} is not registered")
        return await action.run(ctx)

    def list_all(self) -> list:
        """List all registered actions with metadata."""
        return [
            {
                "action_id": action_id,
                "display_name": action.display_name,
                "description": action.description,
                "risk_level": action.risk_level.value,
                "input_schema": action.get_input_schema(),
            }
            for action_id, action in self._actions.items()
        ]

    @property
    def available_actions(self) -> list:
        return list(self._actions.keys())


# Singleton
_registry: Optional[ActionRegistry] = None


def get_action_registry() -> ActionRegistry:
    """Get or create the singleton action registry."""
    global _registry
    if _registry is None:
        _registry = ActionRegistry()
        logger.info("Action registry initialised", actions=_registry.available_actions)
    return _registry
