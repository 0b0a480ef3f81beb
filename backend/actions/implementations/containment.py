"""Containment actions: firewall, identity and endpoint isolation.

These are simulations of the vendor calls; each returns the identifiers
a real integration would hand back so later steps can reference them.
"""

import ipaddress
from datetime import datetime, timezone
from typing import Any, Dict
from uuid import uuid4

from actions.base_action import ActionContext, ActionResult, BaseAction
from core.constants import RiskLevel


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class BlockIPAction(BaseAction):
    """Block an IP address on the perimeter firewall.

    Inputs:
        ip: IPv4 or IPv6 address to block (required)
        duration_hours: Optional rule lifetime
    """

    action_id = "block_ip"
    display_name = "Block IP Address"
    description = "Blocks an IP address on the firewall"
    risk_level = RiskLevel.HIGH
    required_inputs = ("ip",)

    async def execute(self, ctx: ActionContext) -> ActionResult:
        ip = str(ctx.inputs["ip"]).strip()
        try:
            ipaddress.ip_address(ip)
        except ValueError:
            return ActionResult(success=False, error=f"Invalid IP address: {ip}")

        return ActionResult(
            success=True,
            data={
                "status": "blocked",
                "ip": ip,
                "firewall_rule_id": f"rule-{uuid4().hex[:8]}",
                "duration_hours": ctx.inputs.get("duration_hours"),
                "timestamp": _now(),
            },
        )

    @classmethod
    def get_input_schema(cls) -> Dict[str, Any]:
        return {
            "type": "object",
            "required": ["ip"],
            "properties": {
                "ip": {"type": "string", "description": "IP address to block"},
                "duration_hours": {"type": "integer", "description": "Rule lifetime"},
            },
        }


class DisableUserAction(BaseAction):
    """Disable a user account in the identity provider."""

    action_id = "disable_user"
    display_name = "Disable User Account"
    description = "Disables a user account and revokes active sessions"
    risk_level = RiskLevel.HIGH
    required_inputs = ("username",)

    async def execute(self, ctx: ActionContext) -> ActionResult:
        return ActionResult(
            success=True,
            data={
                "status": "disabled",
                "username": ctx.inputs["username"],
                "sessions_revoked": True,
                "timestamp": _now(),
            },
        )


class IsolateHostAction(BaseAction):
    """Isolate a host from the network through the EDR agent.

    Inputs (one of):
        agent_id / device_id: EDR identifier of the host
        hostname: Host name, used when no agent id is known
    """

    action_id = "isolate_host"
    display_name = "Isolate Host"
    description = "Isolates a host from the network using the EDR agent"
    risk_level = RiskLevel.CRITICAL

    async def execute(self, ctx: ActionContext) -> ActionResult:
        target = self._target(ctx)
        if not target:
            return ActionResult(
                success=False,
                error="Missing input: agent_id, device_id, or hostname",
            )

        return ActionResult(
            success=True,
            data={
                "status": "isolated",
                "target": target,
                "provider": ctx.inputs.get("provider", "crowdstrike"),
                "containment_id": f"cnt-{uuid4().hex[:8]}",
                "timestamp": _now(),
            },
        )

    async def simulate(self, ctx: ActionContext) -> ActionResult:
        return ActionResult(
            success=True,
            data={
                "simulated": True,
                "action_id": self.action_id,
                "would_isolate": self._target(ctx),
                "inputs": ctx.inputs,
            },
        )

    @staticmethod
    def _target(ctx: ActionContext):
        inputs = ctx.inputs
        return inputs.get("agent_id") or inputs.get("device_id") or inputs.get("hostname")

    @classmethod
    def get_input_schema(cls) -> Dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "agent_id": {"type": "string", "description": "EDR agent id"},
                "device_id": {"type": "string", "description": "EDR device id"},
                "hostname": {"type": "string", "description": "Host name"},
                "provider": {"type": "string", "enum": ["crowdstrike", "sentinelone"]},
            },
        }


# Export for registry
CONTAINMENT_ACTIONS = {
    "block_ip": BlockIPAction,
    "disable_user": DisableUserAction,
    "isolate_host": IsolateHostAction,
}
