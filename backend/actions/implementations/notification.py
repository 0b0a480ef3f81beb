"""Notification actions: email and outbound webhooks."""

import ipaddress
from typing import Any, Dict, Optional
from urllib.parse import urlparse
from uuid import uuid4

import httpx
import structlog

from actions.base_action import ActionContext, ActionResult, BaseAction
from core.constants import RiskLevel

logger = structlog.get_logger(__name__)


class SendEmailAction(BaseAction):
    """Send an email notification.

    Delivery is handed to the notification service; this action only
    records the message it queued.
    """

    action_id = "send_email"
    display_name = "Send Email Notification"
    description = "Sends an email to a recipient"
    risk_level = RiskLevel.LOW
    required_inputs = ("to", "subject")

    async def execute(self, ctx: ActionContext) -> ActionResult:
        logger.info("Email queued", to=ctx.inputs["to"], subject=ctx.inputs["subject"])
        return ActionResult(
            success=True,
            data={
                "message_id": f"msg-{uuid4().hex[:12]}",
                "status": "sent",
                "to": ctx.inputs["to"],
            },
        )

    @classmethod
    def get_input_schema(cls) -> Dict[str, Any]:
        return {
            "type": "object",
            "required": ["to", "subject"],
            "properties": {
                "to": {"type": "string", "description": "Recipient email"},
                "subject": {"type": "string", "description": "Subject line"},
                "body": {"type": "string", "description": "Email body"},
            },
        }


def _validate_url_safety(url: str) -> None:
    """Reject non-HTTP schemes, localhost and private IP literals.

    Raises:
        ValueError: If the URL is unsafe
    """
    parsed = urlparse(url)
    if parsed.scheme.lower() not in ("http", "https"):
        raise ValueError(f"Unsupported scheme: {parsed.scheme}. Only HTTP and HTTPS allowed.")

    hostname = parsed.hostname
    if not hostname:
        raise ValueError("URL must have a valid hostname")
    if hostname.lower() in ("localhost", "127.0.0.1", "::1"):
        raise ValueError("Connections to localhost are not allowed")

    try:
        ip = ipaddress.ip_address(hostname)
    except ValueError:
        return  # domain name
    if ip.is_private or ip.is_loopback or ip.is_reserved:
        raise ValueError(f"Connections to private IP {hostname} are not allowed")


class NotifyWebhookAction(BaseAction):
    """POST a JSON payload to an external webhook (chat-ops, ticketing).

    Inputs:
        url: Target URL (required)
        payload: JSON body; defaults to the case/execution identifiers
        headers: Extra HTTP headers
        timeout: Request timeout in seconds (default: 10)
    """

    action_id = "notify_webhook"
    display_name = "Notify Webhook"
    description = "Posts a JSON notification to an external webhook"
    risk_level = RiskLevel.MEDIUM
    required_inputs = ("url",)

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._transport = transport

    async def execute(self, ctx: ActionContext) -> ActionResult:
        url = ctx.inputs["url"]
        try:
            _validate_url_safety(url)
        except ValueError as e:
            return ActionResult(success=False, error=str(e))

        payload = ctx.inputs.get("payload") or {
            "tenant_id": ctx.tenant_id,
            "case_id": ctx.case_id,
            "execution_id": ctx.execution_id,
        }
        timeout = ctx.inputs.get("timeout", 10)

        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=timeout) as client:
                response = await client.post(url, json=payload, headers=ctx.inputs.get("headers") or {})
        except httpx.TimeoutException:
            return ActionResult(success=False, error=f"Request timed out after {timeout}s")
        except httpx.HTTPError as e:
            return ActionResult(success=False, error=f"Webhook request failed: {e}")

        success = 200 <= response.status_code < 300
        return ActionResult(
            success=success,
            data={"status_code": response.status_code, "url": str(response.url)},
            error=None if success else f"HTTP {response.status_code}",
        )


# Export for registry
NOTIFICATION_ACTIONS = {
    "send_email": SendEmailAction,
    "notify_webhook": NotifyWebhookAction,
}
