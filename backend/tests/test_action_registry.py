"""Tests for the action registry and built-in actions."""

import json

import httpx
import pytest

from actions.base_action import ActionContext, ActionResult, BaseAction
from actions.implementations.containment import BlockIPAction, IsolateHostAction
from actions.implementations.notification import NotifyWebhookAction, SendEmailAction
from actions.registry import ActionRegistry
from core.constants import RiskLevel
from core.exceptions import ActionFailureError


def make_ctx(inputs=None, mode="run") -> ActionContext:
    return ActionContext(
        tenant_id="tenant-a",
        case_id="case-1",
        execution_id="exec-1",
        execution_step_id="step-1",
        user_id="analyst-1",
        inputs=inputs or {},
        mode=mode,
    )


# ─── Registry ───

@pytest.mark.unit
class TestRegistry:
    def test_builtins_registered_with_risk_levels(self):
        registry = ActionRegistry()
        expected = {
            "block_ip": RiskLevel.HIGH,
            "disable_user": RiskLevel.HIGH,
            "isolate_host": RiskLevel.CRITICAL,
            "send_email": RiskLevel.LOW,
            "notify_webhook": RiskLevel.MEDIUM,
        }
        for action_id, risk in expected.items():
            assert registry.get(action_id).risk_level == risk

    def test_get_unknown_returns_none(self):
        assert ActionRegistry().get("launch_missiles") is None

    @pytest.mark.asyncio
    async def test_execute_unknown_raises(self):
        with pytest.raises(ActionFailureError) as exc_info:
            await ActionRegistry(register_builtins=False).execute("nope", make_ctx())
        assert exc_info.value.status_code == 502

    def test_list_all_shape(self):
        entries = {entry["action_id"]: entry for entry in ActionRegistry().list_all()}
        assert entries["block_ip"]["risk_level"] == "high"
        assert entries["block_ip"]["input_schema"]["required"] == ["ip"]
        assert entries["isolate_host"]["display_name"] == "Isolate Host"

    def test_register_overrides_by_id(self):
        class CustomEmail(SendEmailAction):
            display_name = "Custom"

        registry = ActionRegistry()
        registry.register(CustomEmail())
        assert registry.get("send_email").display_name == "Custom"


# ─── BaseAction.run ───

@pytest.mark.unit
class TestBaseActionRun:
    @pytest.mark.asyncio
    async def test_missing_required_inputs_fail(self):
        result = await BlockIPAction().run(make_ctx({}))
        assert result.success is False
        assert "ip" in result.error

    @pytest.mark.asyncio
    async def test_raised_error_becomes_failed_result(self):
        class Broken(BaseAction):
            action_id = "broken"

            async def execute(self, ctx):
                raise RuntimeError("boom")

        result = await Broken().run(make_ctx())
        assert result.success is False
        assert result.error == "boom"
        assert result.duration_ms >= 0

    @pytest.mark.asyncio
    async def test_dry_run_simulates(self):
        calls = []

        class Recorder(BaseAction):
            action_id = "recorder"

            async def execute(self, ctx):
                calls.append(ctx)
                return ActionResult(success=True)

        result = await Recorder().run(make_ctx({"x": 1}, mode="dry_run"))
        assert result.success is True
        assert result.data["simulated"] is True
        assert result.data["inputs"] == {"x": 1}
        assert calls == []


# ─── Built-in actions ───

@pytest.mark.unit
class TestContainmentActions:
    @pytest.mark.asyncio
    async def test_block_ip(self):
        result = await BlockIPAction().run(make_ctx({"ip": "203.0.113.7"}))
        assert result.success is True
        assert result.data["status"] == "blocked"
        assert result.data["firewall_rule_id"].startswith("rule-")

    @pytest.mark.asyncio
    async def test_block_ip_rejects_invalid_address(self):
        result = await BlockIPAction().run(make_ctx({"ip": "not-an-ip"}))
        assert result.success is False
        assert "Invalid IP" in result.error

    @pytest.mark.asyncio
    async def test_isolate_host_needs_a_target(self):
        result = await IsolateHostAction().run(make_ctx({}))
        assert result.success is False

    @pytest.mark.asyncio
    async def test_isolate_host_dry_run(self):
        result = await IsolateHostAction().run(make_ctx({"hostname": "fin-ws-042"}, mode="dry_run"))
        assert result.success is True
        assert result.data["would_isolate"] == "fin-ws-042"


@pytest.mark.unit
class TestNotifyWebhook:
    @pytest.mark.asyncio
    async def test_posts_payload(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(202)

        action = NotifyWebhookAction(transport=httpx.MockTransport(handler))
        result = await action.run(make_ctx({"url": "https://hooks.example.com/soc", "payload": {"text": "hi"}}))

        assert result.success is True
        assert result.data["status_code"] == 202
        assert seen[0].method == "POST"
        assert json.loads(seen[0].content) == {"text": "hi"}

    @pytest.mark.asyncio
    async def test_http_error_status_fails(self):
        action = NotifyWebhookAction(transport=httpx.MockTransport(lambda r: httpx.Response(500)))
        result = await action.run(make_ctx({"url": "https://hooks.example.com/soc"}))
        assert result.success is False
        assert result.error == "HTTP 500"

    @pytest.mark.asyncio
    async def test_private_addresses_refused(self):
        action = NotifyWebhookAction(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
        for url in ("http://localhost/x", "http://10.0.0.5/x", "ftp://hooks.example.com/x"):
            result = await action.run(make_ctx({"url": url}))
            assert result.success is False
