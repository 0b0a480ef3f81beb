"""Tests for playbook template CRUD."""

import pytest

from core.exceptions import NotFoundError, ValidationError
from services.playbook_service import PlaybookService

from conftest import OTHER_TENANT_ID, TENANT_ID

STEPS = [
    {"name": "Triage", "type": "manual"},
    {"name": "Block source", "type": "automation", "action_id": "block_ip", "config": {"ip": "{{ alert.source_ip }}"}},
    {"name": "Sign-off", "type": "approval"},
]


@pytest.mark.integration
class TestPlaybookService:
    @pytest.mark.asyncio
    async def test_create_numbers_steps_by_position(self, db_session):
        playbook = await PlaybookService(db_session).create_playbook(TENANT_ID, title="Phishing", steps=STEPS)

        assert [s.step_order for s in playbook.steps] == [1, 2, 3]
        assert [s.name for s in playbook.steps] == ["Triage", "Block source", "Sign-off"]
        assert playbook.steps[1].config == {"ip": "{{ alert.source_ip }}"}
        assert playbook.trigger_type == "manual"
        assert playbook.is_active is True

    @pytest.mark.asyncio
    async def test_unknown_step_type_rejected(self, db_session):
        with pytest.raises(ValidationError):
            await PlaybookService(db_session).create_playbook(
                TENANT_ID, title="Bad", steps=[{"name": "x", "type": "teleport"}]
            )

    @pytest.mark.asyncio
    async def test_get_is_tenant_scoped(self, db_session):
        service = PlaybookService(db_session)
        playbook = await service.create_playbook(TENANT_ID, title="Scoped", steps=STEPS)

        assert (await service.get_playbook(TENANT_ID, playbook.id)).id == playbook.id
        with pytest.raises(NotFoundError):
            await service.get_playbook(OTHER_TENANT_ID, playbook.id)

    @pytest.mark.asyncio
    async def test_list_counts_only_own_tenant(self, db_session):
        service = PlaybookService(db_session)
        await service.create_playbook(TENANT_ID, title="One")
        await service.create_playbook(TENANT_ID, title="Two")
        await service.create_playbook(OTHER_TENANT_ID, title="Theirs")

        items, total = await service.list_playbooks(TENANT_ID)
        assert total == 2
        assert {p.title for p in items} == {"One", "Two"}

    @pytest.mark.asyncio
    async def test_update_scalars_keeps_steps(self, db_session):
        service = PlaybookService(db_session)
        playbook = await service.create_playbook(TENANT_ID, title="Old", steps=STEPS)
        step_ids = [s.id for s in playbook.steps]

        updated = await service.update_playbook(TENANT_ID, playbook.id, {"title": "New", "is_active": False})

        assert updated.title == "New"
        assert updated.is_active is False
        assert [s.id for s in updated.steps] == step_ids

    @pytest.mark.asyncio
    async def test_update_steps_replaces_all(self, db_session):
        service = PlaybookService(db_session)
        playbook = await service.create_playbook(TENANT_ID, title="Replace", steps=STEPS)
        old_ids = {s.id for s in playbook.steps}

        updated = await service.update_playbook(
            TENANT_ID,
            playbook.id,
            {"steps": [{"name": "Only", "type": "condition", "config": {"condition": "a == a"}}]},
        )

        assert len(updated.steps) == 1
        assert updated.steps[0].step_order == 1
        assert updated.steps[0].id not in old_ids

    @pytest.mark.asyncio
    async def test_update_missing_raises(self, db_session):
        with pytest.raises(NotFoundError):
            await PlaybookService(db_session).update_playbook(TENANT_ID, "missing", {"title": "x"})

    @pytest.mark.asyncio
    async def test_delete_is_soft(self, db_session):
        service = PlaybookService(db_session)
        playbook = await service.create_playbook(TENANT_ID, title="Doomed")

        await service.delete_playbook(TENANT_ID, playbook.id)

        with pytest.raises(NotFoundError):
            await service.get_playbook(TENANT_ID, playbook.id)
        assert await service.get_by_id_and_tenant(playbook.id, TENANT_ID, include_deleted=True) is not None

    @pytest.mark.asyncio
    async def test_delete_missing_raises(self, db_session):
        with pytest.raises(NotFoundError):
            await PlaybookService(db_session).delete_playbook(TENANT_ID, "missing")

    @pytest.mark.asyncio
    async def test_get_step_by_order(self, db_session):
        service = PlaybookService(db_session)
        playbook = await service.create_playbook(TENANT_ID, title="Ordered", steps=STEPS)

        assert (await service.get_step_by_order(TENANT_ID, playbook.id, 2)).name == "Block source"
        assert await service.get_step_by_order(TENANT_ID, playbook.id, 4) is None
        assert await service.get_step_by_order(OTHER_TENANT_ID, playbook.id, 2) is None

    @pytest.mark.asyncio
    async def test_get_step_is_tenant_scoped(self, db_session):
        service = PlaybookService(db_session)
        playbook = await service.create_playbook(TENANT_ID, title="Scoped", steps=STEPS)
        step_id = playbook.steps[0].id

        assert (await service.get_step(TENANT_ID, step_id)).name == "Triage"
        assert await service.get_step(OTHER_TENANT_ID, step_id) is None
