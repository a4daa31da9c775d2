# tests/unit/test_service_registry.py

import pytest
from unittest.mock import AsyncMock, Mock
from datetime import timedelta
from uuid import uuid4

from pydantic import ValidationError

from gateway.core.exceptions import (
    ConflictError,
    NotFoundError,
    RegistryMutationError,
    RegistryUnavailableError,
)
from gateway.modules.services.schemas import AuthType, ServiceCreate, ServiceUpdate
from gateway.modules.services.service import ServiceRegistry


@pytest.mark.asyncio
async def test_create_stamps_both_timestamps(registry, seed_service):
    record = await seed_service("app1")

    assert record.created_at is not None
    assert record.created_at == record.updated_at
    assert record.created_at.tzinfo is not None
    assert record.is_active is True


@pytest.mark.asyncio
async def test_lookup_returns_none_for_unknown_service(registry):
    assert await registry.lookup("missing") is None


@pytest.mark.asyncio
async def test_repeated_lookup_returns_equal_records(registry, seed_service):
    await seed_service("app1", auth_type=AuthType.FEDERATED, idp_provider="Okta")

    first = await registry.lookup("app1")
    second = await registry.lookup("app1")

    assert first == second


@pytest.mark.asyncio
async def test_empty_update_only_touches_updated_at(registry, seed_service, monkeypatch):
    created = await seed_service("app1")
    later = created.updated_at + timedelta(minutes=5)
    monkeypatch.setattr("gateway.modules.services.service._utcnow", lambda: later)

    updated = await registry.update(created.id, ServiceUpdate())

    assert updated.updated_at == later
    assert updated.model_dump(exclude={"updated_at"}) == created.model_dump(exclude={"updated_at"})


@pytest.mark.asyncio
async def test_partial_update_keeps_other_fields(registry, seed_service):
    created = await seed_service("app1", service_name="Payroll")

    updated = await registry.update(created.id, ServiceUpdate(is_active=False))

    assert updated.is_active is False
    assert updated.service_name == "Payroll"
    assert updated.service_id == "app1"


def test_service_id_cannot_be_updated():
    with pytest.raises(ValidationError):
        ServiceUpdate(service_id="renamed")


@pytest.mark.parametrize("field", ["service_name", "auth_type", "is_active"])
def test_required_columns_cannot_be_set_to_null(field):
    with pytest.raises(ValidationError):
        ServiceUpdate.model_validate({field: None})


def test_nullable_columns_can_be_cleared():
    update = ServiceUpdate.model_validate({"idp_provider": None, "federation_metadata": None})

    assert update.model_dump(exclude_unset=True) == {"idp_provider": None, "federation_metadata": None}


@pytest.mark.asyncio
async def test_duplicate_service_id_conflicts(registry, seed_service):
    await seed_service("app1")

    with pytest.raises(ConflictError) as exc:
        await seed_service("app1")

    assert exc.value.status_code == 409


@pytest.mark.asyncio
async def test_update_and_delete_unknown_id_are_not_found(registry):
    with pytest.raises(NotFoundError):
        await registry.update(uuid4(), ServiceUpdate(service_name="x"))

    with pytest.raises(NotFoundError):
        await registry.delete(uuid4())


@pytest.mark.asyncio
async def test_delete_removes_service(registry, seed_service):
    created = await seed_service("app1")

    await registry.delete(created.id)

    assert await registry.lookup("app1") is None
    assert await registry.list_all() == []


@pytest.mark.asyncio
async def test_store_failures_surface_to_the_caller():
    registry = ServiceRegistry(Mock())
    registry.repo = Mock()
    registry.repo.create = AsyncMock(side_effect=OSError("connection refused"))
    registry.repo.get_by_service_id = AsyncMock(side_effect=OSError("connection refused"))

    payload = ServiceCreate(service_id="app1", service_name="App", auth_type=AuthType.DIRECT)
    with pytest.raises(RegistryMutationError) as exc:
        await registry.create(payload)
    assert exc.value.status_code == 503
    registry.repo.create.assert_awaited_once()

    with pytest.raises(RegistryUnavailableError):
        await registry.lookup("app1")
