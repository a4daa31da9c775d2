from datetime import datetime
from typing import Dict, List, Optional, Tuple
from unittest.mock import Mock
from uuid import UUID, uuid4

import pytest
import pytest_asyncio
from asyncpg import UniqueViolationError
from httpx import AsyncClient, ASGITransport

from gateway.core.exceptions import IdentityProviderError, NotAuthenticatedError
from gateway.core.identity import AuthEvent, IdentityProvider, UserIdentity
from gateway.dependencies.auth_utils import get_identity_provider
from gateway.dependencies.database import get_db_connection
from gateway.dependencies.permissions import get_authorization_guard
from gateway.main import app
from gateway.modules.access_logs.schemas import AccessRecord
from gateway.modules.access_logs.service import AccessLog
from gateway.modules.auth.dispatcher import AuthDispatcher
from gateway.modules.auth.router import get_auth_dispatcher
from gateway.modules.groups.router import get_group_service
from gateway.modules.groups.schemas import GroupMembership
from gateway.modules.groups.service import AuthorizationGuard, GroupService
from gateway.modules.services.router import get_service_registry
from gateway.modules.services.schemas import AuthType, ServiceCreate, ServiceRecord
from gateway.modules.services.service import ServiceRegistry


# ---------------------------------------------------------------------------
# In-memory stand-ins for the asyncpg repositories
# ---------------------------------------------------------------------------

class InMemoryServiceRepository:
    def __init__(self) -> None:
        self.rows: Dict[UUID, ServiceRecord] = {}

    async def get_by_service_id(self, service_id: str) -> Optional[ServiceRecord]:
        for r in self.rows.values():
            if r.service_id == service_id:
                return r.model_copy()
        return None

    async def get_by_id(self, record_id: UUID) -> Optional[ServiceRecord]:
        r = self.rows.get(record_id)
        return r.model_copy() if r else None

    async def list_services(self) -> List[ServiceRecord]:
        return [r.model_copy() for r in self.rows.values()]

    async def create(self, payload: ServiceCreate, now: datetime) -> ServiceRecord:
        if any(r.service_id == payload.service_id for r in self.rows.values()):
            raise UniqueViolationError("duplicate key value violates unique constraint")
        record = ServiceRecord(id=uuid4(), created_at=now, updated_at=now, **payload.model_dump())
        self.rows[record.id] = record
        return record.model_copy()

    async def update(self, record_id: UUID, fields: dict, now: datetime) -> Optional[ServiceRecord]:
        existing = self.rows.get(record_id)
        if existing is None:
            return None
        updated = existing.model_copy(update={**fields, "updated_at": now})
        self.rows[record_id] = updated
        return updated.model_copy()

    async def delete(self, record_id: UUID) -> bool:
        return self.rows.pop(record_id, None) is not None


class InMemoryGroupRepository:
    def __init__(self) -> None:
        self.rows: List[GroupMembership] = []

    async def exists(self, user_id: str, group_name: str) -> bool:
        return any(m.user_id == user_id and m.group_name == group_name for m in self.rows)

    async def list_for_user(self, user_id: str) -> List[GroupMembership]:
        return sorted(
            (m for m in self.rows if m.user_id == user_id),
            key=lambda m: m.group_name,
        )

    async def add(
        self, user_id: str, group_name: str, assigned_at: datetime, source: str = "admin"
    ) -> Optional[GroupMembership]:
        for i, m in enumerate(self.rows):
            if m.user_id == user_id and m.group_name == group_name:
                if m.source == "provider" and source == "admin":
                    self.rows[i] = m.model_copy(update={"source": "admin"})
                    return self.rows[i]
                return None
        membership = GroupMembership(
            id=uuid4(),
            user_id=user_id,
            group_name=group_name,
            assigned_at=assigned_at,
            source=source,
        )
        self.rows.append(membership)
        return membership

    async def remove(self, user_id: str, group_name: str) -> bool:
        before = len(self.rows)
        self.rows = [
            m for m in self.rows if not (m.user_id == user_id and m.group_name == group_name)
        ]
        return len(self.rows) != before

    async def prune_provider_groups(self, user_id: str, keep: List[str]) -> int:
        before = len(self.rows)
        self.rows = [
            m for m in self.rows
            if not (m.user_id == user_id and m.source == "provider" and m.group_name not in keep)
        ]
        return before - len(self.rows)


class InMemoryAccessLogRepository:
    def __init__(self) -> None:
        self.rows: List[AccessRecord] = []

    async def create(self, user_id: str, service_id: str, last_login: datetime) -> AccessRecord:
        record = AccessRecord(
            id=uuid4(),
            user_id=user_id,
            service_id=service_id,
            last_login=last_login,
            is_authorized=True,
        )
        self.rows.append(record)
        return record


# ---------------------------------------------------------------------------
# Identity provider double
# ---------------------------------------------------------------------------

class FakeIdentityProvider(IdentityProvider):
    """
    Records redirects instead of leaving the app. `complete_sign_in`
    accepts only VALID_CODE and signs in `next_user`.
    """

    VALID_CODE = "valid-code"
    LOGIN_URL = "https://idp.example.com/oauth2/authorize"

    def __init__(self, user: Optional[UserIdentity] = None) -> None:
        super().__init__()
        self.user = user
        self.next_user = UserIdentity(user_id="user-1", login_id="user1@example.com")
        self.redirects: List[Tuple[str, Optional[str]]] = []
        self.sign_out_calls = 0

    async def redirect_to_sign_in(self, provider: str, state: Optional[str] = None) -> str:
        self.redirects.append((provider, state))
        url = f"{self.LOGIN_URL}?identity_provider={provider}"
        if state:
            url += f"&state={state}"
        return url

    async def complete_sign_in(self, code: str) -> UserIdentity:
        if code != self.VALID_CODE:
            raise IdentityProviderError("invalid_grant")
        self.user = self.next_user
        self._session_token = f"session-{self.user.user_id}"
        self.events.dispatch(AuthEvent(kind="signed_in", user=self.user))
        return self.user

    async def get_current_user(self) -> UserIdentity:
        if self.user is None:
            raise NotAuthenticatedError()
        return self.user

    async def sign_out(self) -> None:
        self.sign_out_calls += 1
        self.user = None
        self._session_token = None
        self.events.dispatch(AuthEvent(kind="signed_out"))


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

ADMIN = UserIdentity(user_id="admin-1", login_id="admin@example.com")
MEMBER = UserIdentity(user_id="member-1", login_id="member@example.com")


@pytest.fixture
def identity() -> FakeIdentityProvider:
    return FakeIdentityProvider()


@pytest.fixture
def service_repo() -> InMemoryServiceRepository:
    return InMemoryServiceRepository()


@pytest.fixture
def group_repo() -> InMemoryGroupRepository:
    repo = InMemoryGroupRepository()
    repo.rows.append(
        GroupMembership(id=uuid4(), user_id=ADMIN.user_id, group_name="admin", assigned_at=None)
    )
    return repo


@pytest.fixture
def access_repo() -> InMemoryAccessLogRepository:
    return InMemoryAccessLogRepository()


@pytest.fixture
def registry(service_repo) -> ServiceRegistry:
    reg = ServiceRegistry(Mock())
    reg.repo = service_repo
    return reg


@pytest_asyncio.fixture
async def seed_service(registry):
    async def _seed(service_id: str, auth_type: AuthType = AuthType.DIRECT, **kwargs) -> ServiceRecord:
        return await registry.create(
            ServiceCreate(
                service_id=service_id,
                service_name=kwargs.pop("service_name", f"Service {service_id}"),
                auth_type=auth_type,
                **kwargs,
            )
        )

    return _seed


@pytest_asyncio.fixture(scope="function")
async def async_client(identity, registry, group_repo, access_repo):
    """
    API client wired to the in-memory repositories and the fake identity
    provider. No database or Redis is touched.
    """

    async def override_get_db():
        yield Mock()

    app.dependency_overrides[get_db_connection] = override_get_db
    app.dependency_overrides[get_identity_provider] = lambda: identity
    app.dependency_overrides[get_service_registry] = lambda: registry
    app.dependency_overrides[get_group_service] = lambda: GroupService(group_repo)
    app.dependency_overrides[get_authorization_guard] = lambda: AuthorizationGuard(group_repo)
    app.dependency_overrides[get_auth_dispatcher] = lambda: AuthDispatcher(
        registry=registry,
        identity=identity,
        access_log=AccessLog(access_repo),
    )

    try:
        async with AsyncClient(
                transport=ASGITransport(app=app),
                base_url="http://test"
        ) as client:
            yield client
    finally:
        app.dependency_overrides.clear()
