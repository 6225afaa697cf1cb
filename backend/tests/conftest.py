"""
Pytest configuration and fixtures
Shared test setup for all test modules
"""
import os

os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-which-is-long-enough-0123456789")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./otohub-test.db")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

from datetime import timedelta
from typing import AsyncGenerator, List, Optional

import pytest
from httpx import ASGITransport, AsyncClient

from otohub.core.config import Settings
from otohub.core.constants import PlanTier, Role, SubscriptionStatus
from otohub.core.hooks import PostCommitHooks, TransitionEvent
from otohub.core.security import Principal, create_access_token
from otohub.db.base import utcnow
from otohub.db.database import Database
from otohub.db.models import Tenant, User
from otohub.db.repositories.plan_repository import PlanRepository
from otohub.main import create_app
from otohub.middleware.rate_limit import InMemoryCounterStore
from otohub.services.container import build_services
from otohub.api.v1.router import build_route_policies
from otohub.services.plans import seed_default_plans


class RecordingHooks(PostCommitHooks):
    """Post-commit hooks that keep every fired event for assertions"""

    def __init__(self):
        super().__init__()
        self.events: List[TransitionEvent] = []

        async def record(event: TransitionEvent) -> None:
            self.events.append(event)

        self.register(record)


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'otohub.db'}",
        RATE_LIMIT_ENABLED=False,
        ENVIRONMENT="test",
    )


@pytest.fixture
async def database(settings: Settings) -> AsyncGenerator[Database, None]:
    """Fresh SQLite database with the plan catalogue seeded"""
    db = Database(settings.async_database_url)
    await db.create_all()
    await seed_default_plans(db)
    yield db
    await db.dispose()


@pytest.fixture
def hooks() -> RecordingHooks:
    return RecordingHooks()


@pytest.fixture
def services(settings, database, hooks):
    return build_services(settings, database, build_route_policies(settings.API_V1_STR), hooks=hooks)


@pytest.fixture
def app(settings, database, hooks):
    return create_app(settings, database=database, hooks=hooks, counter_store=InMemoryCounterStore())


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as test_client:
        yield test_client


async def create_tenant(
    database: Database,
    name: str = "Test Motors",
    plan: Optional[str] = "demo",
    status: SubscriptionStatus = SubscriptionStatus.ACTIVE,
    **fields,
) -> Tenant:
    """Insert a tenant directly, bypassing the state machine"""
    async with database.session() as session:
        async with session.begin():
            plan_row = await PlanRepository(session).get_by_slug(plan) if plan else None
            data = {
                "name": name,
                "slug": fields.pop("slug", f"{name.lower().replace(' ', '-')}-{os.urandom(3).hex()}"),
                "plan_tier": plan.upper() if plan else PlanTier.DEMO.value,
                "plan_id": plan_row.id if plan_row else None,
                "subscription_status": SubscriptionStatus(status).value,
                "subscription_ends_at": utcnow() + timedelta(days=30),
            }
            data.update(fields)
            tenant = Tenant(**data)
            session.add(tenant)
    return tenant


async def create_user(
    database: Database,
    tenant: Optional[Tenant],
    role: Role = Role.OWNER,
    email: Optional[str] = None,
    email_verified: bool = True,
    onboarding_completed: bool = True,
) -> User:
    async with database.session() as session:
        async with session.begin():
            user = User(
                email=email or f"{role.value.lower()}-{os.urandom(4).hex()}@example.com",
                full_name="Test User",
                tenant_id=tenant.id if tenant else None,
                role=role.value,
                email_verified=email_verified,
                onboarding_completed=onboarding_completed,
            )
            session.add(user)
    return user


def auth_headers(user: User, settings: Settings, tenant_header: Optional[str] = None) -> dict:
    """Bearer header for a user, optionally with an X-Tenant-ID override"""
    token = create_access_token(Principal.from_user(user), settings)
    headers = {"Authorization": f"Bearer {token}"}
    if tenant_header is not None:
        headers["X-Tenant-ID"] = tenant_header
    return headers


@pytest.fixture
async def tenant(database) -> Tenant:
    return await create_tenant(database)


@pytest.fixture
async def owner(database, tenant) -> User:
    return await create_user(database, tenant, Role.OWNER)


@pytest.fixture
async def superadmin(database) -> User:
    return await create_user(database, None, Role.SUPERADMIN)


@pytest.fixture
def make_tenant(database):
    """Factory fixture: ``await make_tenant(status=..., plan=...)``"""

    async def factory(**kwargs) -> Tenant:
        return await create_tenant(database, **kwargs)

    return factory


@pytest.fixture
def make_user(database):
    async def factory(tenant: Optional[Tenant], role: Role = Role.OWNER, **kwargs) -> User:
        return await create_user(database, tenant, role, **kwargs)

    return factory


@pytest.fixture
def headers_for(settings):
    def factory(user: User, tenant_header: Optional[str] = None) -> dict:
        return auth_headers(user, settings, tenant_header)

    return factory
