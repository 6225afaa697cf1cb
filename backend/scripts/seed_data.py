"""Seed a local database with the plan catalogue, an operator and a demo dealership."""
import asyncio

from otohub.core.config import settings
from otohub.core.constants import Role
from otohub.core.security import Principal, create_access_token
from otohub.db.database import Database
from otohub.db.models import User
from otohub.db.repositories.user_repository import UserRepository
from otohub.services.plans import seed_default_plans
from otohub.services.subscription_state import SubscriptionStateMachine
from otohub.services.tenant_admin import TenantAdminService

ADMIN_EMAIL = "admin@otohub.local"
OWNER_EMAIL = "owner@demo-motor.local"


async def seed_data():
    database = Database.from_settings(settings)
    await database.create_all()
    plans = await seed_default_plans(database)
    print(f"Plans: {', '.join(p.slug for p in plans)}")

    async with database.session() as session:
        async with session.begin():
            admin = await UserRepository(session).get_by_email(ADMIN_EMAIL)
            if admin:
                print(f"Operator already exists: {admin.email}")
            else:
                admin = User(
                    email=ADMIN_EMAIL,
                    full_name="Platform Operator",
                    role=Role.SUPERADMIN.value,
                    email_verified=True,
                    onboarding_completed=True,
                )
                session.add(admin)
                print(f"Created operator: {admin.email}")
            owner = await UserRepository(session).get_by_email(OWNER_EMAIL)

    if owner:
        print(f"Demo dealership already exists: {owner.tenant_id}")
    else:
        admin_service = TenantAdminService(database, SubscriptionStateMachine(database), settings)
        created = await admin_service.create_tenant("Demo Motor", OWNER_EMAIL, owner_name="Demo Owner")
        owner = created["owner"]
        print(f"Created dealership: {created['tenant'].name} ({created['tenant'].id})")

    print("\nBearer tokens:")
    print(f"Operator: {create_access_token(Principal.from_user(admin), settings)}")
    print(f"Owner:    {create_access_token(Principal.from_user(owner), settings)}")
    await database.dispose()


if __name__ == "__main__":
    asyncio.run(seed_data())
