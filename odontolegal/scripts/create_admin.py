import argparse
import asyncio

from sqlalchemy import select

from odontolegal.database import AsyncSessionLocal
from odontolegal.auth.models import User, UserRole
from odontolegal.auth.security import get_password_hash
# Import the remaining models so SQLAlchemy can resolve all relationships
from odontolegal.cases.models import Case
from odontolegal.evidence.models import Evidence
from odontolegal.reports.models import Report
from odontolegal.dental.models import DentalRecord
from odontolegal.history.models import HistoryEntry


async def create_admin(email: str, password: str, full_name: str):
    async with AsyncSessionLocal() as session:
        result = await session.execute(select(User).where(User.email == email))
        user = result.scalars().first()
        if not user:
            user = User(
                email=email,
                hashed_password=get_password_hash(password),
                full_name=full_name,
                role=UserRole.ADMIN,
                is_active=True,
            )
            session.add(user)
            print(f"Created admin: {user.email}")
        else:
            user.hashed_password = get_password_hash(password)
            user.role = UserRole.ADMIN
            user.is_active = True
            print(f"Updated admin: {user.email}")

        await session.commit()
        print("Done!")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create or reset an administrator account")
    parser.add_argument("--email", default="admin@odontolegal.local")
    parser.add_argument("--password", required=True)
    parser.add_argument("--name", default="Administrator")
    args = parser.parse_args()
    asyncio.run(create_admin(args.email, args.password, args.name))
