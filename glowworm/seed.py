import uuid

import bcrypt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from glowworm.models.user import User

SEED_USER_ID = str(uuid.uuid5(uuid.NAMESPACE_DNS, "user-glowworm-demo"))
SEED_USER_USERNAME = "demo"
SEED_USER_PASSWORD = "glowworm123"


async def seed_data(session: AsyncSession) -> None:
    result = await session.execute(select(User).limit(1))
    if result.scalars().first() is not None:
        return

    password_hash = bcrypt.hashpw(SEED_USER_PASSWORD.encode(), bcrypt.gensalt()).decode()
    session.add(User(
        id=SEED_USER_ID,
        username=SEED_USER_USERNAME,
        password_hash=password_hash,
    ))

    await session.commit()
