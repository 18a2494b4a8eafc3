import uuid as uuid_mod

import bcrypt
from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from glowworm.database import get_db
from glowworm.models.user import User
from glowworm.schemas.auth import LoginRequest, LoginResponse, RegisterRequest
from glowworm.utils.exceptions import AppException
from glowworm.utils.response import success_response

router = APIRouter(prefix="/auth", tags=["auth"])


async def _find_user(db: AsyncSession, username: str) -> User | None:
    result = await db.execute(select(User).where(User.username == username))
    return result.scalars().first()


@router.post("/login")
async def login(request: LoginRequest, db: AsyncSession = Depends(get_db)):
    user = await _find_user(db, request.username)

    if user is None:
        raise AppException("Invalid credentials", status_code=400)

    if not bcrypt.checkpw(request.password.encode(), user.password_hash.encode()):
        raise AppException("Invalid credentials", status_code=400)

    return success_response(
        user=LoginResponse(user_id=user.id, username=user.username).model_dump()
    )


@router.post("/register", status_code=201)
async def register(request: RegisterRequest, db: AsyncSession = Depends(get_db)):
    username = request.username.strip()
    if not username:
        raise AppException("Username is required", status_code=400)
    if await _find_user(db, username) is not None:
        raise AppException("Username already taken", status_code=400)

    user = User(
        id=str(uuid_mod.uuid4()),
        username=username,
        password_hash=bcrypt.hashpw(request.password.encode(), bcrypt.gensalt()).decode(),
    )
    db.add(user)
    await db.commit()

    return success_response(
        user=LoginResponse(user_id=user.id, username=user.username).model_dump()
    )
