import pytest
import pytest_asyncio
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from glowworm.database import Base
from glowworm.models.media import MediaAnalysis, MediaFile
from glowworm.models.user import User


@pytest_asyncio.fixture
async def db_session():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_maker() as session:
        yield session
    await engine.dispose()


@pytest.mark.asyncio
async def test_create_user(db_session):
    user = User(id="u-001", username="demo", password_hash="hashed")
    db_session.add(user)
    await db_session.commit()

    result = await db_session.get(User, "u-001")
    assert result is not None
    assert result.username == "demo"


@pytest.mark.asyncio
async def test_create_media_file(db_session):
    media = MediaFile(
        id="f-001", user_id="u-001", name="sunset.png", mime_type="image/png",
        media_kind="image", size=2048, path="/data/uploads/u-001/f-001_sunset.png",
        uploaded_at="2026-10-01T10:00:00+00:00", tags=["png", "uploaded"],
    )
    db_session.add(media)
    await db_session.commit()

    result = await db_session.get(MediaFile, "f-001")
    assert result is not None
    assert result.media_kind == "image"
    assert result.tags == ["png", "uploaded"]
    assert result.description == ""


@pytest.mark.asyncio
async def test_analyses_are_appended_per_file(db_session):
    db_session.add(MediaFile(
        id="f-002", user_id="u-001", name="clip.mp4", mime_type="video/mp4",
        media_kind="video", size=10, path="/tmp/clip.mp4",
        uploaded_at="2026-10-01T10:00:00+00:00", tags=[],
    ))
    for index, outcome in enumerate(["degraded", "success"]):
        db_session.add(MediaAnalysis(
            id=f"a-00{index}", file_id="f-002", created_at=f"2026-10-01T10:0{index}:00+00:00",
            outcome=outcome, description="Video file: clip.mp4", objects=["video"],
            colors=[], mood="dynamic", confidence=0.8, tags=["video"],
            processing_method="sandbox", processing_time_ms=1200, complexity="medium",
            resource_usage={"memory": "1/2 MB", "cpu": "1%", "storage": "1G/2G"},
        ))
    await db_session.commit()

    result = await db_session.execute(
        select(MediaAnalysis).where(MediaAnalysis.file_id == "f-002").order_by(MediaAnalysis.created_at)
    )
    analyses = result.scalars().all()
    assert [a.outcome for a in analyses] == ["degraded", "success"]
    assert analyses[1].resource_usage["cpu"] == "1%"
