import random
import uuid
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator, List

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool

from app.database import Base, get_db
from app.main import app
from app.api.deps import get_clock, get_rng, get_crop_directory, get_media_store
from app.core.constants import VerificationStatus, PhotoStatus, LocationType, RejectionReason
from app.core.exceptions import CropNotFoundError, StorageError
from app.models.verification import Verification, VerificationPhoto
from app.services.crop_directory import CropDetails
from app.services.media_store import PhotoUpload
from app.services.submission_service import SubmissionService

# Use SQLite for testing
TEST_DATABASE_URL = "sqlite+aiosqlite:///./test.db"

engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=NullPool)
TestSessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

START = datetime(2026, 3, 14, 9, 30, tzinfo=timezone.utc)


class FakeClock:
    """Deterministic clock that moves forward one second per reading."""

    def __init__(self, start: datetime = START, step: timedelta = timedelta(seconds=1)):
        self.current = start
        self.step = step

    def __call__(self) -> datetime:
        value = self.current
        self.current += self.step
        return value


class FakeCropDirectory:
    def __init__(self):
        self.crops = {}
        self.calls: List[str] = []

    def add(self, crop_id: str, owner_user_id: str, crop_name: str = "Maize", **fields) -> CropDetails:
        details = CropDetails(
            crop_id=crop_id,
            owner_user_id=owner_user_id,
            crop_name=crop_name,
            full_name=fields.pop("full_name", "Ramesh Gowda"),
            phone=fields.pop("phone", "9876543210"),
            village=fields.pop("village", "Hosahalli"),
            taluk=fields.pop("taluk", "Channapatna"),
            district=fields.pop("district", "Ramanagara"),
            quantity=fields.pop("quantity", "20 quintal"),
            variety=fields.pop("variety", "Hybrid"),
            moisture=fields.pop("moisture", "14"),
            will_dry=fields.pop("will_dry", "Yes"),
        )
        self.crops[crop_id] = details
        return details

    async def lookup(self, crop_id: str) -> CropDetails:
        self.calls.append(crop_id)
        if crop_id not in self.crops:
            raise CropNotFoundError(crop_id)
        return self.crops[crop_id]


class FakeMediaStore:
    def __init__(self):
        self.stored: List[str] = []
        self.fail_indexes = set()

    async def put(self, content: bytes, hint: str) -> str:
        index = int(hint.rsplit("_", 1)[1])
        if index in self.fail_indexes:
            raise StorageError(details={"hint": hint})
        url = f"https://media.example.com/farm-verifications/{hint}.jpg"
        self.stored.append(url)
        return url


def make_photos(count: int = 2) -> List[PhotoUpload]:
    return [
        PhotoUpload(content=f"jpeg-bytes-{i}".encode(), filename=f"photo{i}.jpg", content_type="image/jpeg")
        for i in range(count)
    ]


async def make_verification(
    db: AsyncSession,
    user_id: str = "U1",
    crop_id: str = "C1",
    status: VerificationStatus = VerificationStatus.PENDING,
    created_at: datetime = START,
    photo_count: int = 2,
    **fields,
) -> Verification:
    """Insert a record directly, bypassing the submission rules."""
    verification = Verification(
        id=uuid.uuid4(),
        request_id=fields.pop("request_id", f"OR-REQ-{created_at.year}-{uuid.uuid4().hex[:6].upper()}"),
        user_id=user_id,
        crop_id=crop_id,
        crop_name=fields.pop("crop_name", "Maize"),
        longitude=77.1,
        latitude=12.9,
        status=status,
        created_at=created_at,
        updated_at=created_at,
        photos=[
            VerificationPhoto(
                id=uuid.uuid4(),
                position=i,
                url=f"https://media.example.com/{user_id}_{crop_id}_{i}.jpg",
                status=PhotoStatus.PENDING,
            )
            for i in range(photo_count)
        ],
        **fields,
    )
    if status == VerificationStatus.REJECTED:
        verification.rejection_reason = verification.rejection_reason or RejectionReason.OTHER
        verification.reviewed_at = created_at
    if status == VerificationStatus.APPROVED:
        verification.location_type = verification.location_type or LocationType.FARM
        verification.photos[0].status = PhotoStatus.APPROVED
        verification.reviewed_at = created_at
    db.add(verification)
    await db.flush()
    return verification


async def count_verifications(db: AsyncSession) -> int:
    return await db.scalar(select(func.count()).select_from(Verification))


@pytest_asyncio.fixture(autouse=True)
async def setup_db():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    async with TestSessionLocal() as session:
        yield session


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def crop_directory() -> FakeCropDirectory:
    directory = FakeCropDirectory()
    directory.add("C1", "U1", crop_name="Maize")
    directory.add("C2", "U1", crop_name="Ragi")
    directory.add("C3", "U2", crop_name="Paddy", full_name="Lakshmi Devi", village="Kanakapura")
    return directory


@pytest.fixture
def media_store() -> FakeMediaStore:
    return FakeMediaStore()


@pytest.fixture
def submission_service(db_session, crop_directory, media_store, clock, rng) -> SubmissionService:
    return SubmissionService(db_session, crop_directory, media_store, clock=clock, rng=rng)


@pytest_asyncio.fixture
async def client(db_session, crop_directory, media_store, clock, rng) -> AsyncGenerator[AsyncClient, None]:
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_rng] = lambda: rng
    app.dependency_overrides[get_crop_directory] = lambda: crop_directory
    app.dependency_overrides[get_media_store] = lambda: media_store

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()
