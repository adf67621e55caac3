"""
Shared fixtures: in-memory database, a small catalog and one user per role.

Catalog:
    DBS  Diploma in Business Studies
         sem 1  DUE10012 COMMUNICATIVE ENGLISH 1
         sem 3  DPP20023 INTERNATIONAL BUSINESS
         sem 3  DPB30073 BUSINESS STATISTICS
    DRM  Diploma in Retail Management
         sem 3  DRM30013 RETAIL OPERATIONS
"""
import pytest
import pytest_asyncio
from typing import AsyncGenerator
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from edubridge.orm.base import Base
from edubridge.orm.programme import Programme
from edubridge.orm.subject import Subject
from edubridge.orm.user import User, UserRole, VerificationStatus, LEGACY_PROGRAM_UNSET
from edubridge.orm.material import MaterialType
from edubridge.schemas.material_schemas import MaterialMetadata, FileDescriptor
from edubridge.services import material_service

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

PDF = "application/pdf"
MB = 1024 * 1024


@pytest_asyncio.fixture
async def db_engine():
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    session_factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def catalog(db_session: AsyncSession) -> dict:
    programmes = [
        Programme(id="DBS", code="DBS", name="Diploma in Business Studies", department="Commerce"),
        Programme(id="DRM", code="DRM", name="Diploma in Retail Management", department="Commerce"),
    ]
    db_session.add_all(programmes)
    await db_session.flush()

    subjects = [
        Subject(code="DUE10012", name="COMMUNICATIVE ENGLISH 1", programme_id="DBS", semester=1),
        Subject(code="DPP20023", name="INTERNATIONAL BUSINESS", programme_id="DBS", semester=3),
        Subject(code="DPB30073", name="BUSINESS STATISTICS", programme_id="DBS", semester=3),
        Subject(code="DRM30013", name="RETAIL OPERATIONS", programme_id="DRM", semester=3),
    ]
    db_session.add_all(subjects)
    await db_session.commit()
    return {
        "programmes": {p.id: p for p in programmes},
        "subjects": {s.code: s for s in subjects},
    }


async def _add_user(db: AsyncSession, **fields) -> User:
    fields.setdefault("verification_status", VerificationStatus.approved)
    fields.setdefault("is_active", True)
    fields.setdefault("teaching_subjects", [])
    fields.setdefault("programmes", [])
    user = User(**fields)
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


@pytest_asyncio.fixture
async def student(db_session: AsyncSession, catalog) -> User:
    return await _add_user(
        db_session,
        email="aisyah@student.polinilai.edu.my",
        full_name="Nur Aisyah Binti Rahman",
        role=UserRole.student,
        matric_id="23DBS23F1001",
        programme="DBS",
        entry_year="2023",
        session="F1",
    )


@pytest_asyncio.fixture
async def other_student(db_session: AsyncSession, catalog) -> User:
    return await _add_user(
        db_session,
        email="hafiz@student.polinilai.edu.my",
        full_name="Muhammad Hafiz",
        role=UserRole.student,
        matric_id="23DRM23F2002",
        programme="DRM",
        entry_year="2023",
        session="F2",
    )


@pytest_asyncio.fixture
async def lecturer(db_session: AsyncSession, catalog) -> User:
    """Lecturer L: teaches DPP20023 in DBS."""
    return await _add_user(
        db_session,
        email="lim@polinilai.edu.my",
        full_name="Dr. Lim Wei Ming",
        role=UserRole.lecturer,
        employee_id="L100001",
        department="Commerce",
        teaching_subjects=["DPP20023"],
        programmes=["DBS"],
        program="DBS",
    )


@pytest_asyncio.fixture
async def other_lecturer(db_session: AsyncSession, catalog) -> User:
    """Lecturer M: teaches DRM30013 only."""
    return await _add_user(
        db_session,
        email="maria@polinilai.edu.my",
        full_name="Puan Maria Ahmad",
        role=UserRole.lecturer,
        employee_id="L100002",
        department="Commerce",
        teaching_subjects=["DRM30013"],
        programmes=["DRM"],
        program="DRM",
    )


@pytest_asyncio.fixture
async def legacy_lecturer(db_session: AsyncSession, catalog) -> User:
    """Only the legacy single-programme field is set."""
    return await _add_user(
        db_session,
        email="rahim@polinilai.edu.my",
        full_name="Encik Rahim",
        role=UserRole.lecturer,
        employee_id="L100003",
        program="DBS",
    )


@pytest_asyncio.fixture
async def unassigned_lecturer(db_session: AsyncSession, catalog) -> User:
    return await _add_user(
        db_session,
        email="new.staff@polinilai.edu.my",
        full_name="New Staff",
        role=UserRole.lecturer,
        employee_id="L100004",
        program=LEGACY_PROGRAM_UNSET,
    )


@pytest_asyncio.fixture
async def admin(db_session: AsyncSession, catalog) -> User:
    return await _add_user(
        db_session,
        email="admin@polinilai.edu.my",
        full_name="System Admin",
        role=UserRole.admin,
    )


@pytest.fixture
def upload(db_session: AsyncSession):
    """Create a material through the store. Defaults to a DPP20023 note."""

    async def _upload(
        uploader: User,
        subject_code: str = "DPP20023",
        programme_id: str = "DBS",
        semester: int = 3,
        title: str = "Chapter 1 Notes",
        material_type: MaterialType = MaterialType.note,
        file_size: int = 2 * MB,
        file_type: str = PDF,
        file_name: str = "chapter1.pdf",
    ):
        metadata = MaterialMetadata(
            title=title,
            description="Lecture notes",
            material_type=material_type,
            programme_id=programme_id,
            semester=semester,
            subject_code=subject_code,
        )
        file = FileDescriptor(
            file_name=file_name,
            file_size=file_size,
            file_type=file_type,
            download_url=f"https://files.example.edu/{file_name}",
        )
        return await material_service.create_material(
            db_session, metadata, file, uploader.id, uploader.role
        )

    return _upload
