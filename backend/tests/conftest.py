"""
Student Performance Tracking System - Test Configuration and Fixtures
"""
import os
from datetime import datetime, timedelta
from typing import AsyncGenerator
import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool
from faker import Faker

# Set testing environment before the settings object is built
os.environ['ENVIRONMENT'] = 'testing'
os.environ['DEBUG'] = 'false'
os.environ['DATABASE_URL'] = 'sqlite+aiosqlite:///./test_sptrack.db'
os.environ['SECRET_KEY'] = 'test-secret-key-for-testing-only'
os.environ['JWT_SECRET_KEY'] = 'test-jwt-secret-key-for-testing'
os.environ['BCRYPT_ROUNDS'] = '4'
os.environ['RATE_LIMIT_ENABLED'] = 'false'
os.environ['STORAGE_MODE'] = 'local'
os.environ['ADMIN_PASSWORD'] = ''

from sptrack.main import app
from sptrack.core.database import Base, get_db, enable_sqlite_foreign_keys
from sptrack.core.security import get_password_hash, create_access_token
from sptrack.models import Admin, Instructor, InstructorSubject, Section, Student, StudentSection, Subject
from sptrack.modules.auth.identity import Actor, Role
from sptrack.services.storage_service import LocalBlobStore, get_blob_store

fake = Faker()

# Test database setup
TEST_DATABASE_URL = 'sqlite+aiosqlite:///./test_sptrack.db'
test_engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=NullPool)
enable_sqlite_foreign_keys(test_engine)
TestSessionLocal = async_sessionmaker(
    bind=test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False
)

DEFAULT_PASSWORD = 'testpassword123'


@pytest.fixture(scope='function')
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database for each test"""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with TestSessionLocal() as session:
        yield session
        await session.rollback()

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
def blob_store(tmp_path) -> LocalBlobStore:
    """Local blob store rooted in a per-test directory"""
    return LocalBlobStore(tmp_path / "uploads", url_prefix="/uploads")


@pytest.fixture
async def client(db_session: AsyncSession, blob_store: LocalBlobStore) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with database and storage overrides"""
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_blob_store] = lambda: blob_store

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url='http://test') as ac:
        yield ac

    app.dependency_overrides.clear()


# ==================== Factories ====================

@pytest.fixture
def make_student(db_session: AsyncSession):
    async def _make(student_number: str = None, last_name: str = None, password: str = DEFAULT_PASSWORD, **kwargs) -> Student:
        student = Student(
            student_number=student_number or fake.unique.numerify('2024####'),
            first_name=kwargs.pop('first_name', fake.first_name()),
            last_name=last_name or fake.last_name(),
            password_hash=get_password_hash(password),
            **kwargs
        )
        db_session.add(student)
        await db_session.commit()
        await db_session.refresh(student)
        return student
    return _make


@pytest.fixture
def make_instructor(db_session: AsyncSession):
    async def _make(username: str = None, password: str = DEFAULT_PASSWORD, **kwargs) -> Instructor:
        instructor = Instructor(
            username=username or fake.unique.user_name(),
            first_name=kwargs.pop('first_name', fake.first_name()),
            last_name=kwargs.pop('last_name', fake.last_name()),
            password_hash=get_password_hash(password),
            **kwargs
        )
        db_session.add(instructor)
        await db_session.commit()
        await db_session.refresh(instructor)
        return instructor
    return _make


@pytest.fixture
def make_subject(db_session: AsyncSession):
    async def _make(title: str = None) -> Subject:
        subject = Subject(title=title or fake.unique.bothify('CS###'))
        db_session.add(subject)
        await db_session.commit()
        await db_session.refresh(subject)
        return subject
    return _make


@pytest.fixture
def make_link(db_session: AsyncSession):
    async def _make(instructor: Instructor, subject: Subject, semester: str = '1st Semester',
                    year: int = 2025, assigned_at: datetime = None) -> InstructorSubject:
        link = InstructorSubject(
            instructor_id=instructor.id,
            subject_id=subject.subject_id,
            semester=semester,
            year=year,
            assigned_at=assigned_at or datetime.utcnow(),
        )
        db_session.add(link)
        await db_session.commit()
        return link
    return _make


@pytest.fixture
def make_section(db_session: AsyncSession):
    async def _make(link: InstructorSubject, name: str = None, students=()) -> Section:
        section = Section(
            name=name or fake.unique.bothify('BSCS-#?'),
            instructor_id=link.instructor_id,
            subject_id=link.subject_id,
        )
        db_session.add(section)
        await db_session.flush()
        for student in students:
            db_session.add(StudentSection(section_id=section.id, student_id=student.id))
        await db_session.commit()
        await db_session.refresh(section)
        return section
    return _make


@pytest.fixture
async def admin(db_session: AsyncSession) -> Admin:
    admin = Admin(username='admin', password_hash=get_password_hash('adminpassword123'))
    db_session.add(admin)
    await db_session.commit()
    await db_session.refresh(admin)
    return admin


@pytest.fixture
async def student(make_student) -> Student:
    return await make_student()


@pytest.fixture
async def instructor(make_instructor) -> Instructor:
    return await make_instructor()


# ==================== Actors & Headers ====================

def actor_for(account) -> Actor:
    role = {Student: Role.STUDENT, Instructor: Role.INSTRUCTOR, Admin: Role.ADMIN}[type(account)]
    return Actor(id=account.id, role=role)


def headers_for(account) -> dict:
    actor = actor_for(account)
    token = create_access_token({'sub': actor.id, 'role': actor.role.value})
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def student_headers(student: Student) -> dict:
    return headers_for(student)


@pytest.fixture
def instructor_headers(instructor: Instructor) -> dict:
    return headers_for(instructor)


@pytest.fixture
def admin_headers(admin: Admin) -> dict:
    return headers_for(admin)


@pytest.fixture
def expired_token() -> str:
    return create_access_token({'sub': 1, 'role': 'student'}, expires_delta=timedelta(seconds=-10))


@pytest.fixture
def auth_headers():
    """Build bearer headers for any account: auth_headers(instructor)"""
    return headers_for


@pytest.fixture
def as_actor():
    """Build the Actor for any account: as_actor(student)"""
    return actor_for
