"""
Pytest configuration and fixtures for ReportDesk tests.

This module provides common test fixtures and configuration for the test suite.
"""

import io
import os
import uuid
from datetime import datetime, timedelta

import pytest
from PIL import Image
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Set test environment before the application reads its settings
os.environ["JWT_SECRET_KEY"] = "test-secret-key-12345678901234567890123456789012"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ.setdefault("ATTACHMENT_DIR", "/tmp/reportdesk-test-storage")

from reportdesk.config import Settings  # noqa: E402
from reportdesk.database.core import Base  # noqa: E402
from reportdesk import models  # noqa: E402,F401
from reportdesk.schemas.auth import TokenPayload  # noqa: E402
from reportdesk.services.storage.attachment_store import LocalAttachmentStore  # noqa: E402
from reportdesk.services.uploads import UploadedFile  # noqa: E402


def make_image_bytes(image_format: str = "JPEG", size=(16, 16), color=(200, 30, 30)) -> bytes:
    """Encode a small solid-colour image with Pillow"""
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format=image_format)
    return buffer.getvalue()


def make_upload(filename: str = "photo.jpg", image_format: str = "JPEG",
                content_type: str = "image/jpeg") -> UploadedFile:
    return UploadedFile(filename=filename, content_type=content_type,
                        data=make_image_bytes(image_format))


@pytest.fixture
def jpeg_bytes():
    return make_image_bytes("JPEG")


@pytest.fixture
def png_bytes():
    return make_image_bytes("PNG")


@pytest.fixture
def settings(tmp_path):
    """Settings with default limits and local storage under tmp_path"""
    return Settings(attachment_dir=str(tmp_path / "storage"))


@pytest.fixture
def attachment_store(tmp_path):
    return LocalAttachmentStore(str(tmp_path / "storage"))


@pytest.fixture
async def db_engine():
    """In-memory SQLite engine with the full schema"""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db_session(db_engine):
    """Async database session bound to the in-memory engine"""
    session_factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


def token_for(user_id=None, username="citizen") -> TokenPayload:
    return TokenPayload(
        username=username,
        user_id=user_id or uuid.uuid4(),
        jti=str(uuid.uuid4()),
        exp=int((datetime.utcnow() + timedelta(hours=1)).timestamp())
    )


@pytest.fixture
def test_user():
    """Identity of the caller in tests"""
    return token_for(username="alice")


@pytest.fixture
def other_user():
    return token_for(username="bob")
