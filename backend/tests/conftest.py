"""Pytest fixtures for document control testing.

Provides reusable test fixtures for:
- Database session on a fresh in-memory SQLite database per test
- Principals with different roles (ADMIN, MANAGER, MEMBER, GUEST) and an
  outsider from another company
- Document types, folders and a document factory
- Authenticated test clients with JWT tokens

Usage:
    def test_get_document(api_client, owner, document):
        response = api_client(owner).get(f"/api/v1/documents/{document.id}")
        assert response.status_code == 200
"""

import sys
import os
from pathlib import Path

# Set environment variables BEFORE any imports to ensure they take effect
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("JWT_SECRET", "test-jwt-secret-key-256-bits-minimum-length-required-for-security")
os.environ.setdefault("LOG_JSON", "false")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from uuid import uuid4
from typing import Callable, Generator

backend_src = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(backend_src))

from models import Base
from models.document import Document
from models.document_type import DocumentType
from models.folder import Folder
from auth.jwt import create_access_token
from auth.principal import Principal
from auth.roles import UserRole
from document_control.schemas import DocumentCreate, DocumentTypeCreate
from document_control.catalog import DocumentTypeCatalog
from document_control.folders import FolderHierarchy
from document_control.store import DocumentStore

from database import get_db as database_get_db


@pytest.fixture(scope="function")
def engine():
    """Fresh in-memory database; every connection shares it."""
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=test_engine)
    try:
        yield test_engine
    finally:
        Base.metadata.drop_all(bind=test_engine)
        test_engine.dispose()


@pytest.fixture(scope="function")
def db_session(engine) -> Generator[Session, None, None]:
    """Create a fresh database session for each test."""
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


# =============================================================================
# PRINCIPALS
# =============================================================================

@pytest.fixture
def company_id():
    return uuid4()


@pytest.fixture
def department_id():
    return uuid4()


@pytest.fixture
def owner(company_id) -> Principal:
    """MEMBER who creates the documents under test."""
    return Principal(user_id=uuid4(), company_id=company_id, role=UserRole.MEMBER)


@pytest.fixture
def member(company_id, department_id) -> Principal:
    """Second MEMBER of the same company with no grants of their own."""
    return Principal(
        user_id=uuid4(),
        company_id=company_id,
        role=UserRole.MEMBER,
        department_ids=frozenset({department_id}),
    )


@pytest.fixture
def manager(company_id) -> Principal:
    return Principal(user_id=uuid4(), company_id=company_id, role=UserRole.MANAGER)


@pytest.fixture
def admin(company_id) -> Principal:
    return Principal(user_id=uuid4(), company_id=company_id, role=UserRole.ADMIN)


@pytest.fixture
def guest(company_id) -> Principal:
    return Principal(user_id=uuid4(), company_id=company_id, role=UserRole.GUEST)


@pytest.fixture
def outsider() -> Principal:
    """ADMIN of a different company."""
    return Principal(user_id=uuid4(), company_id=uuid4(), role=UserRole.ADMIN)


# =============================================================================
# CATALOG AND FOLDERS
# =============================================================================

@pytest.fixture
def contract_type(db_session: Session, company_id) -> DocumentType:
    """Numbered type that requires approval: CON-<year>-0001."""
    doc_type = DocumentTypeCatalog(db_session, company_id).create(DocumentTypeCreate(
        code="con",
        name="Contract",
        allowed_extensions=[".PDF", "docx"],
        auto_number_enabled=True,
        auto_number_prefix="CON",
        auto_number_digits=4,
        auto_number_includes_year=True,
        requires_approval=True,
    ))
    db_session.commit()
    return doc_type


@pytest.fixture
def memo_type(db_session: Session, company_id) -> DocumentType:
    """Unnumbered type without approval, any extension."""
    doc_type = DocumentTypeCatalog(db_session, company_id).create(DocumentTypeCreate(
        code="MEMO",
        name="Memo",
        requires_approval=False,
    ))
    db_session.commit()
    return doc_type


@pytest.fixture
def folder(db_session: Session, company_id, owner) -> Folder:
    created = FolderHierarchy(db_session, company_id).create(owner, "Legal")
    db_session.commit()
    return created


@pytest.fixture
def make_document(db_session: Session, company_id, owner, folder, contract_type) -> Callable[..., Document]:
    """Factory creating committed documents; keyword arguments override DocumentCreate fields."""

    def _make(principal: Principal = None, **overrides) -> Document:
        fields = {
            "name": "Supply agreement.pdf",
            "folder_id": folder.id,
            "document_type_id": contract_type.id,
            "storage_path": f"blobs/{uuid4()}",
            "content_hash": "sha256:initial",
            "file_size_bytes": 1024,
        }
        fields.update(overrides)
        created = DocumentStore(db_session, company_id).create(principal or owner, DocumentCreate(**fields))
        db_session.commit()
        return created

    return _make


@pytest.fixture
def document(make_document) -> Document:
    return make_document()


# =============================================================================
# API CLIENTS
# =============================================================================

@pytest.fixture(scope="function")
def app(db_session: Session):
    """FastAPI app wired to the test session."""
    from main import app as fastapi_app

    def override_get_db():
        try:
            yield db_session
        except Exception:
            db_session.rollback()
            raise

    fastapi_app.dependency_overrides[database_get_db] = override_get_db
    try:
        yield fastapi_app
    finally:
        fastapi_app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def api_client(app) -> Callable[[Principal], TestClient]:
    """Build a TestClient authenticated as the given principal."""

    def _client(principal: Principal) -> TestClient:
        token = create_access_token(
            user_id=principal.user_id,
            company_id=principal.company_id,
            role=principal.role.value,
            department_ids=principal.department_ids,
        )
        client = TestClient(app)
        client.headers.update({"Authorization": f"Bearer {token}"})
        return client

    return _client


@pytest.fixture(scope="function")
def client(app) -> TestClient:
    """Unauthenticated test client."""
    return TestClient(app)
