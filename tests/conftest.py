from __future__ import annotations

import itertools

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from neosafe.auth import create_access_token, get_password_hash
from neosafe.config import settings
from neosafe.database import Base, get_db, make_engine
from neosafe.dependencies import get_telemetry_store
from neosafe.main import app
from neosafe.models.user import User, UserRole
from neosafe.schemas.safe_box import SafeBoxCreate
from neosafe.services.box_registry import BoxRegistry
from neosafe.services.telemetry import SensorReadingStore

_emails = itertools.count(1)

# Cheap hashes keep user fixtures fast
settings.BCRYPT_ROUNDS = 4


@pytest.fixture()
def engine(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'neosafe.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture()
def store(tmp_path):
    store = SensorReadingStore.from_url(f"sqlite:///{tmp_path / 'telemetry.db'}")
    store.create_schema()
    yield store
    store.close()


@pytest.fixture()
def make_user(db):
    def _make_user(role: UserRole, name: str = "Test", password: str = "secret123") -> User:
        user = User(
            name=name,
            last_name=role.value.title(),
            email=f"{role.value}{next(_emails)}@example.com",
            hashed_password=get_password_hash(password),
            role=role,
            is_active=True,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture()
def admin(make_user):
    return make_user(UserRole.ADMIN, name="Ada")


@pytest.fixture()
def provider(make_user):
    return make_user(UserRole.PROVIDER, name="Pat")


@pytest.fixture()
def other_provider(make_user):
    return make_user(UserRole.PROVIDER, name="Quinn")


@pytest.fixture()
def owner(make_user):
    return make_user(UserRole.USER, name="Uma")


@pytest.fixture()
def stranger(make_user):
    return make_user(UserRole.USER, name="Sam")


@pytest.fixture()
def registry(db):
    return BoxRegistry(db)


@pytest.fixture()
def make_box(registry):
    def _make_box(provider: User, name: str = "Vault", **fields):
        return registry.create(provider.id, SafeBoxCreate(name=name, **fields))

    return _make_box


@pytest.fixture()
def client(session_factory, store):
    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_telemetry_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture()
def auth_headers():
    def _auth_headers(user: User) -> dict:
        return {"Authorization": f"Bearer {create_access_token(user)}"}

    return _auth_headers
