"""Shared fixtures: a throwaway SQLite file per test, the datastore client and the API app."""
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from movebetter.core.security import create_access_token, get_password_hash
from movebetter.datastore.client import BackendClient
from movebetter.main import create_app
from movebetter.models import Base
from movebetter.models.base import build_engine
from movebetter.models.user import Profile, UserRole

ADMIN_EMAIL = "fisio@movebetter.test"
ADMIN_PASSWORD = "Senha123"


@pytest.fixture()
def engine(tmp_path):
    # File-backed so worker threads (dashboard, realtime) see the same data
    test_engine = build_engine(f"sqlite:///{tmp_path / 'movebetter-test.db'}")
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    test_engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture()
def backend(session_factory):
    return BackendClient(session_factory)


@pytest.fixture()
def admin(db):
    user = Profile(
        name="Fisio Teste",
        email=ADMIN_EMAIL,
        hashed_password=get_password_hash(ADMIN_PASSWORD),
        role=UserRole.ADMIN,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture()
def auth_headers(admin):
    token = create_access_token({"sub": admin.id, "email": admin.email, "role": admin.role})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def app(session_factory):
    return create_app(session_factory)


@pytest.fixture()
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def patient(backend):
    return backend.table("patients").insert({"name": "Ana Souza", "phone": "11999990000"}).single().execute().data


def make_medical_record(backend, patient_id, **overrides):
    values = {
        "patient_id": patient_id,
        "visit_reason": "Dor lombar",
        "current_condition": "Dor ao sentar",
        "medical_history": "Sem cirurgias",
        "treatment_plan": "Fortalecimento de core",
        **overrides,
    }
    return backend.table("patient_medical_records").insert(values).single().execute().data
