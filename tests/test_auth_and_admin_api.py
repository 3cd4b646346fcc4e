"""Auth, status catalog and webhook administration endpoint tests."""

from pathlib import Path

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from printshop import main as app_main
from printshop.core.security import create_access_token, get_password_hash
from printshop.db import session as db_session
from printshop.db.base import Base
from printshop.main import app
from printshop.models import User
from printshop.services.user_service import create_user

PASSWORD = "secret123"


def _build_test_engine(db_file: Path) -> Engine:
    return create_engine(
        f"sqlite:///{db_file}",
        connect_args={"check_same_thread": False},
    )


def _setup(tmp_path: Path, monkeypatch, name: str) -> sessionmaker:
    engine = _build_test_engine(tmp_path / name)
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    monkeypatch.setattr(db_session, "engine", engine)
    monkeypatch.setattr(db_session, "SessionLocal", testing_session_local)
    monkeypatch.setattr(app_main, "engine", engine)
    monkeypatch.setattr(app_main, "SessionLocal", testing_session_local)

    hashed = get_password_hash(PASSWORD)
    with testing_session_local() as session:
        create_user(db=session, username="admin", hashed_password=hashed, role="ADMIN", name="Admin")
        create_user(db=session, username="operator", hashed_password=hashed, role="OPERATOR")
    return testing_session_local


def _auth_headers(client: TestClient, username: str) -> dict[str, str]:
    response = client.post("/api/v1/auth/login", json={"username": username, "password": PASSWORD})
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


def test_login_and_me(tmp_path: Path, monkeypatch) -> None:
    session_factory = _setup(tmp_path, monkeypatch, "login.db")

    with TestClient(app) as client:
        headers = _auth_headers(client, "admin")
        me = client.get("/api/v1/auth/me", headers=headers)
        bad = client.post("/api/v1/auth/login", json={"username": "admin", "password": "wrong"})

    assert me.status_code == 200
    assert me.json()["username"] == "admin"
    assert me.json()["role"] == "ADMIN"
    assert bad.status_code == 401
    with session_factory() as session:
        user = session.query(User).filter(User.username == "admin").one()
        assert user.last_login_at is not None


def test_inactive_user_token_is_rejected(tmp_path: Path, monkeypatch) -> None:
    session_factory = _setup(tmp_path, monkeypatch, "inactive.db")
    with session_factory() as session:
        user = session.query(User).filter(User.username == "operator").one()
        user.is_active = False
        session.commit()
        token = create_access_token({"sub": str(user.id), "role": user.role})

    with TestClient(app) as client:
        response = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401


def test_status_catalog_is_seeded_in_display_order(tmp_path: Path, monkeypatch) -> None:
    _setup(tmp_path, monkeypatch, "statuses.db")

    with TestClient(app) as client:
        headers = _auth_headers(client, "operator")
        statuses = client.get("/api/v1/statuses", headers=headers).json()

    assert len(statuses) == 9
    assert statuses[0]["name"] == "Pendente"
    assert [entry["sort_order"] for entry in statuses] == sorted(entry["sort_order"] for entry in statuses)


def test_webhook_crud_requires_admin(tmp_path: Path, monkeypatch) -> None:
    _setup(tmp_path, monkeypatch, "webhooks.db")

    with TestClient(app) as client:
        admin = _auth_headers(client, "admin")
        operator = _auth_headers(client, "operator")

        forbidden = client.post("/api/v1/webhooks", json={"destination_url": "http://erp.test/hook"}, headers=operator)
        created = client.post(
            "/api/v1/webhooks",
            json={"destination_url": "http://erp.test/hook", "description": "ERP"},
            headers=admin,
        )
        webhook_id = created.json()["id"]
        updated = client.put(f"/api/v1/webhooks/{webhook_id}", json={"is_active": False}, headers=admin)
        listing = client.get("/api/v1/webhooks", headers=admin)
        deleted = client.delete(f"/api/v1/webhooks/{webhook_id}", headers=admin)
        missing = client.get(f"/api/v1/webhooks/{webhook_id}", headers=admin)

    assert forbidden.status_code == 403
    assert created.status_code == 201
    assert updated.json()["is_active"] is False
    assert updated.json()["description"] == "ERP"
    assert [entry["id"] for entry in listing.json()] == [webhook_id]
    assert deleted.json() == {"message": "Webhook removed"}
    assert missing.status_code == 404


def test_health(tmp_path: Path, monkeypatch) -> None:
    _setup(tmp_path, monkeypatch, "health.db")

    with TestClient(app) as client:
        response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"
