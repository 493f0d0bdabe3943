from datetime import date

import pytest

import db
from models import SCOPE_OWNER, SCOPE_PARTNER, Session
from repository import ClientRepository


@pytest.fixture(autouse=True)
def temp_db(tmp_path, monkeypatch):
    monkeypatch.setattr(db, "DB_FILE", tmp_path / "iptv.db")
    monkeypatch.setattr(db, "LOCAL_DB_FILE", tmp_path / "iptv_local.db")
    monkeypatch.setattr(db, "_listeners", [])
    db.init_db()
    yield tmp_path


@pytest.fixture
def owner():
    return Session(scope=SCOPE_OWNER)


@pytest.fixture
def partner():
    return Session(scope=SCOPE_PARTNER)


@pytest.fixture
def repo(owner):
    return ClientRepository(owner)


@pytest.fixture
def make_client(repo):
    def _make(name="Ana", **fields):
        data = {
            "name": name,
            "phone": "(11) 91234-5678",
            "plan": "Premium",
            "activation_date": date(2024, 1, 1),
            "expiry_date": date(2024, 2, 1),
        }
        data.update(fields)
        return repo.create(data)

    return _make
