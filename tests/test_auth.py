import pytest

from auth import AuthGate, hash_password, verify_password


@pytest.fixture(scope="module")
def gate():
    return AuthGate("3str4NH$", "3str4NH@", rounds=4)


def test_owner_secret_opens_owner_session(gate):
    session = gate.login("3str4NH$")
    assert session is not None
    assert session.scope == "dono"
    assert session.label == "Dono"


def test_partner_secret_opens_partner_session(gate):
    session = gate.login("3str4NH@")
    assert session.scope == "socio"


@pytest.mark.parametrize("password", ["", "3STR4NH$", "3str4nh$", "3str4NH", "3str4NH$ ", "admin123"])
def test_other_secrets_are_rejected(gate, password):
    assert gate.login(password) is None


def test_each_login_is_a_fresh_session(gate):
    assert gate.login("3str4NH$") is not gate.login("3str4NH$")


def test_hash_roundtrip_and_long_passwords():
    h = hash_password("x" * 100, rounds=4)
    assert verify_password("x" * 72, h)
    assert not verify_password("y", h)
