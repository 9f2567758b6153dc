"""
Integration tests for the MyBank API
Tests end-to-end workflows using FastAPI TestClient
"""

import pytest
from fastapi.testclient import TestClient

from mybank.api import create_app
from mybank.api.system import BankSystem
from mybank.config import MyBankConfig
from mybank.errors import CorruptLedgerError
from mybank.store import InMemoryLedgerStore, JSONFileLedgerStore


ADMIN = {"adminUsername": "admin", "adminPassword": "letmein"}


def _config(**overrides):
    values = {"admin_username": "admin", "admin_password": "letmein", "storage_backend": "memory"}
    values.update(overrides)
    return MyBankConfig(**values)


@pytest.fixture
def system():
    """Ledger system on in-memory storage"""
    return BankSystem(_config(), store=InMemoryLedgerStore())


@pytest.fixture
def client(system):
    """Create a test client for the API"""
    return TestClient(create_app(system))


def _admin(client, path, **fields):
    return client.post(f"/api/admin/{path}", json={**ADMIN, **fields})


def _users(client):
    return {u["username"]: u for u in _admin(client, "users").json()}


class TestHealthEndpoints:
    """Test basic health endpoint"""

    def test_health(self, client):
        r = client.get("/health")
        assert r.status_code == 200
        assert r.json()["status"] == "healthy"


class TestStartup:
    """System construction"""

    def test_admin_account_seeded(self, client):
        users = _users(client)
        assert users["admin"]["is_admin"] is True
        assert users["admin"]["balance"] == 0

    def test_seeding_is_idempotent(self, system):
        BankSystem(system.config, store=system.store)
        with system.store.read() as document:
            assert [a.username for a in document.accounts] == ["admin"]

    def test_corrupt_ledger_refuses_to_start(self, tmp_path):
        path = tmp_path / "db.json"
        path.write_text('{"accounts": "nope"}')
        with pytest.raises(CorruptLedgerError):
            BankSystem(_config(), store=JSONFileLedgerStore(path))


class TestAccountFlow:
    """Self-service endpoints"""

    def test_register_login_balance(self, client):
        r = client.post("/api/createUser", json={"username": "alice", "password": "pw"})
        assert r.status_code == 200
        assert r.json() == {"success": True}

        r = client.post("/api/login", json={"username": "alice", "password": "pw"})
        assert r.status_code == 200
        assert r.json()["user"] == {
            "username": "alice", "balance": 0, "is_admin": False, "is_frozen": False
        }
        assert "password_hash" not in r.text

        r = client.post("/api/balance", json={"username": "alice"})
        assert r.json() == {"balance": 0}

    def test_register_errors(self, client):
        r = client.post("/api/createUser", json={"username": "alice"})
        assert r.status_code == 400
        assert r.json() == {"error": "username+password required"}

        client.post("/api/createUser", json={"username": "alice", "password": "pw"})
        r = client.post("/api/createUser", json={"username": "alice", "password": "pw"})
        assert r.status_code == 400
        assert r.json() == {"error": "User already exists"}

    def test_login_errors(self, client):
        client.post("/api/createUser", json={"username": "alice", "password": "pw"})
        r = client.post("/api/login", json={"username": "alice", "password": "bad"})
        assert r.status_code == 400
        assert r.json() == {"error": "Invalid login"}

        _admin(client, "freezeUser", username="alice", freeze=True)
        r = client.post("/api/login", json={"username": "alice", "password": "pw"})
        assert r.status_code == 403

    def test_balance_errors(self, client):
        assert client.post("/api/balance", json={"username": "ghost"}).status_code == 404

    def test_malformed_body(self, client):
        r = client.post("/api/createUser", content="not json",
                        headers={"content-type": "application/json"})
        assert r.status_code == 400
        assert "error" in r.json()


class TestLedgerScenarios:
    """End-to-end ledger scenarios"""

    def _setup_alice_and_bob(self, client):
        assert _admin(client, "createUser", username="alice", password="pw").status_code == 200
        assert _admin(client, "createUser", username="bob", password="pw").status_code == 200
        assert _admin(client, "setBalance", username="alice", balance=50).status_code == 200

    def test_transfer_scenario(self, client):
        """alice=50, send 20 to bob → alice=30, bob=20, one record"""
        self._setup_alice_and_bob(client)

        r = client.post("/api/send", json={"from": "alice", "to": "bob", "amount": 20})
        assert r.status_code == 200
        assert r.json() == {"success": True}

        users = _users(client)
        assert users["alice"]["balance"] == 30
        assert users["bob"]["balance"] == 20

        transactions = _admin(client, "transactions").json()
        assert len(transactions) == 1
        assert transactions[0]["sender"] == "alice"
        assert transactions[0]["receiver"] == "bob"
        assert transactions[0]["amount"] == 20
        assert transactions[0]["id"] == 1

    def test_amount_above_cap(self, client):
        self._setup_alice_and_bob(client)
        _admin(client, "setBalance", username="bob", balance=40)

        r = client.post("/api/send", json={"from": "alice", "to": "bob", "amount": 25})
        assert r.status_code == 400

        users = _users(client)
        assert users["alice"]["balance"] == 50
        assert users["bob"]["balance"] == 40
        assert _admin(client, "transactions").json() == []

    def test_frozen_receiver(self, client):
        self._setup_alice_and_bob(client)
        _admin(client, "freezeUser", username="bob", freeze=True)

        r = client.post("/api/send", json={"from": "alice", "to": "bob", "amount": 5})
        assert r.status_code == 403
        assert r.json() == {"error": "Receiver account frozen"}
        assert _users(client)["alice"]["balance"] == 50

    def test_send_errors(self, client):
        self._setup_alice_and_bob(client)
        assert client.post("/api/send", json={"from": "alice", "to": "bob"}).status_code == 400
        assert client.post("/api/send", json={"from": "alice", "to": "bob", "amount": -1}).status_code == 400
        assert client.post("/api/send", json={"from": "alice", "to": "zed", "amount": 1}).status_code == 404
        r = client.post("/api/send", json={"from": "bob", "to": "alice", "amount": 1})
        assert r.status_code == 400
        assert r.json() == {"error": "Not enough Niftoes"}

    def test_string_amount_accepted(self, client):
        self._setup_alice_and_bob(client)
        r = client.post("/api/send", json={"from": "alice", "to": "bob", "amount": "2.5"})
        assert r.status_code == 200
        assert _users(client)["bob"]["balance"] == 2.5

    def test_delete_after_transfer(self, client):
        """Deleting alice removes her transfer, bob stays as he was"""
        self._setup_alice_and_bob(client)
        client.post("/api/send", json={"from": "alice", "to": "bob", "amount": 20})

        r = _admin(client, "deleteUser", username="alice")
        assert r.status_code == 200

        users = _users(client)
        assert "alice" not in users
        assert users["bob"] == {"username": "bob", "balance": 20, "is_admin": False, "is_frozen": False}
        assert _admin(client, "transactions").json() == []

        assert _admin(client, "deleteUser", username="alice").status_code == 404


class TestAdminEndpoints:
    """Admin gate and operations"""

    @pytest.mark.parametrize("path", [
        "login", "users", "createUser", "setBalance", "freezeUser",
        "deleteUser", "transactions", "broadcast",
    ])
    def test_bad_credentials_forbidden(self, client, path):
        r = client.post(f"/api/admin/{path}",
                        json={"adminUsername": "admin", "adminPassword": "wrong", "username": "x"})
        assert r.status_code == 403
        assert client.post(f"/api/admin/{path}").status_code == 403

    @pytest.mark.parametrize("path,fields", [
        ("freezeUser", {"username": "alice", "freeze": "maybe"}),
        ("deleteUser", {"username": 123}),
        ("createUser", {"username": ["x"], "password": {}, "is_admin": "yes"}),
        ("broadcast", {"message": 42}),
        ("setBalance", {"username": "alice", "balance": "lots"}),
    ])
    def test_credentials_checked_before_field_validation(self, client, path, fields):
        r = client.post(f"/api/admin/{path}",
                        json={"adminUsername": "admin", "adminPassword": "wrong", **fields})
        assert r.status_code == 403
        assert r.json() == {"error": "Invalid admin credentials"}

    @pytest.mark.parametrize("body", [[1, 2], "admin", 7, None])
    def test_non_object_body_is_forbidden(self, client, body):
        r = client.post("/api/admin/users", json=body)
        assert r.status_code == 403

    def test_wrong_typed_fields_with_valid_credentials(self, client):
        client.post("/api/createUser", json={"username": "alice", "password": "pw"})
        assert _admin(client, "freezeUser", username="alice", freeze="maybe").status_code == 400
        assert _admin(client, "deleteUser", username=123).status_code == 404
        assert _admin(client, "broadcast", message=42).status_code == 400
        assert _users(client)["alice"]["is_frozen"] is False

    def test_sub_cent_amounts_rejected(self, client):
        _admin(client, "createUser", username="alice", password="pw", balance=10)
        _admin(client, "createUser", username="bob", password="pw")

        r = client.post("/api/send", json={"from": "alice", "to": "bob", "amount": "1e-30"})
        assert r.status_code == 400
        assert _admin(client, "setBalance", username="bob", balance=0.001).status_code == 400

        users = _users(client)
        assert users["alice"]["balance"] == 10
        assert users["bob"]["balance"] == 0

    def test_forbidden_request_has_no_effect(self, client):
        client.post("/api/admin/createUser",
                    json={"adminUsername": "admin", "adminPassword": "x", "username": "eve", "password": "pw"})
        assert "eve" not in _users(client)

    def test_admin_login(self, client):
        assert _admin(client, "login").json() == {"success": True}

    def test_create_user_with_balance(self, client):
        r = _admin(client, "createUser", username="vip", password="pw", balance=15, is_admin=True)
        assert r.status_code == 200
        assert _users(client)["vip"] == {"username": "vip", "balance": 15, "is_admin": True, "is_frozen": False}

        r = _admin(client, "createUser", username="vip", password="pw")
        assert r.status_code == 400

    def test_set_balance_errors(self, client):
        assert _admin(client, "setBalance", username="ghost", balance=5).status_code == 404
        _admin(client, "createUser", username="alice", password="pw")
        r = _admin(client, "setBalance", username="alice", balance=-5)
        assert r.status_code == 400
        assert r.json() == {"error": "Balance cannot be negative"}

    def test_freeze_unknown(self, client):
        assert _admin(client, "freezeUser", username="ghost", freeze=True).status_code == 404

    def test_broadcasts(self, client):
        assert client.get("/api/broadcasts").json() == []
        assert _admin(client, "broadcast", message="").status_code == 400
        _admin(client, "broadcast", message="hello")
        _admin(client, "broadcast", message="world")

        feed = client.get("/api/broadcasts").json()
        assert [b["message"] for b in feed] == ["world", "hello"]
        assert all("created_at" in b for b in feed)


class TestReplicationIngest:
    """/backup and /restore on the primary"""

    def test_backup_and_restore(self, client):
        assert client.get("/restore").json() == []
        snapshot = [{"username": "alice", "balance": 30}]
        assert client.post("/backup", json=snapshot).json() == {"ok": True}
        assert client.get("/restore").json() == snapshot

    def test_ingest_shares_ledger_lock(self, system):
        assert system.snapshot_store.lock is system.store.lock
