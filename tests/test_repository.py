import gc
from datetime import date, timedelta

import pytest

import db
from errors import CSVImportError, NotFound, ValidationError
from repository import ClientRepository


def test_create_applies_defaults(repo):
    client = repo.create({"name": "Ana", "plan": "Ultimate"})

    assert client.id is not None
    assert client.status == "ativo"
    assert client.monthly_value == 70
    assert client.credits == 0
    assert client.owner_scope == "dono"
    assert client.expiry_date == client.activation_date + timedelta(days=30)
    assert [c.name for c in repo.clients] == ["Ana"]


def test_create_unknown_plan_uses_basic_price(repo):
    client = repo.create({"name": "Ana", "plan": "Família"})
    assert client.monthly_value == 30


def test_create_keeps_explicit_monthly_value(repo):
    client = repo.create({"name": "Ana", "plan": "Premium", "monthly_value": 45})
    assert client.monthly_value == 45


def test_create_requires_name(repo):
    with pytest.raises(ValidationError):
        repo.create({"name": "   ", "plan": "Premium"})
    assert repo.list() == []


def test_list_is_newest_first(repo, make_client):
    make_client("Ana")
    make_client("Bia")
    make_client("Caio")
    assert [c.name for c in repo.list()] == ["Caio", "Bia", "Ana"]


def test_scopes_are_isolated(repo, partner, make_client):
    mine = make_client("Ana")
    other = ClientRepository(partner)
    other.create({"name": "Bia"})

    assert [c.name for c in repo.list()] == ["Ana"]
    assert [c.name for c in other.list()] == ["Bia"]
    with pytest.raises(NotFound):
        other.get(mine.id)
    with pytest.raises(NotFound):
        other.delete(mine.id)
    with pytest.raises(NotFound):
        other.update(mine.with_changes(name="Hacked"))
    assert repo.get(mine.id).name == "Ana"


def test_update_replaces_fields_and_recomputes_monthly_value(repo, make_client):
    client = make_client("Ana", plan="Básico")
    repo.update(client.with_changes(name="Ana Maria", plan="Ultimate", monthly_value=0, notes="VIP"))

    updated = repo.get(client.id)
    assert updated.name == "Ana Maria"
    assert updated.plan == "Ultimate"
    assert updated.monthly_value == 70
    assert updated.notes == "VIP"
    assert repo.clients[0].name == "Ana Maria"


def test_update_missing_client(repo, make_client):
    client = make_client()
    with pytest.raises(NotFound):
        repo.update(client.with_changes(id=client.id + 100))


def test_delete(repo, make_client):
    client = make_client()
    repo.delete(client.id)
    assert repo.clients == []
    with pytest.raises(NotFound):
        repo.delete(client.id)


def test_toggle_status_cycle(repo, make_client):
    client = make_client(status="ativo")

    assert repo.toggle_status(client.id) == "suspenso"
    assert repo.toggle_status(client.id) == "inativo"
    assert repo.toggle_status(client.id) == "ativo"
    assert repo.get(client.id).status == "ativo"


def test_toggle_status_missing_client(repo):
    with pytest.raises(NotFound):
        repo.toggle_status(999)


def test_renew_refreshes_credits_when_zero(repo, make_client):
    client = make_client(plan="Premium", expiry_date=date(2024, 1, 1), credits=0, status="suspenso")

    renewed = repo.renew(client.id)

    assert renewed.status == "ativo"
    assert renewed.expiry_date == date(2024, 1, 31)
    assert renewed.credits == 50


def test_renew_keeps_existing_credits(repo, make_client):
    client = make_client(plan="Premium", expiry_date=date(2024, 1, 1), credits=15)
    renewed = repo.renew(client.id)
    assert renewed.credits == 15
    assert renewed.expiry_date == date(2024, 1, 31)


def test_renew_refills_negative_credits(repo, make_client):
    client = make_client(plan="Premium", credits=0)
    db.execute("UPDATE clients SET credits = -5 WHERE id = ?", (client.id,))
    assert repo.renew(client.id).credits == 50


def test_renew_extends_from_current_expiry_not_today(repo, make_client):
    far = date.today() + timedelta(days=100)
    client = make_client(expiry_date=far)
    assert repo.renew(client.id).expiry_date == far + timedelta(days=30)


def test_adjust_credits_floors_at_zero(repo, make_client):
    client = make_client(credits=20)
    assert repo.adjust_credits(client.id, -1000) == 0
    assert repo.get(client.id).credits == 0
    assert repo.adjust_credits(client.id, 12.5) == 12.5


def test_mutations_are_logged(repo, make_client):
    client = make_client("Ana")
    repo.toggle_status(client.id)
    repo.renew(client.id)
    repo.delete(client.id)

    kinds = [e.kind for e in repo.log.entries()]
    assert kinds == ["client_deleted", "client_renewed", "status_changed", "client_added"]
    assert repo.log.entries()[-1].client_id == client.id


def test_bulk_import(repo):
    text = (
        "Nome,Telefone,Plano,MAC,Ativação,Vencimento,Status,Créditos\n"
        "João Silva,(11) 99999-9999,Premium,00:00:00:00:00:01,2024-01-01,2024-02-01,suspenso,30\n"
        "Maria Santos,(11) 88888-8888,,,,,,\n"
        ",(11) 77777-7777,Básico,,2024-01-01,2024-02-01,ativo,0\n"
    )
    assert repo.bulk_import(text) == 2

    by_name = {c.name: c for c in repo.clients}
    assert set(by_name) == {"João Silva", "Maria Santos"}
    assert by_name["João Silva"].status == "suspenso"
    assert by_name["João Silva"].monthly_value == 50
    assert by_name["Maria Santos"].plan == "Básico"
    assert by_name["Maria Santos"].credits == 0


def test_bulk_import_without_rows_does_nothing(repo):
    assert repo.bulk_import("Nome,Telefone,Plano,MAC,Ativação,Vencimento,Status,Créditos\n") == 0
    assert repo.bulk_import("") == 0
    assert repo.clients == []


def test_bulk_import_is_all_or_nothing(repo):
    text = (
        "Nome,Telefone,Plano,MAC,Ativação,Vencimento,Status,Créditos\n"
        "Ana,1,Básico,,2024-01-01,2024-02-01,ativo,0\n"
        "Bia,2,Básico,,not-a-date,2024-02-01,ativo,0\n"
    )
    with pytest.raises(CSVImportError):
        repo.bulk_import(text)
    assert repo.list() == []


def test_bulk_import_accepts_cp1252_bytes(repo):
    data = "Nome,Telefone,Plano,MAC,Ativação,Vencimento,Status,Créditos\nJosé,1,Premium,,2024-01-01,2024-02-01,ativo,0\n"
    assert repo.bulk_import(data.encode("cp1252")) == 1
    assert repo.clients[0].name == "José"


def test_bulk_import_rejects_undecodable_bytes(repo):
    with pytest.raises(CSVImportError):
        repo.bulk_import(b"Nome,Telefone\nAna\x81\x8d,1\n")
    assert repo.list() == []


def test_subscription_reloads_on_other_session_writes(owner):
    watcher = ClientRepository(owner)
    writer = ClientRepository(owner)
    unsubscribe = watcher.subscribe()

    writer.create({"name": "Ana"})
    assert [c.name for c in watcher.clients] == ["Ana"]

    unsubscribe()
    writer.create({"name": "Bia"})
    assert [c.name for c in watcher.clients] == ["Ana"]


def test_dropped_sessions_leave_the_change_channel(owner):
    repos = [ClientRepository(owner) for _ in range(5)]
    for r in repos:
        r.subscribe()
    assert len(db._listeners) == 5

    del repos, r
    gc.collect()
    db.notify_change("clients")
    assert db._listeners == []


def test_writer_reloads_once_per_write(owner, monkeypatch):
    writer = ClientRepository(owner)
    writer.subscribe()
    loads = []
    original = writer.list
    monkeypatch.setattr(writer, "list", lambda: loads.append(1) or original())

    writer.create({"name": "Ana"})
    assert len(loads) == 1
    assert [c.name for c in writer.clients] == ["Ana"]


def test_export_records_activity(repo, make_client):
    make_client("Ana")
    text = repo.export_csv()
    repo.record_export("CSV", 1)

    assert text.splitlines()[1].startswith('"Ana"')
    assert repo.log.entries()[0].kind == "export"


def test_export_report_lists_clients(repo, make_client):
    make_client("Ana")
    html = repo.export_report()
    assert "Relatório de Clientes - DONO" in html
    assert "<td>Ana</td>" in html


def test_seed_sample_data(repo):
    assert repo.seed_sample_data() == 3
    assert len(repo.clients) == 3


def test_list_reports_storage_failure(repo, monkeypatch, tmp_path):
    from errors import StorageUnavailable

    monkeypatch.setattr(db, "DB_FILE", tmp_path / "missing" / "nowhere.db")
    with pytest.raises(StorageUnavailable):
        repo.list()
