from datetime import date, timedelta

import metrics
from models import ClientRecord

TODAY = date(2024, 6, 15)


def _client(name, status="ativo", expiry_offset=30, **overrides):
    data = dict(
        id=None,
        name=name,
        phone="",
        plan="Básico",
        mac_address="",
        activation_date=TODAY - timedelta(days=30),
        expiry_date=TODAY + timedelta(days=expiry_offset),
        status=status,
        credits=0.0,
        monthly_value=30.0,
        notes="",
        owner_scope="dono",
    )
    data.update(overrides)
    return ClientRecord(**data)


def test_active_and_expiring_filter_includes_already_expired():
    clients = [
        _client("Ana", "ativo", 3),
        _client("Bia", "suspenso", 10),
        _client("Caio", "ativo", -2),
    ]
    visible = metrics.filter_clients(clients, "", "ativo", True, TODAY)
    assert [c.name for c in visible] == ["Ana", "Caio"]


def test_expiring_window_edge():
    clients = [_client("Seven", expiry_offset=7), _client("Eight", expiry_offset=8)]
    visible = metrics.filter_clients(clients, expiring_only=True, today=TODAY)
    assert [c.name for c in visible] == ["Seven"]


def test_search_matches_name_phone_or_mac():
    clients = [
        _client("Ana Paula"),
        _client("Bia", phone="(11) 98888-7777"),
        _client("Caio", mac_address="00:1A:79:AB:CD:EF"),
    ]
    assert [c.name for c in metrics.filter_clients(clients, "ana", today=TODAY)] == ["Ana Paula"]
    assert [c.name for c in metrics.filter_clients(clients, "98888", today=TODAY)] == ["Bia"]
    assert [c.name for c in metrics.filter_clients(clients, "ab:cd", today=TODAY)] == ["Caio"]
    assert len(metrics.filter_clients(clients, "", today=TODAY)) == 3


def test_status_filter():
    clients = [_client("Ana", "ativo"), _client("Bia", "inativo")]
    assert [c.name for c in metrics.filter_clients(clients, status="inativo", today=TODAY)] == ["Bia"]
    assert len(metrics.filter_clients(clients, status="todos", today=TODAY)) == 2
    assert metrics.filter_clients(clients, status="cancelado", today=TODAY) == []


def test_revenue_counts_every_status():
    clients = [
        _client("Ana", "ativo", monthly_value=30.0, credits=10.0),
        _client("Bia", "inativo", monthly_value=50.0, credits=5.0),
        _client("Caio", "suspenso", 2, monthly_value=70.0),
    ]
    m = metrics.compute_metrics(clients, TODAY)
    assert m.revenue == 150
    assert m.active == 1
    assert m.credits == 15
    assert m.expiring == 1
    assert m.total == 3


def test_metrics_ignore_filters():
    clients = [_client("Ana", "ativo", -5), _client("Bia", "ativo", 40)]
    metrics.filter_clients(clients, "Ana", today=TODAY)
    assert metrics.compute_metrics(clients, TODAY).active == 2


def test_expiry_label():
    assert metrics.expiry_label(_client("A", expiry_offset=-1), TODAY) == (-1, "vencido")
    assert metrics.expiry_label(_client("A", expiry_offset=5), TODAY) == (5, "vencendo")
    assert metrics.expiry_label(_client("A", expiry_offset=0), TODAY) == (0, "em_dia")
    assert metrics.expiry_label(_client("A", expiry_offset=20), TODAY) == (20, "em_dia")


def test_breakdowns():
    clients = [
        _client("Ana", "ativo", plan="Premium"),
        _client("Bia", "ativo", plan="Premium"),
        _client("Caio", "suspenso", plan="Ultimate"),
        _client("Duda", "ativo", plan="Ultimate"),
    ]
    status = metrics.status_breakdown(clients).set_index("status")["count"].to_dict()
    assert status == {"ativo": 3, "inativo": 0, "suspenso": 1}

    plans = metrics.plan_breakdown(clients).set_index("plan")
    assert plans.loc["Premium", "count"] == 2
    assert plans.loc["Premium", "revenue"] == 100
    assert plans.loc["Ultimate", "count"] == 1
    assert plans.loc["Básico", "count"] == 0


def test_clients_frame():
    frame = metrics.clients_frame([_client("Ana", expiry_offset=4)], TODAY)
    assert frame.loc[0, "name"] == "Ana"
    assert frame.loc[0, "days_left"] == 4
    assert metrics.clients_frame([], TODAY).empty
