"""
metrics.py
Client-side filtering and dashboard metrics over the in-memory client list.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta

import pandas as pd

import utils
from models import (
    DEFAULT_PLANS,
    EXPIRING_WINDOW_DAYS,
    STATUS_ACTIVE,
    STATUS_FILTER_ALL,
    STATUSES,
    ClientRecord,
)


@dataclass(frozen=True)
class DashboardMetrics:
    active: int
    revenue: float
    credits: float
    expiring: int
    total: int


def is_expiring(client: ClientRecord, today: date) -> bool:
    # no lower bound: already-expired clients count as expiring
    return client.expiry_date <= today + timedelta(days=EXPIRING_WINDOW_DAYS)


def matches_search(client: ClientRecord, search: str) -> bool:
    term = search.strip().lower()
    if not term:
        return True
    return (
        term in client.name.lower()
        or term in (client.phone or "").lower()
        or term in (client.mac_address or "").lower()
    )


def filter_clients(
    clients: list[ClientRecord],
    search: str = "",
    status: str = STATUS_FILTER_ALL,
    expiring_only: bool = False,
    today: date | None = None,
) -> list[ClientRecord]:
    today = today or utils.today_local()
    return [
        c
        for c in clients
        if matches_search(c, search)
        and (status == STATUS_FILTER_ALL or c.status == status)
        and (not expiring_only or is_expiring(c, today))
    ]


def compute_metrics(clients: list[ClientRecord], today: date | None = None) -> DashboardMetrics:
    """Metrics over the unfiltered list. Revenue counts every client, whatever its status."""
    today = today or utils.today_local()
    return DashboardMetrics(
        active=sum(1 for c in clients if c.status == STATUS_ACTIVE),
        revenue=sum(c.monthly_value or 0 for c in clients),
        credits=sum(c.credits or 0 for c in clients),
        expiring=sum(1 for c in clients if is_expiring(c, today)),
        total=len(clients),
    )


def expiry_label(client: ClientRecord, today: date | None = None) -> tuple[int, str]:
    days = utils.days_until(client.expiry_date, today)
    if days < 0:
        return days, "vencido"
    if 0 < days <= EXPIRING_WINDOW_DAYS:
        return days, "vencendo"
    return days, "em_dia"


def status_breakdown(clients: list[ClientRecord]) -> pd.DataFrame:
    counts = pd.Series([c.status for c in clients], dtype="object").value_counts()
    return pd.DataFrame(
        {"status": list(STATUSES), "count": [int(counts.get(s, 0)) for s in STATUSES]}
    )


def plan_breakdown(clients: list[ClientRecord]) -> pd.DataFrame:
    """Active clients per default plan, with revenue at the fixed plan price."""
    counts = pd.Series([c.plan for c in clients if c.status == STATUS_ACTIVE], dtype="object").value_counts()
    rows = [
        {"plan": p.name, "count": int(counts.get(p.name, 0)), "revenue": int(counts.get(p.name, 0)) * p.price}
        for p in DEFAULT_PLANS
    ]
    return pd.DataFrame(rows, columns=["plan", "count", "revenue"])


def clients_frame(clients: list[ClientRecord], today: date | None = None) -> pd.DataFrame:
    """Table shown on the clients page."""
    today = today or utils.today_local()
    columns = ["id", "name", "phone", "plan", "mac_address", "expiry_date", "days_left", "status", "credits", "monthly_value"]
    if not clients:
        return pd.DataFrame(columns=columns)
    return pd.DataFrame(
        [
            {
                "id": c.id,
                "name": c.name,
                "phone": c.phone,
                "plan": c.plan,
                "mac_address": c.mac_address,
                "expiry_date": c.expiry_date.isoformat(),
                "days_left": utils.days_until(c.expiry_date, today),
                "status": c.status,
                "credits": c.credits,
                "monthly_value": c.monthly_value,
            }
            for c in clients
        ],
        columns=columns,
    )
