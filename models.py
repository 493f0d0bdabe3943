"""
models.py
Lightweight domain types (client records, plans, activity, session).
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime

# Owner scopes (tenant partition)
SCOPE_OWNER = "dono"
SCOPE_PARTNER = "socio"
SCOPES = (SCOPE_OWNER, SCOPE_PARTNER)
SCOPE_LABELS = {SCOPE_OWNER: "Dono", SCOPE_PARTNER: "Sócio"}

# Settable statuses
STATUS_ACTIVE = "ativo"
STATUS_INACTIVE = "inativo"
STATUS_SUSPENDED = "suspenso"
STATUSES = (STATUS_ACTIVE, STATUS_INACTIVE, STATUS_SUSPENDED)

# toggle_status cycle: active -> suspended -> inactive -> active
STATUS_CYCLE = {
    STATUS_ACTIVE: STATUS_SUSPENDED,
    STATUS_SUSPENDED: STATUS_INACTIVE,
    STATUS_INACTIVE: STATUS_ACTIVE,
}

# Filter options. "cancelado" is a filter value only, never a stored status.
STATUS_FILTER_ALL = "todos"
STATUS_FILTER_OPTIONS = (STATUS_FILTER_ALL, STATUS_ACTIVE, STATUS_INACTIVE, STATUS_SUSPENDED, "cancelado")

ACTIVITY_KINDS = (
    "client_added",
    "client_updated",
    "client_deleted",
    "status_changed",
    "client_renewed",
    "export",
)

DEFAULT_PLAN = "Básico"
RENEWAL_DAYS = 30
EXPIRING_WINDOW_DAYS = 7
ACTIVITY_LOG_LIMIT = 50


@dataclass(frozen=True)
class ClientRecord:
    id: int | None
    name: str
    phone: str
    plan: str
    mac_address: str
    activation_date: date
    expiry_date: date
    status: str  # ativo / inativo / suspenso
    credits: float
    monthly_value: float
    notes: str
    owner_scope: str
    created_at: str | None = None
    updated_at: str | None = None

    def with_changes(self, **changes) -> "ClientRecord":
        return replace(self, **changes)

    @classmethod
    def from_row(cls, row) -> "ClientRecord":
        return cls(
            id=row["id"],
            name=row["name"],
            phone=row["phone"] or "",
            plan=row["plan"],
            mac_address=row["mac_address"] or "",
            activation_date=date.fromisoformat(row["activation_date"]),
            expiry_date=date.fromisoformat(row["expiry_date"]),
            status=row["status"],
            credits=float(row["credits"] or 0),
            monthly_value=float(row["monthly_value"] or 0),
            notes=row["notes"] or "",
            owner_scope=row["owner_scope"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )


@dataclass(frozen=True)
class PlanDefinition:
    name: str
    price: float
    description: str = ""

    def to_dict(self) -> dict:
        return {"name": self.name, "price": self.price, "description": self.description}

    @classmethod
    def from_dict(cls, data: dict) -> "PlanDefinition":
        return cls(
            name=str(data.get("name", "")),
            price=float(data.get("price") or 0),
            description=str(data.get("description") or ""),
        )


DEFAULT_PLANS = (
    PlanDefinition("Básico", 30.0, "Plano básico com canais essenciais"),
    PlanDefinition("Premium", 50.0, "Plano premium com mais canais e qualidade HD"),
    PlanDefinition("Ultimate", 70.0, "Plano completo com todos os canais e 4K"),
)


@dataclass(frozen=True)
class ActivityEntry:
    id: str
    kind: str
    description: str
    client_id: int | None
    owner_scope: str
    timestamp: str

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "kind": self.kind,
            "description": self.description,
            "client_id": self.client_id,
            "owner_scope": self.owner_scope,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ActivityEntry":
        return cls(
            id=data["id"],
            kind=data["kind"],
            description=data["description"],
            client_id=data.get("client_id"),
            owner_scope=data["owner_scope"],
            timestamp=data["timestamp"],
        )


@dataclass(frozen=True)
class Session:
    """Authenticated role. Created on login, dropped on logout."""
    scope: str
    created_at: datetime = field(default_factory=datetime.utcnow)

    @property
    def label(self) -> str:
        return SCOPE_LABELS.get(self.scope, self.scope)
