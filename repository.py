"""
repository.py
Scoped CRUD over the clients table plus the derived operations
(toggle status, renew, adjust credits, bulk import, exports).

Every write ends with a full reload of the scope's list; callers read
`repo.clients` afterwards instead of patching local state.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import date
from typing import Callable

import csv_codec
import db
import utils
from activity import ActivityLog
from errors import CSVImportError, NotFound, StorageUnavailable, ValidationError
from models import (
    DEFAULT_PLAN,
    RENEWAL_DAYS,
    STATUS_ACTIVE,
    STATUS_CYCLE,
    STATUSES,
    ClientRecord,
    Session,
)
from plans import get_price

logger = logging.getLogger(__name__)

_COLUMNS = (
    "name, phone, plan, mac_address, activation_date, expiry_date, status, "
    "credits, monthly_value, notes, owner_scope, created_at, updated_at"
)


class ClientRepository:
    def __init__(self, session: Session, log: ActivityLog | None = None):
        self.session = session
        self.log = log or ActivityLog(session)
        self.clients: list[ClientRecord] = []

    # ---------- reads ----------

    def list(self) -> list[ClientRecord]:
        try:
            rows = db.fetch_all(
                "SELECT * FROM clients WHERE owner_scope = ? ORDER BY created_at DESC, id DESC",
                (self.session.scope,),
            )
        except sqlite3.Error as e:
            logger.error("Failed to load clients for %s: %s", self.session.scope, e)
            raise StorageUnavailable() from e
        return [ClientRecord.from_row(r) for r in rows]

    def reload(self) -> list[ClientRecord]:
        self.clients = self.list()
        return self.clients

    def get(self, client_id: int) -> ClientRecord:
        try:
            row = db.fetch_one(
                "SELECT * FROM clients WHERE id = ? AND owner_scope = ?",
                (client_id, self.session.scope),
            )
        except sqlite3.Error as e:
            logger.error("Failed to read client %s: %s", client_id, e)
            raise StorageUnavailable() from e
        if row is None:
            raise NotFound()
        return ClientRecord.from_row(row)

    def _on_change(self, table: str, origin) -> None:
        # the writer already reloads itself after its own writes
        if table == "clients" and origin is not self:
            self.reload()

    def subscribe(self) -> Callable[[], None]:
        """
        Reload whenever another session writes to the clients table.
        The store holds this repository weakly, so an abandoned session drops out
        of the channel once it is garbage collected.
        """
        return db.subscribe(self._on_change)

    # ---------- writes ----------

    def _values(self, fields: dict, today: date, now: str) -> tuple:
        name = (fields.get("name") or "").strip()
        if not name:
            raise ValidationError("Nome é obrigatório.")
        plan = (fields.get("plan") or "").strip() or DEFAULT_PLAN
        status = fields.get("status") or STATUS_ACTIVE
        if status not in STATUSES:
            raise ValidationError(f"Status inválido: {status}")
        activation = fields.get("activation_date") or today
        expiry = fields.get("expiry_date") or utils.add_days(activation, RENEWAL_DAYS)
        return (
            name,
            (fields.get("phone") or "").strip(),
            plan,
            (fields.get("mac_address") or "").strip(),
            activation.isoformat(),
            expiry.isoformat(),
            status,
            float(fields.get("credits") or 0),
            float(fields.get("monthly_value") or get_price(plan)),
            (fields.get("notes") or "").strip(),
            self.session.scope,
            now,
            now,
        )

    def create(self, fields: dict) -> ClientRecord:
        values = self._values(fields, utils.today_local(), utils.now_iso())
        try:
            client_id = db.execute(
                f"INSERT INTO clients({_COLUMNS}) VALUES(?,?,?,?,?,?,?,?,?,?,?,?,?)",
                values,
            )
        except sqlite3.Error as e:
            logger.error("Failed to add client: %s", e)
            raise StorageUnavailable("Erro ao adicionar cliente") from e

        logger.info("Client %s added (%s)", client_id, self.session.scope)
        self.log.add("client_added", f"Cliente {values[0]} adicionado", client_id)
        db.notify_change("clients", origin=self)
        self.reload()
        return self.get(client_id)

    def update(self, record: ClientRecord, activity: tuple[str, str] | None = None) -> None:
        if not record.name.strip():
            raise ValidationError("Nome é obrigatório.")
        if record.status not in STATUSES:
            raise ValidationError(f"Status inválido: {record.status}")
        monthly_value = record.monthly_value or get_price(record.plan)
        try:
            count = db.execute_rowcount(
                """
                UPDATE clients SET name=?, phone=?, plan=?, mac_address=?, activation_date=?,
                    expiry_date=?, status=?, credits=?, monthly_value=?, notes=?, updated_at=?
                WHERE id=? AND owner_scope=?
                """,
                (
                    record.name.strip(),
                    record.phone.strip(),
                    record.plan,
                    record.mac_address.strip(),
                    record.activation_date.isoformat(),
                    record.expiry_date.isoformat(),
                    record.status,
                    float(record.credits),
                    float(monthly_value),
                    record.notes.strip(),
                    utils.now_iso(),
                    record.id,
                    self.session.scope,
                ),
            )
        except sqlite3.Error as e:
            logger.error("Failed to update client %s: %s", record.id, e)
            raise StorageUnavailable("Erro ao editar cliente") from e
        if count == 0:
            raise NotFound()

        kind, description = activity or ("client_updated", f"Cliente {record.name} atualizado")
        self.log.add(kind, description, record.id)
        db.notify_change("clients", origin=self)
        self.reload()

    def delete(self, client_id: int) -> None:
        try:
            row = db.fetch_one(
                "SELECT name FROM clients WHERE id = ? AND owner_scope = ?",
                (client_id, self.session.scope),
            )
            count = db.execute_rowcount(
                "DELETE FROM clients WHERE id = ? AND owner_scope = ?",
                (client_id, self.session.scope),
            )
        except sqlite3.Error as e:
            logger.error("Failed to delete client %s: %s", client_id, e)
            raise StorageUnavailable("Erro ao excluir cliente") from e
        if count == 0:
            raise NotFound()

        logger.info("Client %s deleted (%s)", client_id, self.session.scope)
        self.log.add("client_deleted", f"Cliente {row['name'] if row else client_id} excluído", client_id)
        db.notify_change("clients", origin=self)
        self.reload()

    # ---------- derived operations ----------

    def toggle_status(self, client_id: int) -> str:
        client = self.get(client_id)
        new_status = STATUS_CYCLE.get(client.status, STATUS_ACTIVE)
        self.update(
            client.with_changes(status=new_status),
            ("status_changed", f"Status de {client.name} alterado para {new_status}"),
        )
        return new_status

    def renew(self, client_id: int) -> ClientRecord:
        client = self.get(client_id)
        renewed = client.with_changes(
            status=STATUS_ACTIVE,
            expiry_date=utils.add_days(client.expiry_date, RENEWAL_DAYS),
            # zero or negative credits are refilled to the plan price
            credits=client.credits if client.credits > 0 else get_price(client.plan),
        )
        self.update(
            renewed,
            ("client_renewed", f"Cliente {client.name} renovado até {utils.format_date_br(renewed.expiry_date)}"),
        )
        return self.get(client_id)

    def adjust_credits(self, client_id: int, delta: float) -> float:
        client = self.get(client_id)
        credits = max(0.0, client.credits + float(delta))
        self.update(
            client.with_changes(credits=credits),
            ("client_updated", f"Créditos de {client.name}: {utils.format_money(credits)}"),
        )
        return credits

    def bulk_import(self, raw: bytes | str) -> int:
        """Insert every accepted CSV row in one transaction; uploads may be bytes."""
        rows = csv_codec.parse_clients_csv(csv_codec.decode_upload(raw), utils.today_local())
        if not rows:
            return 0

        now = utils.now_iso()
        try:
            params = [self._values(r, utils.today_local(), now) for r in rows]
            db.executemany(
                f"INSERT INTO clients({_COLUMNS}) VALUES(?,?,?,?,?,?,?,?,?,?,?,?,?)",
                params,
            )
        except (sqlite3.Error, ValidationError) as e:
            logger.error("Bulk import rejected: %s", e)
            raise CSVImportError() from e

        logger.info("Imported %d clients (%s)", len(params), self.session.scope)
        self.log.add("client_added", f"{len(params)} clientes importados via CSV")
        db.notify_change("clients", origin=self)
        self.reload()
        return len(params)

    def seed_sample_data(self) -> int:
        """Insert the demo clients (adds new rows on every call)."""
        samples = utils.sample_clients(utils.today_local())
        for fields in samples:
            self.create(fields)
        return len(samples)

    # ---------- exports ----------

    def export_csv(self, clients: list[ClientRecord] | None = None) -> str:
        return csv_codec.clients_to_csv(self.clients if clients is None else clients)

    def export_report(self, clients: list[ClientRecord] | None = None) -> str:
        clients = self.clients if clients is None else clients
        return csv_codec.clients_report_html(clients, self.session.scope, utils.today_local())

    def record_export(self, fmt: str, count: int) -> None:
        """Log a download; called when the user actually clicks export."""
        self.log.add("export", f"{count} clientes exportados ({fmt})")
