"""
activity.py
Per-scope activity log, newest first, capped at the most recent 50 entries.
"""

from __future__ import annotations

import json
import logging
import uuid

import db
import utils
from errors import ValidationError
from models import ACTIVITY_KINDS, ACTIVITY_LOG_LIMIT, ActivityEntry, Session

logger = logging.getLogger(__name__)


class ActivityLog:
    def __init__(self, session: Session, limit: int = ACTIVITY_LOG_LIMIT):
        self.session = session
        self.limit = limit

    @property
    def key(self) -> str:
        return f"activities_{self.session.scope}"

    def entries(self) -> list[ActivityEntry]:
        raw = db.get_setting(self.key)
        if not raw:
            return []
        try:
            return [ActivityEntry.from_dict(e) for e in json.loads(raw)]
        except (ValueError, TypeError, KeyError):
            logger.warning("Activity log for %s is unreadable, starting empty", self.session.scope)
            return []

    def add(self, kind: str, description: str, client_id: int | None = None) -> ActivityEntry:
        if kind not in ACTIVITY_KINDS:
            raise ValidationError(f"Tipo de atividade inválido: {kind}")
        entry = ActivityEntry(
            id=uuid.uuid4().hex,
            kind=kind,
            description=description,
            client_id=client_id,
            owner_scope=self.session.scope,
            timestamp=utils.now_iso(),
        )
        entries = [entry] + self.entries()
        db.set_setting(self.key, json.dumps([e.to_dict() for e in entries[: self.limit]], ensure_ascii=False))
        return entry

    def clear(self) -> None:
        db.delete_setting(self.key)
        logger.info("Activity log cleared for %s", self.session.scope)
