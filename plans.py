"""
plans.py
Plan catalog: fixed price lookup + the editable per-scope plan list.
"""

from __future__ import annotations

import json
import logging

import db
from errors import ValidationError
from models import DEFAULT_PLAN, DEFAULT_PLANS, PlanDefinition, Session

logger = logging.getLogger(__name__)

PLAN_PRICES = {p.name: p.price for p in DEFAULT_PLANS}


def get_price(plan_name: str | None) -> float:
    """Fixed default prices. Unknown plans fall back to the Básico price."""
    return PLAN_PRICES.get(plan_name or "", PLAN_PRICES[DEFAULT_PLAN])


def _to_price(value) -> float:
    try:
        return max(0.0, float(value))
    except (TypeError, ValueError):
        return 0.0


class PlanCatalog:
    """Editable plan list for one scope, kept in the local key-value store."""

    def __init__(self, session: Session):
        self.session = session

    @property
    def key(self) -> str:
        return f"planPricing_{self.session.scope}"

    def plans(self) -> list[PlanDefinition]:
        raw = db.get_setting(self.key)
        if not raw:
            return list(DEFAULT_PLANS)
        try:
            return [PlanDefinition.from_dict(p) for p in json.loads(raw)]
        except (ValueError, TypeError, AttributeError):
            logger.warning("Stored plan catalog for %s is unreadable, using defaults", self.session.scope)
            return list(DEFAULT_PLANS)

    def names(self) -> list[str]:
        return [p.name for p in self.plans()]

    def save(self, plans: list[PlanDefinition]) -> list[PlanDefinition]:
        if not plans:
            raise ValidationError("Mantenha pelo menos um plano.")
        cleaned = []
        for p in plans:
            name = p.name.strip()
            if not name:
                raise ValidationError("Nome do plano é obrigatório.")
            cleaned.append(PlanDefinition(name, _to_price(p.price), p.description.strip()))
        db.set_setting(self.key, json.dumps([p.to_dict() for p in cleaned], ensure_ascii=False))
        logger.info("Plan catalog saved for %s (%d plans)", self.session.scope, len(cleaned))
        return cleaned

    def add(self, plan: PlanDefinition) -> list[PlanDefinition]:
        return self.save(self.plans() + [plan])

    def remove(self, index: int) -> list[PlanDefinition]:
        plans = self.plans()
        if len(plans) <= 1:
            raise ValidationError("Mantenha pelo menos um plano.")
        if not 0 <= index < len(plans):
            raise ValidationError("Plano inválido.")
        del plans[index]
        return self.save(plans)
