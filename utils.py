"""
utils.py
Dates (local timezone), contact links, formatting, sample data.
"""

from __future__ import annotations

import re
from datetime import date, datetime, timedelta
from urllib.parse import quote

import pytz

from config import settings

TIMEZONE = pytz.timezone(settings.system.timezone)


def now_local() -> datetime:
    return datetime.now(TIMEZONE)


def today_local() -> date:
    return now_local().date()


def now_iso() -> str:
    return now_local().isoformat(timespec="seconds")


def parse_iso(d: str) -> date:
    return date.fromisoformat(d)


def add_days(start: date, days: int) -> date:
    return start + timedelta(days=days)


def days_until(target: date, today: date | None = None) -> int:
    return (target - (today or today_local())).days


def format_date_br(d: date | str) -> str:
    if isinstance(d, str):
        d = parse_iso(d)
    return d.strftime("%d/%m/%Y")


def format_money(value: float) -> str:
    return f"R$ {float(value):.2f}"


def phone_digits(phone: str) -> str:
    return re.sub(r"\D", "", phone or "")


def whatsapp_link(name: str, phone: str, expiry: date, today: date | None = None) -> str:
    """
    Deep link to WhatsApp with a pre-filled renewal reminder (Brazil country code).
    """
    days = days_until(expiry, today)
    message = f"Olá {name}! Seu plano IPTV vence em {days} dias. Renove já!"
    return f"https://wa.me/55{phone_digits(phone)}?text={quote(message, safe='')}"


def sample_clients(today: date | None = None) -> list[dict]:
    """
    Three demo clients: one expiring in ~5 days, one healthy, one already expired.
    """
    today = today or today_local()
    return [
        {
            "name": "João Silva",
            "phone": "(11) 99999-9999",
            "plan": "Básico",
            "mac_address": "00:1A:79:00:00:01",
            "activation_date": today - timedelta(days=25),
            "expiry_date": today + timedelta(days=5),
            "credits": 30.0,
        },
        {
            "name": "Maria Santos",
            "phone": "(11) 88888-8888",
            "plan": "Premium",
            "mac_address": "00:1A:79:00:00:02",
            "activation_date": today - timedelta(days=10),
            "expiry_date": today + timedelta(days=20),
            "credits": 50.0,
        },
        {
            "name": "Carlos Souza",
            "phone": "(21) 97777-7777",
            "plan": "Ultimate",
            "mac_address": "",
            "activation_date": today - timedelta(days=60),
            "expiry_date": today - timedelta(days=2),
            "status": "suspenso",
            "credits": 0.0,
        },
    ]
