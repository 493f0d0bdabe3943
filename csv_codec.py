"""
csv_codec.py
CSV import/export for client records, plus the printable HTML report.

Import columns (fixed order, header line first):
    name, phone, plan, mac, activation, expiry, status, credits[, notes]
"""

from __future__ import annotations

import io
import logging
import warnings
from datetime import date, timedelta

import pandas as pd
from jinja2 import Environment

import utils
from errors import CSVImportError
from models import DEFAULT_PLAN, RENEWAL_DAYS, STATUS_ACTIVE, STATUSES, ClientRecord
from plans import get_price

logger = logging.getLogger(__name__)

EXPORT_HEADER = ["Nome", "Telefone", "Plano", "MAC", "Ativação", "Vencimento", "Status", "Créditos", "Notas"]
TEMPLATE_HEADER = EXPORT_HEADER[:8]

# name, phone, plan, mac, activation, expiry, status, credits, notes
IMPORT_WIDTH = len(EXPORT_HEADER)

UPLOAD_ENCODINGS = ("utf-8-sig", "cp1252")

TEMPLATE_ROWS = [
    "João Silva,(11) 99999-9999,Básico,00:00:00:00:00:01,2024-01-01,2024-02-01,ativo,30",
    "Maria Santos,(11) 88888-8888,Premium,00:00:00:00:00:02,2024-01-01,2024-02-01,ativo,50",
]

REPORT_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <title>Relatório de Clientes - {{ scope|upper }}</title>
  <style>
    body { font-family: Arial, sans-serif; margin: 20px; }
    h1 { color: #16a34a; text-align: center; }
    table { width: 100%; border-collapse: collapse; margin-top: 20px; }
    th, td { border: 1px solid #ddd; padding: 8px; text-align: left; }
    th { background-color: #f2f2f2; }
    .status-ativo { color: #16a34a; font-weight: bold; }
    .status-inativo { color: #dc2626; font-weight: bold; }
    .status-suspenso { color: #eab308; font-weight: bold; }
  </style>
</head>
<body>
  <h1>Relatório de Clientes - {{ scope|upper }}</h1>
  <p>Data: {{ generated_on|br_date }}</p>
  <p>Total de clientes: {{ clients|length }}</p>
  <table>
    <thead>
      <tr>
        <th>Nome</th>
        <th>Telefone</th>
        <th>Plano</th>
        <th>Status</th>
        <th>Vencimento</th>
        <th>Créditos</th>
      </tr>
    </thead>
    <tbody>
    {%- for c in clients %}
      <tr>
        <td>{{ c.name }}</td>
        <td>{{ c.phone }}</td>
        <td>{{ c.plan }}</td>
        <td class="status-{{ c.status }}">{{ c.status|upper }}</td>
        <td>{{ c.expiry_date|br_date }}</td>
        <td>{{ c.credits|money }}</td>
      </tr>
    {%- endfor %}
    </tbody>
  </table>
</body>
</html>
"""

_env = Environment(autoescape=True)
_env.filters["br_date"] = utils.format_date_br
_env.filters["money"] = utils.format_money


# ---------- Import ----------

def _field(values: list, index: int) -> str:
    if index >= len(values):
        return ""
    value = values[index]
    if pd.isna(value):
        return ""
    return str(value).strip()


def _to_float(value: str) -> float:
    try:
        return float(value)
    except ValueError:
        return 0.0


def _to_date(value: str, default: date) -> date:
    if not value:
        return default
    try:
        return date.fromisoformat(value)
    except ValueError as e:
        raise CSVImportError() from e


def decode_upload(data: bytes | str) -> str:
    """UTF-8 (with or without BOM) first, then the Windows-1252 Excel default."""
    if isinstance(data, str):
        return data
    for encoding in UPLOAD_ENCODINGS:
        try:
            return data.decode(encoding)
        except UnicodeDecodeError:
            continue
    logger.error("CSV upload is not in any of %s", ", ".join(UPLOAD_ENCODINGS))
    raise CSVImportError()


def _read_rows(text: str, width: int | None = None) -> pd.DataFrame:
    options = dict(
        header=None,
        index_col=False,
        dtype=str,
        keep_default_na=False,
        skip_blank_lines=True,
        skipinitialspace=True,
        engine="python",
    )
    if width is None:
        return pd.read_csv(io.StringIO(text), nrows=1, **options)
    with warnings.catch_warnings():
        # fields past `width` are never read by position
        warnings.simplefilter("ignore", pd.errors.ParserWarning)
        return pd.read_csv(
            io.StringIO(text),
            names=list(range(width)),
            on_bad_lines=lambda fields: fields,
            **options,
        )


def parse_clients_csv(text: str, today: date | None = None) -> list[dict]:
    """
    Parse uploaded CSV text into field dicts ready for insertion.

    Fields are read by position whatever the header says; the header only
    sets how many fields a row needs. A row is kept only when it has at least
    that many fields and a non-empty name. Short rows come back from pandas
    padded with NaN, which is how they are told apart from empty fields.
    """
    if not text or not text.strip():
        return []
    today = today or utils.today_local()

    try:
        header_width = len(_read_rows(text).columns)
        frame = _read_rows(text, max(header_width, IMPORT_WIDTH))
    except (pd.errors.ParserError, pd.errors.EmptyDataError, ValueError) as e:
        logger.error("CSV parse failed: %s", e)
        raise CSVImportError() from e

    rows: list[dict] = []
    for values in frame.iloc[1:].itertuples(index=False, name=None):
        values = list(values)
        if any(pd.isna(v) for v in values[:header_width]):
            continue
        name = _field(values, 0)
        if not name:
            continue

        plan = _field(values, 2) or DEFAULT_PLAN
        status = _field(values, 6).lower() or STATUS_ACTIVE
        if status not in STATUSES:
            logger.warning("Unknown status %r for %s, importing as %s", status, name, STATUS_ACTIVE)
            status = STATUS_ACTIVE

        rows.append(
            {
                "name": name,
                "phone": _field(values, 1),
                "plan": plan,
                "mac_address": _field(values, 3),
                "activation_date": _to_date(_field(values, 4), today),
                "expiry_date": _to_date(_field(values, 5), today + timedelta(days=RENEWAL_DAYS)),
                "status": status,
                "credits": _to_float(_field(values, 7)),
                "monthly_value": get_price(plan),
                "notes": _field(values, 8),
            }
        )
    return rows


# ---------- Export ----------

def _quote(text: str | None) -> str:
    return '"' + (text or "").replace('"', '""') + '"'


def _format_number(value: float) -> str:
    return f"{float(value):.2f}".rstrip("0").rstrip(".")


def clients_to_csv(clients: list[ClientRecord]) -> str:
    lines = [",".join(EXPORT_HEADER)]
    for c in clients:
        lines.append(
            ",".join(
                [
                    _quote(c.name),
                    _quote(c.phone),
                    _quote(c.plan),
                    _quote(c.mac_address),
                    c.activation_date.isoformat(),
                    c.expiry_date.isoformat(),
                    c.status,
                    _format_number(c.credits),
                    _quote(c.notes),
                ]
            )
        )
    return "\n".join(lines)


def clients_report_html(clients: list[ClientRecord], scope: str, generated_on: date | None = None) -> str:
    template = _env.from_string(REPORT_TEMPLATE)
    return template.render(clients=clients, scope=scope, generated_on=generated_on or utils.today_local())


def template_csv() -> str:
    return "\n".join([",".join(TEMPLATE_HEADER)] + TEMPLATE_ROWS)


def export_filename(scope: str, kind: str = "csv", on: date | None = None) -> str:
    stamp = (on or utils.today_local()).isoformat()
    if kind == "html":
        return f"relatorio_clientes_{scope}_{stamp}.html"
    return f"clientes_{scope}_{stamp}.csv"
