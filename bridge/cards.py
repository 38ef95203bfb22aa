"""
HTML card rendering for history nodes.

Each node becomes one card: a title, a subtitle, a highlighted amount and,
unless compact, the list of its fields. Field lookups are case-insensitive
and fall back to heuristics when the configured field is missing.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Iterable, Optional

from jinja2 import Environment
from markupsafe import Markup

from bridge.history import FieldEntry, HistoryNode

NUMERIC_PATTERN = re.compile(r"^[+-]?\d+(?:[.,]\d+)?$")

DEFAULT_TITLE = "Registro"
TITLE_FIELDS = ("title", "name")
SUBTITLE_FIELDS = ("subtitle", "sub", "date")


CARD_TEMPLATE = """
<article class="card {{ sign }}">
  <header class="card-head">
    <div>
      <h2 class="card-title">{{ title }}</h2>
      <p class="card-sub">{{ subtitle }}</p>
    </div>
    <span class="amount {{ sign }}">{{ amount }}</span>
  </header>
  {% if fields %}
  <dl class="fields">
    {% for key, value in fields %}
    <dt>{{ key }}</dt><dd>{{ value }}</dd>
    {% endfor %}
  </dl>
  {% endif %}
</article>
"""

PAGE_TEMPLATE = """<!doctype html>
<html lang="es">
  <head>
    <meta charset="utf-8" />
    <meta name="viewport" content="width=device-width,initial-scale=1" />
    <title>{{ heading }}</title>
    <style>
      body { font-family: ui-sans-serif, system-ui, -apple-system, Segoe UI, Roboto, Helvetica, Arial; margin: 0; padding: 12px; background: #f4f4f5; color: #18181b; }
      .page-head { margin: 4px 4px 12px; }
      .page-head h1 { font-size: 18px; margin: 0; }
      .muted { color: #6b7280; font-size: 13px; margin: 2px 0 0; }
      .card { background: #fff; border-radius: 12px; padding: 12px 14px; margin-bottom: 10px; box-shadow: 0 1px 2px rgba(0, 0, 0, 0.06); border-left: 4px solid #d4d4d8; }
      .card.positive { border-left-color: #16a34a; }
      .card.negative { border-left-color: #dc2626; }
      .card-head { display: flex; justify-content: space-between; align-items: flex-start; gap: 12px; }
      .card-title { font-size: 15px; margin: 0; }
      .card-sub { color: #6b7280; font-size: 12px; margin: 2px 0 0; }
      .amount { font-weight: 600; white-space: nowrap; }
      .amount.positive { color: #15803d; }
      .amount.negative { color: #b91c1c; }
      .amount.neutral { color: #3f3f46; }
      .fields { display: grid; grid-template-columns: max-content 1fr; gap: 2px 10px; margin: 10px 0 0; font-size: 12px; }
      .fields dt { color: #6b7280; }
      .fields dd { margin: 0; word-break: break-word; }
      .compact .card { padding: 8px 12px; margin-bottom: 6px; }
      .empty { text-align: center; color: #6b7280; padding: 32px 0; }
    </style>
  </head>
  <body class="{{ 'compact' if compact else '' }}">
    <div class="page-head">
      <h1>{{ heading }}</h1>
      <p class="muted">{{ path }} &middot; {{ count }} registros</p>
    </div>
    {% for card in cards %}{{ card }}{% else %}
    <p class="empty">Sin registros</p>
    {% endfor %}
  </body>
</html>
"""

ERROR_TEMPLATE = """<!doctype html>
<html lang="es">
  <head>
    <meta charset="utf-8" />
    <meta name="viewport" content="width=device-width,initial-scale=1" />
    <title>Error</title>
  </head>
  <body style="font-family: ui-sans-serif, system-ui; padding: 16px;">
    <p style="color:#991b1b;"><strong>Error:</strong> {{ message }}</p>
  </body>
</html>
"""

_env = Environment(autoescape=True, trim_blocks=True, lstrip_blocks=True)
_card_template = _env.from_string(CARD_TEMPLATE)
_page_template = _env.from_string(PAGE_TEMPLATE)
_error_template = _env.from_string(ERROR_TEMPLATE)


@dataclass(frozen=True)
class CardOptions:
    title: Optional[str] = None
    subtitle: Optional[str] = None
    unit: Optional[str] = None
    amount_key: Optional[str] = None
    compact: bool = False


def stringify(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False, separators=(",", ":"))
    return str(value)


def get_field_ci(children: Iterable[FieldEntry], name: Optional[str]) -> str:
    """Return the value of the field called ``name`` ignoring case, or ""."""
    if not name:
        return ""
    wanted = name.lower()
    for entry in children:
        if entry.key.lower() == wanted:
            return stringify(entry.data)
    return ""


def _first_field(children: list[FieldEntry], names: Iterable[str]) -> str:
    for name in names:
        value = get_field_ci(children, name)
        if value:
            return value
    return ""


def is_numeric(text: str) -> bool:
    return bool(NUMERIC_PATTERN.match(text.strip()))


def first_numeric_value(children: Iterable[FieldEntry]) -> str:
    for entry in children:
        text = stringify(entry.data)
        if is_numeric(text):
            return text.strip()
    return ""


def amount_for(node: HistoryNode, options: CardOptions) -> tuple[str, bool]:
    """
    Pick the amount shown on a card.

    Returns the text and whether it is a child count rather than a value.
    """
    amount = get_field_ci(node.children, options.amount_key)
    if not amount:
        amount = first_numeric_value(node.children)
    if not amount:
        return str(len(node.children)), True
    return amount, False


def sign_class(amount: str) -> str:
    if not is_numeric(amount):
        return "neutral"
    number = float(amount.strip().replace(",", "."))
    if number > 0:
        return "positive"
    if number < 0:
        return "negative"
    return "neutral"


def render_card(node: HistoryNode, options: CardOptions) -> str:
    amount, is_count = amount_for(node, options)
    sign = "neutral" if is_count else sign_class(amount)
    if is_count:
        amount = f"{amount} campos"
    elif options.unit and is_numeric(amount):
        amount = f"{amount} {options.unit}"

    fields = []
    if not options.compact:
        fields = [(entry.key, stringify(entry.data)) for entry in node.children]

    return _card_template.render(
        title=_first_field(node.children, TITLE_FIELDS)
        or options.title
        or DEFAULT_TITLE,
        subtitle=_first_field(node.children, SUBTITLE_FIELDS)
        or options.subtitle
        or node.key,
        amount=amount,
        sign=sign,
        fields=fields,
    )


def render_page(path: str, nodes: list[HistoryNode], options: CardOptions) -> str:
    # Cards are escaped when rendered individually.
    cards = [Markup(render_card(node, options)) for node in nodes]
    return _page_template.render(
        heading=options.title or path,
        path=path,
        count=len(nodes),
        cards=cards,
        compact=options.compact,
    )


def render_error_page(message: str) -> str:
    return _error_template.render(message=message)
