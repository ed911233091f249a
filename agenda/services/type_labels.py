# agenda/services/type_labels.py
"""
Appointment type display resolution.

Appointments store only the type `value`. Lookup rows get renamed or
deleted over time, so display goes through an ordered list of
strategies and always ends with something printable:

    label:  exact value -> legacy alias -> partial match -> raw value
    colour: exact value -> alias keyword in label -> partial value -> default
"""
from __future__ import annotations

from typing import Callable, Optional, Protocol, Sequence

from agenda.core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_TYPE_COLOR = "#cbd5e1"

# Values used before the appointment_types table existed
LEGACY_TYPE_ALIASES: dict[str, str] = {
    "planning": "Planejamento",
    "meeting": "Reunião",
    "workshop": "Oficina/Workshop",
    "sync": "Sincronização",
    "design": "Design",
    "client": "Cliente",
    "qa": "QA/Qualidade",
    "stakeholder": "Stakeholder",
    "r": "Reunião",
    "p": "Planejamento",
}

# alias -> (keyword searched in labels, colour when nothing matches)
LEGACY_COLOR_KEYWORDS: dict[str, tuple[str, str]] = {
    "planning": ("planej", "#243f6b"),
    "p": ("planej", "#243f6b"),
    "meeting": ("reuni", "#3b82f6"),
    "r": ("reuni", "#3b82f6"),
}


class TypeRow(Protocol):
    value: str
    label: str
    color: str


Strategy = Callable[[str, Sequence[TypeRow]], Optional[str]]


def normalize_type(value: Optional[str]) -> str:
    return (value or "").lower().strip()


# ---------- Label strategies ----------

def label_by_exact_value(key: str, types: Sequence[TypeRow]) -> Optional[str]:
    for t in types:
        if normalize_type(t.value) == key:
            return t.label
    return None


def label_by_legacy_alias(key: str, types: Sequence[TypeRow]) -> Optional[str]:
    return LEGACY_TYPE_ALIASES.get(key)


def label_by_partial_match(key: str, types: Sequence[TypeRow]) -> Optional[str]:
    for t in types:
        value = normalize_type(t.value)
        if key in value or (value and value in key) or key in normalize_type(t.label):
            return t.label
    return None


LABEL_STRATEGIES: tuple[Strategy, ...] = (
    label_by_exact_value,
    label_by_legacy_alias,
    label_by_partial_match,
)


# ---------- Colour strategies ----------

def color_by_exact_value(key: str, types: Sequence[TypeRow]) -> Optional[str]:
    for t in types:
        if normalize_type(t.value) == key:
            return t.color
    return None


def color_by_legacy_keyword(key: str, types: Sequence[TypeRow]) -> Optional[str]:
    if key not in LEGACY_COLOR_KEYWORDS:
        return None
    keyword, fallback = LEGACY_COLOR_KEYWORDS[key]
    for t in types:
        if keyword in normalize_type(t.label):
            return t.color
    return fallback


def color_by_partial_value(key: str, types: Sequence[TypeRow]) -> Optional[str]:
    for t in types:
        value = normalize_type(t.value)
        if key in value or (value and value in key):
            return t.color
    return None


COLOR_STRATEGIES: tuple[Strategy, ...] = (
    color_by_exact_value,
    color_by_legacy_keyword,
    color_by_partial_value,
)


def _resolve(value: Optional[str], types: Sequence[TypeRow], strategies: Sequence[Strategy]) -> Optional[str]:
    key = normalize_type(value)
    # an empty key would partial-match every row
    if not key:
        return None
    for strategy in strategies:
        found = strategy(key, types)
        if found is not None:
            if strategy is not strategies[0]:
                logger.debug("type_lookup_fallback", type_value=value, strategy=strategy.__name__)
            return found
    return None


def translate_type(value: Optional[str], types: Sequence[TypeRow]) -> str:
    """Display label for a stored type value; never raises."""
    label = _resolve(value, types, LABEL_STRATEGIES)
    return label if label is not None else (value or "")


def type_color(value: Optional[str], types: Sequence[TypeRow]) -> str:
    color = _resolve(value, types, COLOR_STRATEGIES)
    return color if color is not None else DEFAULT_TYPE_COLOR


def type_icon(value: Optional[str], types: Sequence[TypeRow]) -> Optional[str]:
    key = normalize_type(value)
    for t in types:
        if normalize_type(t.value) == key:
            return getattr(t, "icon", None)
    return None
