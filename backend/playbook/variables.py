"""Variable resolution for playbook step configs.

Placeholders look like {{ case.severity }} or {{ alerts.0.source_ip }} and
are looked up in the execution context built from the case and its alerts:

    {"case": {...}, "alerts": [{...}, ...], "alert": {...}}

A string that is exactly one placeholder resolves to the native value, so
{"ports": "{{ alert.ports }}"} yields a list. Placeholders embedded in a
larger string are stringified. A path that cannot be resolved, or that
resolves to None, is left as the original literal text.
"""

import copy
import json
import re
from typing import Any

PLACEHOLDER_PATTERN = re.compile(r"\{\{\s*([^{}]+?)\s*\}\}")

_MISSING = object()


def lookup(path: str, context: Any) -> Any:
    """Resolve a dot-notation path like 'alerts.0.hostname'.

    Returns the module-level sentinel when any segment is missing.
    """
    current = context
    for part in path.split("."):
        if isinstance(current, dict):
            if part not in current:
                return _MISSING
            current = current[part]
        elif isinstance(current, list):
            try:
                current = current[int(part)]
            except (ValueError, IndexError):
                return _MISSING
        else:
            return _MISSING
    return current


def is_missing(value: Any) -> bool:
    return value is _MISSING


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value, default=str)
    return str(value)


def resolve_string(template: str, context: dict) -> Any:
    """Resolve every placeholder in a single string."""
    whole = PLACEHOLDER_PATTERN.fullmatch(template)
    if whole:
        value = lookup(whole.group(1), context)
        if value is _MISSING or value is None:
            return template
        return copy.deepcopy(value)

    def _replace(match: re.Match) -> str:
        value = lookup(match.group(1), context)
        if value is _MISSING or value is None:
            return match.group(0)
        return _stringify(value)

    return PLACEHOLDER_PATTERN.sub(_replace, template)


def resolve(value: Any, context: dict) -> Any:
    """Recursively resolve placeholders in strings, lists and dict values.

    Never mutates `value` or `context`; containers are rebuilt and every
    other kind of value passes through unchanged.
    """
    if isinstance(value, str):
        return resolve_string(value, context)
    if isinstance(value, list):
        return [resolve(item, context) for item in value]
    if isinstance(value, dict):
        return {key: resolve(item, context) for key, item in value.items()}
    return value
