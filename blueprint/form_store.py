"""Helpers for working with questionnaire form schema files."""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Mapping

from blueprint.questionnaire import (
    DEFAULT_QUESTIONNAIRE_KEY,
    QuestionnaireDefinition,
    definition_from_payload,
)

FORM_SCHEMA_FILENAME = "form_schema.json"
SCHEMAS_ROOT = Path(__file__).resolve().parent / "form_schemas"


def _ensure_mapping(value: Any) -> Dict[str, Any]:
    """Return ``value`` if it is a mapping, otherwise an empty dict."""

    return dict(value) if isinstance(value, Mapping) else {}


def discover_local_forms(root: Path | None = None) -> Dict[str, Path]:
    """Return a mapping of ``form_key -> path`` for local schema files."""

    base = root or SCHEMAS_ROOT
    forms: Dict[str, Path] = {}
    if base.exists():
        for entry in sorted(base.iterdir()):
            if not entry.is_dir():
                continue
            schema_path = entry / FORM_SCHEMA_FILENAME
            if schema_path.exists():
                forms[entry.name] = schema_path
    return forms


def available_form_keys(root: Path | None = None) -> List[str]:
    """Return the list of known form identifiers."""

    return list(discover_local_forms(root).keys())


def read_form_payload(path: Path) -> Dict[str, Any]:
    """Decode the JSON schema stored at ``path``."""

    with path.open("r", encoding="utf-8") as handle:
        payload = json.load(handle)
    return _ensure_mapping(payload)


def load_questionnaire_from_path(path: Path, form_key: str | None = None) -> QuestionnaireDefinition:
    """Load and parse a questionnaire schema file."""

    key = form_key or path.parent.name
    return definition_from_payload(key, read_form_payload(path))


def load_questionnaire(
    form_key: str = DEFAULT_QUESTIONNAIRE_KEY, root: Path | None = None
) -> QuestionnaireDefinition:
    """Return the questionnaire identified by ``form_key``."""

    forms = discover_local_forms(root)
    if form_key not in forms:
        raise FileNotFoundError(f"No form schema found for '{form_key}'.")
    return load_questionnaire_from_path(forms[form_key], form_key)


@lru_cache(maxsize=None)
def default_questionnaire() -> QuestionnaireDefinition:
    """Return the bundled vendor intake questionnaire, loaded once."""

    return load_questionnaire(DEFAULT_QUESTIONNAIRE_KEY)


__all__ = [
    "FORM_SCHEMA_FILENAME",
    "SCHEMAS_ROOT",
    "available_form_keys",
    "default_questionnaire",
    "discover_local_forms",
    "load_questionnaire",
    "load_questionnaire_from_path",
    "read_form_payload",
]
