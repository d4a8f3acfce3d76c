"""Utilities for interacting with Supabase's PostgREST API."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

import requests

logger = logging.getLogger(__name__)

Filter = Tuple[str, str]


@dataclass
class SupabaseBackend:
    """PostgREST wrapper for reading and inserting table rows."""

    url: str
    key: str
    schema: str = "public"
    timeout: int = 10

    def _headers(self, *, prefer: Optional[str] = None) -> Dict[str, str]:
        """Build request headers for the PostgREST API."""

        headers = {
            "apikey": self.key,
            "Authorization": f"Bearer {self.key}",
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        if self.schema and self.schema != "public":
            headers["Accept-Profile"] = self.schema
            headers["Content-Profile"] = self.schema
        if prefer:
            headers["Prefer"] = prefer
        return headers

    def _url(self, table: str) -> str:
        """Construct the REST URL for ``table``."""

        return f"{self.url.rstrip('/')}/rest/v1/{table}"

    def select_rows(
        self,
        table: str,
        *,
        columns: str = "*",
        filters: Sequence[Filter] = (),
        order: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Return rows from ``table``.

        ``filters`` are PostgREST ``(column, "op.value")`` pairs such as
        ``("status", "eq.completed")``; a column may appear more than once.
        """

        params: List[Tuple[str, str]] = [("select", "".join(columns.split()))]
        params.extend(filters)
        if order:
            params.append(("order", order))
        if limit is not None:
            params.append(("limit", str(limit)))

        response = requests.get(
            self._url(table),
            headers=self._headers(),
            params=params,
            timeout=self.timeout,
        )
        response.raise_for_status()
        payload = response.json()
        rows = payload if isinstance(payload, list) else []
        logger.debug("Fetched %d rows from %s.", len(rows), table)
        return rows

    def insert_row(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        """Insert ``row`` into ``table`` and return the stored representation."""

        response = requests.post(
            self._url(table),
            headers=self._headers(prefer="return=representation"),
            json=[row],
            timeout=self.timeout,
        )
        response.raise_for_status()
        payload = response.json()
        if isinstance(payload, list):
            return payload[0] if payload else {}
        return payload if isinstance(payload, dict) else {}


def _clean(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def supabase_settings(
    secrets: Optional[Mapping[str, Any]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Dict[str, Any]:
    """Return Supabase configuration from secrets with environment fallbacks.

    ``secrets`` is the ``[supabase]`` table of the Streamlit secrets file.
    """

    section = dict(secrets) if isinstance(secrets, Mapping) else {}
    env = os.environ if environ is None else environ

    url = _clean(section.get("url")) or _clean(env.get("SUPABASE_URL"))
    key = (
        _clean(section.get("key"))
        or _clean(env.get("SUPABASE_SERVICE_ROLE_KEY"))
        or _clean(env.get("SUPABASE_ANON_KEY"))
    )
    schema = _clean(section.get("schema")) or _clean(env.get("SUPABASE_SCHEMA")) or "public"

    settings: Dict[str, Any] = {"url": url, "key": key, "schema": schema}
    timeout = section.get("timeout")
    if timeout is not None:
        settings["timeout"] = int(timeout)
    return settings


def backend_from_settings(settings: Mapping[str, Any]) -> Optional[SupabaseBackend]:
    """Return a backend for ``settings`` or ``None`` when it is incomplete."""

    url = _clean(settings.get("url"))
    key = _clean(settings.get("key"))
    if not url or not key:
        return None
    return SupabaseBackend(
        url=url,
        key=key,
        schema=_clean(settings.get("schema")) or "public",
        timeout=int(settings.get("timeout") or 10),
    )


__all__ = ["SupabaseBackend", "backend_from_settings", "supabase_settings"]
