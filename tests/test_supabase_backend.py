"""Tests for the Supabase PostgREST backend and its configuration."""

from __future__ import annotations

import importlib

import pytest
import requests


class DummyResponse:
    def __init__(self, payload, status_code=200):
        self._payload = payload
        self.status_code = status_code

    def json(self):
        return self._payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


def test_select_rows_builds_postgrest_query(monkeypatch):
    module = importlib.import_module("blueprint.supabase_backend")
    captured = {}

    def fake_get(url, *, headers, params, timeout):
        captured.update(url=url, headers=headers, params=params, timeout=timeout)
        return DummyResponse([{"id": 1}])

    monkeypatch.setattr(module.requests, "get", fake_get)
    backend = module.SupabaseBackend(url="https://db.example.co/", key="service-key")

    rows = backend.select_rows(
        "vendor_intakes",
        columns="id, vendor_name",
        filters=[("status", "in.(pending,under_review)")],
        order="created_at",
        limit=5,
    )

    assert rows == [{"id": 1}]
    assert captured["url"] == "https://db.example.co/rest/v1/vendor_intakes"
    assert captured["params"] == [
        ("select", "id,vendor_name"),
        ("status", "in.(pending,under_review)"),
        ("order", "created_at"),
        ("limit", "5"),
    ]
    assert captured["headers"]["apikey"] == "service-key"
    assert captured["headers"]["Authorization"] == "Bearer service-key"
    assert "Accept-Profile" not in captured["headers"]
    assert captured["timeout"] == 10


def test_insert_row_requests_representation(monkeypatch):
    module = importlib.import_module("blueprint.supabase_backend")
    captured = {}

    def fake_post(url, *, headers, json, timeout):
        captured.update(url=url, headers=headers, json=json, timeout=timeout)
        return DummyResponse([{"id": "abc", **json[0]}], status_code=201)

    monkeypatch.setattr(module.requests, "post", fake_post)
    backend = module.SupabaseBackend(url="https://db.example.co", key="k", schema="blueprint", timeout=3)

    stored = backend.insert_row("vendor_intakes", {"vendor_name": "Acme"})

    assert stored == {"id": "abc", "vendor_name": "Acme"}
    assert captured["json"] == [{"vendor_name": "Acme"}]
    assert captured["headers"]["Prefer"] == "return=representation"
    assert captured["headers"]["Content-Profile"] == "blueprint"
    assert captured["timeout"] == 3


def test_http_errors_propagate(monkeypatch):
    module = importlib.import_module("blueprint.supabase_backend")

    monkeypatch.setattr(module.requests, "get", lambda *args, **kwargs: DummyResponse({}, status_code=401))
    backend = module.SupabaseBackend(url="https://db.example.co", key="bad")

    with pytest.raises(requests.HTTPError):
        backend.select_rows("assessments")


def test_settings_prefer_secrets_over_environment():
    module = importlib.import_module("blueprint.supabase_backend")

    settings = module.supabase_settings(
        {"url": " https://secrets.example.co ", "key": "secret-key", "timeout": "5"},
        environ={"SUPABASE_URL": "https://env.example.co", "SUPABASE_ANON_KEY": "anon"},
    )

    assert settings == {
        "url": "https://secrets.example.co",
        "key": "secret-key",
        "schema": "public",
        "timeout": 5,
    }


def test_settings_fall_back_to_environment():
    module = importlib.import_module("blueprint.supabase_backend")

    settings = module.supabase_settings(
        None,
        environ={
            "SUPABASE_URL": "https://env.example.co",
            "SUPABASE_ANON_KEY": "anon",
            "SUPABASE_SERVICE_ROLE_KEY": "service",
            "SUPABASE_SCHEMA": "blueprint",
        },
    )

    assert settings == {"url": "https://env.example.co", "key": "service", "schema": "blueprint"}


def test_backend_from_settings_requires_url_and_key():
    module = importlib.import_module("blueprint.supabase_backend")

    assert module.backend_from_settings({"url": "https://db.example.co", "key": ""}) is None
    assert module.backend_from_settings({"key": "k"}) is None

    backend = module.backend_from_settings({"url": "https://db.example.co", "key": "k", "timeout": 4})
    assert backend == module.SupabaseBackend(url="https://db.example.co", key="k", schema="public", timeout=4)
