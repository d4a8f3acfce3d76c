"""Tests for storing vendor intake submissions."""

from __future__ import annotations

import importlib

import pytest


class DummyBackend:
    def __init__(self, stored_id="intake-1"):
        self.stored_id = stored_id
        self.inserted = []

    def insert_row(self, table, row):
        self.inserted.append((table, row))
        return {"id": self.stored_id, **row} if self.stored_id else {}


def _assessment():
    return {
        "basicInfo": {
            "vendor_name": " Acme Learning ",
            "vendor_url": "https://acme.example",
            "service_description": "Adaptive quizzes",
            "service_category": "Assessment Tool",
            "contact_name": "Pat Doe",
            "contact_email": "pat@acme.example",
            "business_justification": "Grade 6 maths",
        },
        "dataHandling": {"stores_pii": True, "encryption_at_rest": True, "encryption_in_transit": False},
    }


def test_store_vendor_submission_inserts_denormalised_row():
    storage = importlib.import_module("blueprint.submission_storage")
    risk_flags = importlib.import_module("blueprint.risk_flags")
    backend = DummyBackend()

    submission_id = storage.store_vendor_submission(
        backend, _assessment(), submitted_by="user-7", urgency="high", notes="  Needed by August  "
    )

    assert submission_id == "intake-1"
    table, row = backend.inserted[0]
    assert table == "vendor_intakes"
    assert row["vendor_name"] == "Acme Learning"
    assert row["vendor_description"] == "Adaptive quizzes"
    assert row["vendor_category"] == "Assessment Tool"
    assert row["status"] == "pending"
    assert row["created_by"] == "user-7"
    assert row["requested_urgency"] == "high"
    assert row["request_notes"] == "Needed by August"
    assert row["risk_flags"] == [risk_flags.SECURITY_NOT_ENCRYPTED_IN_TRANSIT]
    assert row["assessment_data"]["dataHandling"]["stores_pii"] is True
    assert row["assessment_data"]["technical"]["authentication_methods"] == []


def test_explicit_risk_flags_are_stored_as_given():
    storage = importlib.import_module("blueprint.submission_storage")
    backend = DummyBackend()

    storage.store_vendor_submission(backend, _assessment(), risk_flags=[])

    row = backend.inserted[0][1]
    assert row["risk_flags"] == []
    assert "created_by" not in row
    assert "request_notes" not in row


def test_missing_id_in_response_is_an_error():
    storage = importlib.import_module("blueprint.submission_storage")

    with pytest.raises(ValueError):
        storage.store_vendor_submission(DummyBackend(stored_id=""), _assessment())


def test_invalid_urgency_is_rejected():
    storage = importlib.import_module("blueprint.submission_storage")
    backend = DummyBackend()

    with pytest.raises(ValueError):
        storage.store_vendor_submission(backend, _assessment(), urgency="yesterday")
    assert backend.inserted == []


def test_submission_handler_plugs_into_the_controller():
    storage = importlib.import_module("blueprint.submission_storage")
    intake_form = importlib.import_module("blueprint.intake_form")
    form_store = importlib.import_module("blueprint.form_store")
    backend = DummyBackend(stored_id="intake-9")

    controller = intake_form.IntakeFormController(
        form_store.default_questionnaire(),
        storage.make_submission_handler(backend, urgency="low"),
        draft_handler=storage.make_draft_handler(backend),
    )
    controller.set_field("basicInfo", "vendor_name", "Acme")

    assert controller.save_draft() == "intake-9"
    assert backend.inserted[0][0] == "vendor_intake_drafts"
    assert backend.inserted[0][1]["assessment_data"]["basicInfo"]["vendor_name"] == "Acme"

    handler = storage.make_submission_handler(backend, urgency="low")
    assert handler(controller.snapshot()) == "intake-9"
    assert backend.inserted[1][1]["requested_urgency"] == "low"


def test_draft_without_id_in_response_is_an_error():
    storage = importlib.import_module("blueprint.submission_storage")
    backend = DummyBackend(stored_id="")

    with pytest.raises(ValueError):
        storage.store_vendor_draft(backend, {"basicInfo": {"vendor_name": "Acme"}})
    assert backend.inserted[0][0] == "vendor_intake_drafts"


def test_failed_draft_save_surfaces_as_submission_error():
    storage = importlib.import_module("blueprint.submission_storage")
    intake_form = importlib.import_module("blueprint.intake_form")
    form_store = importlib.import_module("blueprint.form_store")
    errors = importlib.import_module("blueprint.errors")
    backend = DummyBackend(stored_id="")

    controller = intake_form.IntakeFormController(
        form_store.default_questionnaire(),
        storage.make_submission_handler(backend),
        draft_handler=storage.make_draft_handler(backend),
    )

    with pytest.raises(errors.SubmissionError) as excinfo:
        controller.save_draft()
    assert isinstance(excinfo.value.__cause__, ValueError)
