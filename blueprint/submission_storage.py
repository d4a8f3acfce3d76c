"""Persist finished vendor assessments to the ``vendor_intakes`` table."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence

from blueprint.assessment import VendorAssessment
from blueprint.risk_flags import evaluate

logger = logging.getLogger(__name__)

VENDOR_INTAKES_TABLE = "vendor_intakes"
DRAFTS_TABLE = "vendor_intake_drafts"
URGENCY_LEVELS = ("low", "medium", "high")


class RowWriter(Protocol):
    def insert_row(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        ...


def build_vendor_intake_row(
    assessment: Mapping[str, Any],
    *,
    risk_flags: Optional[Sequence[str]] = None,
    submitted_by: Optional[str] = None,
    urgency: str = "medium",
    notes: Optional[str] = None,
) -> Dict[str, Any]:
    """Return the row stored for ``assessment``.

    Basic information is copied into top level columns so listings do not
    need to unpack ``assessment_data``.
    """

    record = VendorAssessment.from_payload(assessment)
    payload = record.to_payload()
    flags: List[str] = list(risk_flags) if risk_flags is not None else evaluate(record)
    if urgency not in URGENCY_LEVELS:
        raise ValueError(f"Urgency must be one of {', '.join(URGENCY_LEVELS)}.")

    info = record.basic_info
    row: Dict[str, Any] = {
        "vendor_name": info.vendor_name.strip(),
        "vendor_url": info.vendor_url.strip(),
        "vendor_description": info.service_description.strip(),
        "vendor_category": info.service_category,
        "contact_name": info.contact_name.strip(),
        "contact_email": info.contact_email.strip(),
        "business_justification": info.business_justification.strip(),
        "assessment_data": payload,
        "risk_flags": flags,
        "requested_urgency": urgency,
        "status": "pending",
    }
    if submitted_by:
        row["created_by"] = submitted_by
    if notes and notes.strip():
        row["request_notes"] = notes.strip()
    return row


def store_vendor_submission(
    backend: RowWriter,
    assessment: Mapping[str, Any],
    *,
    risk_flags: Optional[Sequence[str]] = None,
    submitted_by: Optional[str] = None,
    urgency: str = "medium",
    notes: Optional[str] = None,
) -> str:
    """Insert ``assessment`` and return the identifier the database assigned."""

    row = build_vendor_intake_row(
        assessment,
        risk_flags=risk_flags,
        submitted_by=submitted_by,
        urgency=urgency,
        notes=notes,
    )
    stored = backend.insert_row(VENDOR_INTAKES_TABLE, row)
    submission_id = str(stored.get("id") or "").strip()
    if not submission_id:
        raise ValueError("The database did not return an id for the vendor intake.")

    logger.info(
        "Stored vendor intake %s for %s with %d risk flags.",
        submission_id,
        row["vendor_name"] or "unnamed vendor",
        len(row["risk_flags"]),
    )
    return submission_id


def store_vendor_draft(
    backend: RowWriter,
    assessment: Mapping[str, Any],
    *,
    submitted_by: Optional[str] = None,
) -> str:
    """Save a partial assessment so it can be resumed later."""

    row: Dict[str, Any] = {"assessment_data": dict(assessment)}
    if submitted_by:
        row["created_by"] = submitted_by
    stored = backend.insert_row(DRAFTS_TABLE, row)
    draft_id = str(stored.get("id") or "").strip()
    if not draft_id:
        raise ValueError("The database did not return an id for the vendor intake draft.")

    logger.info("Saved vendor intake draft %s.", draft_id)
    return draft_id


def make_submission_handler(backend: RowWriter, **options: Any) -> Callable[[Dict[str, Any]], str]:
    """Return a submit handler for :class:`~blueprint.intake_form.IntakeFormController`."""

    def handler(assessment: Dict[str, Any]) -> str:
        return store_vendor_submission(backend, assessment, **options)

    return handler


def make_draft_handler(backend: RowWriter, **options: Any) -> Callable[[Dict[str, Any]], str]:
    """Return a draft handler that stores partial assessments."""

    def handler(assessment: Dict[str, Any]) -> str:
        return store_vendor_draft(backend, assessment, **options)

    return handler


__all__ = [
    "DRAFTS_TABLE",
    "VENDOR_INTAKES_TABLE",
    "build_vendor_intake_row",
    "make_draft_handler",
    "make_submission_handler",
    "store_vendor_draft",
    "store_vendor_submission",
]
