"""Compliance risk flags derived from a vendor assessment.

:func:`evaluate` is a pure function: it reads the assessment, never mutates
it, and returns the active flags in a fixed order so repeated calls with
equal input produce equal output.
"""

from __future__ import annotations

from typing import Any, Iterable, List, Mapping, Union

from blueprint.assessment import VendorAssessment

SENSITIVE_PII_KEYWORDS = ("psychological", "behavioral", "health")

COPPA_NO_AGE_VERIFICATION = "COPPA: No age verification for users under 13"
COPPA_NO_PARENTAL_CONSENT = "COPPA: No parental consent for users under 13"
FERPA_NON_EDUCATIONAL_USE = "FERPA: Non-educational use of student data"
FERPA_MISSING_DPA = "FERPA: Missing data processing agreement for student PII"
PPRA_SENSITIVE_WITHOUT_CONSENT = "PPRA: Sensitive data collection without proper consent"
SECURITY_NOT_ENCRYPTED_AT_REST = "Security: PII not encrypted at rest"
SECURITY_NOT_ENCRYPTED_IN_TRANSIT = "Security: PII not encrypted in transit"
AI_TRAINING_ON_STUDENT_DATA = "AI Risk: Training on student data without adequate safeguards"

COPPA_AGE_THRESHOLD = 13


def sensitive_pii_types(pii_types: Iterable[Any]) -> List[str]:
    """Return the PII types that fall in a PPRA-protected category."""

    matches: List[str] = []
    for item in pii_types or []:
        text = str(item).lower()
        if any(keyword in text for keyword in SENSITIVE_PII_KEYWORDS):
            matches.append(str(item))
    return matches


def _coppa_flags(assessment: VendorAssessment) -> List[str]:
    student = assessment.student_data
    if student.minimum_age is None or student.minimum_age >= COPPA_AGE_THRESHOLD:
        return []
    flags = []
    if not student.age_gate:
        flags.append(COPPA_NO_AGE_VERIFICATION)
    if not student.parental_consent:
        flags.append(COPPA_NO_PARENTAL_CONSENT)
    return flags


def _ferpa_flags(assessment: VendorAssessment) -> List[str]:
    student = assessment.student_data
    if not student.handles_student_data:
        return []
    flags = []
    if not student.educational_purpose:
        flags.append(FERPA_NON_EDUCATIONAL_USE)
    if assessment.data_handling.stores_pii and not assessment.compliance.data_processing_agreement:
        flags.append(FERPA_MISSING_DPA)
    return flags


def _ppra_flags(assessment: VendorAssessment) -> List[str]:
    if sensitive_pii_types(assessment.data_handling.pii_types) and not assessment.student_data.parental_consent:
        return [PPRA_SENSITIVE_WITHOUT_CONSENT]
    return []


def _encryption_flags(assessment: VendorAssessment) -> List[str]:
    data = assessment.data_handling
    if not data.stores_pii:
        return []
    flags = []
    if not data.encryption_at_rest:
        flags.append(SECURITY_NOT_ENCRYPTED_AT_REST)
    if not data.encryption_in_transit:
        flags.append(SECURITY_NOT_ENCRYPTED_IN_TRANSIT)
    return flags


def _ai_training_flags(assessment: VendorAssessment) -> List[str]:
    ai = assessment.ai_capabilities
    if ai.is_ai_service and ai.trains_on_user_data and assessment.student_data.handles_student_data:
        return [AI_TRAINING_ON_STUDENT_DATA]
    return []


RULES = (
    _coppa_flags,
    _ferpa_flags,
    _ppra_flags,
    _encryption_flags,
    _ai_training_flags,
)


def evaluate(assessment: Union[VendorAssessment, Mapping[str, Any]]) -> List[str]:
    """Return the compliance risk flags raised by ``assessment``."""

    if not isinstance(assessment, VendorAssessment):
        assessment = VendorAssessment.from_payload(assessment)

    flags: List[str] = []
    for rule in RULES:
        for flag in rule(assessment):
            if flag not in flags:
                flags.append(flag)
    return flags


__all__ = [
    "AI_TRAINING_ON_STUDENT_DATA",
    "COPPA_NO_AGE_VERIFICATION",
    "COPPA_NO_PARENTAL_CONSENT",
    "FERPA_MISSING_DPA",
    "FERPA_NON_EDUCATIONAL_USE",
    "PPRA_SENSITIVE_WITHOUT_CONSENT",
    "SECURITY_NOT_ENCRYPTED_AT_REST",
    "SECURITY_NOT_ENCRYPTED_IN_TRANSIT",
    "evaluate",
    "sensitive_pii_types",
]
