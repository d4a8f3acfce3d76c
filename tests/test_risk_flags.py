from __future__ import annotations

import copy
import importlib

import pytest


def _assessment(**sections):
    payload = {
        "dataHandling": {"stores_pii": False},
        "aiCapabilities": {"is_ai_service": False},
        "studentData": {"handles_student_data": False, "minimum_age": 13},
        "compliance": {},
    }
    for key, values in sections.items():
        payload.setdefault(key, {}).update(values)
    return payload


def test_clean_assessment_raises_no_flags():
    risk_flags = importlib.import_module("blueprint.risk_flags")

    assert risk_flags.evaluate(_assessment()) == []


def test_under_13_without_age_gate_or_consent_raises_both_coppa_flags():
    risk_flags = importlib.import_module("blueprint.risk_flags")

    flags = risk_flags.evaluate(
        _assessment(studentData={"minimum_age": 10, "age_gate": False, "parental_consent": False})
    )

    assert risk_flags.COPPA_NO_AGE_VERIFICATION in flags
    assert risk_flags.COPPA_NO_PARENTAL_CONSENT in flags


@pytest.mark.parametrize("age", [13, 16, None])
def test_coppa_only_applies_below_13(age):
    risk_flags = importlib.import_module("blueprint.risk_flags")

    flags = risk_flags.evaluate(_assessment(studentData={"minimum_age": age}))

    assert not [flag for flag in flags if flag.startswith("COPPA")]


def test_age_zero_is_under_13():
    risk_flags = importlib.import_module("blueprint.risk_flags")

    flags = risk_flags.evaluate(_assessment(studentData={"minimum_age": 0, "age_gate": True}))

    assert flags == [risk_flags.COPPA_NO_PARENTAL_CONSENT]


def test_under_13_educational_use_without_pii_storage_skips_the_dpa_flag():
    risk_flags = importlib.import_module("blueprint.risk_flags")

    flags = risk_flags.evaluate(
        _assessment(
            dataHandling={"stores_pii": False},
            studentData={
                "minimum_age": 10,
                "age_gate": False,
                "parental_consent": False,
                "handles_student_data": True,
                "educational_purpose": True,
            },
        )
    )

    assert risk_flags.COPPA_NO_AGE_VERIFICATION in flags
    assert risk_flags.COPPA_NO_PARENTAL_CONSENT in flags
    assert risk_flags.FERPA_MISSING_DPA not in flags
    assert flags == [risk_flags.COPPA_NO_AGE_VERIFICATION, risk_flags.COPPA_NO_PARENTAL_CONSENT]


@pytest.mark.parametrize(
    "pii_type",
    ["Behavioral Assessment Data", "behavioral assessment data", "BEHAVIORAL ASSESSMENT DATA"],
)
def test_ppra_fires_for_behavioral_data_in_any_case(pii_type):
    risk_flags = importlib.import_module("blueprint.risk_flags")

    flags = risk_flags.evaluate(
        _assessment(dataHandling={"pii_types": [pii_type]}, studentData={"parental_consent": False})
    )

    assert flags == [risk_flags.PPRA_SENSITIVE_WITHOUT_CONSENT]


def test_ferpa_flags_require_student_data():
    risk_flags = importlib.import_module("blueprint.risk_flags")

    without_student_data = risk_flags.evaluate(
        _assessment(dataHandling={"stores_pii": True, "encryption_at_rest": True, "encryption_in_transit": True})
    )
    with_student_data = risk_flags.evaluate(
        _assessment(
            dataHandling={"stores_pii": True, "encryption_at_rest": True, "encryption_in_transit": True},
            studentData={"handles_student_data": True, "educational_purpose": False},
            compliance={"data_processing_agreement": False},
        )
    )

    assert without_student_data == []
    assert with_student_data == [risk_flags.FERPA_NON_EDUCATIONAL_USE, risk_flags.FERPA_MISSING_DPA]


def test_sensitive_pii_without_parental_consent_raises_ppra():
    risk_flags = importlib.import_module("blueprint.risk_flags")

    assessment = _assessment(
        dataHandling={
            "stores_pii": True,
            "pii_types": ["Names", "Psychological evaluations"],
            "encryption_at_rest": True,
            "encryption_in_transit": True,
        },
        studentData={"parental_consent": False},
    )

    assert risk_flags.evaluate(assessment) == [risk_flags.PPRA_SENSITIVE_WITHOUT_CONSENT]

    assessment["studentData"]["parental_consent"] = True
    assert risk_flags.evaluate(assessment) == []


def test_sensitive_pii_types_matches_keywords_case_insensitively():
    risk_flags = importlib.import_module("blueprint.risk_flags")

    matches = risk_flags.sensitive_pii_types(["Behavioral assessments", "HEALTH information", "Names"])

    assert matches == ["Behavioral assessments", "HEALTH information"]


def test_exactly_one_encryption_flag_when_only_transit_is_missing():
    risk_flags = importlib.import_module("blueprint.risk_flags")

    flags = risk_flags.evaluate(
        _assessment(dataHandling={"stores_pii": True, "encryption_at_rest": True, "encryption_in_transit": False})
    )

    assert [flag for flag in flags if flag.startswith("Security")] == [
        risk_flags.SECURITY_NOT_ENCRYPTED_IN_TRANSIT
    ]


def test_ai_training_on_student_data():
    risk_flags = importlib.import_module("blueprint.risk_flags")

    flags = risk_flags.evaluate(
        _assessment(
            aiCapabilities={"is_ai_service": True, "trains_on_user_data": True},
            studentData={"handles_student_data": True, "educational_purpose": True},
        )
    )

    assert flags == [risk_flags.AI_TRAINING_ON_STUDENT_DATA]


def test_evaluate_does_not_mutate_input_and_is_deterministic():
    risk_flags = importlib.import_module("blueprint.risk_flags")
    assessment_module = importlib.import_module("blueprint.assessment")

    payload = _assessment(
        dataHandling={"stores_pii": True, "pii_types": ["Health information"]},
        studentData={"minimum_age": 8, "handles_student_data": True},
    )
    untouched = copy.deepcopy(payload)
    record = assessment_module.VendorAssessment.from_payload(payload)
    record_before = record.to_payload()

    first = risk_flags.evaluate(payload)
    second = risk_flags.evaluate(record)

    assert payload == untouched
    assert record.to_payload() == record_before
    assert first == second
    assert len(first) == len(set(first))
