"""Tests for loading and validating questionnaire definitions."""

from __future__ import annotations

import importlib

import pytest


def _minimal_payload(**section_overrides):
    section = {
        "key": "basics",
        "title": "Basics",
        "questions": [
            {"id": "uses_ai", "type": "boolean", "label": "Uses AI?", "required": True},
            {"id": "model", "type": "text", "label": "Model"},
        ],
    }
    section.update(section_overrides)
    return {"title": "Mini", "sections": [section]}


def test_default_questionnaire_has_six_ordered_sections():
    form_store = importlib.import_module("blueprint.form_store")

    definition = form_store.load_questionnaire()

    assert definition.key == "vendor_intake"
    assert definition.section_keys == (
        "basicInfo",
        "dataHandling",
        "aiCapabilities",
        "studentData",
        "compliance",
        "technical",
    )
    assert definition.get_section("studentData").title == "Student Data & Age Requirements"


def test_default_questionnaire_risk_weights_and_flags():
    form_store = importlib.import_module("blueprint.form_store")
    questionnaire = importlib.import_module("blueprint.questionnaire")

    definition = form_store.default_questionnaire()

    assert definition.max_risk_score() == 315
    coppa_ids = {question.id for question in definition.questions_by_compliance_flag("coppa")}
    assert {"pii_types", "minimum_age", "age_gate", "parental_consent"} <= coppa_ids

    pii_types = definition.get_section("dataHandling").question("pii_types")
    assert questionnaire.is_high_risk(pii_types) is False
    minimum_age = definition.get_section("studentData").question("minimum_age")
    assert questionnaire.is_high_risk(minimum_age) is True
    assert minimum_age.validation.min == 0
    assert minimum_age.validation.max == 18


def test_rules_only_reference_questions_in_their_section():
    form_store = importlib.import_module("blueprint.form_store")

    definition = form_store.default_questionnaire()

    for section in definition.sections:
        ids = set(section.question_ids)
        for rule in section.rules:
            assert rule.condition.question_id in ids
            assert set(rule.action.target) <= ids


def test_rule_referencing_another_section_is_rejected():
    questionnaire = importlib.import_module("blueprint.questionnaire")
    errors = importlib.import_module("blueprint.errors")

    payload = _minimal_payload(
        conditionalLogic=[
            {
                "condition": {"questionId": "stores_pii", "operator": "equals", "value": True},
                "action": {"type": "hide", "target": ["model"]},
            }
        ]
    )

    with pytest.raises(errors.QuestionnaireSchemaError):
        questionnaire.definition_from_payload("mini", payload)


def test_rule_targeting_an_earlier_question_is_rejected():
    questionnaire = importlib.import_module("blueprint.questionnaire")
    errors = importlib.import_module("blueprint.errors")

    payload = _minimal_payload(
        conditionalLogic=[
            {
                "condition": {"questionId": "model", "operator": "equals", "value": ""},
                "action": {"type": "hide", "target": ["uses_ai"]},
            }
        ]
    )

    with pytest.raises(errors.QuestionnaireSchemaError, match="earlier questions"):
        questionnaire.definition_from_payload("mini", payload)


def test_default_rules_never_target_earlier_questions():
    form_store = importlib.import_module("blueprint.form_store")

    for section in form_store.default_questionnaire().sections:
        order = list(section.question_ids)
        for rule in section.rules:
            position = order.index(rule.condition.question_id)
            assert all(order.index(target) >= position for target in rule.action.target)


def test_unknown_operator_is_rejected():
    questionnaire = importlib.import_module("blueprint.questionnaire")
    errors = importlib.import_module("blueprint.errors")

    payload = _minimal_payload(
        conditionalLogic=[
            {
                "condition": {"questionId": "uses_ai", "operator": "matches", "value": True},
                "action": {"type": "hide", "target": ["model"]},
            }
        ]
    )

    with pytest.raises(errors.QuestionnaireSchemaError):
        questionnaire.definition_from_payload("mini", payload)


def test_select_question_without_options_is_rejected():
    questionnaire = importlib.import_module("blueprint.questionnaire")
    errors = importlib.import_module("blueprint.errors")

    payload = _minimal_payload(questions=[{"id": "tier", "type": "select", "label": "Tier"}])

    with pytest.raises(errors.QuestionnaireSchemaError):
        questionnaire.definition_from_payload("mini", payload)


def test_duplicate_question_ids_are_rejected():
    questionnaire = importlib.import_module("blueprint.questionnaire")
    errors = importlib.import_module("blueprint.errors")

    payload = _minimal_payload(
        questions=[
            {"id": "model", "type": "text", "label": "Model"},
            {"id": "model", "type": "text", "label": "Model again"},
        ]
    )

    with pytest.raises(errors.QuestionnaireSchemaError):
        questionnaire.definition_from_payload("mini", payload)
