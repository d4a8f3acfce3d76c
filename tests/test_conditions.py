from __future__ import annotations

import importlib

import pytest


def _section(rules):
    questionnaire = importlib.import_module("blueprint.questionnaire")
    return questionnaire.Section(
        key="dataHandling",
        title="Data Handling",
        questions=(
            questionnaire.Question(id="stores_pii", label="Stores PII", type="boolean"),
            questionnaire.Question(id="pii_types", label="PII types", type="text"),
        ),
        rules=tuple(rules),
    )


def _rule(operator, value, action="hide", target=("pii_types",), question_id="stores_pii"):
    conditions = importlib.import_module("blueprint.conditions")
    return conditions.ConditionalRule(
        condition=conditions.Condition(question_id, conditions.Operator(operator), value),
        action=conditions.RuleAction(conditions.ActionType(action), tuple(target)),
    )


@pytest.mark.parametrize(
    ("operator", "answer", "expected", "result"),
    [
        ("equals", True, True, True),
        ("equals", 1, True, False),
        ("equals", "yes", "yes", True),
        ("not_equals", False, True, True),
        ("not_equals", "a", "a", False),
        ("less_than", 10, 13, True),
        ("less_than", 13, 13, False),
        ("less_than", None, 13, False),
        ("less_than", "10", 13, False),
        ("greater_than", 18, 13, True),
        ("greater_than", True, 0, False),
        ("contains", ["Health information", "Names"], "Names", True),
        ("contains", ["Names"], "Health information", False),
        ("contains", "Health information", "Health", True),
        ("contains", None, "Health", False),
    ],
)
def test_evaluate_condition_operators(operator, answer, expected, result):
    conditions = importlib.import_module("blueprint.conditions")

    condition = conditions.Condition("field", conditions.Operator(operator), expected)

    assert conditions.evaluate_condition(condition, {"field": answer}) is result


def test_hide_rule_hides_target_when_condition_holds():
    conditions = importlib.import_module("blueprint.conditions")
    section = _section([_rule("equals", False)])

    assert conditions.hidden_questions(section, {"stores_pii": False}) == {"pii_types"}
    assert conditions.is_question_visible(section, "pii_types", {"stores_pii": True})
    assert conditions.is_question_visible(section, "stores_pii", {"stores_pii": False})


def test_show_require_and_flag_rules_do_not_change_visibility():
    conditions = importlib.import_module("blueprint.conditions")
    section = _section(
        [
            _rule("equals", True, action="show"),
            _rule("equals", False, action="require"),
            _rule("equals", False, action="flag_risk"),
        ]
    )

    assert conditions.hidden_questions(section, {"stores_pii": False}) == set()
    assert conditions.hidden_questions(section, {"stores_pii": True}) == set()


def test_any_matching_hide_rule_hides_the_target():
    conditions = importlib.import_module("blueprint.conditions")
    section = _section(
        [
            _rule("equals", True),
            _rule("contains", "x", question_id="pii_types", target=("stores_pii",)),
        ]
    )

    hidden = conditions.hidden_questions(section, {"stores_pii": False, "pii_types": "xyz"})

    assert hidden == {"stores_pii"}


def test_every_operator_has_a_handler():
    conditions = importlib.import_module("blueprint.conditions")

    assert set(conditions.OPERATORS) == set(conditions.Operator)
