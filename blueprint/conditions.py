"""Conditional visibility rules for questionnaire sections.

Rules are plain data: a :class:`Condition` naming a question, an operator and
an expected value, and a :class:`RuleAction` naming the questions it affects.
Conditions are evaluated by looking the operator up in :data:`OPERATORS`, so a
new comparison only needs an :class:`Operator` member and an entry in the
table.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence, Set as AbstractSet
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Dict, Mapping, Set, Tuple

if TYPE_CHECKING:  # pragma: no cover - import only needed for annotations
    from blueprint.questionnaire import Section

logger = logging.getLogger(__name__)


class Operator(str, Enum):
    """Comparison operators understood by :func:`evaluate_condition`."""

    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    LESS_THAN = "less_than"
    GREATER_THAN = "greater_than"
    CONTAINS = "contains"


class ActionType(str, Enum):
    """Actions a rule may declare. Only ``hide`` changes visibility."""

    SHOW = "show"
    HIDE = "hide"
    REQUIRE = "require"
    FLAG_RISK = "flag_risk"


@dataclass(frozen=True)
class Condition:
    """Compare the answer to ``question_id`` against ``value``."""

    question_id: str
    operator: Operator
    value: Any = None


@dataclass(frozen=True)
class RuleAction:
    """The effect of a rule on the ``target`` questions."""

    type: ActionType
    target: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ConditionalRule:
    """A condition paired with the action taken when it holds."""

    condition: Condition
    action: RuleAction

    def applies_to(self, question_id: str) -> bool:
        """Return ``True`` if ``question_id`` is one of the rule's targets."""

        return question_id in self.action.target


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _same_value(value: Any, expected: Any) -> bool:
    # ``True == 1`` in Python; a boolean answer only matches a boolean value.
    if isinstance(value, bool) or isinstance(expected, bool):
        return isinstance(value, bool) and isinstance(expected, bool) and value is expected
    return value == expected


def _equals(value: Any, expected: Any) -> bool:
    return _same_value(value, expected)


def _not_equals(value: Any, expected: Any) -> bool:
    return not _same_value(value, expected)


def _less_than(value: Any, expected: Any) -> bool:
    if not (_is_number(value) and _is_number(expected)):
        return False
    return value < expected


def _greater_than(value: Any, expected: Any) -> bool:
    if not (_is_number(value) and _is_number(expected)):
        return False
    return value > expected


def _contains(value: Any, expected: Any) -> bool:
    if isinstance(value, str):
        return isinstance(expected, str) and expected in value
    if isinstance(value, (Sequence, AbstractSet)) and not isinstance(value, bytes):
        return expected in value
    return False


OPERATORS: Dict[Operator, Callable[[Any, Any], bool]] = {
    Operator.EQUALS: _equals,
    Operator.NOT_EQUALS: _not_equals,
    Operator.LESS_THAN: _less_than,
    Operator.GREATER_THAN: _greater_than,
    Operator.CONTAINS: _contains,
}


def evaluate_condition(condition: Condition, values: Mapping[str, Any]) -> bool:
    """Evaluate ``condition`` against the answers of a single section."""

    handler = OPERATORS[Operator(condition.operator)]
    return handler(values.get(condition.question_id), condition.value)


def hidden_questions(section: "Section", values: Mapping[str, Any]) -> Set[str]:
    """Return ids of questions in ``section`` hidden by its rules.

    A question is hidden when any ``hide`` rule targeting it has a condition
    that holds. Rules with other action types are accepted but ignored.
    """

    hidden: Set[str] = set()
    for rule in section.rules:
        if rule.action.type is not ActionType.HIDE:
            continue
        if evaluate_condition(rule.condition, values):
            hidden.update(rule.action.target)

    if hidden:
        logger.debug("Hidden questions in %s: %s", section.key, sorted(hidden))
    return hidden


def is_question_visible(section: "Section", question_id: str, values: Mapping[str, Any]) -> bool:
    """Return ``True`` unless a ``hide`` rule currently targets ``question_id``."""

    return question_id not in hidden_questions(section, values)


__all__ = [
    "ActionType",
    "Condition",
    "ConditionalRule",
    "OPERATORS",
    "Operator",
    "RuleAction",
    "evaluate_condition",
    "hidden_questions",
    "is_question_visible",
]
