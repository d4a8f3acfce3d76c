"""Questionnaire definitions: sections, questions and their conditional rules."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

from blueprint.conditions import ActionType, Condition, ConditionalRule, Operator, RuleAction
from blueprint.errors import QuestionnaireSchemaError

DEFAULT_QUESTIONNAIRE_KEY = "vendor_intake"
HIGH_RISK_WEIGHT = 10

QUESTION_TYPES = frozenset(
    {"text", "email", "url", "textarea", "number", "boolean", "select", "multiselect"}
)
SELECT_TYPES = frozenset({"select", "multiselect"})
COMPLIANCE_FLAGS = frozenset({"FERPA", "COPPA", "PPRA", "GDPR", "CCPA", "SOX", "HIPAA"})


@dataclass(frozen=True)
class ValidationRule:
    """Bounds and format constraints checked when a question has a value."""

    min: Optional[float] = None
    max: Optional[float] = None
    pattern: Optional[str] = None
    message: Optional[str] = None


@dataclass(frozen=True)
class Question:
    """A single question rendered inside a section."""

    id: str
    label: str
    type: str
    required: bool = False
    options: Tuple[str, ...] = ()
    validation: Optional[ValidationRule] = None
    risk_weight: Optional[int] = None
    help_text: Optional[str] = None
    description: Optional[str] = None
    placeholder: Optional[str] = None
    compliance_flags: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Section:
    """An ordered group of questions with optional conditional rules."""

    key: str
    title: str
    description: str = ""
    questions: Tuple[Question, ...] = ()
    rules: Tuple[ConditionalRule, ...] = ()

    def question(self, question_id: str) -> Optional[Question]:
        """Return the question called ``question_id`` if it is in this section."""

        for question in self.questions:
            if question.id == question_id:
                return question
        return None

    @property
    def question_ids(self) -> Tuple[str, ...]:
        return tuple(question.id for question in self.questions)


@dataclass(frozen=True)
class QuestionnaireDefinition:
    """A static, versioned questionnaire made of ordered sections."""

    key: str
    title: str
    version: str = "1.0.0"
    sections: Tuple[Section, ...] = field(default_factory=tuple)

    @property
    def section_keys(self) -> Tuple[str, ...]:
        return tuple(section.key for section in self.sections)

    def get_section(self, key: str) -> Section:
        """Return the section identified by ``key``."""

        for section in self.sections:
            if section.key == key:
                return section
        raise KeyError(key)

    def section_index(self, key: str) -> int:
        """Return the position of the section identified by ``key``."""

        return self.section_keys.index(key)

    def all_questions(self) -> List[Question]:
        """Return every question across all sections in order."""

        return [question for section in self.sections for question in section.questions]

    def questions_by_compliance_flag(self, flag: str) -> List[Question]:
        """Return the questions tagged with the regulation ``flag``."""

        wanted = flag.strip().upper()
        return [q for q in self.all_questions() if wanted in q.compliance_flags]

    def max_risk_score(self) -> int:
        """Return the sum of absolute risk weights over all questions."""

        return sum(abs(q.risk_weight or 0) for q in self.all_questions())


def is_high_risk(question: Question) -> bool:
    """Return ``True`` if ``question`` should be marked as a high risk question."""

    return (question.risk_weight or 0) > HIGH_RISK_WEIGHT


def _ensure_mapping(value: Any) -> Dict[str, Any]:
    """Return ``value`` if it is a mapping, otherwise an empty dict."""

    return value if isinstance(value, dict) else {}


def _ensure_sequence(value: Any) -> List[Any]:
    """Return ``value`` if it is a list, otherwise an empty list."""

    return value if isinstance(value, list) else []


def _clean_text(value: Any) -> str:
    if isinstance(value, str):
        return value.strip()
    if value is None:
        return ""
    return str(value).strip()


def _optional_text(value: Any) -> Optional[str]:
    text = _clean_text(value)
    return text or None


def _derive_label(key: str, payload: Dict[str, Any]) -> str:
    """Return a human-friendly label for a section or questionnaire entry."""

    for name in ("title", "label"):
        text = _clean_text(payload.get(name))
        if text:
            return text
    return key.replace("_", " ").title() if key else "Questionnaire"


def _parse_validation(payload: Any) -> Optional[ValidationRule]:
    data = _ensure_mapping(payload)
    if not data:
        return None
    return ValidationRule(
        min=data.get("min"),
        max=data.get("max"),
        pattern=_optional_text(data.get("pattern")),
        message=_optional_text(data.get("message")),
    )


def _parse_question(section_key: str, payload: Any) -> Question:
    data = _ensure_mapping(payload)
    question_id = _clean_text(data.get("id"))
    if not question_id:
        raise QuestionnaireSchemaError(f"Question in section '{section_key}' is missing an id.")

    question_type = _clean_text(data.get("type")) or "text"
    if question_type not in QUESTION_TYPES:
        raise QuestionnaireSchemaError(
            f"Question '{section_key}.{question_id}' has unsupported type '{question_type}'."
        )

    options = tuple(_clean_text(item) for item in _ensure_sequence(data.get("options")) if _clean_text(item))
    if question_type in SELECT_TYPES and not options:
        raise QuestionnaireSchemaError(
            f"Question '{section_key}.{question_id}' needs options for type '{question_type}'."
        )

    flags = tuple(_clean_text(item).upper() for item in _ensure_sequence(data.get("complianceFlags")))
    unknown_flags = [flag for flag in flags if flag not in COMPLIANCE_FLAGS]
    if unknown_flags:
        raise QuestionnaireSchemaError(
            f"Question '{section_key}.{question_id}' has unknown compliance flags: {unknown_flags}."
        )

    risk_weight = data.get("riskWeight")
    return Question(
        id=question_id,
        label=_clean_text(data.get("label")) or question_id,
        type=question_type,
        required=bool(data.get("required")),
        options=options,
        validation=_parse_validation(data.get("validation")),
        risk_weight=int(risk_weight) if risk_weight is not None else None,
        help_text=_optional_text(data.get("helpText")),
        description=_optional_text(data.get("description")),
        placeholder=_optional_text(data.get("placeholder")),
        compliance_flags=flags,
    )


def _parse_rule(section_key: str, question_ids: Iterable[str], payload: Any) -> ConditionalRule:
    data = _ensure_mapping(payload)
    condition = _ensure_mapping(data.get("condition"))
    action = _ensure_mapping(data.get("action"))
    order = list(question_ids)
    known = set(order)

    try:
        operator = Operator(_clean_text(condition.get("operator")))
        action_type = ActionType(_clean_text(action.get("type")))
    except ValueError as exc:
        raise QuestionnaireSchemaError(f"Invalid rule in section '{section_key}': {exc}") from exc

    question_id = _clean_text(condition.get("questionId"))
    if question_id not in known:
        raise QuestionnaireSchemaError(
            f"Rule in section '{section_key}' refers to unknown question '{question_id}'."
        )

    target = tuple(_clean_text(item) for item in _ensure_sequence(action.get("target")))
    missing = [item for item in target if item not in known]
    if not target or missing:
        raise QuestionnaireSchemaError(
            f"Rule in section '{section_key}' targets questions outside the section: {missing or target}."
        )

    earlier = [item for item in target if order.index(item) < order.index(question_id)]
    if earlier:
        raise QuestionnaireSchemaError(
            f"Rule in section '{section_key}' on '{question_id}' targets earlier questions: {earlier}."
        )

    return ConditionalRule(
        condition=Condition(question_id=question_id, operator=operator, value=condition.get("value")),
        action=RuleAction(type=action_type, target=target),
    )


def _parse_section(payload: Any) -> Section:
    data = _ensure_mapping(payload)
    key = _clean_text(data.get("key"))
    if not key:
        raise QuestionnaireSchemaError("Questionnaire section is missing a key.")

    questions = tuple(_parse_question(key, item) for item in _ensure_sequence(data.get("questions")))
    ids = [question.id for question in questions]
    if len(set(ids)) != len(ids):
        raise QuestionnaireSchemaError(f"Section '{key}' has duplicate question ids.")

    rules = tuple(_parse_rule(key, ids, item) for item in _ensure_sequence(data.get("conditionalLogic")))
    return Section(
        key=key,
        title=_derive_label(key, data),
        description=_clean_text(data.get("description")),
        questions=questions,
        rules=rules,
    )


def definition_from_payload(key: str, payload: Dict[str, Any]) -> QuestionnaireDefinition:
    """Build a :class:`QuestionnaireDefinition` from a decoded schema payload."""

    data = _ensure_mapping(payload)
    sections = tuple(_parse_section(item) for item in _ensure_sequence(data.get("sections")))
    if not sections:
        raise QuestionnaireSchemaError(f"Questionnaire '{key}' does not define any sections.")

    keys = [section.key for section in sections]
    if len(set(keys)) != len(keys):
        raise QuestionnaireSchemaError(f"Questionnaire '{key}' has duplicate section keys.")

    return QuestionnaireDefinition(
        key=_clean_text(data.get("key")) or key,
        title=_derive_label(key, data),
        version=_clean_text(data.get("version")) or "1.0.0",
        sections=sections,
    )


__all__ = [
    "COMPLIANCE_FLAGS",
    "DEFAULT_QUESTIONNAIRE_KEY",
    "Question",
    "QuestionnaireDefinition",
    "Section",
    "ValidationRule",
    "definition_from_payload",
    "is_high_risk",
]
