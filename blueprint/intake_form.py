"""Multi-section vendor intake form: navigation, validation and submission."""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from typing import Any, Callable, Dict, List, Optional, Tuple

from blueprint.assessment import VendorAssessment, empty_assessment
from blueprint.conditions import hidden_questions
from blueprint.errors import SubmissionError, UnknownFieldError
from blueprint.questionnaire import Question, QuestionnaireDefinition, Section
from blueprint.risk_flags import evaluate

logger = logging.getLogger(__name__)

SubmitHandler = Callable[[Dict[str, Any]], Any]
DraftHandler = Callable[[Dict[str, Any]], Any]


def error_key(section_key: str, question_id: str) -> str:
    """Return the key under which a field's validation error is stored."""

    return f"{section_key}.{question_id}"


def is_empty_answer(value: Any) -> bool:
    """Return ``True`` when ``value`` does not count as an answer.

    ``None``, blank strings and empty collections are empty. ``False`` and
    ``0`` are answers.
    """

    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, set, frozenset)):
        return len(value) == 0
    return False


def _as_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def validate_answer(question: Question, value: Any) -> Optional[str]:
    """Return the validation message for ``value`` or ``None`` if it passes.

    When more than one check fails the last one wins, in the order required,
    minimum, maximum, pattern.
    """

    message: Optional[str] = None
    if question.required and is_empty_answer(value):
        message = f"{question.label} is required"

    rule = question.validation
    if rule is None or is_empty_answer(value):
        return message

    number = _as_number(value)
    if rule.min is not None and number is not None and number < rule.min:
        message = f"{question.label} must be at least {rule.min}"
    if rule.max is not None and number is not None and number > rule.max:
        message = f"{question.label} must be at most {rule.max}"
    if rule.pattern and not re.search(rule.pattern, str(value)):
        message = rule.message or f"{question.label} format is invalid"
    return message


class IntakeFormController:
    """Owns one in-progress :class:`VendorAssessment` for a single session.

    The controller holds no client of its own: the finished record is handed
    to ``submit_handler`` and partial drafts to ``draft_handler``.
    """

    def __init__(
        self,
        definition: QuestionnaireDefinition,
        submit_handler: SubmitHandler,
        *,
        draft_handler: Optional[DraftHandler] = None,
        initial_data: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self.definition = definition
        self.submit_handler = submit_handler
        self.draft_handler = draft_handler
        self.current_section_index = 0
        self.errors: Dict[str, str] = {}
        self.is_submitting = False
        self.submitted = False
        self.assessment = (
            VendorAssessment.from_payload(initial_data) if initial_data else empty_assessment()
        )
        self.risk_flags: List[str] = evaluate(self.assessment)

    # Navigation -------------------------------------------------------------

    @property
    def sections(self) -> Tuple[Section, ...]:
        return self.definition.sections

    @property
    def current_section(self) -> Section:
        return self.sections[self.current_section_index]

    @property
    def is_first_section(self) -> bool:
        return self.current_section_index == 0

    @property
    def is_last_section(self) -> bool:
        return self.current_section_index == len(self.sections) - 1

    @property
    def progress(self) -> float:
        """Percentage of sections reached, counting the current one."""

        return (self.current_section_index + 1) / len(self.sections) * 100

    def next(self) -> bool:
        """Validate the current section and advance when it passes."""

        if not self.validate_section(self.current_section_index):
            logger.debug("Section %s has errors; staying put.", self.current_section.key)
            return False
        if not self.is_last_section:
            self.current_section_index += 1
        return True

    def previous(self) -> None:
        """Go back one section without validating."""

        if self.current_section_index > 0:
            self.current_section_index -= 1

    def go_to(self, index: int) -> None:
        """Jump straight to the section at ``index``."""

        if not 0 <= index < len(self.sections):
            raise IndexError(f"Section index {index} is out of range.")
        self.current_section_index = index

    # Fields -----------------------------------------------------------------

    def _section(self, section_key: str) -> Section:
        try:
            return self.definition.get_section(section_key)
        except KeyError:
            raise UnknownFieldError(f"Unknown questionnaire section '{section_key}'.") from None

    def _section_values(self, section: Section) -> Dict[str, Any]:
        return self.assessment.section(section.key).model_dump()

    def get_field(self, section_key: str, question_id: str) -> Any:
        return self.assessment.get_value(section_key, question_id)

    def set_field(self, section_key: str, question_id: str, value: Any) -> None:
        """Store an answer, clear its error and recompute the risk flags."""

        section = self._section(section_key)
        if section.question(question_id) is None:
            raise UnknownFieldError(f"Unknown question '{section_key}.{question_id}'.")

        self.assessment.set_value(section_key, question_id, value)
        self.errors.pop(error_key(section_key, question_id), None)
        self.risk_flags = evaluate(self.assessment)

    def visible_questions(self, section_index: Optional[int] = None) -> List[Question]:
        """Return the questions of a section that are not hidden by its rules."""

        index = self.current_section_index if section_index is None else section_index
        section = self.sections[index]
        hidden = hidden_questions(section, self._section_values(section))
        return [question for question in section.questions if question.id not in hidden]

    def is_question_visible(self, section_key: str, question_id: str) -> bool:
        section = self._section(section_key)
        return question_id not in hidden_questions(section, self._section_values(section))

    # Validation -------------------------------------------------------------

    def section_errors(self, section_key: str) -> Dict[str, str]:
        prefix = f"{section_key}."
        return {key: message for key, message in self.errors.items() if key.startswith(prefix)}

    def validate_section(self, index: int) -> bool:
        """Validate the visible questions of one section.

        Errors previously recorded for the section are replaced by the result
        of this pass. Returns ``True`` when the section has no errors.
        """

        section = self.sections[index]
        values = self._section_values(section)
        for key in self.section_errors(section.key):
            del self.errors[key]

        new_errors: Dict[str, str] = {}
        for question in self.visible_questions(index):
            message = validate_answer(question, values.get(question.id))
            if message:
                new_errors[error_key(section.key, question.id)] = message

        self.errors.update(new_errors)
        return not new_errors

    def validate_all(self) -> bool:
        """Validate every section, whether or not it has been visited."""

        results = [self.validate_section(index) for index in range(len(self.sections))]
        return all(results)

    # Persistence ------------------------------------------------------------

    def snapshot(self) -> Dict[str, Any]:
        """Return a detached JSON-ready copy of the current record."""

        return self.assessment.model_copy(deep=True).to_payload()

    def submit(self) -> Any:
        """Validate every section and hand the record to the submit handler.

        Returns ``None`` when validation fails, otherwise whatever the handler
        returns. A failing handler raises :class:`SubmissionError` and leaves
        the draft untouched so the user can try again.
        """

        if self.is_submitting:
            raise SubmissionError("A submission is already in progress.")
        if not self.validate_all():
            logger.debug("Submission blocked by %d validation errors.", len(self.errors))
            return None

        self.is_submitting = True
        try:
            result = self.submit_handler(self.snapshot())
        except Exception as exc:
            logger.exception("Vendor assessment submission failed.")
            raise SubmissionError(f"Failed to submit vendor assessment: {exc}") from exc
        finally:
            self.is_submitting = False

        self.submitted = True
        logger.info("Vendor assessment submitted for %s.", self.assessment.basic_info.vendor_name)
        return result

    def save_draft(self) -> Any:
        """Hand the partial record to the draft handler."""

        if self.draft_handler is None:
            raise SubmissionError("Saving drafts is not configured for this form.")
        try:
            return self.draft_handler(self.snapshot())
        except Exception as exc:
            logger.exception("Saving the vendor assessment draft failed.")
            raise SubmissionError(f"Failed to save draft: {exc}") from exc

    def start_new_draft(self) -> None:
        """Discard the current record and start again from the first section."""

        self.assessment = empty_assessment()
        self.errors = {}
        self.current_section_index = 0
        self.submitted = False
        self.risk_flags = evaluate(self.assessment)


__all__ = [
    "IntakeFormController",
    "error_key",
    "is_empty_answer",
    "validate_answer",
]
