"""Streamlit page that walks a requester through the vendor intake questionnaire."""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from typing import Any, Dict, List, Optional

import requests
import streamlit as st

from blueprint.errors import BlueprintError, FieldValueError, SubmissionError
from blueprint.form_store import default_questionnaire
from blueprint.intake_form import IntakeFormController, error_key
from blueprint.questionnaire import Question, QuestionnaireDefinition, is_high_risk
from blueprint.risk_display import (
    assessment_report,
    flag_count_label,
    flags_to_badges_html,
    flags_to_markdown,
    summarise_flags,
)
from blueprint.submission_storage import make_draft_handler, make_submission_handler
from blueprint.supabase_backend import SupabaseBackend, backend_from_settings, supabase_settings
from blueprint.ui_theme import apply_app_theme, page_header, section_steps_html

logger = logging.getLogger(__name__)

CONTROLLER_STATE_KEY = "vendor_intake_controller"
LAST_SUBMISSION_STATE_KEY = "vendor_intake_last_submission"
WIDGET_PREFIX = "intake_"
UNSELECTED_LABEL = "— Select an option —"
URGENCY_OPTIONS = ("low", "medium", "high")
SUMMARY_LIMIT = 3


def _secrets_dict(name: str) -> Dict[str, Any]:
    """Return a mapping stored under ``name`` in Streamlit secrets."""

    try:
        value = st.secrets.get(name, {})  # type: ignore[arg-type]
    except FileNotFoundError:
        return {}
    if isinstance(value, Mapping):
        return dict(value)
    return {}


def get_backend() -> Optional[SupabaseBackend]:
    """Return the configured Supabase backend or ``None``."""

    return backend_from_settings(supabase_settings(_secrets_dict("supabase")))


def _unconfigured_submit(_: Dict[str, Any]) -> str:
    raise SubmissionError("Supabase configuration is required to submit vendor assessments.")


def get_controller(definition: QuestionnaireDefinition) -> IntakeFormController:
    """Return the controller kept for this browser session."""

    controller = st.session_state.get(CONTROLLER_STATE_KEY)
    if not isinstance(controller, IntakeFormController):
        controller = IntakeFormController(definition, _unconfigured_submit)
        st.session_state[CONTROLLER_STATE_KEY] = controller
    return controller


def _widget_key(section_key: str, question_id: str) -> str:
    return f"{WIDGET_PREFIX}{section_key}_{question_id}"


def _reset_widgets() -> None:
    for key in [key for key in st.session_state.keys() if str(key).startswith(WIDGET_PREFIX)]:
        del st.session_state[key]


def _question_label(question: Question) -> str:
    label = question.label
    if question.required:
        label += " *"
    if is_high_risk(question):
        label += " ⚠️"
    return label


def _apply_widget_value(
    controller: IntakeFormController, section_key: str, question_id: str, widget_key: str
) -> None:
    """Copy a widget's new value into the controller before the page reruns."""

    value = st.session_state.get(widget_key)
    if value == UNSELECTED_LABEL:
        value = ""
    try:
        controller.set_field(section_key, question_id, value)
    except FieldValueError as exc:
        controller.errors[error_key(section_key, question_id)] = str(exc)


def render_question(controller: IntakeFormController, section_key: str, question: Question) -> None:
    """Render a widget for ``question``; changes reach the controller through ``on_change``."""

    widget_key = _widget_key(section_key, question.id)
    current = controller.get_field(section_key, question.id)
    label = _question_label(question)
    help_text = question.help_text or question.description
    widget_options = {
        "key": widget_key,
        "help": help_text,
        "on_change": _apply_widget_value,
        "args": (controller, section_key, question.id, widget_key),
    }

    if question.type == "boolean":
        st.checkbox(label, value=bool(current), **widget_options)
    elif question.type == "number":
        st.number_input(label, value=current, step=1, placeholder=question.placeholder, **widget_options)
    elif question.type == "textarea":
        st.text_area(label, value=current or "", placeholder=question.placeholder, **widget_options)
    elif question.type == "select":
        choices = [UNSELECTED_LABEL, *question.options]
        index = choices.index(current) if current in question.options else 0
        st.selectbox(label, choices, index=index, **widget_options)
    elif question.type == "multiselect":
        default = [item for item in current or [] if item in question.options]
        st.multiselect(label, list(question.options), default=default, **widget_options)
    else:
        st.text_input(label, value=current or "", placeholder=question.placeholder, **widget_options)

    message = controller.errors.get(error_key(section_key, question.id))
    if message:
        st.caption(f":red[{message}]")


def render_risk_summary(controller: IntakeFormController) -> None:
    """Show the risk flags raised by the answers so far."""

    flags = controller.risk_flags
    if not flags:
        return
    lines = "\n".join(f"- {line}" for line in summarise_flags(flags, limit=SUMMARY_LIMIT))
    st.warning(f"**Compliance risks detected ({flag_count_label(flags)}):**\n\n{lines}")
    if len(flags) > SUMMARY_LIMIT:
        with st.expander("Show all risks"):
            st.markdown(flags_to_markdown(flags))


def risk_report(controller: IntakeFormController) -> str:
    """Return the markdown report for the current answers and their flags."""

    return assessment_report(controller.snapshot(), controller.risk_flags)


def _report_file_name(controller: IntakeFormController) -> str:
    vendor = str(controller.get_field("basicInfo", "vendor_name") or "").strip().lower()
    slug = re.sub(r"[^a-z0-9]+", "-", vendor).strip("-") or "vendor"
    return f"{slug}-risk-report.md"


def _error_section_indexes(controller: IntakeFormController) -> List[int]:
    return [
        index
        for index, section in enumerate(controller.sections)
        if controller.section_errors(section.key)
    ]


def _submit(controller: IntakeFormController, backend: Optional[SupabaseBackend], urgency: str, notes: str) -> None:
    if backend is None:
        st.error("Supabase configuration is required to submit vendor assessments.")
        return
    controller.submit_handler = make_submission_handler(backend, urgency=urgency, notes=notes)
    try:
        submission_id = controller.submit()
    except SubmissionError as exc:
        cause = exc.__cause__
        if isinstance(cause, requests.RequestException):
            st.error("Unable to reach Supabase right now. Your answers are still here; please try again.")
        else:
            st.error(str(exc))
        return

    if submission_id is None:
        failing = _error_section_indexes(controller)
        if failing:
            controller.go_to(failing[0])
        st.rerun()
        return

    st.session_state[LAST_SUBMISSION_STATE_KEY] = {
        "id": submission_id,
        "vendor": controller.get_field("basicInfo", "vendor_name"),
        "flags": list(controller.risk_flags),
    }
    controller.start_new_draft()
    _reset_widgets()
    st.rerun()


def _save_draft(controller: IntakeFormController, backend: Optional[SupabaseBackend]) -> None:
    if backend is None:
        st.error("Supabase configuration is required to save drafts.")
        return
    controller.draft_handler = make_draft_handler(backend)
    try:
        draft_id = controller.save_draft()
    except BlueprintError as exc:
        st.error(str(exc))
        return
    st.success(f"Draft saved with ID `{draft_id}`.")


def main() -> None:
    """Render the vendor intake page."""

    apply_app_theme(page_title="Vendor intake", page_icon="🛡️")
    page_header(
        "Vendor intake",
        "Tell us about the vendor so privacy and security reviewers can assess it.",
        icon="🛡️",
    )

    try:
        definition = default_questionnaire()
    except (OSError, ValueError) as exc:
        logger.exception("Failed to load the vendor intake questionnaire.")
        st.error(f"The vendor intake questionnaire could not be loaded: {exc}")
        return

    backend = get_backend()
    if backend is None:
        st.error(
            "Supabase is not configured. Add a `[supabase]` section with `url` and `key` "
            "to `.streamlit/secrets.toml` to submit assessments."
        )

    last_submission = st.session_state.pop(LAST_SUBMISSION_STATE_KEY, None)
    if isinstance(last_submission, dict):
        st.success(
            f"Thank you! The assessment for {last_submission.get('vendor') or 'the vendor'} "
            f"was submitted with ID `{last_submission.get('id')}`."
        )
        if last_submission.get("flags"):
            st.markdown(flags_to_badges_html(last_submission["flags"]), unsafe_allow_html=True)

    controller = get_controller(definition)
    section = controller.current_section

    st.progress(int(round(controller.progress)), text=f"{round(controller.progress)}% complete")
    st.markdown(
        section_steps_html(
            [item.title for item in controller.sections],
            controller.current_section_index,
            _error_section_indexes(controller),
        ),
        unsafe_allow_html=True,
    )
    render_risk_summary(controller)

    st.subheader(section.title)
    if section.description:
        st.caption(section.description)
    if controller.section_errors(section.key):
        st.error("Please fix the highlighted questions before continuing.")

    for question in controller.visible_questions():
        render_question(controller, section.key, question)

    urgency = "medium"
    notes = ""
    if controller.is_last_section:
        st.markdown("---")
        urgency = st.selectbox("Requested urgency", URGENCY_OPTIONS, index=1, key=f"{WIDGET_PREFIX}urgency")
        notes = st.text_area("Notes for reviewers", key=f"{WIDGET_PREFIX}notes")

    previous_col, draft_col, report_col, next_col = st.columns(4)
    with previous_col:
        if st.button("Previous", disabled=controller.is_first_section, use_container_width=True):
            controller.previous()
            st.rerun()
    with draft_col:
        if st.button("Save draft", use_container_width=True):
            _save_draft(controller, backend)
    with report_col:
        st.download_button(
            "Download risk report",
            data=risk_report(controller),
            file_name=_report_file_name(controller),
            mime="text/markdown",
            use_container_width=True,
        )
    with next_col:
        if controller.is_last_section:
            if st.button(
                "Submit assessment",
                type="primary",
                disabled=controller.is_submitting,
                use_container_width=True,
            ):
                _submit(controller, backend, urgency, notes)
        elif st.button("Next", type="primary", use_container_width=True):
            controller.next()
            st.rerun()


if __name__ == "__main__":
    main()
