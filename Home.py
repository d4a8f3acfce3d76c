"""Streamlit home screen introducing the vendor intake questionnaire."""

from __future__ import annotations

from typing import Any, Dict, List

import pandas as pd
import streamlit as st

from blueprint.form_store import default_questionnaire
from blueprint.questionnaire import COMPLIANCE_FLAGS, QuestionnaireDefinition, is_high_risk
from blueprint.ui_theme import apply_app_theme, page_header, render_card


@st.cache_resource(show_spinner=False)
def load_definition() -> QuestionnaireDefinition:
    """Load the bundled vendor intake questionnaire."""

    return default_questionnaire()


def section_overview(definition: QuestionnaireDefinition) -> List[Dict[str, Any]]:
    """Return one summary row per questionnaire section."""

    rows: List[Dict[str, Any]] = []
    for index, section in enumerate(definition.sections, start=1):
        rows.append(
            {
                "Step": index,
                "Section": section.title,
                "Questions": len(section.questions),
                "Required": sum(1 for question in section.questions if question.required),
                "High risk": sum(1 for question in section.questions if is_high_risk(question)),
            }
        )
    return rows


def compliance_coverage(definition: QuestionnaireDefinition) -> List[Dict[str, Any]]:
    """Return the number of questions tagged with each regulation."""

    rows = []
    for flag in sorted(COMPLIANCE_FLAGS):
        questions = definition.questions_by_compliance_flag(flag)
        if questions:
            rows.append({"Regulation": flag, "Questions": len(questions)})
    return rows


def main() -> None:
    """Render the home page."""

    apply_app_theme(page_title="AI Blueprint vendor intake", page_icon="🛡️")
    page_header(
        "AI Blueprint vendor intake",
        "Assess education technology vendors for privacy, security and AI risk.",
        icon="🛡️",
    )

    try:
        definition = load_definition()
    except (OSError, ValueError) as exc:
        st.error(f"The vendor intake questionnaire could not be loaded: {exc}")
        return

    render_card(
        "<p>The intake questionnaire collects what reviewers need to know about a vendor "
        "before it is approved for classroom or district use. Answers are checked against "
        "COPPA, FERPA and PPRA rules as you go, and any risks are highlighted before you "
        "submit.</p>",
        title=f"{definition.title} · v{definition.version}",
    )

    metric_cols = st.columns(3)
    metric_cols[0].metric("Sections", len(definition.sections))
    metric_cols[1].metric("Questions", len(definition.all_questions()))
    metric_cols[2].metric("Maximum risk score", definition.max_risk_score())

    st.markdown("#### Sections")
    st.dataframe(pd.DataFrame(section_overview(definition)), hide_index=True, use_container_width=True)

    coverage = compliance_coverage(definition)
    if coverage:
        st.markdown("#### Regulatory coverage")
        st.dataframe(pd.DataFrame(coverage), hide_index=True, use_container_width=True)

    st.markdown("---")
    st.page_link("pages/01_Vendor_Intake.py", label="Start a vendor intake", icon="🛡️")
    st.page_link("pages/02_Executive_Dashboard.py", label="Open the executive dashboard", icon="📊")


if __name__ == "__main__":
    main()
