"""Executive dashboard: readiness, adoption and watchlist views."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd
import requests
import streamlit as st

from blueprint.dashboard import DashboardFilters, DashboardService, readiness_report
from blueprint.supabase_backend import backend_from_settings, supabase_settings
from blueprint.ui_theme import apply_app_theme, page_header

logger = logging.getLogger(__name__)

RISK_LEVEL_OPTIONS = ("All", "critical", "high", "medium", "low")


def _secrets_dict(name: str) -> Dict[str, Any]:
    """Return a mapping stored under ``name`` in Streamlit secrets."""

    try:
        value = st.secrets.get(name, {})  # type: ignore[arg-type]
    except FileNotFoundError:
        return {}
    if isinstance(value, Mapping):
        return dict(value)
    return {}


def _frame(rows: Sequence[Dict[str, Any]], columns: Optional[List[str]] = None) -> pd.DataFrame:
    """Return ``rows`` as a DataFrame with human-friendly column titles."""

    frame = pd.DataFrame(list(rows), columns=columns)
    frame.columns = [str(column).replace("_", " ").capitalize() for column in frame.columns]
    return frame


def _show_table(rows: Sequence[Dict[str, Any]], empty_message: str, columns: Optional[List[str]] = None) -> None:
    if not rows:
        st.caption(empty_message)
        return
    st.dataframe(_frame(rows, columns), hide_index=True, use_container_width=True)


def sidebar_filters() -> DashboardFilters:
    """Render the shared filter controls and return the selection."""

    st.sidebar.header("Filters")
    department = st.sidebar.text_input("Department", help="Exact department name; leave blank for all.")
    risk_level = st.sidebar.selectbox("Risk level", RISK_LEVEL_OPTIONS)
    category = st.sidebar.text_input("Category", help="Tool or contract category.")
    return DashboardFilters(
        department=department.strip() or None,
        risk_level=None if risk_level == "All" else risk_level,
        category=category.strip() or None,
    )


def render_readiness(metrics: Dict[str, Any]) -> None:
    scores = metrics["assessment_scores"]
    completion = metrics["completion_rates"]
    distribution = metrics["risk_distribution"]

    score_col, completion_col, risk_col = st.columns(3)
    score_col.metric(
        "Assessment score",
        scores["current"],
        delta=scores["change"] if scores["trend"] != "stable" else None,
        help="Average completed assessment score over the last 30 days.",
    )
    completion_col.metric(
        "Completion rate",
        f"{completion['percentage']}%",
        help=f"{completion['completed_assessments']} of {completion['total_assessments']} assessments.",
    )
    risk_col.metric("Open risks", sum(distribution.values()))

    trend = pd.DataFrame(metrics["trend_data"])
    if not trend.empty:
        st.line_chart(trend.set_index("date")[["score", "completions", "risks"]])

    st.markdown("#### Risk distribution")
    st.bar_chart(pd.Series(distribution, name="Open risks"))

    st.markdown("#### Open risks")
    _show_table(
        metrics["open_risks"],
        "No open risks.",
        ["title", "level", "category", "department", "assigned_to", "due_date"],
    )

    report = readiness_report(metrics)
    st.download_button("Download readiness report", report, file_name="readiness_report.txt")


def render_adoption(metrics: Dict[str, Any]) -> None:
    policies = metrics["policies_approved"]
    development = metrics["professional_development"]
    tools = metrics["approved_tools"]

    policy_col, pd_col, tools_col = st.columns(3)
    policy_col.metric("Policies approved", policies["total"], delta=f"{policies['this_month']} this month")
    pd_col.metric("PD completion rate", f"{development['completion_rate']}%")
    tools_col.metric("Approved tools", tools["total"])

    st.markdown("#### Policies by department")
    _show_table(policies["by_department"], "No approved policies yet.")
    st.markdown("#### Recent policy approvals")
    _show_table(policies["recent_approvals"], "No approvals recorded.")

    st.markdown("#### Professional development")
    _show_table(development["by_department"], "No completions recorded.")
    _show_table(development["upcoming_sessions"], "No upcoming sessions scheduled.")

    st.markdown("#### Approved tools by category")
    _show_table(tools["by_category"], "No approved tools.")
    st.markdown("#### Recently approved tools")
    _show_table(tools["recent_approvals"], "No approved tools.")


def render_watchlist(metrics: Dict[str, Any]) -> None:
    pending = metrics["pending_approvals"]
    renewals = metrics["vendor_renewals"]

    pending_col, overdue_col, upcoming_col = st.columns(3)
    pending_col.metric("Pending approvals", pending["total"])
    overdue_col.metric("Overdue renewals", len(renewals["overdue"]))
    upcoming_col.metric("Renewals in 90 days", len(renewals["upcoming"]))

    st.markdown("#### Action items")
    _show_table(
        metrics["action_items"],
        "Nothing needs attention right now.",
        ["title", "description", "priority", "assigned_to", "due_date", "department"],
    )

    st.markdown("#### Pending vendor intakes")
    _show_table(pending["vendors"], "No vendor intakes awaiting review.")
    st.markdown("#### Pending policies")
    _show_table(pending["policies"], "No policies awaiting approval.")
    st.markdown("#### Pending assessments")
    _show_table(pending["assessments"], "No assessments pending.")

    st.markdown("#### Contract renewals")
    _show_table(renewals["overdue"] + renewals["upcoming"], "No renewals due in the next 90 days.")


def main() -> None:
    """Render the executive dashboard page."""

    apply_app_theme(page_title="Executive dashboard", page_icon="📊")
    page_header(
        "Executive dashboard",
        "Readiness, adoption and items that need attention across the district.",
        icon="📊",
    )

    backend = backend_from_settings(supabase_settings(_secrets_dict("supabase")))
    if backend is None:
        st.error(
            "Supabase is not configured. Add a `[supabase]` section with `url` and `key` "
            "to `.streamlit/secrets.toml` to load the dashboard."
        )
        return

    service = DashboardService(backend)
    filters = sidebar_filters()

    readiness_tab, adoption_tab, watchlist_tab = st.tabs(["Readiness", "Adoption", "Watchlist"])
    views = (
        (readiness_tab, service.readiness_metrics, render_readiness),
        (adoption_tab, service.adoption_metrics, render_adoption),
        (watchlist_tab, service.watchlist_metrics, render_watchlist),
    )
    for tab, load, render in views:
        with tab:
            try:
                metrics = load(filters)
            except requests.RequestException as exc:
                st.error(f"Unable to load dashboard data from Supabase: {exc}")
                continue
            render(metrics)


if __name__ == "__main__":
    main()
