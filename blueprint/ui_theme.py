"""Shared look and feel for the vendor intake and dashboard pages."""

from __future__ import annotations

import html
from typing import Any, Optional, Sequence

import streamlit as st


_THEME_CSS = """
<style>
:root {
    --app-accent: #0F766E;
    --app-accent-soft: #E6F4F1;
    --app-surface: #FFFFFF;
    --app-border: rgba(15, 118, 110, 0.18);
    --app-shadow: 0 14px 32px rgba(15, 23, 42, 0.07);
    --app-text: #1F2933;
    --app-muted: #52606D;
    --app-critical: #B91C1C;
    --app-high: #C2410C;
    --app-medium: #A16207;
    --app-ai: #6D28D9;
}

html, body {
    font-family: "Inter", "Segoe UI", system-ui, -apple-system, sans-serif;
    color: var(--app-text);
}

[data-testid="stAppViewContainer"] {
    background: linear-gradient(180deg, #F0FDFA 0%, #FFFFFF 55%);
}

.block-container {
    padding-top: 2rem;
    padding-bottom: 3rem;
}

.app-header {
    display: flex;
    align-items: center;
    gap: 1.25rem;
    padding: 1.5rem 1.75rem;
    background: var(--app-surface);
    border-radius: 1.25rem;
    border: 1px solid var(--app-border);
    box-shadow: var(--app-shadow);
    margin-bottom: 1.75rem;
}

.app-header__icon {
    font-size: 2.5rem;
    line-height: 1;
}

.app-header__title {
    margin: 0;
    font-size: 2rem;
    font-weight: 700;
}

.app-header__subtitle {
    margin: 0.25rem 0 0 0;
    color: var(--app-muted);
}

.app-card {
    background: var(--app-surface);
    border-radius: 1.25rem;
    border: 1px solid var(--app-border);
    box-shadow: var(--app-shadow);
    padding: 1.5rem 1.75rem;
    margin-bottom: 1.25rem;
}

.app-card--compact {
    padding: 1rem 1.25rem;
}

.app-card__title {
    margin: 0 0 0.75rem 0;
    font-size: 1.2rem;
    font-weight: 600;
}

.app-muted {
    color: var(--app-muted);
}

.app-steps {
    list-style: none;
    display: flex;
    flex-wrap: wrap;
    gap: 0.5rem;
    margin: 0 0 1rem 0;
    padding: 0;
}

.app-steps li {
    padding: 0.35rem 0.85rem;
    border-radius: 999px;
    background: var(--app-accent-soft);
    color: var(--app-muted);
    font-size: 0.9rem;
}

.app-steps li.app-steps__item--current {
    background: var(--app-accent);
    color: white;
    font-weight: 600;
}

.app-steps li.app-steps__item--error {
    border: 1px solid var(--app-critical);
}

.app-flag-badges {
    display: flex;
    flex-wrap: wrap;
    gap: 0.5rem;
    margin-top: 0.35rem;
}

.app-flag-badge {
    display: inline-flex;
    align-items: center;
    gap: 0.4rem;
    padding: 0.3rem 0.75rem;
    border-radius: 999px;
    font-size: 0.85rem;
    color: white;
}

.app-flag-badge__category {
    font-weight: 700;
}

.app-flag-badge--coppa {
    background: var(--app-critical);
}

.app-flag-badge--ferpa,
.app-flag-badge--ppra {
    background: var(--app-high);
}

.app-flag-badge--security {
    background: var(--app-medium);
}

.app-flag-badge--ai {
    background: var(--app-ai);
}

.app-flag-badge--other {
    background: var(--app-muted);
}
</style>
"""


def apply_app_theme(page_title: str, page_icon: Optional[str] = None) -> None:
    """Set up consistent page configuration and inject the shared CSS theme."""

    st.set_page_config(
        page_title=page_title,
        page_icon=page_icon,
        layout="wide",
        initial_sidebar_state="expanded",
    )
    st.markdown(_THEME_CSS, unsafe_allow_html=True)


def page_header(
    title: str,
    subtitle: Optional[str] = None,
    icon: Optional[str] = None,
    *,
    container: Optional[Any] = None,
) -> None:
    """Render the page title block with an optional subtitle and icon."""

    icon_markup = f"<span class='app-header__icon'>{icon}</span>" if icon else ""
    subtitle_markup = f"<p class='app-header__subtitle'>{subtitle}</p>" if subtitle else ""
    target = container.markdown if container is not None else st.markdown
    target(
        f"<div class='app-header'>{icon_markup}<div>"
        f"<h1 class='app-header__title'>{title}</h1>{subtitle_markup}"
        "</div></div>",
        unsafe_allow_html=True,
    )


def render_card(content: str, title: Optional[str] = None, *, compact: bool = False) -> None:
    """Render pre-formatted HTML content inside a themed surface."""

    class_attr = "app-card app-card--compact" if compact else "app-card"
    heading = f"<h3 class='app-card__title'>{title}</h3>" if title else ""
    st.markdown(f"<div class='{class_attr}'>{heading}{content}</div>", unsafe_allow_html=True)


def section_steps_html(
    titles: Sequence[str],
    current_index: int,
    error_indexes: Sequence[int] = (),
) -> str:
    """Return the section progress strip shown above the intake form."""

    items = []
    for index, title in enumerate(titles):
        classes = []
        if index == current_index:
            classes.append("app-steps__item--current")
        if index in error_indexes:
            classes.append("app-steps__item--error")
        class_attr = f" class='{' '.join(classes)}'" if classes else ""
        items.append(f"<li{class_attr}>{index + 1}. {html.escape(title)}</li>")
    return "<ul class='app-steps'>" + "".join(items) + "</ul>"


__all__ = ["apply_app_theme", "page_header", "render_card", "section_steps_html"]
