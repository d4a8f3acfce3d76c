"""Helpers for presenting compliance risk flags consistently across pages."""

from __future__ import annotations

import html
from collections.abc import Iterable, Mapping, Sequence
from typing import Any, Dict, List, Tuple


FLAG_CATEGORIES: Dict[str, Tuple[str, str]] = {
    "coppa": ("🔴", "COPPA"),
    "ferpa": ("🟠", "FERPA"),
    "ppra": ("🟠", "PPRA"),
    "security": ("🟡", "Security"),
    "ai risk": ("🟣", "AI Risk"),
}

FLAG_BADGE_CLASSES: Dict[str, str] = {
    "coppa": "app-flag-badge--coppa",
    "ferpa": "app-flag-badge--ferpa",
    "ppra": "app-flag-badge--ppra",
    "security": "app-flag-badge--security",
    "ai risk": "app-flag-badge--ai",
}


def _clean_text(value: Any) -> str:
    """Return ``value`` converted to a trimmed string."""

    if isinstance(value, str):
        return value.strip()
    if value is None:
        return ""
    return str(value).strip()


def _ensure_sequence(value: Any) -> Sequence[Any]:
    """Return a safe sequence representation of ``value``."""

    if isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
        return value
    if value is None:
        return []
    return [value]


def flag_category(flag: Any) -> str:
    """Return the lower-case category prefix of ``flag`` (``"coppa"``, ``"security"``...)."""

    text = _clean_text(flag)
    prefix, separator, _ = text.partition(":")
    if not separator:
        return "other"
    key = prefix.strip().lower()
    return key if key in FLAG_CATEGORIES else "other"


def normalise_flag_entries(flags: Any) -> List[Dict[str, str]]:
    """Return de-duplicated flag entries split into category and detail."""

    entries: List[Dict[str, str]] = []
    seen = set()
    for item in _ensure_sequence(flags):
        text = _clean_text(item)
        if not text or text in seen:
            continue
        seen.add(text)

        category = flag_category(text)
        _, default_label = FLAG_CATEGORIES.get(category, ("⚪", "Other"))
        detail = text.partition(":")[2].strip() if category != "other" else text
        entries.append(
            {
                "flag": text,
                "category": category,
                "category_label": default_label,
                "detail": detail or text,
            }
        )
    return entries


def group_flags_by_category(flags: Any) -> Dict[str, List[str]]:
    """Return flag details keyed by category label, in order of appearance."""

    grouped: Dict[str, List[str]] = {}
    for entry in normalise_flag_entries(flags):
        grouped.setdefault(entry["category_label"], []).append(entry["detail"])
    return grouped


def flag_count_label(flags: Any) -> str:
    count = len(normalise_flag_entries(flags))
    return f"{count} Risk{'' if count == 1 else 's'}"


def summarise_flags(flags: Any, limit: int = 3) -> List[str]:
    """Return the first ``limit`` flags followed by a "... and N more" line."""

    texts = [entry["flag"] for entry in normalise_flag_entries(flags)]
    summary = texts[:limit]
    if len(texts) > limit:
        summary.append(f"... and {len(texts) - limit} more")
    return summary


def flags_to_markdown(flags: Iterable[Any]) -> str:
    """Return a newline-separated list of ``flags`` with colour icons."""

    lines: List[str] = []
    for entry in normalise_flag_entries(list(flags)):
        emoji, _ = FLAG_CATEGORIES.get(entry["category"], ("⚪", "Other"))
        lines.append(f"- {emoji} **{entry['category_label']}** · {entry['detail']}")
    return "\n".join(lines)


def flags_to_badges_html(flags: Iterable[Any]) -> str:
    """Return HTML markup representing ``flags`` as styled badges."""

    entries = normalise_flag_entries(list(flags))
    if not entries:
        return ""

    badges: List[str] = []
    for entry in entries:
        css_class = FLAG_BADGE_CLASSES.get(entry["category"], "app-flag-badge--other")
        badge = (
            "<span class='app-flag-badge {css}'>"
            "<span class='app-flag-badge__category'>{category}</span>"
            "<span class='app-flag-badge__detail'>{detail}</span>"
            "</span>"
        ).format(
            css=css_class,
            category=html.escape(entry["category_label"]),
            detail=html.escape(entry["detail"]),
        )
        badges.append(badge)

    return "<div class='app-flag-badges'>" + "".join(badges) + "</div>"


def assessment_report(assessment: Mapping[str, Any], flags: Iterable[Any]) -> str:
    """Return a markdown summary of a vendor and the flags its answers raise."""

    basic = assessment.get("basicInfo") or assessment.get("basic_info") or {}
    vendor = _clean_text(basic.get("vendor_name")) or "Unnamed vendor"
    lines = [f"## {vendor}"]

    details = [
        ("Website", _clean_text(basic.get("vendor_url"))),
        ("Category", _clean_text(basic.get("service_category"))),
        ("Contact", _clean_text(basic.get("contact_name"))),
        ("Email", _clean_text(basic.get("contact_email"))),
    ]
    for label, value in details:
        if value:
            lines.append(f"- **{label}:** {value}")

    justification = _clean_text(basic.get("business_justification"))
    if justification:
        lines.extend(["", justification])

    entries = normalise_flag_entries(list(flags))
    lines.append("")
    if not entries:
        lines.append("No compliance risks were flagged.")
        return "\n".join(lines)

    lines.append(f"### Compliance risks ({len(entries)})")
    for label, details_list in group_flags_by_category([entry["flag"] for entry in entries]).items():
        lines.append(f"**{label}**")
        lines.extend(f"- {detail}" for detail in details_list)
    return "\n".join(lines)


__all__ = [
    "assessment_report",
    "flag_category",
    "flag_count_label",
    "flags_to_badges_html",
    "flags_to_markdown",
    "group_flags_by_category",
    "normalise_flag_entries",
    "summarise_flags",
]
