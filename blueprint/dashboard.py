"""Executive dashboard view models built from Supabase tables.

Each ``*_metrics`` method issues a handful of read-only queries through the
injected backend, filters and groups the rows in memory and returns a plain
dictionary ready for Streamlit to render.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional, Protocol, Sequence, Tuple

import pandas as pd

logger = logging.getLogger(__name__)

RISK_LEVELS = ("critical", "high", "medium", "low")
PRIORITY_ORDER = {"high": 3, "medium": 2, "low": 1}
TREND_DAYS = 30
RENEWAL_WINDOW_DAYS = 90
POLICY_REVIEW_DAYS = 7
UNKNOWN = "Unknown"


class RowReader(Protocol):
    def select_rows(
        self,
        table: str,
        *,
        columns: str = "*",
        filters: Sequence[Tuple[str, str]] = (),
        order: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        ...


@dataclass
class DashboardFilters:
    """Optional in-memory filters shared by every dashboard tab."""

    department: Optional[str] = None
    risk_level: Optional[str] = None
    category: Optional[str] = None


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Return an aware datetime for an ISO string, treating naive values as UTC."""

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def percentage(part: int, total: int) -> int:
    """Return ``part`` as a whole percentage of ``total``; 0 when ``total`` is 0."""

    if total <= 0:
        return 0
    return round_half_up(part / total * 100)


def days_between(later: datetime, earlier: datetime) -> int:
    """Whole days from ``earlier`` to ``later``, rounded up."""

    return math.ceil((later - earlier).total_seconds() / 86400)


def classify_trend(change: float) -> str:
    if abs(change) < 1:
        return "stable"
    return "up" if change > 0 else "down"


def aggregate_counts(rows: Sequence[Mapping[str, Any]], field: str, label: str) -> List[Dict[str, Any]]:
    """Count ``rows`` by ``field`` in order of first appearance.

    Missing or blank values are counted under ``"Unknown"``.
    """

    if not rows:
        return []
    values = pd.Series([row.get(field) or UNKNOWN for row in rows], dtype="object").astype(str)
    counts = values.groupby(values, sort=False).size()
    total = len(rows)
    return [
        {label: key, "count": int(count), "percentage": percentage(int(count), total)}
        for key, count in counts.items()
    ]


def average(values: Iterable[Any]) -> float:
    series = pd.Series(list(values), dtype="float64")
    if series.empty:
        return 0.0
    return float(series.mean())


def _embedded_risk_level(row: Mapping[str, Any]) -> str:
    """Return the risk level of the vendor intake embedded in ``row``."""

    embedded = row.get("vendor_intakes")
    if isinstance(embedded, list):
        embedded = embedded[0] if embedded else None
    if isinstance(embedded, Mapping):
        level = embedded.get("risk_level")
        if isinstance(level, str) and level:
            return level
    return "unknown"


def _matches(row: Mapping[str, Any], field: str, expected: Optional[str]) -> bool:
    return not expected or row.get(field) == expected


class DashboardService:
    """Readiness, adoption and watchlist aggregations.

    ``now`` pins the clock for reports and tests; when omitted the current UTC
    time is used on every call.
    """

    def __init__(self, backend: RowReader, *, now: Optional[datetime] = None) -> None:
        self.backend = backend
        self._now = now

    def now(self) -> datetime:
        if self._now is None:
            return datetime.now(timezone.utc)
        if self._now.tzinfo is None:
            return self._now.replace(tzinfo=timezone.utc)
        return self._now

    def _select(self, table: str, **query: Any) -> List[Dict[str, Any]]:
        try:
            rows = self.backend.select_rows(table, **query)
        except Exception:
            logger.exception("Dashboard query against %s failed.", table)
            raise
        return [row for row in rows or [] if isinstance(row, Mapping)]

    @staticmethod
    def _by_department(rows: List[Dict[str, Any]], filters: DashboardFilters) -> List[Dict[str, Any]]:
        return [row for row in rows if _matches(row, "department", filters.department)]

    # Readiness --------------------------------------------------------------

    def readiness_metrics(self, filters: Optional[DashboardFilters] = None) -> Dict[str, Any]:
        """Assessment scores, open risks and completion rates."""

        filters = filters or DashboardFilters()
        now = self.now()
        thirty_days_ago = now - timedelta(days=30)
        sixty_days_ago = now - timedelta(days=60)

        assessments = self._by_department(
            self._select(
                "assessments",
                columns="score, completed_at, department",
                filters=[
                    ("completed_at", f"gte.{sixty_days_ago.date().isoformat()}"),
                    ("status", "eq.completed"),
                ],
            ),
            filters,
        )
        dated: List[Tuple[datetime, float]] = []
        for row in assessments:
            completed_at = parse_timestamp(row.get("completed_at"))
            if completed_at is not None:
                dated.append((completed_at, float(row.get("score") or 0)))

        current_score = average(score for when, score in dated if when >= thirty_days_ago)
        previous_score = average(
            score for when, score in dated if sixty_days_ago <= when < thirty_days_ago
        )
        change = current_score - previous_score

        risk_rows = self._select(
            "risk_assessments",
            columns=(
                "id, title, description, risk_level, category, "
                "department, assigned_to, due_date, created_at, updated_at"
            ),
            filters=[("status", "eq.open")],
            order="risk_level.desc",
            limit=50,
        )
        open_risks = [
            {
                "id": row.get("id"),
                "title": row.get("title"),
                "description": row.get("description"),
                "level": row.get("risk_level"),
                "category": row.get("category"),
                "department": row.get("department"),
                "assigned_to": row.get("assigned_to"),
                "due_date": row.get("due_date"),
                "created_at": row.get("created_at"),
                "updated_at": row.get("updated_at"),
            }
            for row in risk_rows
            if _matches(row, "department", filters.department)
            and _matches(row, "risk_level", filters.risk_level)
        ]
        risk_distribution = {
            level: sum(1 for risk in open_risks if risk["level"] == level) for level in RISK_LEVELS
        }

        recent = self._by_department(
            self._select(
                "assessments",
                columns="id, status, department",
                filters=[("created_at", f"gte.{thirty_days_ago.date().isoformat()}")],
            ),
            filters,
        )
        total_count = len(recent)
        completed_count = sum(1 for row in recent if row.get("status") == "completed")

        return {
            "assessment_scores": {
                "current": round_half_up(current_score),
                "previous": round_half_up(previous_score),
                "trend": classify_trend(change),
                "change": round_half_up(change),
            },
            "risk_distribution": risk_distribution,
            "open_risks": open_risks[:20],
            "completion_rates": {
                "total_assessments": total_count,
                "completed_assessments": completed_count,
                "percentage": percentage(completed_count, total_count),
            },
            "trend_data": self._trend_points(now, dated, open_risks),
        }

    @staticmethod
    def _trend_points(
        now: datetime,
        dated: List[Tuple[datetime, float]],
        open_risks: List[Dict[str, Any]],
    ) -> List[Dict[str, Any]]:
        """One point per day for the last thirty days, oldest first."""

        risk_days: List[date] = []
        for risk in open_risks:
            created_at = parse_timestamp(risk.get("created_at"))
            if created_at is not None:
                risk_days.append(created_at.astimezone(timezone.utc).date())

        points = []
        for offset in range(TREND_DAYS - 1, -1, -1):
            day = (now - timedelta(days=offset)).astimezone(timezone.utc).date()
            scores = [score for when, score in dated if when.astimezone(timezone.utc).date() == day]
            points.append(
                {
                    "date": day.isoformat(),
                    "score": round_half_up(average(scores)),
                    "completions": len(scores),
                    "risks": risk_days.count(day),
                }
            )
        return points

    # Adoption ---------------------------------------------------------------

    def adoption_metrics(self, filters: Optional[DashboardFilters] = None) -> Dict[str, Any]:
        """Policy approvals, professional development and approved tools."""

        filters = filters or DashboardFilters()
        now = self.now()
        month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        next_month = (month_start + timedelta(days=32)).replace(day=1)

        policies = self._by_department(
            self._select(
                "policy_approvals",
                columns="id, title, department, approved_at, approved_by",
                filters=[("status", "eq.approved")],
                order="approved_at.desc",
            ),
            filters,
        )
        this_month = 0
        for policy in policies:
            approved_at = parse_timestamp(policy.get("approved_at"))
            if approved_at is not None and month_start <= approved_at < next_month:
                this_month += 1

        completions = self._by_department(
            self._select(
                "professional_development",
                columns="id, title, department, completed_at, user_id",
                filters=[("status", "eq.completed")],
            ),
            filters,
        )
        users = self._select("users", columns="id")

        sessions = self._by_department(
            self._select(
                "professional_development",
                columns="id, title, department, scheduled_at, attendee_count, status",
                filters=[
                    ("status", "eq.scheduled"),
                    ("scheduled_at", f"gte.{now.date().isoformat()}"),
                ],
                order="scheduled_at",
                limit=10,
            ),
            filters,
        )

        tools = [
            row
            for row in self._select(
                "approved_tool_catalog",
                columns="id, vendor_name, category, department, approved_at, vendor_intakes(risk_level)",
                filters=[("approved", "eq.true")],
            )
            if _matches(row, "department", filters.department)
            and _matches(row, "category", filters.category)
        ]

        return {
            "policies_approved": {
                "total": len(policies),
                "this_month": this_month,
                "by_department": aggregate_counts(policies, "department", "department"),
                "recent_approvals": [
                    {
                        "id": policy.get("id"),
                        "title": policy.get("title"),
                        "department": policy.get("department"),
                        "approved_at": policy.get("approved_at"),
                        "approved_by": policy.get("approved_by"),
                    }
                    for policy in policies[:10]
                ],
            },
            "professional_development": {
                "total_completions": len(completions),
                "completion_rate": percentage(len(completions), len(users)),
                "by_department": aggregate_counts(completions, "department", "department"),
                "upcoming_sessions": [
                    {
                        "id": session.get("id"),
                        "title": session.get("title"),
                        "department": session.get("department"),
                        "scheduled_at": session.get("scheduled_at"),
                        "attendee_count": int(session.get("attendee_count") or 0),
                        "status": session.get("status"),
                    }
                    for session in sessions
                ],
            },
            "approved_tools": {
                "total": len(tools),
                "by_department": self._tools_by_department(tools),
                "by_category": aggregate_counts(tools, "category", "category"),
                "recent_approvals": [
                    {
                        "id": tool.get("id"),
                        "vendor_name": tool.get("vendor_name"),
                        "category": tool.get("category"),
                        "department": tool.get("department"),
                        "approved_at": tool.get("approved_at"),
                        "risk_level": _embedded_risk_level(tool),
                    }
                    for tool in tools[:10]
                ],
            },
        }

    @staticmethod
    def _tools_by_department(tools: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        groups: Dict[str, List[Dict[str, Any]]] = {}
        for tool in tools:
            groups.setdefault(tool.get("department") or UNKNOWN, []).append(
                {
                    "tool_name": tool.get("vendor_name"),
                    "category": tool.get("category"),
                    "last_used": tool.get("approved_at"),
                }
            )
        return [
            {"department": department, "tools": entries, "total_tools": len(entries)}
            for department, entries in groups.items()
        ]

    # Watchlist --------------------------------------------------------------

    def watchlist_metrics(self, filters: Optional[DashboardFilters] = None) -> Dict[str, Any]:
        """Pending approvals, contract renewals and follow-up actions."""

        filters = filters or DashboardFilters()
        now = self.now()

        def days_open(row: Mapping[str, Any]) -> int:
            created_at = parse_timestamp(row.get("created_at"))
            return days_between(now, created_at) if created_at is not None else 0

        pending_policies = self._by_department(
            self._select(
                "policy_packs",
                columns="id, name, department, created_at, created_by",
                filters=[("status", "eq.pending")],
                order="created_at",
            ),
            filters,
        )
        pending_vendors = [
            row
            for row in self._select(
                "vendor_intakes",
                columns="id, vendor_name, vendor_category, created_at, risk_level",
                filters=[("status", "in.(pending,under_review)")],
                order="created_at",
            )
            if _matches(row, "risk_level", filters.risk_level)
        ]
        pending_assessments = self._by_department(
            self._select(
                "assessments",
                columns="id, title, department, created_at, created_by, assessment_type",
                filters=[("status", "eq.pending")],
                order="created_at",
            ),
            filters,
        )
        renewal_rows = [
            row
            for row in self._select(
                "vendor_contracts",
                columns=(
                    "id, vendor_name, category, department, renewal_date, "
                    "contract_value, vendor_intakes(risk_level)"
                ),
                filters=[
                    (
                        "renewal_date",
                        f"lte.{(now + timedelta(days=RENEWAL_WINDOW_DAYS)).date().isoformat()}",
                    )
                ],
                order="renewal_date",
            )
            if _matches(row, "department", filters.department)
            and _matches(row, "category", filters.category)
        ]

        upcoming: List[Dict[str, Any]] = []
        overdue: List[Dict[str, Any]] = []
        for row in renewal_rows:
            renewal_date = parse_timestamp(row.get("renewal_date"))
            if renewal_date is None:
                continue
            days_until = days_between(renewal_date, now)
            renewal = {
                "id": row.get("id"),
                "vendor_name": row.get("vendor_name"),
                "category": row.get("category"),
                "department": row.get("department"),
                "renewal_date": row.get("renewal_date"),
                "days_until_renewal": days_until,
                "contract_value": row.get("contract_value") or 0,
                "risk_level": _embedded_risk_level(row),
                "status": "overdue" if days_until < 0 else "upcoming",
            }
            (overdue if days_until < 0 else upcoming).append(renewal)

        action_items: List[Dict[str, Any]] = []
        for policy in pending_policies[:5]:
            opened = days_open(policy)
            created_at = parse_timestamp(policy.get("created_at")) or now
            action_items.append(
                {
                    "id": f"policy-{policy.get('id')}",
                    "title": f"Review Policy: {policy.get('name')}",
                    "description": f"Policy approval pending for {opened} days",
                    "type": "approval",
                    "priority": "high" if opened > POLICY_REVIEW_DAYS else "medium",
                    "assigned_to": "Policy Review Team",
                    "due_date": (created_at + timedelta(days=POLICY_REVIEW_DAYS)).date().isoformat(),
                    "department": policy.get("department"),
                    "days_overdue": opened - POLICY_REVIEW_DAYS if opened > POLICY_REVIEW_DAYS else None,
                }
            )
        for renewal in overdue[:5]:
            late = abs(renewal["days_until_renewal"])
            action_items.append(
                {
                    "id": f"renewal-{renewal['id']}",
                    "title": f"Renew Contract: {renewal['vendor_name']}",
                    "description": f"Contract renewal overdue by {late} days",
                    "type": "renewal",
                    "priority": "high",
                    "assigned_to": "Procurement Team",
                    "due_date": renewal["renewal_date"],
                    "department": renewal["department"],
                    "days_overdue": late,
                }
            )
        action_items.sort(key=lambda item: PRIORITY_ORDER.get(item["priority"], 0), reverse=True)

        return {
            "pending_approvals": {
                "policies": [
                    {
                        "id": policy.get("id"),
                        "title": policy.get("name"),
                        "department": policy.get("department"),
                        "submitted_at": policy.get("created_at"),
                        "submitted_by": policy.get("created_by"),
                        "priority": "medium",
                        "days_open": days_open(policy),
                    }
                    for policy in pending_policies
                ],
                "vendors": [
                    {
                        "id": vendor.get("id"),
                        "vendor_name": vendor.get("vendor_name"),
                        "category": vendor.get("vendor_category"),
                        "submitted_at": vendor.get("created_at"),
                        "risk_level": vendor.get("risk_level"),
                        "priority": "high" if vendor.get("risk_level") in ("high", "critical") else "medium",
                        "days_open": days_open(vendor),
                    }
                    for vendor in pending_vendors
                ],
                "assessments": [
                    {
                        "id": assessment.get("id"),
                        "title": assessment.get("title"),
                        "department": assessment.get("department"),
                        "submitted_at": assessment.get("created_at"),
                        "submitted_by": assessment.get("created_by"),
                        "type": assessment.get("assessment_type"),
                        "days_open": days_open(assessment),
                    }
                    for assessment in pending_assessments
                ],
                "total": len(pending_policies) + len(pending_vendors) + len(pending_assessments),
            },
            "vendor_renewals": {
                "upcoming": upcoming[:20],
                "overdue": overdue[:20],
                "total": len(upcoming) + len(overdue),
            },
            "action_items": action_items[:20],
        }


def readiness_report(metrics: Mapping[str, Any], *, generated_at: Optional[datetime] = None) -> str:
    """Return a plain-text readiness report for :meth:`DashboardService.readiness_metrics`."""

    generated = generated_at or datetime.now(timezone.utc)
    scores = metrics.get("assessment_scores") or {}
    completion = metrics.get("completion_rates") or {}
    distribution = metrics.get("risk_distribution") or {}
    risks = metrics.get("open_risks") or []

    lines = [
        "AI Readiness Report",
        f"Generated: {generated.date().isoformat()}",
        "",
        f"Assessment score: {scores.get('current', 0)} "
        f"(previous {scores.get('previous', 0)}, change {scores.get('change', 0):+d}, "
        f"trend {scores.get('trend', 'stable')})",
        f"Completion: {completion.get('completed_assessments', 0)} of "
        f"{completion.get('total_assessments', 0)} assessments "
        f"({completion.get('percentage', 0)}%)",
        "Open risks: "
        + ", ".join(f"{level} {distribution.get(level, 0)}" for level in RISK_LEVELS),
    ]
    if risks:
        lines.append("")
        lines.append("Top open risks:")
        for risk in risks[:5]:
            department = risk.get("department") or UNKNOWN
            lines.append(f"- {risk.get('title')} ({risk.get('level')}, {department})")
    return "\n".join(lines)


__all__ = [
    "DashboardFilters",
    "DashboardService",
    "aggregate_counts",
    "classify_trend",
    "parse_timestamp",
    "percentage",
    "readiness_report",
]
