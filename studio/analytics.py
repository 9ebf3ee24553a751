"""Aggregations behind the studio and inventory dashboards."""

from __future__ import annotations

import unicodedata
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

from studio.history import parse_timestamp
from studio.inventory import STATUS_AVAILABLE, STATUS_DEFECT, STATUS_LOANED, STATUS_MISSING, VOUCHER_ACTIVE
from studio.models import DashboardConfig, GenerationItem

DEFAULT_LINK_CATEGORY = "Allgemein"
UPCOMING_DAYS = 14
UPCOMING_LIMIT = 8
ACTIVE_LOANS_LIMIT = 5


@dataclass
class InventoryStats:
    total: int = 0
    available: int = 0
    loaned: int = 0
    defective: int = 0

    @classmethod
    def from_items(cls, items: list[dict]) -> InventoryStats:
        statuses = Counter(item.get("status") for item in items)
        return cls(
            total=len(items),
            available=statuses[STATUS_AVAILABLE],
            loaned=statuses[STATUS_LOANED],
            defective=statuses[STATUS_DEFECT] + statuses[STATUS_MISSING],
        )


def german_sort_key(text: str) -> tuple[str, str]:
    """Sort key that orders umlauts with their base letter, so "Ämter" sorts with "A"."""
    folded = unicodedata.normalize("NFKD", text.casefold())
    return "".join(c for c in folded if not unicodedata.combining(c)), text.casefold()


def link_categories(links: list[dict]) -> list[str]:
    return sorted({link.get("kategorie") or DEFAULT_LINK_CATEGORY for link in links}, key=german_sort_key)


def group_links(links: list[dict], categories: list[str] | None = None) -> list[tuple[str, list[dict]]]:
    """Links grouped by category, limited to ``categories`` unless it is None."""
    groups: dict[str, list[dict]] = {}
    for link in links:
        category = link.get("kategorie") or DEFAULT_LINK_CATEGORY
        if categories is not None and category not in categories:
            continue
        groups.setdefault(category, []).append(link)
    return sorted(groups.items(), key=lambda kv: german_sort_key(kv[0]))


def upcoming_vouchers(vouchers: list[dict], now: datetime | None = None) -> list[dict]:
    """Active vouchers picked up within the next two weeks, soonest first."""
    now = now or datetime.now(timezone.utc)
    horizon = now + timedelta(days=UPCOMING_DAYS)
    upcoming = [
        v for v in vouchers
        if v.get("status") == VOUCHER_ACTIVE
        and v.get("abholzeit")
        and now <= parse_timestamp(v["abholzeit"]) <= horizon
    ]
    upcoming.sort(key=lambda v: parse_timestamp(v["abholzeit"]))
    return upcoming[:UPCOMING_LIMIT]


def active_loans(loans: list[dict], limit: int = ACTIVE_LOANS_LIMIT) -> list[dict]:
    return [loan for loan in loans if not loan.get("zurueck_am")][:limit]


def pinned_logins(logins: list[dict], config: DashboardConfig) -> list[dict]:
    pinned = set(config.pinned_login_ids)
    return [login for login in logins if login.get("id") in pinned]


def generation_counts(feed: list[GenerationItem]) -> dict[str, int]:
    return dict(Counter(item.type for item in feed))


@dataclass
class InventoryDashboard:
    """Everything the inventory dashboard page renders."""

    stats: InventoryStats = field(default_factory=InventoryStats)
    links: list[tuple[str, list[dict]]] = field(default_factory=list)
    upcoming: list[dict] = field(default_factory=list)
    loans: list[dict] = field(default_factory=list)
    active_loan_count: int = 0
    pinned: list[dict] = field(default_factory=list)

    @classmethod
    def build(
        cls,
        config: DashboardConfig,
        items: list[dict],
        links: list[dict],
        vouchers: list[dict],
        loans: list[dict],
        logins: list[dict],
        now: datetime | None = None,
    ) -> InventoryDashboard:
        return cls(
            stats=InventoryStats.from_items(items),
            links=group_links(links, config.link_categories),
            upcoming=upcoming_vouchers(vouchers, now),
            loans=active_loans(loans),
            active_loan_count=len(active_loans(loans, limit=len(loans))),
            pinned=pinned_logins(logins, config),
        )

    def get_summary(self) -> dict[str, Any]:
        return {
            "total": self.stats.total,
            "available": self.stats.available,
            "loaned": self.stats.loaned,
            "defective": self.stats.defective,
            "active_loans": self.active_loan_count,
            "upcoming_vouchers": len(self.upcoming),
            "link_groups": len(self.links),
            "pinned_logins": len(self.pinned),
        }


def feed_records(feed: list[GenerationItem]) -> list[dict[str, Any]]:
    """Feed items as records suitable for a pandas DataFrame."""
    return [
        {
            "type": item.type,
            "title": item.title or "",
            "created_at": item.created_at,
            "day": parse_timestamp(item.created_at).date().isoformat(),
        }
        for item in feed
    ]
