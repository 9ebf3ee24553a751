"""Data access for the internal inventory/admin module.

Repositories raise ``PlatformError`` on failure; the UI shows the message.
"""

from __future__ import annotations

import logging
import time
from datetime import date, datetime, timezone
from typing import Any

from studio.models import PROFILES_TABLE, DashboardConfig
from studio.platform import PlatformClient, PlatformError

logger = logging.getLogger(__name__)

ITEM_IMAGES_BUCKET = "inventar-images"

STATUS_AVAILABLE = "Vorhanden"
STATUS_LOANED = "Ausgeliehen"
STATUS_DEFECT = "Defekt"
STATUS_MISSING = "Fehlt"
ITEM_STATUSES = [STATUS_AVAILABLE, STATUS_LOANED, STATUS_DEFECT, STATUS_MISSING]

VOUCHER_ACTIVE = "aktiv"
VOUCHER_DONE = "erledigt"

LOAN_SELECT = (
    "*, profile:profiles(id, full_name, email, avatar_url, role), "
    "item:inventar_items(id, geraet, modell, px_nummer, bild_url)"
)
LOAN_PROFILE_SELECT = "*, profile:profiles(id, full_name, email, avatar_url, role)"
VOUCHER_SELECT = "*, profile:profiles!profile_id(id, full_name, email)"
VOUCHER_ITEM_SELECT = "*, item:inventar_items(id, geraet, modell, px_nummer, status)"


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def today_iso() -> str:
    return date.today().isoformat()


class TableRepository:
    """CRUD over one table with a fixed ordering."""

    table: str = ""
    order_by: tuple[str, ...] = ()

    def __init__(self, client: PlatformClient) -> None:
        self.client = client

    def fetch_all(self) -> list[dict]:
        query = self.client.table(self.table).select("*")
        for column in self.order_by:
            query = query.order(column)
        return query.execute() or []

    def create(self, entry: dict[str, Any]) -> dict:
        created = self.client.table(self.table).insert(entry).select().single().execute()
        logger.info("Created %s row %s", self.table, (created or {}).get("id"))
        return created

    def update(self, row_id: str, updates: dict[str, Any]) -> dict:
        return (
            self.client.table(self.table)
            .update({**updates, "updated_at": now_iso()})
            .eq("id", row_id)
            .select()
            .single()
            .execute()
        )

    def delete(self, row_id: str) -> None:
        self.client.table(self.table).delete().eq("id", row_id).execute()
        logger.info("Deleted %s row %s", self.table, row_id)


class ItemRepository(TableRepository):
    table = "inventar_items"
    order_by = ("geraet", "px_nummer")

    def upload_image(self, data: bytes, filename: str, px_nummer: str = "", content_type: str | None = None) -> str:
        """Upload an item photo and return its public URL."""
        ext = filename.rsplit(".", 1)[-1] if "." in filename else "png"
        path = f"{px_nummer or int(time.time() * 1000)}.{ext}"
        self.client.storage.upload(
            ITEM_IMAGES_BUCKET,
            path,
            data,
            content_type=content_type or f"image/{'jpeg' if ext == 'jpg' else ext}",
            upsert=True,
        )
        return self.client.storage.get_public_url(ITEM_IMAGES_BUCKET, path)

    def set_status(self, item_id: str, status: str) -> None:
        if status not in ITEM_STATUSES:
            raise ValueError(f"Unknown item status: {status}")
        self.client.table(self.table).update({"status": status, "updated_at": now_iso()}).eq("id", item_id).execute()


class LoginRepository(TableRepository):
    table = "logins"
    order_by = ("name",)


class LinkRepository(TableRepository):
    table = "inventar_links"
    order_by = ("kategorie", "sort_order", "titel")


class PhoneContractRepository(TableRepository):
    table = "handyvertraege"
    order_by = ("handynummer",)


class CreditCardRepository(TableRepository):
    table = "kreditkarten"
    order_by = ("name",)


class CompanyDataRepository(TableRepository):
    table = "firmendaten"
    order_by = ("kategorie", "sort_order")


class LoanRepository:
    table = "inventar_loans"

    def __init__(self, client: PlatformClient) -> None:
        self.client = client

    def fetch(self, item_id: str | None = None) -> list[dict]:
        query = self.client.table(self.table).select(LOAN_SELECT).order("created_at", ascending=False)
        if item_id:
            query = query.eq("item_id", item_id)
        return query.execute() or []

    def create(self, loan: dict[str, Any]) -> dict:
        if not loan.get("item_id"):
            raise ValueError("A loan needs an item.")
        return self.client.table(self.table).insert(loan).select(LOAN_PROFILE_SELECT).single().execute()

    def return_loan(self, loan_id: str) -> dict:
        return (
            self.client.table(self.table)
            .update({"zurueck_am": today_iso()})
            .eq("id", loan_id)
            .select(LOAN_PROFILE_SELECT)
            .single()
            .execute()
        )

    def delete(self, loan_id: str) -> None:
        self.client.table(self.table).delete().eq("id", loan_id).execute()

    @staticmethod
    def split(loans: list[dict]) -> tuple[list[dict], list[dict]]:
        """Split loans into ``(active, past)`` by return date."""
        active = [loan for loan in loans if not loan.get("zurueck_am")]
        past = [loan for loan in loans if loan.get("zurueck_am")]
        return active, past


class LoanVoucherService:
    """Loan vouchers (Verleihscheine) with their line items."""

    table = "verleihscheine"
    items_table = "verleihschein_items"

    def __init__(self, client: PlatformClient) -> None:
        self.client = client
        self.items = ItemRepository(client)

    def fetch_by_status(self, status: str) -> list[dict]:
        try:
            vouchers = (
                self.client.table(self.table)
                .select(VOUCHER_SELECT)
                .eq("status", status)
                .order("erledigt_am", ascending=False)
                .execute()
            ) or []
        except PlatformError as e:
            logger.error("Fetching %s vouchers failed: %s", status, e)
            return []
        if not vouchers:
            return []

        try:
            line_items = (
                self.client.table(self.items_table)
                .select(VOUCHER_ITEM_SELECT)
                .in_("verleihschein_id", [v["id"] for v in vouchers])
                .execute()
            ) or []
        except PlatformError as e:
            logger.error("Fetching voucher items failed: %s", e)
            line_items = []

        by_voucher: dict[str, list[dict]] = {}
        for line in line_items:
            by_voucher.setdefault(line["verleihschein_id"], []).append(line)
        return [{**v, "items": by_voucher.get(v["id"], [])} for v in vouchers]

    def fetch_active(self) -> list[dict]:
        return self.fetch_by_status(VOUCHER_ACTIVE)

    def fetch_archive(self) -> list[dict]:
        return self.fetch_by_status(VOUCHER_DONE)

    def create(self, header: dict[str, Any], items: list[dict[str, Any]]) -> dict:
        if header.get("borrower_type") not in ("team", "extern"):
            raise ValueError("borrower_type must be 'team' or 'extern'")
        voucher = self.client.table(self.table).insert(header).select().single().execute()

        lines = [
            {
                "verleihschein_id": voucher["id"],
                "item_id": item["item_id"],
                "anschaffungspreis": item.get("anschaffungspreis"),
                "tagespreis": item.get("tagespreis"),
                "gesamtpreis": item.get("gesamtpreis"),
            }
            for item in items
        ]
        if lines:
            self.client.table(self.items_table).insert(lines).execute()

        for item in items:
            self.items.set_status(item["item_id"], STATUS_LOANED)
        logger.info("Created voucher %s with %d items", voucher["id"], len(lines))
        return voucher

    def mark_completed(self, voucher_id: str, item_ids: list[str]) -> None:
        self.client.table(self.table).update(
            {"status": VOUCHER_DONE, "erledigt_am": now_iso()}
        ).eq("id", voucher_id).execute()
        for item_id in item_ids:
            self.items.set_status(item_id, STATUS_AVAILABLE)


class ProfileDirectory:
    def __init__(self, client: PlatformClient) -> None:
        self.client = client

    def fetch_all(self) -> list[dict]:
        return (
            self.client.table(PROFILES_TABLE)
            .select("id, email, full_name, avatar_url, role")
            .order("full_name")
            .execute()
        ) or []


class DashboardConfigStore:
    table = "inventar_dashboard_config"

    def __init__(self, client: PlatformClient) -> None:
        self.client = client

    def load(self, user_id: str) -> DashboardConfig:
        row = (
            self.client.table(self.table)
            .select("config")
            .eq("user_id", user_id)
            .maybe_single()
            .execute()
        )
        return DashboardConfig.from_stored((row or {}).get("config"))

    def save(self, user_id: str, config: DashboardConfig) -> None:
        self.client.table(self.table).upsert(
            {"user_id": user_id, "config": config.to_dict(), "updated_at": now_iso()},
            on_conflict="user_id",
        ).execute()


ADMIN_PAGES = {"Handyverträge", "Kreditkarten", "Firmendaten"}
INVENTORY_PAGES = [
    "Dashboard",
    "Inventar",
    "Verleih",
    "Verleih-Formular",
    "Kalender",
    "Logins",
    "Handyverträge",
    "Kreditkarten",
    "Firmendaten",
    "Interne Links",
]


def visible_pages(is_admin: bool) -> list[str]:
    return [page for page in INVENTORY_PAGES if is_admin or page not in ADMIN_PAGES]
