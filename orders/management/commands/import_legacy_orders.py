import json
from datetime import datetime, timezone as dt_timezone

from django.core.management.base import BaseCommand, CommandError
from django.utils.dateparse import parse_datetime

from orders.exceptions import DuplicateKey, OrderError
from orders.lifecycle import canonical_status
from orders.models import Order
from orders.store import OrderStore

LEGACY_META_KEYS = ("brand", "model", "year", "engine", "phone", "country")


def _parse_ts(value):
    if not value:
        return None
    ts = parse_datetime(str(value).replace("Z", "+00:00"))
    if ts is not None and ts.tzinfo is None:
        ts = ts.replace(tzinfo=dt_timezone.utc)
    return ts


def legacy_record_to_order(record: dict) -> Order:
    """Build an unsaved Order from one entry of the old orders.json file."""
    order_id = record.get("orderId")
    if not order_id:
        raise ValueError("record has no orderId")
    meta = record.get("meta") or {}
    modified = record.get("modified") or {}

    status = canonical_status(record.get("status") or "pending")
    result_file = {}
    if modified.get("path"):
        result_file = {
            "name": modified.get("name") or "",
            "stored_name": modified["path"].lstrip("/"),
            "url": modified["path"],
            "size": modified.get("size") or 0,
            "uploaded_at": modified.get("uploadedAt") or "",
        }
    if status in (Order.Status.READY, Order.Status.DELIVERED) and not result_file:
        # a ready order without its file cannot be delivered again
        status = Order.Status.UPLOADED
    if status not in (Order.Status.READY, Order.Status.DELIVERED):
        result_file = {}

    options = meta.get("modsSelected") or []
    created = _parse_ts(record.get("createdAt")) or datetime.now(dt_timezone.utc)
    updated = _parse_ts(record.get("updatedAt")) or created
    return Order(
        order_id=order_id,
        owner_identity=str(meta.get("email") or record.get("email") or "legacy").strip().lower(),
        vehicle_meta={k: str(meta[k]) for k in LEGACY_META_KEYS if meta.get(k)},
        requested_options=sorted({str(o).strip().lower() for o in options if str(o).strip()}),
        comments=(meta.get("notes") or "")[:1000],
        original_file={
            "name": record.get("originalName") or "",
            "stored_name": (record.get("originalPath") or "").lstrip("/"),
            "url": record.get("originalPath") or "",
            "size": record.get("size") or 0,
        },
        result_file=result_file,
        status=status,
        created_at=created,
        updated_at=max(updated, created),
    )


class Command(BaseCommand):
    help = "Import orders from the legacy orders.json file; existing order ids are skipped."

    def add_arguments(self, parser):
        parser.add_argument("path")

    def handle(self, *args, **options):
        try:
            with open(options["path"], encoding="utf-8") as fh:
                records = json.load(fh)
        except (OSError, ValueError) as exc:
            raise CommandError(f"Cannot read {options['path']}: {exc}")
        if not isinstance(records, list):
            raise CommandError("Expected a JSON array of orders.")

        store = OrderStore()
        imported = skipped = failed = 0
        for record in records:
            try:
                order = legacy_record_to_order(record)
                store.create(order)
                imported += 1
            except DuplicateKey:
                skipped += 1
            except (OrderError, ValueError, TypeError, AttributeError) as exc:
                failed += 1
                ref = record.get("orderId", "?") if isinstance(record, dict) else "?"
                self.stderr.write(f"  ! {ref}: {exc}")

        self.stdout.write(
            self.style.SUCCESS(f"Imported {imported}, skipped {skipped}, failed {failed}.")
        )
