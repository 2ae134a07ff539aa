# Overview: Read-only queries over the transaction archive (listing, filters, weekly stats).

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Callable, Iterable

from flask import current_app
from sqlalchemy import func

from ..errors import NotFoundError
from ..extensions import db
from ..models import Transaction
from ..models.transactions import KIND_SALE, KINDS
from ..time_utils import end_of_day, normalize_datetime, parse_iso_datetime, start_of_day, utcnow
from ..validation import ValidationError, clean_choice


def _archive_query():
    # Most-recent-first is the archive's read contract
    return db.session.query(Transaction).order_by(
        Transaction.occurred_at.desc(),
        Transaction.sequence.desc(),
    )


def _parse_bound(value: datetime | date | str | None, *, upper: bool) -> datetime | None:
    """
    Accept a datetime, a date or an ISO-8601 string. A bare date covers the
    whole day: start of day as a lower bound, end of day as an upper bound.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return normalize_datetime(value)
    if isinstance(value, date):
        return end_of_day(value) if upper else start_of_day(value)
    if isinstance(value, str):
        s = value.strip()
        if not s:
            return None
        try:
            if len(s) == 10:
                d = date.fromisoformat(s)
                return end_of_day(d) if upper else start_of_day(d)
            return parse_iso_datetime(s)
        except ValueError:
            raise ValidationError(f"Invalid date: {value}")
    raise ValidationError(f"Invalid date: {value!r}")


def list_transactions() -> list[Transaction]:
    return _archive_query().all()


def get_transaction(transaction_id: str) -> Transaction:
    tx = db.session.get(Transaction, transaction_id)
    if tx is None:
        raise NotFoundError("Transaction not found", details={"transaction_id": transaction_id})
    return tx


def filter_transactions(
    *,
    name: str | None = None,
    start: datetime | date | str | None = None,
    end: datetime | date | str | None = None,
    kind: str | None = None,
    predicate: Callable[[Transaction], bool] | None = None,
) -> list[Transaction]:
    """
    Archive entries matching every given criterion, most recent first.

    - name: case-insensitive substring of the client name at settlement
    - start/end: inclusive bounds on occurred_at
    - kind: SALE or WRITE_OFF
    - predicate: arbitrary callable applied after the query
    """
    start_dt = _parse_bound(start, upper=False)
    end_dt = _parse_bound(end, upper=True)

    query = _archive_query()
    if name:
        needle = name.strip().lower()
        if needle:
            query = query.filter(
                func.lower(Transaction.client_name_snapshot).contains(needle, autoescape=True)
            )
    if start_dt:
        query = query.filter(Transaction.occurred_at >= start_dt)
    if end_dt:
        query = query.filter(Transaction.occurred_at <= end_dt)
    if kind is not None:
        query = query.filter(Transaction.kind == clean_choice(kind, field="kind", choices=KINDS))
    results = query.all()
    if predicate is not None:
        results = [tx for tx in results if predicate(tx)]
    return results


def summarize(transactions: Iterable[Transaction]) -> dict:
    """Totals over a result list (e.g. the current filter)."""
    count = 0
    sale = 0
    cost = 0
    for tx in transactions:
        count += 1
        sale += tx.total_sale_cents
        cost += tx.total_cost_cents
    return {
        "count": count,
        "total_sale_cents": sale,
        "total_cost_cents": cost,
        "margin_cents": sale - cost,
    }


def weekly_stats(as_of: datetime | date | None = None) -> list[dict]:
    """
    Daily revenue and profit for the rolling window ending on as_of's day,
    oldest day first. Only SALE transactions count; write-offs are losses,
    not revenue. Always computed over the unfiltered archive.
    """
    window_days = current_app.config.get("STATS_WINDOW_DAYS", 7)
    if as_of is None:
        today = utcnow().date()
    elif isinstance(as_of, datetime):
        today = normalize_datetime(as_of).date()
    else:
        today = as_of
    first_day = today - timedelta(days=window_days - 1)

    rows = (
        db.session.query(
            Transaction.occurred_at,
            Transaction.total_sale_cents,
            Transaction.total_cost_cents,
        )
        .filter(
            Transaction.kind == KIND_SALE,
            Transaction.occurred_at >= start_of_day(first_day),
            Transaction.occurred_at <= end_of_day(today),
        )
        .all()
    )

    buckets = {
        first_day + timedelta(days=i): {"revenue_cents": 0, "cost_cents": 0, "sales_count": 0}
        for i in range(window_days)
    }
    for occurred_at, sale_cents, cost_cents in rows:
        bucket = buckets.get(occurred_at.date())
        if bucket is None:
            continue
        bucket["revenue_cents"] += sale_cents
        bucket["cost_cents"] += cost_cents
        bucket["sales_count"] += 1

    return [
        {
            "date": day.isoformat(),
            "label": day.strftime("%a"),
            "revenue_cents": bucket["revenue_cents"],
            "profit_cents": bucket["revenue_cents"] - bucket["cost_cents"],
            "sales_count": bucket["sales_count"],
        }
        for day, bucket in sorted(buckets.items())
    ]
