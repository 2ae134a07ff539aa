"""
Tab Service - open-tab (ardoise) mutations

WHY: A tab is a running list of line items priced when served. Adding a unit
either bumps the matching line or starts a new one; the merge key includes
the unit price so a catalog price change never reprices units already on
the tab.
"""

from __future__ import annotations

from sqlalchemy import func

from ..errors import NotFoundError
from ..extensions import db
from ..models import CatalogItem, Client, LineItem
from .concurrency import lock_for_update, run_atomic


def _resolve_item(item: CatalogItem | str) -> CatalogItem:
    if isinstance(item, CatalogItem):
        return item
    found = db.session.get(CatalogItem, item)
    if found is None:
        raise NotFoundError("Catalog item not found", details={"item_id": item})
    return found


def add_unit(client_id: str, item: CatalogItem | str) -> LineItem:
    """
    Add one unit of `item` to the client's tab (upsert on the merge key).

    `item` may be a CatalogItem or its id; its current name, sale price and
    purchase cost are copied onto a new line.

    Raises NotFoundError if the client no longer exists, so a unit can never
    land on a tab that was settled in the meantime.
    """
    def _op():
        catalog_item = _resolve_item(item)

        client = lock_for_update(db.session.query(Client).filter_by(id=client_id)).first()
        if client is None:
            raise NotFoundError("Client not found", details={"client_id": client_id})

        line = lock_for_update(
            db.session.query(LineItem).filter_by(
                client_id=client_id,
                item_id=catalog_item.id,
                unit_sale_price_cents=catalog_item.sale_price_cents,
            )
        ).first()

        if line is not None:
            line.quantity += 1
        else:
            line = LineItem(
                client_id=client_id,
                item_id=catalog_item.id,
                item_name_snapshot=catalog_item.name,
                quantity=1,
                unit_sale_price_cents=catalog_item.sale_price_cents,
                unit_cost_cents=catalog_item.purchase_cost_cents,
            )
            db.session.add(line)
        db.session.flush()
        return line

    return run_atomic(_op)


def remove_unit(line_id: str) -> LineItem | None:
    """
    Take one unit off a line; the line disappears when it reaches zero.

    Unknown ids are a no-op so a duplicate tap is harmless. Returns the
    remaining line, or None when nothing is left (or nothing was there).
    """
    def _op():
        line = lock_for_update(db.session.query(LineItem).filter_by(id=line_id)).first()
        if line is None:
            return None

        if line.quantity > 1:
            line.quantity -= 1
            db.session.flush()
            return line

        db.session.delete(line)
        return None

    return run_atomic(_op)


def list_line_items(client_id: str | None = None) -> list[LineItem]:
    """All open lines, or one client's lines, oldest first."""
    query = db.session.query(LineItem)
    if client_id is not None:
        query = query.filter(LineItem.client_id == client_id)
    return query.order_by(LineItem.created_at.asc(), LineItem.id.asc()).all()


def compute_tab_total(client_id: str) -> int:
    """Sum of unit sale price x quantity over the client's open lines, in cents."""
    total = (
        db.session.query(
            func.coalesce(func.sum(LineItem.unit_sale_price_cents * LineItem.quantity), 0)
        )
        .filter(LineItem.client_id == client_id)
        .scalar()
    )
    return int(total or 0)


def client_balances() -> dict[str, int]:
    """Tab total for every client on the roster; empty tabs map to 0."""
    balances = {client_id: 0 for (client_id,) in db.session.query(Client.id).all()}
    rows = (
        db.session.query(
            LineItem.client_id,
            func.sum(LineItem.unit_sale_price_cents * LineItem.quantity),
        )
        .group_by(LineItem.client_id)
        .all()
    )
    for client_id, total in rows:
        if client_id in balances:
            balances[client_id] = int(total or 0)
    return balances
