# Overview: Plain-record export of the four collections.

from __future__ import annotations

from ..extensions import db
from ..models import CatalogItem, Client, LineItem, Transaction


def export_state() -> dict:
    """
    Dump clients, catalog items, line items and transactions as plain
    records keyed by id.
    """
    return {
        "clients": {c.id: c.to_dict() for c in db.session.query(Client).all()},
        "catalog_items": {i.id: i.to_dict() for i in db.session.query(CatalogItem).all()},
        "line_items": {l.id: l.to_dict() for l in db.session.query(LineItem).all()},
        "transactions": {t.id: t.to_dict() for t in db.session.query(Transaction).all()},
    }
