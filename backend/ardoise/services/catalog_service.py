# Overview: Catalog CRUD; plain record upserts outside the settlement core.

from __future__ import annotations

from flask import current_app

from ..errors import NotFoundError
from ..extensions import db
from ..models import CatalogItem
from ..models.catalog import CATEGORIES, CATEGORY_SOFT
from ..validation import ValidationError, clean_choice, clean_name, clean_price_cents
from .concurrency import run_atomic

CATALOG_MUTABLE_FIELDS = {"name", "sale_price_cents", "purchase_cost_cents", "category"}


def _clean_patch(patch: dict) -> dict:
    unknown = set(patch) - CATALOG_MUTABLE_FIELDS
    if unknown:
        raise ValidationError(f"Field not allowed: {', '.join(sorted(unknown))}")

    cleaned: dict = {}
    if "name" in patch:
        cleaned["name"] = clean_name(patch["name"])
    if "sale_price_cents" in patch:
        cleaned["sale_price_cents"] = clean_price_cents(patch["sale_price_cents"], field="sale_price_cents")
    if "purchase_cost_cents" in patch:
        cleaned["purchase_cost_cents"] = clean_price_cents(patch["purchase_cost_cents"], field="purchase_cost_cents")
    if "category" in patch:
        cleaned["category"] = clean_choice(patch["category"], field="category", choices=CATEGORIES)
    return cleaned


def list_items(category: str | None = None) -> list[CatalogItem]:
    """Catalog ordered by name, optionally restricted to one category."""
    query = db.session.query(CatalogItem)
    if category is not None:
        category = clean_choice(category, field="category", choices=CATEGORIES)
        query = query.filter(CatalogItem.category == category)
    return query.order_by(CatalogItem.name.asc(), CatalogItem.id.asc()).all()


def get_item(item_id: str) -> CatalogItem:
    item = db.session.get(CatalogItem, item_id)
    if item is None:
        raise NotFoundError("Catalog item not found", details={"item_id": item_id})
    return item


def create_item(
    name: str,
    sale_price_cents: int,
    purchase_cost_cents: int = 0,
    category: str = CATEGORY_SOFT,
) -> CatalogItem:
    patch = _clean_patch({
        "name": name,
        "sale_price_cents": sale_price_cents,
        "purchase_cost_cents": purchase_cost_cents,
        "category": category,
    })

    def _op():
        item = CatalogItem(**patch)
        db.session.add(item)
        db.session.flush()
        return item

    item = run_atomic(_op)
    current_app.logger.info("Catalog item %s created (%s)", item.id, item.name)
    return item


def update_item(item_id: str, **patch) -> CatalogItem:
    """
    Edit an item in place. Open tabs and archived transactions keep the
    prices they were served at.
    """
    cleaned = _clean_patch(patch)

    def _op():
        item = get_item(item_id)
        for key, value in cleaned.items():
            setattr(item, key, value)
        return item

    return run_atomic(_op)


def delete_item(item_id: str) -> None:
    """Remove an item from the menu. Line items referencing it are kept."""
    def _op():
        item = get_item(item_id)
        db.session.delete(item)

    run_atomic(_op)
    current_app.logger.info("Catalog item %s deleted", item_id)
