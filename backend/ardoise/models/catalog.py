from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow
from .common import new_id

CATEGORY_ALCOHOL = "ALCOHOL"
CATEGORY_SOFT = "SOFT"
CATEGORY_FOOD = "FOOD"
CATEGORIES = (CATEGORY_ALCOHOL, CATEGORY_SOFT, CATEGORY_FOOD)


class CatalogItem(db.Model):
    """
    Purchasable item on the venue's menu.

    Line items and transactions copy name and prices out of this row, so
    editing or deleting an item never changes what was already served.
    """
    __tablename__ = "catalog_items"
    __table_args__ = (
        db.CheckConstraint("sale_price_cents >= 0", name="ck_catalog_items_sale_price"),
        db.CheckConstraint("purchase_cost_cents >= 0", name="ck_catalog_items_purchase_cost"),
        db.Index("ix_catalog_items_category_name", "category", "name"),
    )

    id = db.Column(db.String(32), primary_key=True, default=new_id)
    name = db.Column(db.String(128), nullable=False)

    # All amounts in cents
    sale_price_cents = db.Column(db.Integer, nullable=False)
    purchase_cost_cents = db.Column(db.Integer, nullable=False, default=0)

    category = db.Column(db.String(16), nullable=False, default=CATEGORY_SOFT)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "sale_price_cents": self.sale_price_cents,
            "purchase_cost_cents": self.purchase_cost_cents,
            "category": self.category,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }

    def __repr__(self):
        return f"<CatalogItem(id='{self.id}', name='{self.name}', price={self.sale_price_cents})>"
