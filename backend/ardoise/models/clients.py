from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow
from .common import new_id


class Client(db.Model):
    """
    A patron with an open tab (ardoise).

    A client lives until it is settled, written off or deleted; its line
    items go with it.
    """
    __tablename__ = "clients"
    __table_args__ = (
        db.Index("ix_clients_display_name", "display_name"),
    )

    id = db.Column(db.String(32), primary_key=True, default=new_id)
    display_name = db.Column(db.String(128), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    line_items = db.relationship(
        "LineItem",
        back_populates="client",
        cascade="all, delete-orphan",
        order_by="LineItem.created_at",
        lazy=True,
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "display_name": self.display_name,
            "created_at": to_utc_z(self.created_at),
        }

    def __repr__(self):
        return f"<Client(id='{self.id}', name='{self.display_name}')>"


class LineItem(db.Model):
    """
    One line on an open tab: an item, a quantity and the prices at the time
    the first unit was served.

    MERGE KEY: (client_id, item_id, unit_sale_price_cents). A price change in
    the catalog starts a new line instead of repricing units already served.
    """
    __tablename__ = "line_items"
    __table_args__ = (
        db.UniqueConstraint(
            "client_id", "item_id", "unit_sale_price_cents",
            name="uq_line_items_merge_key",
        ),
        db.CheckConstraint("quantity >= 1", name="ck_line_items_quantity_positive"),
    )

    id = db.Column(db.String(32), primary_key=True, default=new_id)
    client_id = db.Column(db.String(32), db.ForeignKey("clients.id"), nullable=False, index=True)

    # Reference only; the catalog row may be edited or deleted later
    item_id = db.Column(db.String(32), nullable=True)
    item_name_snapshot = db.Column(db.String(128), nullable=False)

    quantity = db.Column(db.Integer, nullable=False, default=1)
    unit_sale_price_cents = db.Column(db.Integer, nullable=False)
    unit_cost_cents = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    client = db.relationship("Client", back_populates="line_items")

    @property
    def line_total_cents(self) -> int:
        return self.unit_sale_price_cents * self.quantity

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "client_id": self.client_id,
            "item_id": self.item_id,
            "item_name_snapshot": self.item_name_snapshot,
            "quantity": self.quantity,
            "unit_sale_price_cents": self.unit_sale_price_cents,
            "unit_cost_cents": self.unit_cost_cents,
            "line_total_cents": self.line_total_cents,
            "created_at": to_utc_z(self.created_at),
        }

    def __repr__(self):
        return f"<LineItem(id='{self.id}', item='{self.item_name_snapshot}', quantity={self.quantity})>"
