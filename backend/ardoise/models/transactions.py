from __future__ import annotations

from sqlalchemy import event
from sqlalchemy.orm import Session

from ..errors import ImmutableRecordError
from ..extensions import db
from ..time_utils import to_utc_z, utcnow
from .common import new_id

KIND_SALE = "SALE"
KIND_WRITE_OFF = "WRITE_OFF"
KINDS = (KIND_SALE, KIND_WRITE_OFF)

PAYMENT_CASH = "CASH"
PAYMENT_CARD = "CARD"
PAYMENT_NONE = "NONE"
PAYMENT_METHODS = (PAYMENT_CASH, PAYMENT_CARD, PAYMENT_NONE)
SALE_PAYMENT_METHODS = (PAYMENT_CASH, PAYMENT_CARD)

"""
Transaction Archive Invariants (authoritative)

- Append-only: rows are inserted by settlement and never updated or deleted.
- client_id is kept for reference even after the client is gone (no FK).
- total_sale_cents / total_cost_cents equal the sums over the row's own lines.
- WRITE_OFF always carries payment_method NONE; SALE never does.
"""


class Transaction(db.Model):
    """
    Settled tab, frozen at the instant of settlement.

    Holds private copies of every line so later catalog or client edits
    cannot alter what was charged.
    """
    __tablename__ = "transactions"
    __table_args__ = (
        db.UniqueConstraint("sequence", name="uq_transactions_sequence"),
        db.CheckConstraint(
            "(kind = 'WRITE_OFF' AND payment_method = 'NONE') OR "
            "(kind = 'SALE' AND payment_method IN ('CASH', 'CARD'))",
            name="ck_transactions_kind_payment",
        ),
        db.Index("ix_transactions_occurred_at", "occurred_at"),
    )

    id = db.Column(db.String(32), primary_key=True, default=new_id)

    # Monotonic archive position; tiebreak for equal timestamps
    sequence = db.Column(db.Integer, nullable=False)

    client_id = db.Column(db.String(32), nullable=False, index=True)
    client_name_snapshot = db.Column(db.String(128), nullable=False)

    occurred_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    kind = db.Column(db.String(16), nullable=False)
    payment_method = db.Column(db.String(16), nullable=False)

    total_sale_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cost_cents = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    lines = db.relationship(
        "TransactionLine",
        back_populates="transaction",
        order_by="TransactionLine.position",
        lazy="selectin",
    )

    @property
    def margin_cents(self) -> int:
        return self.total_sale_cents - self.total_cost_cents

    @property
    def summary(self) -> str:
        """Compact '2x Beer, 1x Fries' description of the lines."""
        return ", ".join(f"{line.quantity}x {line.name}" for line in self.lines)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sequence": self.sequence,
            "client_id": self.client_id,
            "client_name_snapshot": self.client_name_snapshot,
            "occurred_at": to_utc_z(self.occurred_at),
            "kind": self.kind,
            "payment_method": self.payment_method,
            "lines": [line.to_dict() for line in self.lines],
            "total_sale_cents": self.total_sale_cents,
            "total_cost_cents": self.total_cost_cents,
            "margin_cents": self.margin_cents,
        }

    def __repr__(self):
        return f"<Transaction(id='{self.id}', kind='{self.kind}', total={self.total_sale_cents})>"


class TransactionLine(db.Model):
    """Copy of one tab line taken at settlement."""
    __tablename__ = "transaction_lines"
    __table_args__ = (
        db.UniqueConstraint("transaction_id", "position", name="uq_transaction_lines_position"),
        db.CheckConstraint("quantity >= 1", name="ck_transaction_lines_quantity_positive"),
    )

    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(db.String(32), db.ForeignKey("transactions.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False)

    name = db.Column(db.String(128), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    unit_sale_price_cents = db.Column(db.Integer, nullable=False)
    unit_cost_cents = db.Column(db.Integer, nullable=False)

    transaction = db.relationship("Transaction", back_populates="lines")

    @property
    def line_total_cents(self) -> int:
        return self.unit_sale_price_cents * self.quantity

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "quantity": self.quantity,
            "unit_sale_price_cents": self.unit_sale_price_cents,
            "unit_cost_cents": self.unit_cost_cents,
            "line_total_cents": self.line_total_cents,
        }


@event.listens_for(Session, "before_flush")
def _reject_archive_mutation(session, flush_context, instances):
    for obj in session.deleted:
        if isinstance(obj, (Transaction, TransactionLine)):
            raise ImmutableRecordError(
                "Archived transactions cannot be deleted",
                details={"record": repr(obj)},
            )
    for obj in session.dirty:
        if isinstance(obj, (Transaction, TransactionLine)) and session.is_modified(obj):
            raise ImmutableRecordError(
                "Archived transactions cannot be modified",
                details={"record": repr(obj)},
            )
