"""
Settlement Service - converting an open tab into an archived Transaction

WHY: Settlement is the one multi-step state transition in the system
(snapshot -> totals -> archive append -> client removal). It runs as a single
unit of work so no reader ever sees a transaction without the client being
gone, or a client gone without its transaction.

Invariants:
- Every non-zero tab that disappears leaves a Transaction (SALE or WRITE_OFF).
- Transaction totals are computed from the transaction's own line copies.
- delete_client refuses a non-zero tab; use write_off (or close_client).
"""

from __future__ import annotations

from datetime import datetime

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from ..errors import InvariantViolation, NotFoundError
from ..extensions import db
from ..models import Client, LineItem, Transaction, TransactionLine
from ..models.transactions import (
    KIND_SALE,
    KIND_WRITE_OFF,
    PAYMENT_NONE,
    SALE_PAYMENT_METHODS,
)
from ..time_utils import normalize_datetime, utcnow
from ..validation import clean_choice
from .concurrency import in_unit_of_work, lock_for_update, run_atomic
from .tab_service import compute_tab_total


def _load_client_locked(client_id: str) -> Client:
    client = lock_for_update(db.session.query(Client).filter_by(id=client_id)).first()
    if client is None:
        raise NotFoundError("Client not found", details={"client_id": client_id})
    return client


SEQUENCE_ATTEMPTS = 3


def _next_sequence() -> int:
    # MAX+1 is serialized in-process by the writer lock and, on SQLite, by
    # BEGIN IMMEDIATE. Other engines can hand two writers the same value; the
    # unique constraint rejects the second and _run_settlement retries it.
    current = db.session.query(func.max(Transaction.sequence)).scalar()
    return (current or 0) + 1


def _remove_client(client: Client) -> None:
    """Delete the client; its line items go with it (delete-orphan cascade)."""
    db.session.delete(client)
    db.session.flush()


def _settle_locked(
    client: Client,
    *,
    kind: str,
    payment_method: str,
    occurred_at: datetime | None,
) -> Transaction:
    lines = (
        lock_for_update(db.session.query(LineItem).filter_by(client_id=client.id))
        .order_by(LineItem.created_at.asc(), LineItem.id.asc())
        .all()
    )

    if not lines and not current_app.config.get("ALLOW_EMPTY_SETTLEMENT", True):
        current_app.logger.warning("Refused empty settlement for client %s", client.id)
        raise InvariantViolation(
            "Cannot settle an empty tab",
            details={"client_id": client.id},
        )

    snapshot = [
        TransactionLine(
            position=i + 1,
            name=line.item_name_snapshot,
            quantity=line.quantity,
            unit_sale_price_cents=line.unit_sale_price_cents,
            unit_cost_cents=line.unit_cost_cents,
        )
        for i, line in enumerate(lines)
    ]

    total_sale = sum(t.unit_sale_price_cents * t.quantity for t in snapshot)
    total_cost = sum(t.unit_cost_cents * t.quantity for t in snapshot)

    tx = Transaction(
        sequence=_next_sequence(),
        client_id=client.id,
        client_name_snapshot=client.display_name,
        occurred_at=normalize_datetime(occurred_at) if occurred_at else utcnow(),
        kind=kind,
        payment_method=payment_method,
        total_sale_cents=total_sale,
        total_cost_cents=total_cost,
        lines=snapshot,
    )
    db.session.add(tx)
    db.session.flush()

    _remove_client(client)
    return tx


def _run_settlement(client_id: str, *, kind: str, payment_method: str, occurred_at: datetime | None) -> Transaction:
    def _op():
        client = _load_client_locked(client_id)
        return _settle_locked(client, kind=kind, payment_method=payment_method, occurred_at=occurred_at)

    # Inside an enclosing unit the failed transaction belongs to the caller.
    attempts = 1 if in_unit_of_work() else SEQUENCE_ATTEMPTS
    for attempt in range(attempts):
        try:
            tx = run_atomic(_op)
            break
        except (NotFoundError, InvariantViolation):
            raise
        except IntegrityError:
            if attempt >= attempts - 1:
                current_app.logger.exception("Settlement of client %s rolled back", client_id)
                raise
            current_app.logger.warning(
                "Archive sequence collision settling client %s, retrying", client_id
            )
        except Exception:
            current_app.logger.exception("Settlement of client %s rolled back", client_id)
            raise

    current_app.logger.info(
        "%s %s for client %s: sale=%s cost=%s payment=%s",
        kind, tx.id, client_id, tx.total_sale_cents, tx.total_cost_cents, payment_method,
    )
    return tx


def settle(client_id: str, payment_method: str, *, occurred_at: datetime | None = None) -> Transaction:
    """
    Settle a client's tab as a SALE paid by CASH or CARD.

    Snapshots every line, stores totals, appends the transaction to the
    archive and removes the client with its lines, all in one unit.
    `occurred_at` defaults to now (business time of the settlement).
    """
    method = clean_choice(payment_method, field="payment_method", choices=SALE_PAYMENT_METHODS)
    return _run_settlement(client_id, kind=KIND_SALE, payment_method=method, occurred_at=occurred_at)


def write_off(client_id: str, *, occurred_at: datetime | None = None) -> Transaction:
    """
    Abandon a client's tab, leaving a WRITE_OFF transaction (payment NONE)
    as the audit trail of the unpaid amount.
    """
    return _run_settlement(client_id, kind=KIND_WRITE_OFF, payment_method=PAYMENT_NONE, occurred_at=occurred_at)


def delete_client(client_id: str) -> None:
    """
    Remove a client whose tab is empty (zero total).

    Raises InvariantViolation if the tab still owes money; nothing is
    deleted in that case.
    """
    def _op():
        client = _load_client_locked(client_id)
        total = compute_tab_total(client.id)
        if total != 0:
            current_app.logger.warning(
                "Refused to delete client %s with outstanding tab %s", client_id, total
            )
            raise InvariantViolation(
                "Client has an outstanding tab; write it off or settle it first",
                details={"client_id": client_id, "tab_total_cents": total},
            )
        _remove_client(client)

    run_atomic(_op)
    current_app.logger.info("Client %s deleted", client_id)


def close_client(client_id: str) -> Transaction | None:
    """
    Roster removal: write off a tab that still owes money, otherwise delete
    the client outright. Returns the write-off transaction, if any.
    """
    def _op():
        client = _load_client_locked(client_id)
        if compute_tab_total(client.id) > 0:
            return _settle_locked(client, kind=KIND_WRITE_OFF, payment_method=PAYMENT_NONE, occurred_at=None)
        _remove_client(client)
        return None

    tx = run_atomic(_op)
    if tx is None:
        current_app.logger.info("Client %s deleted", client_id)
    else:
        current_app.logger.info(
            "WRITE_OFF %s for client %s: sale=%s", tx.id, client_id, tx.total_sale_cents
        )
    return tx
