"""
Interleaving tests for tab mutation and settlement.

Runs add_unit and settle from separate threads against a file-backed SQLite
database (each thread has its own app context, hence its own session) and
checks that the archived transaction matches exactly the units that were
accepted before the client disappeared.
"""

import threading

import pytest

from ardoise import create_app
from ardoise.errors import NotFoundError
from ardoise.extensions import db
from ardoise.models import Client, LineItem, Transaction
from ardoise.services import catalog_service, client_service, settlement_service, tab_service


@pytest.fixture
def file_app(tmp_path):
    app = create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'race.sqlite3'}",
        "SQLALCHEMY_ENGINE_OPTIONS": {"connect_args": {"check_same_thread": False, "timeout": 30}},
    })
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.engine.dispose()


def _run_race(app, client_id, item_id, *, attempts):
    accepted = []
    settled = []
    errors = []
    first_unit = threading.Event()

    def adder():
        with app.app_context():
            try:
                for _ in range(attempts):
                    try:
                        tab_service.add_unit(client_id, item_id)
                    except NotFoundError:
                        break
                    accepted.append(1)
                    first_unit.set()
            except Exception as exc:  # surfaced by the assertion below
                errors.append(exc)
            finally:
                first_unit.set()
                db.session.remove()

    def settler():
        first_unit.wait(timeout=10)
        with app.app_context():
            try:
                settled.append(settlement_service.settle(client_id, "CASH").id)
            except Exception as exc:
                errors.append(exc)
            finally:
                db.session.remove()

    threads = [threading.Thread(target=adder), threading.Thread(target=settler)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60)

    return len(accepted), settled, errors


@pytest.mark.parametrize("attempts", [25, 200])
def test_settlement_captures_every_accepted_unit(file_app, attempts):
    with file_app.app_context():
        item = catalog_service.create_item("Beer", 250, 100, "ALCOHOL")
        client = client_service.create_client("Racer")
        client_id, item_id = client.id, item.id

    accepted, settled, errors = _run_race(file_app, client_id, item_id, attempts=attempts)

    assert errors == []
    assert len(settled) == 1

    with file_app.app_context():
        tx = db.session.get(Transaction, settled[0])
        quantity = sum(line.quantity for line in tx.lines)

        assert quantity == accepted
        assert tx.total_sale_cents == 250 * accepted
        assert tx.total_cost_cents == 100 * accepted
        assert db.session.get(Client, client_id) is None
        assert db.session.query(LineItem).filter_by(client_id=client_id).count() == 0
        assert db.session.query(Transaction).count() == 1


def test_concurrent_settlements_produce_one_transaction(file_app):
    with file_app.app_context():
        item = catalog_service.create_item("Beer", 250, 100, "ALCOHOL")
        client = client_service.create_client("Twice")
        tab_service.add_unit(client.id, item)
        client_id = client.id

    outcomes = []
    barrier = threading.Barrier(4)

    def settler():
        barrier.wait(timeout=10)
        with file_app.app_context():
            try:
                outcomes.append(settlement_service.settle(client_id, "CARD").id)
            except NotFoundError:
                outcomes.append(None)
            finally:
                db.session.remove()

    threads = [threading.Thread(target=settler) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60)

    assert len(outcomes) == 4
    assert len([o for o in outcomes if o is not None]) == 1

    with file_app.app_context():
        assert db.session.query(Transaction).count() == 1
        assert db.session.query(Transaction).one().total_sale_cents == 250
