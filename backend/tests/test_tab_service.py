"""
Tab mutation tests.

Verifies:
- Repeated adds of the same item at the same price merge into one line
- A catalog price change opens a second line instead of repricing
- remove_unit decrements, deletes at zero and tolerates unknown ids
- Tab totals and roster balances
"""

import pytest

from ardoise.errors import NotFoundError
from ardoise.models import LineItem
from ardoise.services import catalog_service, tab_service


def _tab_state(client_id):
    return sorted(
        (line.item_id, line.unit_sale_price_cents, line.quantity)
        for line in tab_service.list_line_items(client_id)
    )


class TestAddUnit:

    @pytest.mark.parametrize("calls", [1, 2, 5, 12])
    def test_quantity_equals_number_of_calls(self, alice, beer, calls):
        for _ in range(calls):
            tab_service.add_unit(alice.id, beer)

        lines = tab_service.list_line_items(alice.id)
        assert len(lines) == 1
        assert lines[0].quantity == calls

    def test_new_line_copies_catalog_snapshot(self, alice, beer):
        line = tab_service.add_unit(alice.id, beer)

        assert line.client_id == alice.id
        assert line.item_id == beer.id
        assert line.item_name_snapshot == "Beer"
        assert line.unit_sale_price_cents == 250
        assert line.unit_cost_cents == 100
        assert line.quantity == 1

    def test_accepts_item_id(self, alice, beer):
        tab_service.add_unit(alice.id, beer.id)
        tab_service.add_unit(alice.id, beer.id)

        assert _tab_state(alice.id) == [(beer.id, 250, 2)]

    def test_price_change_opens_second_line(self, alice, beer):
        tab_service.add_unit(alice.id, beer)
        tab_service.add_unit(alice.id, beer)

        catalog_service.update_item(beer.id, sale_price_cents=300)
        tab_service.add_unit(alice.id, beer)

        assert _tab_state(alice.id) == [(beer.id, 250, 2), (beer.id, 300, 1)]

    def test_price_change_back_merges_with_original_line(self, alice, beer):
        tab_service.add_unit(alice.id, beer)
        catalog_service.update_item(beer.id, sale_price_cents=300)
        tab_service.add_unit(alice.id, beer)
        catalog_service.update_item(beer.id, sale_price_cents=250)
        tab_service.add_unit(alice.id, beer)

        assert _tab_state(alice.id) == [(beer.id, 250, 2), (beer.id, 300, 1)]

    def test_lines_are_per_client(self, alice, bob, beer):
        tab_service.add_unit(alice.id, beer)
        tab_service.add_unit(bob.id, beer)
        tab_service.add_unit(bob.id, beer)

        assert _tab_state(alice.id) == [(beer.id, 250, 1)]
        assert _tab_state(bob.id) == [(beer.id, 250, 2)]

    def test_unknown_client_raises_and_writes_nothing(self, db_session, beer):
        with pytest.raises(NotFoundError):
            tab_service.add_unit("missing-client", beer)
        assert db_session.query(LineItem).count() == 0

    def test_unknown_item_id_raises(self, alice):
        with pytest.raises(NotFoundError):
            tab_service.add_unit(alice.id, "missing-item")

    def test_deleted_catalog_item_keeps_open_line(self, alice, beer):
        tab_service.add_unit(alice.id, beer)
        catalog_service.delete_item(beer.id)

        lines = tab_service.list_line_items(alice.id)
        assert len(lines) == 1
        assert lines[0].item_name_snapshot == "Beer"
        assert tab_service.compute_tab_total(alice.id) == 250


class TestRemoveUnit:

    def test_decrements_quantity(self, alice, beer):
        for _ in range(3):
            line = tab_service.add_unit(alice.id, beer)

        remaining = tab_service.remove_unit(line.id)

        assert remaining is not None
        assert remaining.quantity == 2

    def test_last_unit_deletes_line(self, db_session, alice, beer):
        line = tab_service.add_unit(alice.id, beer)
        line_id = line.id

        assert tab_service.remove_unit(line_id) is None
        assert db_session.get(LineItem, line_id) is None
        assert tab_service.list_line_items(alice.id) == []

    def test_unknown_line_is_noop(self, alice, beer):
        tab_service.add_unit(alice.id, beer)

        assert tab_service.remove_unit("missing-line") is None
        assert _tab_state(alice.id) == [(beer.id, 250, 1)]

    def test_duplicate_removal_is_safe(self, alice, beer):
        line = tab_service.add_unit(alice.id, beer)
        line_id = line.id

        tab_service.remove_unit(line_id)
        assert tab_service.remove_unit(line_id) is None
        assert tab_service.list_line_items(alice.id) == []

    def test_no_line_ever_stored_at_zero(self, db_session, alice, beer, burger):
        beer_line = tab_service.add_unit(alice.id, beer)
        burger_line = tab_service.add_unit(alice.id, burger)
        tab_service.add_unit(alice.id, burger)

        tab_service.remove_unit(beer_line.id)
        tab_service.remove_unit(burger_line.id)
        tab_service.remove_unit(burger_line.id)

        assert db_session.query(LineItem).filter(LineItem.quantity <= 0).count() == 0
        assert db_session.query(LineItem).count() == 0

    @pytest.mark.parametrize("repeats", [1, 3, 10])
    def test_add_then_remove_round_trip(self, alice, beer, burger, repeats):
        tab_service.add_unit(alice.id, beer)
        tab_service.add_unit(alice.id, burger)
        tab_service.add_unit(alice.id, burger)
        before = _tab_state(alice.id)

        for _ in range(repeats):
            line = tab_service.add_unit(alice.id, beer)
            tab_service.remove_unit(line.id)

        assert _tab_state(alice.id) == before


class TestTotals:

    def test_empty_tab_is_zero(self, alice):
        assert tab_service.compute_tab_total(alice.id) == 0

    def test_total_sums_price_times_quantity(self, alice, beer, burger):
        for _ in range(3):
            tab_service.add_unit(alice.id, beer)
        tab_service.add_unit(alice.id, burger)

        assert tab_service.compute_tab_total(alice.id) == 1150

    def test_total_uses_snapshot_prices(self, alice, beer):
        tab_service.add_unit(alice.id, beer)
        catalog_service.update_item(beer.id, sale_price_cents=1000)

        assert tab_service.compute_tab_total(alice.id) == 250

    def test_client_balances_covers_whole_roster(self, alice, bob, beer):
        tab_service.add_unit(alice.id, beer)
        tab_service.add_unit(alice.id, beer)

        assert tab_service.client_balances() == {alice.id: 500, bob.id: 0}
