from decimal import Decimal

import pytest

from storefront.domain.errors import TransientNetworkFailure
from storefront.domain.schemas import CartSnapshot, LineItem
from storefront.services.checkout_aggregator import CheckoutAggregator, compute_totals, select_items


def line(pid, price, qty):
    return LineItem(product_id=pid, name=f"p{pid}", unit_price=Decimal(price), quantity=qty)


class TestComputeTotals:
    def test_two_units_at_ten_with_five_percent_tax(self):
        totals = compute_totals([line(1, "10.00", 2)], Decimal("0.05"))

        assert totals.subtotal == Decimal("20.00")
        assert totals.tax == Decimal("1.00")
        assert totals.shipping == Decimal("0.00")
        assert totals.total == Decimal("21.00")
        assert totals.amount_minor_units == 2100

    def test_tax_rounds_half_up(self):
        # 0.10 * 0.05 = 0.005
        totals = compute_totals([line(1, "0.10", 1)], Decimal("0.05"))

        assert totals.tax == Decimal("0.01")
        assert totals.amount_minor_units == 11

    def test_shipping_is_added(self):
        totals = compute_totals([line(1, "5.00", 1)], Decimal("0.10"), shipping=Decimal("2.5"))

        assert totals.total == Decimal("8.00")

    def test_no_items(self):
        assert compute_totals([], Decimal("0.05")).total == Decimal("0.00")


class TestSelectItems:
    snapshot = CartSnapshot(items=[line(1, "1", 1), line(2, "2", 1), line(3, "3", 1)])

    def test_no_selection_takes_whole_cart(self):
        assert [i.product_id for i in select_items(self.snapshot, None)] == [1, 2, 3]

    def test_selection_filters_and_keeps_cart_order(self):
        assert [i.product_id for i in select_items(self.snapshot, ["3", "1"])] == [1, 3]

    def test_stale_selection_falls_back_to_whole_cart(self):
        assert [i.product_id for i in select_items(self.snapshot, ["99"])] == [1, 2, 3]


class TestCheckoutAggregator:
    @pytest.fixture
    def aggregator(self, remote_store, selection):
        return CheckoutAggregator(remote_store, selection, tax_rate=Decimal("0.05"))

    def test_whole_cart_view(self, aggregator, client):
        client.cart = {1: 2}

        view = aggregator.build_checkout_view()

        assert view.product_ids() == ["1"]
        assert view.totals.total == Decimal("21.00")

    def test_selected_subset(self, aggregator, client, selection):
        client.cart = {1: 1, 2: 2, 3: 1}
        selection.capture(["2"])

        view = aggregator.build_checkout_view()

        assert view.product_ids() == ["2"]
        assert view.totals.subtotal == Decimal("99.00")

    def test_empty_cart_gives_no_view(self, aggregator):
        assert aggregator.build_checkout_view() is None

    def test_selection_survives_view_build(self, aggregator, client, selection):
        client.cart = {1: 1, 2: 1}
        selection.capture(["1"])

        aggregator.build_checkout_view()

        assert selection.consume() == ["1"]

    def test_resolve_uses_fresh_cart(self, aggregator, client, selection):
        client.cart = {1: 1, 2: 1}
        selection.capture(["2"])
        aggregator.build_checkout_view()

        assert aggregator.resolve_product_ids() == ["2"]

    def test_resolve_falls_back_to_last_known_cart(self, aggregator, client):
        client.cart = {1: 1, 3: 1}
        aggregator.build_checkout_view()
        client.failures["get_cart"] = TransientNetworkFailure("timeout")

        assert aggregator.resolve_product_ids() == ["1", "3"]
