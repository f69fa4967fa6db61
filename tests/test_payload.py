"""Tests for response normalization."""

from decimal import Decimal

from storefront.services.storefront_client import to_cart_snapshot
from storefront.utils.payload import unwrap_payload


class TestUnwrapPayload:
    def test_data_wins_over_content(self):
        assert unwrap_payload({"data": {"a": 1}, "content": [2]}) == {"a": 1}

    def test_content_when_no_data(self):
        assert unwrap_payload({"content": [1, 2]}) == [1, 2]

    def test_null_data_falls_through_to_content(self):
        assert unwrap_payload({"data": None, "content": [3]}) == [3]

    def test_bare_body(self):
        body = {"items": []}
        assert unwrap_payload(body) is body

    def test_non_dict_body(self):
        assert unwrap_payload([1]) == [1]
        assert unwrap_payload(None) is None


class TestToCartSnapshot:
    def test_maps_server_lines(self):
        snapshot = to_cart_snapshot({
            "success": True,
            "data": {"items": [
                {"productId": 7, "productName": "Lamp", "priceAmount": 12.5, "quantity": 2, "imageUrl": "/l.png"},
            ]},
        })

        assert len(snapshot.items) == 1
        item = snapshot.items[0]
        assert item.product_id == 7
        assert item.name == "Lamp"
        assert item.unit_price == Decimal("12.5")
        assert item.quantity == 2
        assert item.image_url == "/l.png"

    def test_duplicate_product_rows_are_merged(self):
        snapshot = to_cart_snapshot({"items": [
            {"productId": 1, "productName": "A", "priceAmount": "1.00", "quantity": 1},
            {"productId": 1, "productName": "A", "priceAmount": "1.00", "quantity": 2},
        ]})

        assert snapshot.product_ids() == ["1"]
        assert snapshot.items[0].quantity == 3

    def test_zero_quantity_lines_are_dropped(self):
        snapshot = to_cart_snapshot({"items": [
            {"productId": 1, "productName": "A", "priceAmount": "1.00", "quantity": 0},
            {"productId": 2, "productName": "B", "priceAmount": "1.00", "quantity": 1},
        ]})

        assert snapshot.product_ids() == ["2"]

    def test_missing_items_is_empty(self):
        assert to_cart_snapshot({"data": {}}).is_empty()
        assert to_cart_snapshot({"success": True, "data": None}).is_empty()
