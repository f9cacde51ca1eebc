"""Tests for the read-only checkout previews."""

from decimal import Decimal

import pytest
from protean.exceptions import ValidationError

from ordering.catalogue.product import Product
from ordering.checkout.preview import CheckoutPreview, checkout_config
from ordering.coupon.coupon import Coupon
from ordering.order.order import Order


@pytest.fixture()
def preview(settings):
    return CheckoutPreview(settings)


class TestTotals:
    def test_totals_with_coupon(self, preview, add_product, add_coupon):
        add_product("prod-001", price=Decimal("25.00"))
        add_coupon("SAVE10")

        quote = preview.totals([{"product_id": "prod-001", "quantity": 2}], coupon_code="save10")

        assert quote.pricing.subtotal == Decimal("50.00")
        assert quote.pricing.discount == Decimal("5.00")
        assert quote.pricing.total == Decimal("115.00")
        assert quote.rejection is None

    def test_unusable_coupon_is_reported_not_raised(self, preview, add_product, add_coupon):
        add_product("prod-001", price=Decimal("25.00"))
        add_coupon("BIG", min_amount=Decimal("500"))

        quote = preview.totals([{"product_id": "prod-001", "quantity": 2}], coupon_code="BIG")

        assert quote.pricing.discount == Decimal("0.00")
        assert quote.pricing.applied_coupon is None
        data = quote.to_dict()
        assert data["coupon_rejection"]["code"] == "BELOW_MINIMUM"
        assert "$500.00" in data["coupon_rejection"]["message"]

    def test_preview_does_not_write(self, preview, add_product, add_coupon, fetch, count_rows):
        add_product("prod-001", stock_count=1)
        coupon = add_coupon("SAVE10")

        preview.totals([{"product_id": "prod-001", "quantity": 3}], coupon_code="SAVE10")

        assert fetch(Product, "prod-001").stock_count == 1
        assert fetch(Coupon, coupon.id).usage_count == 0
        assert count_rows(Order) == 0

    def test_clamped_lines_are_reported(self, preview, add_product):
        add_product("prod-001", price=Decimal("25.00"), stock_count=2)

        quote = preview.totals([{"product_id": "prod-001", "quantity": 5}])

        assert quote.pricing.items[0].quantity == 2
        assert quote.pricing.items[0].line_total == Decimal("50.00")
        assert quote.to_dict()["adjustments"] == [
            {
                "product_id": "prod-001",
                "product_name": "Product prod-001",
                "requested_quantity": 5,
                "adjusted_quantity": 2,
            }
        ]


class TestValidateCoupon:
    def test_discount_on_subtotal(self, preview, add_coupon):
        add_coupon("SAVE10", max_discount=Decimal("8"))

        result = preview.validate_coupon("save10", Decimal("120"))

        assert result["valid"] is True
        assert result["coupon"]["code"] == "SAVE10"
        assert result["coupon"]["discount"] == Decimal("8.00")
        assert result["coupon"]["free_shipping"] is False

    def test_fixed_amount_never_exceeds_subtotal(self, preview, add_coupon):
        add_coupon("FLAT", type="FIXED_AMOUNT", value=Decimal("100"))

        result = preview.validate_coupon("FLAT", Decimal("60"))

        assert result["coupon"]["discount"] == Decimal("60.00")

    def test_free_shipping_flag(self, preview, add_coupon):
        add_coupon("FREESHIP", type="FREE_SHIPPING", value=Decimal("0"))

        result = preview.validate_coupon("FREESHIP", Decimal("10"))

        assert result["coupon"]["discount"] == Decimal("0.00")
        assert result["coupon"]["free_shipping"] is True

    def test_items_restrict_the_discount_base(self, preview, add_product, add_coupon):
        add_product("E1", price=Decimal("50.00"), category_id="electronics")
        add_product("P1", price=Decimal("30.00"), category_id="apparel")
        add_coupon("TECH", application_type="SPECIFIC_CATEGORIES", category_ids=["electronics"])

        result = preview.validate_coupon(
            "TECH",
            Decimal("80"),
            items=[{"product_id": "E1", "quantity": 1}, {"product_id": "P1", "quantity": 1}],
        )

        assert result["coupon"]["discount"] == Decimal("5.00")

    def test_items_outside_scope(self, preview, add_product, add_coupon):
        add_product("P1", price=Decimal("30.00"), category_id="apparel")
        add_coupon("TECH", application_type="SPECIFIC_CATEGORIES", category_ids=["electronics"])

        result = preview.validate_coupon("TECH", Decimal("30"), items=[{"product_id": "P1", "quantity": 1}])

        assert result["valid"] is False
        assert result["rejection"]["code"] == "NO_APPLICABLE_ITEMS"

    def test_unknown_code(self, preview):
        result = preview.validate_coupon("NOPE", Decimal("10"))

        assert result == {
            "valid": False,
            "coupon": None,
            "rejection": {"code": "NOT_FOUND", "message": "Coupon not found"},
        }

    def test_exhausted_code(self, preview, add_coupon):
        add_coupon("GONE", usage_limit=2, usage_count=2)

        result = preview.validate_coupon("GONE", Decimal("10"))

        assert result["rejection"]["code"] == "LIMIT_REACHED"

    def test_minimum_is_checked_against_the_priced_cart_not_the_client_subtotal(
        self, preview, add_product, add_coupon
    ):
        add_product("prod-001", price=Decimal("25.00"))
        add_coupon("MIN500", min_amount=Decimal("500"))

        result = preview.validate_coupon(
            "MIN500",
            Decimal("1000"),
            items=[{"product_id": "prod-001", "quantity": 1}],
        )

        assert result["valid"] is False
        assert result["rejection"]["code"] == "BELOW_MINIMUM"

    def test_client_subtotal_is_used_only_without_items(self, preview, add_coupon):
        add_coupon("MIN500", min_amount=Decimal("500"))

        result = preview.validate_coupon("MIN500", Decimal("1000"))

        assert result["valid"] is True
        assert result["coupon"]["discount"] == Decimal("100.00")

    def test_code_is_required(self, preview):
        with pytest.raises(ValidationError) as exc:
            preview.validate_coupon("   ", Decimal("10"))

        assert "code" in exc.value.messages

    def test_negative_subtotal_is_rejected(self, preview):
        with pytest.raises(ValidationError) as exc:
            preview.validate_coupon("SAVE10", "-1")

        assert "subtotal" in exc.value.messages


class TestVerifyStock:
    def test_all_available(self, preview, add_product):
        add_product("prod-001", stock_count=5)

        result = preview.verify_stock([{"product_id": "prod-001", "quantity": 5}])

        assert result == {"valid": True, "out_of_stock_items": []}

    def test_empty_cart_is_rejected(self, preview):
        with pytest.raises(ValidationError) as exc:
            preview.verify_stock([])

        assert exc.value.messages == {"items": ["Cart is empty"]}

    def test_reports_missing_and_short_lines(self, preview, add_product):
        add_product("prod-001", name="Backpack", stock_count=2)
        add_product("prod-002", stock_count=0, track_inventory=False)
        add_product("prod-003", is_active=False)

        result = preview.verify_stock(
            [
                {"product_id": "prod-001", "quantity": 3},
                {"product_id": "prod-002", "quantity": 9},
                {"product_id": "prod-003", "quantity": 1},
                {"product_id": "prod-404", "quantity": 1},
            ]
        )

        assert result["valid"] is False
        assert result["out_of_stock_items"] == [
            {"product_id": "prod-001", "product_name": "Backpack", "requested": 3, "available": 2},
            {"product_id": "prod-003", "product_name": None, "requested": 1, "available": 0},
            {"product_id": "prod-404", "product_name": None, "requested": 1, "available": 0},
        ]


def test_checkout_config(settings):
    config = checkout_config(settings)

    assert config["free_shipping_threshold"] == Decimal("299")
    assert config["tax_rate"] == Decimal("0")
    assert config["currency"] == "MXN"
    assert config["payment_methods"] == ["card", "paypal", "bank_transfer", "cash_on_delivery", "zelle"]
