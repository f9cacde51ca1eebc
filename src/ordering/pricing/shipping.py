"""Shipping cost estimation by total parcel weight.

Costs come from a tier table: the first tier whose ``max_weight`` covers the
parcel wins. Parcels heavier than the last tier pay a base amount plus a
per-kilogram surcharge. Every estimate is capped.
"""

from decimal import Decimal

from shared.config import ShippingRates

from ordering.pricing.money import to_money


def line_weight(product_weight: Decimal | None, quantity: int, rates: ShippingRates) -> Decimal:
    """Weight of one cart line; products without a weight use the per-unit default."""
    unit_weight = product_weight if product_weight is not None else rates.default_unit_weight
    return unit_weight * quantity


def estimate_shipping(total_weight: Decimal, rates: ShippingRates | None = None) -> Decimal:
    rates = rates or ShippingRates()

    for tier in rates.tiers:
        if total_weight <= tier.max_weight:
            return to_money(min(tier.cost, rates.cap))

    heaviest = rates.tiers[-1].max_weight if rates.tiers else Decimal("0")
    cost = rates.heavy_base + (total_weight - heaviest) * rates.heavy_per_kg
    return to_money(min(cost, rates.cap))
