"""Read-only catalogue access for checkout.

``CatalogueLookup.lookup()`` resolves a set of product ids to immutable
snapshots. Unknown and inactive products are simply left out of the result;
deciding whether that is an error is up to the caller.

Lookups go through the Product repository, so inside a unit of work they
read from the same transaction that later decrements stock.
"""

from dataclasses import dataclass
from decimal import Decimal

from protean.utils.globals import current_domain

from ordering.catalogue.product import Product


@dataclass(frozen=True)
class ProductSnapshot:
    """Point-in-time view of a product used for pricing."""

    id: str
    name: str
    price: Decimal
    stock_count: int
    track_inventory: bool
    weight: Decimal | None
    category_id: str | None

    @classmethod
    def from_product(cls, product: Product) -> "ProductSnapshot":
        return cls(
            id=str(product.id),
            name=product.name,
            price=Decimal(product.price),
            stock_count=product.stock_count or 0,
            track_inventory=bool(product.track_inventory),
            weight=Decimal(product.weight) if product.weight is not None else None,
            category_id=product.category_id,
        )


class CatalogueLookup:
    def lookup(self, product_ids) -> list[ProductSnapshot]:
        ids = sorted(set(product_ids))
        if not ids:
            return []

        products = (
            current_domain.repository_for(Product)
            ._dao.query.filter(id__in=ids, is_active=True)
            .order_by("id")
            .limit(len(ids))
            .all()
            .items
        )
        return [ProductSnapshot.from_product(product) for product in products]

    def lookup_by_id(self, product_ids) -> dict[str, ProductSnapshot]:
        return {snapshot.id: snapshot for snapshot in self.lookup(product_ids)}
