"""Product aggregate — the catalogue record checkout prices against.

The catalogue collaborator owns products. Checkout reads them through
``ordering.catalogue.lookup`` and changes only ``stock_count`` and
``sales_count``, and only inside the order commit unit of work.
"""

from protean.fields import Boolean, Decimal, Identifier, Integer, String

from ordering.domain import ordering


@ordering.aggregate(schema_name="products")
class Product:
    id = Identifier(identifier=True, max_length=50)
    name = String(required=True, max_length=255)
    price = Decimal(required=True, min_value=0, precision=12, scale=2)
    stock_count = Integer(min_value=0, default=0)
    track_inventory = Boolean(default=True)
    weight = Decimal(min_value=0, precision=8, scale=3)  # kilograms
    category_id = String(max_length=50)
    is_active = Boolean(default=True)
    sales_count = Integer(min_value=0, default=0)
