"""Storefront database management CLI.

Creates and drops the checkout schema and loads a small demo catalogue.

Usage:
    python src/manage.py setup-db   # Create all tables
    python src/manage.py drop-db    # Drop all tables
    python src/manage.py seed       # Insert demo products and coupons
"""

import argparse
import sys
from decimal import Decimal

DEMO_PRODUCTS = [
    {
        "id": "prod-001",
        "name": "Wireless Headphones",
        "price": Decimal("899.00"),
        "stock_count": 25,
        "weight": Decimal("0.4"),
        "category_id": "electronics",
    },
    {
        "id": "prod-002",
        "name": "USB-C Charger",
        "price": Decimal("249.00"),
        "stock_count": 60,
        "weight": Decimal("0.2"),
        "category_id": "electronics",
    },
    {
        "id": "prod-003",
        "name": "Cotton T-Shirt",
        "price": Decimal("199.00"),
        "stock_count": 100,
        "weight": Decimal("0.3"),
        "category_id": "apparel",
    },
    {
        "id": "prod-004",
        "name": "Hiking Backpack",
        "price": Decimal("1299.00"),
        "stock_count": 3,
        "weight": Decimal("1.8"),
        "category_id": "outdoor",
    },
    {
        "id": "prod-005",
        "name": "Gift Card",
        "price": Decimal("500.00"),
        "stock_count": 0,
        "track_inventory": False,
        "weight": None,
        "category_id": None,
    },
]

DEMO_COUPONS = [
    {"code": "SAVE10", "type": "PERCENTAGE", "value": Decimal("10")},
    {
        "code": "WELCOME100",
        "type": "FIXED_AMOUNT",
        "value": Decimal("100"),
        "min_amount": Decimal("500"),
        "usage_limit_per_user": 1,
    },
    {"code": "FREESHIP", "type": "FREE_SHIPPING", "value": Decimal("0"), "usage_limit": 100},
    {
        "code": "TECH15",
        "type": "PERCENTAGE",
        "value": Decimal("15"),
        "max_discount": Decimal("300"),
        "application_type": "SPECIFIC_CATEGORIES",
        "category_ids": ["electronics"],
    },
]


def _ordering():
    from ordering.domain import ordering
    from ordering.utils.db import configure_sqlite

    print("Initializing ordering domain...")
    ordering.init()
    configure_sqlite(ordering)
    return ordering


def setup_database():
    """Create all checkout tables."""
    from ordering.utils.db import setup_db

    domain = _ordering()
    print("Creating checkout database schema...")
    setup_db(domain)
    print("Done.")


def drop_database():
    """Drop all checkout tables."""
    from ordering.utils.db import drop_db

    domain = _ordering()
    print("Dropping checkout database schema...")
    drop_db(domain)
    print("Done.")


def seed_database():
    """Insert the demo catalogue and coupons, skipping rows that already exist."""
    from ordering.catalogue.product import Product
    from ordering.coupon.coupon import Coupon
    from ordering.utils.db import setup_db

    domain = _ordering()
    setup_db(domain)

    with domain.domain_context():
        product_repo = domain.repository_for(Product)
        for data in DEMO_PRODUCTS:
            if not product_repo._dao.query.filter(id=data["id"]).count():
                product_repo.add(Product(**data))
                print(f"  product {data['id']} ({data['name']})")

        coupon_repo = domain.repository_for(Coupon)
        for data in DEMO_COUPONS:
            if not coupon_repo._dao.query.filter(code=data["code"]).count():
                coupon_repo.add(Coupon(**data))
                print(f"  coupon {data['code']}")

    print("Done.")


def main():
    parser = argparse.ArgumentParser(description="Storefront database management")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")
    subparsers.add_parser("seed", help="Insert demo products and coupons")

    args = parser.parse_args()

    if args.command == "setup-db":
        setup_database()
    elif args.command == "drop-db":
        drop_database()
    elif args.command == "seed":
        seed_database()
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
