#!/usr/bin/env python
"""Script to add a business record to the Firebase catalog and print its slug."""
from __future__ import annotations

import argparse
import uuid

from emprende.models import Business
from emprende.services.catalog_db import get_catalog_db


def main() -> None:
    parser = argparse.ArgumentParser(description="Create a marketplace business")
    parser.add_argument("--business_id", default=None, help="Defaults to a new UUID")
    parser.add_argument("--name", required=True)
    parser.add_argument("--whatsapp", default=None)
    parser.add_argument("--description", default=None)
    parser.add_argument("--logo_url", default=None)
    parser.add_argument("--inactive", action="store_true")
    args = parser.parse_args()

    business = Business(
        id=args.business_id or str(uuid.uuid4()),
        name=args.name,
        whatsapp=args.whatsapp,
        description=args.description,
        logo_url=args.logo_url,
        is_active=not args.inactive,
    )
    get_catalog_db().set_business(business)
    print("Created business:")
    print(business.model_dump_json(indent=2))
    print(f"URL path: /businesses/{business.slug}")


if __name__ == "__main__":
    main()
