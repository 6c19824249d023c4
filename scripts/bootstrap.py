#!/usr/bin/env python3
"""
Create an organization (and optionally a first site) and print an admin API key.

    python scripts/bootstrap.py --org "Acme" --slug acme --site "Marketing"
"""
import argparse
import asyncio
import os

from siteapi import db
from siteapi.auth.scopes import Permission
from siteapi.services.organizations import create_site, get_or_create_organization, issue_api_key


async def run(args) -> None:
    db.configure_engine(args.database_url)
    await db.init_db()

    async with db.SessionLocal() as session:
        org = await get_or_create_organization(session, args.org, args.slug)
        print(f"organization: {org.id} ({org.slug})")

        if args.site:
            site = await create_site(session, org.id, args.site)
            print(f"site:         {site.id} ({site.slug})")

        raw_key, key = await issue_api_key(session, org.id, args.key_name, permissions=list(Permission))
        print(f"api key id:   {key.id}")
        print(f"api key:      {raw_key}")
        print("Store the key now; it cannot be shown again.")


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("--org", required=True, help="Organization name")
    parser.add_argument("--slug", required=True, help="Organization slug (unique)")
    parser.add_argument("--site", help="Create a first site with this name")
    parser.add_argument("--key-name", default="bootstrap-admin")
    parser.add_argument("--database-url", default=os.getenv("DATABASE_URL", db.DATABASE_URL))
    asyncio.run(run(parser.parse_args()))


if __name__ == "__main__":
    main()
