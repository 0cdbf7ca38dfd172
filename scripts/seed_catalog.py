#!/usr/bin/env python3
"""
Seed the election catalog (offices and candidate options) and print it.

Uses the store configured through the same environment variables as the
ballot API. Seeding is idempotent: an already seeded catalog is left alone.

Usage:
    python3 scripts/seed_catalog.py            # seed and print catalog
    python3 scripts/seed_catalog.py --results  # also print current results
"""
import asyncio
import sys

from encuesta.ballot_api.config import settings
from encuesta.ballot_api.service import ElectionService, build_store


async def seed(show_results: bool) -> None:
    """Seed the catalog and print offices, candidates and optionally results."""
    service = ElectionService(build_store(settings))

    print(f"Connecting to {settings.STORE_BACKEND} store...")
    await service.store.initialize()

    try:
        seeded = await service.catalog.seed_if_empty()
        print("✅ Catalog seeded" if seeded else "ℹ️  Catalog already present, nothing inserted")

        print("\nCatalog:")
        for entry in await service.list_catalog():
            print(f"  [{entry.office.id}] {entry.office.name}")
            for candidate in entry.candidates:
                print(f"      {candidate.id:>4}  {candidate.name}")

        if show_results:
            print("\nResults:")
            for row in await service.get_tally():
                print(f"  {row.office_name:<16} {row.candidate_name:<14} {row.vote_count:>6,}")

    finally:
        await service.close()


if __name__ == '__main__':
    show_results = '--results' in sys.argv[1:]

    print("=" * 60)
    print("SEEDING ELECTION CATALOG")
    print("=" * 60)

    asyncio.run(seed(show_results))
