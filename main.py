#main.py
"""
Main entrypoint for the CampFinder site.

Usage:
    python main.py --api       Start the web server
    python main.py --refresh   Fetch camps and categories once and report counts
    python main.py --init-db   Create the favorites table
"""
import argparse
import asyncio

from campfinder.airtable.client import create_record_source
from campfinder.cache import RecordCache
from campfinder.config import Settings, logger
from campfinder.database.db import create_engine, init_db


async def refresh_once(settings: Settings):
    """Fetch both tables through the cache and log what came back"""
    source = create_record_source(settings)
    try:
        cache = RecordCache(source)
        camps = await cache.get_camps()
        categories = await cache.get_categories()
        logger.info(f"Fetched {len(camps)} camps and {len(categories)} categories")
        return len(camps), len(categories)
    finally:
        await source.close()


async def create_tables(settings: Settings):
    engine = create_engine(settings.db_url)
    try:
        await init_db(engine)
    finally:
        await engine.dispose()


async def async_main(args):
    """Async main function for one-off operations"""
    settings = Settings.from_env()

    if args.init_db:
        logger.info("Initializing database...")
        await create_tables(settings)

    if args.refresh:
        logger.info("Refreshing camp data...")
        await refresh_once(settings)


def main():
    """Main function - handles API vs async operations"""
    parser = argparse.ArgumentParser(description='CampFinder summer camp directory')
    parser.add_argument('--api', action='store_true', help='Start API server')
    parser.add_argument('--refresh', action='store_true', help='Fetch camp data once')
    parser.add_argument('--init-db', action='store_true', help='Create database tables')
    args = parser.parse_args()

    if args.api or not any(vars(args).values()):
        # Start API server synchronously
        logger.info("Starting API server...")
        from campfinder.api.endpoints import start_api
        start_api()
    else:
        # Run async operations
        asyncio.run(async_main(args))


if __name__ == "__main__":
    main()
