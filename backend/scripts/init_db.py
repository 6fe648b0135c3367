"""
Initialize a directly connected database: create all tables and, optionally,
the demo doctor and admin accounts.
Run with: python -m scripts.init_db [--seed]
"""

import argparse
import asyncio
from app.database import create_tables
from app.main import seed_demo_accounts
from app.services.sql_backend import SqlDataBackend


async def init(seed: bool):
    backend = SqlDataBackend()
    print("Creating database tables...")
    await create_tables(backend.engine)
    print("All tables created successfully.")
    if seed:
        await seed_demo_accounts(backend)
        print("Demo doctor and admin accounts ready.")
    await backend.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create portal tables")
    parser.add_argument("--seed", action="store_true", help="also create the demo doctor and admin")
    args = parser.parse_args()
    asyncio.run(init(args.seed))
