#!/usr/bin/env python3
"""
Create the schema and, unless told otherwise, fill it with demo data.

    python init_db.py                 # tables + demo services, users, requests
    python init_db.py --no-seed       # tables only
    python init_db.py --reset --requests 30
"""
import argparse

from app import create_app
from extensions import db
from seed import seed_data


def init_database(seed=True, reset=False, num_buyers=5, num_requests=10):
    app = create_app()

    with app.app_context():
        try:
            if reset:
                print("Dropping existing tables...")
                db.drop_all()
            db.create_all()
            print(f"Tables ready on {db.engine.url.render_as_string(hide_password=True)}")

            if seed:
                seed_data(num_buyers=num_buyers, num_requests=num_requests)
        except Exception as e:
            print(f"Database initialization failed: {e}")
            raise


def main(argv=None):
    parser = argparse.ArgumentParser(description="Initialise the cargo logistics database")
    parser.add_argument("--no-seed", action="store_true", help="only create tables")
    parser.add_argument("--reset", action="store_true", help="drop every table first")
    parser.add_argument("--buyers", type=int, default=5)
    parser.add_argument("--requests", type=int, default=10)
    args = parser.parse_args(argv)

    init_database(
        seed=not args.no_seed,
        reset=args.reset,
        num_buyers=args.buyers,
        num_requests=args.requests,
    )


if __name__ == "__main__":
    main()
