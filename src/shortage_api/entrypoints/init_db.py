"""Create the Dispomed schemas and tables in the configured database."""

import logging

from sqlalchemy import create_engine, text

import config
from shortage_api.adapters import orm

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def init_db(engine=None):
    engine = engine or create_engine(config.get_postgres_uri())
    with engine.begin() as connection:
        for schema in orm.SCHEMAS:
            connection.execute(text(f"CREATE SCHEMA IF NOT EXISTS {schema}"))
    orm.metadata.create_all(engine)
    logger.info("✓ Dispomed database schema initialized")


def main():
    try:
        init_db()
    except Exception as e:
        logger.error(f"Error initializing database schema: {e}")
        raise SystemExit(1) from e


if __name__ == "__main__":
    main()
