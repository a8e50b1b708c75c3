"""Database module."""

import logging

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

logger = logging.getLogger("database")


class Base(DeclarativeBase):
    pass


def build_engine(database_url: str) -> Engine:
    """Create the engine for the credential database."""
    if not database_url:
        raise RuntimeError("SHOPIFY_DATABASE_URL is not set in your .env file!")

    connect_args = {}
    if database_url.startswith("sqlite"):
        # The store is used from the request thread pool.
        connect_args["check_same_thread"] = False

    engine = create_engine(database_url, connect_args=connect_args, pool_pre_ping=True)
    logger.info("Database engine created for dialect: %s", engine.dialect.name)
    return engine


def build_session_factory(engine: Engine) -> sessionmaker:
    """Session factory bound to ``engine``."""
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def create_tables(engine: Engine) -> None:
    """Create every table declared on ``Base``."""
    # Imported for its side effect of registering the models on Base.
    from storefront_auth.core import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    logger.info("Database tables ready")
