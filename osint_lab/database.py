import logging
from sqlmodel import SQLModel, create_engine
from sqlalchemy.pool import StaticPool

from osint_lab import models  # noqa: F401  registers the tables on SQLModel.metadata

logger = logging.getLogger(__name__)


def create_db_engine(settings):
    url = settings.database_url
    kwargs = {"echo": settings.db_echo}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if ":memory:" in url or url == "sqlite://":
            kwargs["poolclass"] = StaticPool
    else:
        kwargs["pool_pre_ping"] = True
        if settings.is_production:
            # hosted Postgres uses certificates we do not verify
            kwargs["connect_args"] = {"sslmode": "require"}
    return create_engine(url, **kwargs)


def create_db_and_tables(engine):
    SQLModel.metadata.create_all(engine)
    logger.info("Database tables ready")
