from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

Base = declarative_base()


def make_engine(database_url: str, timeout: float = 10) -> Engine:
    """Create an engine whose connection attempts give up after `timeout` seconds."""
    if database_url.startswith("sqlite"):
        # SQLite specific configuration for multi-threading
        connect_args = {"check_same_thread": False, "timeout": timeout}
        return create_engine(database_url, connect_args=connect_args)

    connect_args = {"connect_timeout": int(timeout)} if database_url.startswith("postgresql") else {}
    return create_engine(
        database_url,
        pool_pre_ping=True,     # test connections before use (handles dropped DB connections)
        pool_timeout=timeout,
        pool_recycle=3600,
        connect_args=connect_args,
    )


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def create_tables(engine: Engine) -> None:
    import storage.models  # noqa: F401  registers the tables on Base

    Base.metadata.create_all(bind=engine)
