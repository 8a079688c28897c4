from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from wholesale_pos.core.config import settings

Base = declarative_base()

SQLALCHEMY_DATABASE_URL = settings.database_url
_IS_SQLITE = SQLALCHEMY_DATABASE_URL.startswith("sqlite")
_IN_MEMORY = SQLALCHEMY_DATABASE_URL in ("sqlite://", "sqlite:///:memory:")

_engine_kwargs = {"pool_pre_ping": True}
if _IS_SQLITE:
    _engine_kwargs["connect_args"] = {"check_same_thread": False, "timeout": 60}
if _IN_MEMORY:
    # one shared connection, otherwise every session sees an empty database
    _engine_kwargs["poolclass"] = StaticPool

engine = create_engine(SQLALCHEMY_DATABASE_URL, **_engine_kwargs)


if _IS_SQLITE:

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_conn, _):
        cur = dbapi_conn.cursor()
        try:
            if not _IN_MEMORY:
                cur.execute("PRAGMA journal_mode=WAL;")
                cur.execute("PRAGMA synchronous=NORMAL;")
            cur.execute("PRAGMA busy_timeout=60000;")
            cur.execute("PRAGMA foreign_keys=ON;")
        finally:
            cur.close()


SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
