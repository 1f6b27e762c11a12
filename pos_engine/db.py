from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker

from pos_engine.core.config import settings

# Base para modelos (lo importa pos_engine.main)
Base = declarative_base()


def make_engine(url: str, **kwargs):
    connect_args = kwargs.pop("connect_args", {})
    if url.startswith("sqlite"):
        connect_args.setdefault("check_same_thread", False)
    engine = create_engine(url, connect_args=connect_args, pool_pre_ping=True, **kwargs)

    if engine.dialect.name == "sqlite":

        # PRAGMAs por conexión
        @event.listens_for(engine, "connect")
        def _on_connect(dbapi_conn, _):
            cur = dbapi_conn.cursor()
            try:
                cur.execute("PRAGMA foreign_keys=ON;")
                cur.execute("PRAGMA busy_timeout=60000;")
            finally:
                cur.close()

    return engine


engine = make_engine(settings.database_url)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


# Dependencia FastAPI
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
