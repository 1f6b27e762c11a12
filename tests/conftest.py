import os

# antes de importar la app: base en memoria, sin archivo .db
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SALES_BACKEND", "sql")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from pos_engine.db import Base, get_db, make_engine
from pos_engine.main import app


@pytest.fixture()
def engine():
    eng = make_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture()
def db(engine):
    s = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield s
    finally:
        s.close()


@pytest.fixture()
def client(engine):
    Local = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def _get_db():
        s = Local()
        try:
            yield s
        finally:
            s.close()

    app.dependency_overrides[get_db] = _get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
