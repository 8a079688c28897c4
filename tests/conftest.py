import os
import tempfile

# settings are read at import time; point the app at throwaway storage first
_TMP = tempfile.mkdtemp(prefix="wholesale-pos-tests-")
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["AUDIT_FILE"] = os.path.join(_TMP, "orders_audit.jsonl")
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["ORDER_MINIMUM_AMOUNT"] = "0"
os.environ["ORDER_MINIMUM_QUANTITY"] = "0"
os.environ["ORDER_MINIMUM_ITEMS"] = "0"

import pytest  # noqa: E402

from wholesale_pos.db import Base, SessionLocal, engine  # noqa: E402
from wholesale_pos.models import catalog, company, customer, draft_order  # noqa: E402,F401


@pytest.fixture
def db_tables():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def seeded(db_tables):
    from wholesale_pos.seed_demo import seed

    db = SessionLocal()
    try:
        seed(db)
    finally:
        db.close()


@pytest.fixture
def local_gateway(seeded):
    from wholesale_pos.gateways.local import LocalGateway

    return LocalGateway(SessionLocal, allow_payment_terms=True)


@pytest.fixture
def audit_file():
    from wholesale_pos.core.config import settings

    if os.path.exists(settings.audit_file):
        os.remove(settings.audit_file)
    yield settings.audit_file


@pytest.fixture
def client(local_gateway):
    from fastapi.testclient import TestClient

    from wholesale_pos.main import app
    from wholesale_pos.routers.checkout import get_gateway

    app.dependency_overrides[get_gateway] = lambda: local_gateway
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
