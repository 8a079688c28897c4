from fastapi import FastAPI

from wholesale_pos.core.config import settings
from wholesale_pos.db import Base, engine
from wholesale_pos.middleware.idempotency import install_idempotency
from wholesale_pos.middleware.order_audit import install_order_audit
from wholesale_pos.routers import checkout, health
from wholesale_pos.utils.logging import setup_logger

# models must be imported before create_all
from wholesale_pos.models import catalog as _catalog_models  # noqa: F401
from wholesale_pos.models import company as _company_models  # noqa: F401
from wholesale_pos.models import customer as _customer_models  # noqa: F401
from wholesale_pos.models import draft_order as _draft_order_models  # noqa: F401

logger = setup_logger("wholesale_pos")

Base.metadata.create_all(bind=engine)

app = FastAPI(title=settings.app_name, version=settings.app_version)

install_idempotency(app)
install_order_audit(app)
app.include_router(health.router)
app.include_router(checkout.router)

logger.info("Application ready", extra={"env": settings.app_env})


def serve():
    import uvicorn

    uvicorn.run("wholesale_pos.main:app", host="127.0.0.1", port=8010)
