from fastapi import FastAPI

from pos_engine.core.config import settings
from pos_engine.core.logging import configure_logging
from pos_engine.routers import cart, health, loyalty, shifts

from .db import Base, engine

# IMPORTA MODELOS antes de create_all
from .models import loyalty as _loyalty_models
from .models import pos as _pos_models

configure_logging()

# Crea tablas faltantes (desarrollo)
Base.metadata.create_all(bind=engine)

app = FastAPI(title=settings.app_name, version=settings.app_version)

app.include_router(health.router)
app.include_router(loyalty.router)
app.include_router(cart.router)
app.include_router(shifts.router)
