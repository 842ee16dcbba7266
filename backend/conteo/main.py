import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Ensure all SQLAlchemy models are imported so metadata is complete
import conteo.models  # noqa: F401
from conteo.db import Base, SessionLocal, engine

from conteo.api import conteo as conteo_api  # /conteo
from conteo.api import historial              # /historial
from conteo.api import catalog                # /catalog

# Ops/system endpoints (/health, /version)
from conteo.api.system import router as system_router

from conteo.services.tally.engine import build_engine

logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper())

# Dev convenience; production schemas come from Alembic
if os.getenv("CONTEO_CREATE_TABLES", "true").lower() == "true":
    Base.metadata.create_all(bind=engine)

app = FastAPI(title="Conteo")

# --- CORS for local frontend dev ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000", "http://127.0.0.1:3000",
        "http://localhost:5173", "http://127.0.0.1:5173",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# One running tally per process (kiosk model)
app.state.conteo = build_engine(SessionLocal)

# Routers
app.include_router(system_router)     # /health, /version
app.include_router(conteo_api.router) # /conteo
app.include_router(historial.router)  # /historial
app.include_router(catalog.router)    # /catalog
