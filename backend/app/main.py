"""Invoicer backend entrypoint."""

import os

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from backend.app.api import charges, customers, entries, imports, invoices, settings as settings_api, templates
from backend.app.core.errors import BillingError
from backend.app.core.logging import configure_logging
from backend.app.core.settings import get_settings
from backend.app.db.base import Base
from backend.app.db.session import SessionLocal, engine
from backend.app.services.settings import initialize_settings

settings = get_settings()
app = FastAPI(title=settings.app_name, version=settings.api_version)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(customers.router)
app.include_router(entries.router)
app.include_router(charges.router)
app.include_router(imports.router)
app.include_router(invoices.router)
app.include_router(templates.router)
app.include_router(settings_api.router)


@app.exception_handler(BillingError)
async def billing_error_handler(request: Request, exc: BillingError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.get("/")
def read_root():
    return {"app": "Invoicer backend", "status": "ok"}


@app.get("/health")
def health_check():
    return {"status": "ok"}


@app.on_event("startup")
def prepare_database():
    configure_logging()
    # Tests manage their own schema and settings rows.
    if os.getenv("PYTEST_CURRENT_TEST"):
        return
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        initialize_settings(db)
    finally:
        db.close()
