"""
CryptoVibe Ledger — FastAPI Application.

This is the entry point for the application.
All routers are registered here.
"""

from fastapi import FastAPI

from cryptovibe.config import get_settings
from cryptovibe.logging_config import setup_logging
from cryptovibe.api.health import router as health_router
from cryptovibe.api.audit import router as audit_router
from cryptovibe.api.crypto import router as crypto_router
from cryptovibe.api.finance import router as finance_router
from cryptovibe.api.chat import router as chat_router
from cryptovibe.services.audit_feed import audit_feed

settings = get_settings()

setup_logging(level=settings.LOG_LEVEL, format=settings.LOG_FORMAT)

# Publish committed audit entries to live subscribers
audit_feed.install()

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Crypto portfolio and personal finance backend with audit trail and rollback",
)

# Register routers
app.include_router(health_router)
app.include_router(audit_router)
app.include_router(crypto_router)
app.include_router(finance_router)
app.include_router(chat_router)
