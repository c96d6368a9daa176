import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from clmp.core.config import (
    DATABASE_URL,
    SUPABASE_URL,
    STRIPE_SECRET_KEY,
    FRONTEND_URL,
    LOG_LEVEL,
    LOG_FILE,
    CORS_ALLOW_HEADERS,
)
from clmp.core.errors import setup_exception_handlers
from clmp.core.logging_config import setup_logging, sanitize_log_data
from clmp.api.routes import account, billing, billing_webhook, me, health

setup_logging(LOG_LEVEL, LOG_FILE)
logger = logging.getLogger(__name__)

logger.info(
    "Starting CLMP API with config: %s",
    sanitize_log_data({
        "database_url": DATABASE_URL,
        "supabase_url": SUPABASE_URL,
        "stripe_secret_key": STRIPE_SECRET_KEY,
        "frontend_url": FRONTEND_URL,
        "log_level": LOG_LEVEL,
    }),
)


# ============================================
# ✅ FASTAPI APP INIT
# ============================================

app = FastAPI(title="CLMP API")

# Bearer tokens only, no cookies
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=CORS_ALLOW_HEADERS,
)

setup_exception_handlers(app)


# ============================================
# ✅ REGISTER ALL ROUTERS
# ============================================

app.include_router(account.router)
app.include_router(billing.router)
app.include_router(billing_webhook.router)
app.include_router(me.router)
app.include_router(health.router)


@app.get("/")
def root():
    return {"status": "CLMP API running"}
