import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from restoledger.core.config import settings
from restoledger.core.errors import install_error_handlers
from restoledger.core.logging import setup_logging
from restoledger.api.routes.auth import router as auth_router
from restoledger.api.routes.users import router as users_router
from restoledger.api.routes.audit import router as audit_router
from restoledger.api.routes.bank_accounts import router as bank_accounts_router
from restoledger.api.routes.categories import router as categories_router
from restoledger.api.routes.suppliers import router as suppliers_router
from restoledger.api.routes.transactions import router as tx_router
from restoledger.api.routes.reports import router as reports_router

setup_logging()
log = logging.getLogger(__name__)

app = FastAPI(title="restoledger")

origins = [o.strip() for o in (settings.cors_origins or "").split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

install_error_handlers(app)

@app.get("/health")
@app.get("/api/health")
def health():
    return {"status": "ok"}

app.include_router(auth_router)
app.include_router(users_router)
app.include_router(audit_router)
app.include_router(bank_accounts_router)
app.include_router(categories_router)
app.include_router(suppliers_router)
app.include_router(tx_router)
app.include_router(reports_router)

log.info("restoledger ready, timezone=%s", settings.timezone)
