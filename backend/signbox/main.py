import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from signbox.auth.router import router as auth_router
from signbox.config import settings
from signbox.documents.router import router as documents_router
from signbox.middleware import CorrelationIDMiddleware
from signbox.notifications.router import router as notifications_router
from signbox.signing.router import router as signing_router
from signbox.signing.router import signatures_router

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    docs_url="/api/docs",
    openapi_url="/api/openapi.json",
)

# Middleware
app.add_middleware(CorrelationIDMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.backend_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(auth_router, prefix="/api/auth", tags=["Auth"])
app.include_router(documents_router, prefix="/api/documents", tags=["Documents"])
app.include_router(signing_router, prefix="/api/signing", tags=["Signing"])
app.include_router(signatures_router, prefix="/api/signatures", tags=["Saved signatures"])
app.include_router(notifications_router, prefix="/api/notify", tags=["Notifications"])


@app.get("/api/health")
async def health_check():
    return {"status": "healthy", "version": settings.app_version}
