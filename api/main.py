"""FastAPI application for the QAHub workspace access service."""

import logging
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from api.error_handlers import register_error_handlers
from api.routes import health
from api.routes.v1 import invites_router, roles_router, workspaces_router
from qahub import __version__
from qahub.config import CORS_ORIGINS, LOG_LEVEL
from qahub.logging import bind_context, clear_context

# Configure logging
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)


app = FastAPI(
    title="QAHub Access API",
    description="Workspace roles, permissions, membership and invitations",
    version=__version__,
)

# CORS for the web app dev server
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_context(request: Request, call_next):
    """Scope structured log context to one request."""
    clear_context()
    bind_context(request_id=request.headers.get("x-request-id") or uuid4().hex)
    return await call_next(request)


# Register global error handlers
register_error_handlers(app)

# v1 routes
app.include_router(roles_router, prefix="/api")
app.include_router(workspaces_router, prefix="/api")
app.include_router(invites_router, prefix="/api")

# Health check routes (no auth required)
app.include_router(health.router, prefix="/api")
