"""FastAPI application wiring for the support desk.

- Configures logging, CORS for the chat frontend, Prometheus metrics and the
  JSON error envelope.
- Mounts the chat and agent catalog routers.
- Creates missing tables at startup.
- Exposes ``/api/health`` with database and reasoning provider status.

Rate limiting is applied per route through
:func:`supportdesk.core.rate_limit.enforce_rate_limit`.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from dotenv import load_dotenv
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator
from sqlalchemy.orm import Session, sessionmaker

from .agents.providers import ProviderRegistry
from .app_logging import init_logging
from .config import get_settings
from .core.deps import get_provider_registry, get_session_factory, prepare_schema
from .errors import install_error_handlers
from .models.session import ping
from .routers import agents, chat

load_dotenv()

logger = logging.getLogger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Missing tables are created at startup. Failures are logged, not raised.
    factory = app.dependency_overrides.get(get_session_factory, get_session_factory)()
    await asyncio.to_thread(prepare_schema, factory)
    yield


app = FastAPI(title="Support Desk API", version=settings.app_version, lifespan=lifespan)
init_logging(app)
install_error_handlers(app)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Agent-Type", "X-Routing-Reason", "X-RateLimit-Remaining"],
)
app.include_router(chat.router)
app.include_router(agents.router)

# Expose Prometheus metrics
Instrumentator().instrument(app).expose(
    app, include_in_schema=False, endpoint="/api/metrics"
)


@app.get("/api/health")
async def health(
    session_factory: sessionmaker[Session] = Depends(get_session_factory),
    registry: ProviderRegistry = Depends(get_provider_registry),
):
    """Report database reachability and whether an AI provider key is set."""
    database_ok = await asyncio.to_thread(ping, session_factory)
    ai_ok = registry.is_available()
    return {
        "status": "ok" if database_ok and ai_ok else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": settings.app_version,
        "services": {
            "database": "connected" if database_ok else "disconnected",
            "ai": "available" if ai_ok else "unavailable",
        },
    }
