import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from app.config import get_settings
from app.database import create_tables
from app.portal import PortalContext
from app.routers import dashboard, preferences
from app.routers import auth as auth_router

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

DEMO_ACCOUNTS = [
    {"table": "doctors", "name": "Dr. Smith", "email": "dr.smith@example.com", "password": "doctor123", "specialization": "General Medicine"},
    {"table": "admins", "name": "Admin", "email": "admin@example.com", "password": "admin123"},
]


async def seed_demo_accounts(backend) -> None:
    """Create the demo doctor and admin if they don't exist. Idempotent."""
    from app.services.data_backend import eq
    from app.services.sql_backend import hash_password

    for account in DEMO_ACCOUNTS:
        account = dict(account)
        table = account.pop("table")
        password = account.pop("password")
        existing = await backend.select_one(table, [eq("email", account["email"])])
        if not existing:
            await backend.insert(table, {**account, "password_hash": hash_password(password)})
            logger.info("Seeded demo %s %s", table[:-1], account["email"])


def create_app(portal: PortalContext = None) -> FastAPI:

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup: one portal context per application, then the session bootstrap
        context = portal or PortalContext.from_settings(settings)
        if settings.data_backend == "sql" and portal is None:
            await create_tables(context.backend.engine)
            if settings.seed_demo_accounts:
                await seed_demo_accounts(context.backend)
        app.state.portal = context
        await context.bootstrap()
        yield
        # Shutdown
        await context.close()

    app = FastAPI(
        title="Healthcare Portal",
        description="Role-based patient, doctor and admin portal service layer",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(NoCacheMiddleware)

    app.include_router(auth_router.router, prefix="/api/auth", tags=["Auth"])
    app.include_router(dashboard.router, prefix="/api/dashboard", tags=["Dashboard"])
    app.include_router(preferences.router, prefix="/api/preferences", tags=["Preferences"])

    @app.get("/api/health")
    async def health_check():
        return {"status": "healthy", "service": "healthcare-portal"}

    return app


class NoCacheMiddleware(BaseHTTPMiddleware):
    """Dashboards are recomputed on every load; keep browsers from caching them."""
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["Cache-Control"] = "no-store, no-cache, must-revalidate, proxy-revalidate, max-age=0"
        response.headers["Expires"] = "0"
        response.headers["Pragma"] = "no-cache"
        return response


app = create_app()
