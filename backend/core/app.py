# core/app.py - App factory with dynamic module discovery
#
# Creates and configures the FastAPI application. Discovers all modules under
# backend/modules/, resolves load order from REQUIRES/IMPLEMENTS declarations,
# and calls each module's register(app, registry) function.
#
# main.py: from core.app import create_app; app = create_app()

import asyncio
import importlib
import logging
import pathlib
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from core.errors import UpkeepError

log = logging.getLogger("upkeep.api")

__version__ = "1.0.0"


# ---------------------------------------------------------------------------
# Module discovery helpers
# ---------------------------------------------------------------------------

def _discover_modules() -> list[str]:
    """Return a list of module package names found under backend/modules/.

    A valid module directory contains an __init__.py with a MODULE_ID attribute.
    """
    modules_dir = pathlib.Path(__file__).parent.parent / "modules"
    found = []
    for entry in sorted(modules_dir.iterdir()):
        if not entry.is_dir():
            continue
        if not (entry / "__init__.py").exists():
            continue
        pkg_name = f"modules.{entry.name}"
        try:
            mod = importlib.import_module(pkg_name)
            if hasattr(mod, "MODULE_ID"):
                found.append(pkg_name)
        except Exception as exc:
            log.warning(f"Module discovery: skipping {pkg_name!r}: {exc}")
    return found


def _resolve_load_order(pkg_names: list[str]) -> list[str]:
    """Topologically sort modules so that providers load before their consumers.

    Interfaces named in REQUIRES are matched to the module that lists them in
    IMPLEMENTS; Kahn's algorithm orders the result. Modules caught in a cycle
    load last, in discovery order, with a warning rather than failing startup.
    """
    mods: dict[str, dict] = {}
    for pkg in pkg_names:
        m = importlib.import_module(pkg)
        mods[pkg] = {
            "implements": getattr(m, "IMPLEMENTS", []),
            "requires": getattr(m, "REQUIRES", []),
        }

    # interface -> providing pkg
    providers: dict[str, str] = {}
    for pkg, info in mods.items():
        for iface in info["implements"]:
            providers[iface] = pkg

    edges: dict[str, set[str]] = {pkg: set() for pkg in pkg_names}
    for pkg, info in mods.items():
        for iface in info["requires"]:
            provider_pkg = providers.get(iface)
            if provider_pkg and provider_pkg != pkg:
                edges[pkg].add(provider_pkg)

    in_degree: dict[str, int] = {pkg: len(deps) for pkg, deps in edges.items()}
    queue = sorted(pkg for pkg in pkg_names if in_degree[pkg] == 0)
    ordered: list[str] = []

    while queue:
        pkg = queue.pop(0)
        ordered.append(pkg)
        for other_pkg, deps in edges.items():
            if pkg in deps:
                in_degree[other_pkg] -= 1
                if in_degree[other_pkg] == 0:
                    queue.append(other_pkg)
                    queue.sort()

    remaining = [pkg for pkg in pkg_names if pkg not in ordered]
    if remaining:
        log.warning(
            f"Module load order: circular or unresolvable dependencies for "
            f"{remaining}; appending in discovery order."
        )
        ordered.extend(remaining)

    return ordered


# ---------------------------------------------------------------------------
# Background tasks
# ---------------------------------------------------------------------------

def _due_check_once() -> None:
    from core.db import SessionLocal
    from core.registry import registry
    from modules.maintenance.sweep import run_due_check

    db = SessionLocal()
    try:
        run_due_check(db, registry.get_optional("MaintenanceNotifier"))
    finally:
        db.close()


async def _periodic_due_check(interval_hours: float, run_on_start: bool):
    """Background task: scan + dispatch every interval_hours.

    The sweep is synchronous SQLAlchemy work, so it runs in a worker thread.
    A failed sweep is logged and retried at the next tick.
    """
    if not run_on_start:
        await asyncio.sleep(interval_hours * 3600)
    while True:
        try:
            await asyncio.to_thread(_due_check_once)
        except Exception:
            log.warning("Scheduled due check failed", exc_info=True)
        await asyncio.sleep(interval_hours * 3600)


# ---------------------------------------------------------------------------
# Middleware and error handling
# ---------------------------------------------------------------------------

def _setup_middleware(app: FastAPI) -> None:
    """Attach CORS middleware to the app."""
    from core.config import settings

    _cors_origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
    if "*" in _cors_origins:
        log.warning(
            "CORS origin '*' is incompatible with allow_credentials=True; "
            "falling back to empty origins list. Set explicit origins in CORS_ORIGINS."
        )
        _cors_origins = []

    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "Accept"],
    )


def _register_exception_handlers(app: FastAPI) -> None:
    """Map domain exceptions to HTTP responses so routes never translate them by hand."""

    @app.exception_handler(UpkeepError)
    async def upkeep_error_handler(request: Request, exc: UpkeepError):
        if exc.status_code >= 500:
            log.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------

def create_app() -> FastAPI:
    """Create and fully configure the Upkeep FastAPI application.

    1. Discover all modules under backend/modules/.
    2. Resolve load order by REQUIRES/IMPLEMENTS declarations.
    3. Call each module's register(app, registry) at build time so routes and
       providers exist before the first request.
    4. Lifespan: create tables, validate dependencies, wire event bus
       subscribers, start the periodic due check.

    Returns the fully configured app object. Uvicorn finds it via main:app.
    """
    from core.config import settings
    from core.db import engine, init_db
    from core.registry import registry

    pkg_names = _discover_modules()
    ordered_pkgs = _resolve_load_order(pkg_names)

    log.info(f"Module load order: {[p.split('.')[-1] for p in ordered_pkgs]}")

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        from core.event_bus import get_event_bus

        init_db()
        registry.validate_dependencies()

        _bus = get_event_bus()
        for pkg in ordered_pkgs:
            mod = importlib.import_module(pkg)
            if hasattr(mod, "register_subscribers"):
                mod.register_subscribers(_bus)
        log.info("Event bus initialized with module subscribers")

        due_check_task = None
        if settings.due_check_interval_hours > 0:
            due_check_task = asyncio.create_task(
                _periodic_due_check(settings.due_check_interval_hours, settings.due_check_on_startup)
            )
        else:
            log.info("Periodic due check disabled (DUE_CHECK_INTERVAL_HOURS <= 0)")
        yield
        if due_check_task:
            due_check_task.cancel()

    app = FastAPI(
        title="Upkeep",
        description="Maintenance scheduling and notification service",
        version=__version__,
        lifespan=lifespan,
        docs_url="/api/v1/docs",
        redoc_url="/api/v1/redoc",
    )

    _setup_middleware(app)
    _register_exception_handlers(app)

    @app.get("/health", tags=["System"])
    def health():
        """Liveness plus a trivial database round trip."""
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            database = "ok"
        except Exception as e:
            log.warning(f"Health check database probe failed: {e}")
            database = "unavailable"
        return {"status": "ok" if database == "ok" else "degraded",
                "version": __version__, "database": database}

    for pkg in ordered_pkgs:
        mod = importlib.import_module(pkg)
        registry.record_requires(
            getattr(mod, "MODULE_ID", pkg),
            getattr(mod, "REQUIRES", []),
        )
        if hasattr(mod, "register"):
            try:
                mod.register(app, registry)
                log.debug(f"Registered module: {pkg}")
            except Exception as exc:
                log.error(f"Failed to register module {pkg!r}: {exc}", exc_info=True)

    return app
