"""Webhook server: health check and on-demand build triggers"""

import contextlib
import logging

import uvicorn
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from starlette.applications import Starlette
from starlette.exceptions import HTTPException
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from niveflow.config import config
from niveflow.models.sources_config import SourcesConfig
from niveflow.services.trigger import BuildTrigger
from niveflow.utils.sources_loader import load_sources_config

logger = logging.getLogger(__name__)

TRIGGER_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]

# Background scheduler, created on startup when enabled
_scheduler: AsyncIOScheduler | None = None


async def health_check(request: Request) -> JSONResponse:
    trigger: BuildTrigger = request.app.state.trigger
    return JSONResponse({"status": "ok", "building": trigger.building})


async def trigger_build(request: Request) -> JSONResponse:
    """Start a forced build of all sources, or of the one named by path or ?name="""
    trigger: BuildTrigger = request.app.state.trigger
    repo_name = request.path_params.get("name") or request.query_params.get("name") or None

    if not trigger.trigger(only=repo_name, force=True):
        return JSONResponse(
            {"success": False, "message": "A build is already in progress, please try again later"},
            status_code=429,
        )

    logger.info(f"Build requested ({f'repo: {repo_name}' if repo_name else 'all'})")
    return JSONResponse(
        {"success": True, "message": "Build triggered", "repo": repo_name or "all"},
        status_code=202,
    )


async def not_found(request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse({"error": "Not Found"}, status_code=404)


def log_sources_summary(sources_config: SourcesConfig) -> None:
    """Log every configured source with its kind and output directory"""
    if not sources_config.sources:
        logger.warning("No documentation sources configured")
        return

    logger.info(f"Documentation sources ({len(sources_config.sources)}):")
    for index, source in enumerate(sources_config.sources, start=1):
        kind = "local" if source.is_local else "git"
        branch = "" if source.is_local else f" ({source.branch})"
        output = source.resolve_output_dir(config.output_path)
        logger.info(f"  {index}. [{kind}] {source.name}: {source.url}{branch} -> {output}")


def _startup(trigger: BuildTrigger, enable_scheduler: bool, initial_build: bool) -> None:
    """Start the scheduler and the initial build; never fails server startup"""
    global _scheduler

    try:
        log_sources_summary(load_sources_config())
    except Exception as e:
        logger.error(f"Failed to load sources configuration: {e}")

    if enable_scheduler:
        try:
            _scheduler = AsyncIOScheduler()
            trigger.configure_scheduler(_scheduler, config.poll_interval)
            _scheduler.start()
            logger.info("Sync scheduler started")
        except Exception as e:
            logger.error(f"Failed to start sync scheduler: {e}")

    if initial_build:
        logger.info("Running initial build")
        trigger.trigger(force=False)


def _shutdown(trigger: BuildTrigger) -> None:
    """Gracefully stop the scheduler"""
    global _scheduler

    try:
        trigger.stop_scheduler()
    except Exception as e:
        logger.error(f"Error stopping sync job: {e}")

    if _scheduler:
        try:
            _scheduler.shutdown(wait=False)
            logger.info("Sync scheduler stopped")
        except Exception as e:
            logger.error(f"Error shutting down scheduler: {e}")
        _scheduler = None


def create_app(
    trigger: BuildTrigger | None = None,
    enable_scheduler: bool = True,
    initial_build: bool | None = None,
) -> Starlette:
    """
    Create the webhook application

    Args:
        trigger: Build trigger (optional, creates new if None)
        enable_scheduler: Run the cron-style scheduled build
        initial_build: Build once on startup (default: config.initial_build)
    """
    trigger = trigger or BuildTrigger()
    if initial_build is None:
        initial_build = config.initial_build

    @contextlib.asynccontextmanager
    async def lifespan(app: Starlette):
        _startup(trigger, enable_scheduler, initial_build)
        try:
            yield
        finally:
            _shutdown(trigger)

    routes = [
        Route("/health", health_check, methods=["GET"]),
        Route("/webhook", trigger_build, methods=TRIGGER_METHODS),
        Route("/build", trigger_build, methods=TRIGGER_METHODS),
        Route("/webhook/{name}", trigger_build, methods=TRIGGER_METHODS),
        Route("/build/{name}", trigger_build, methods=TRIGGER_METHODS),
    ]
    middleware = [
        Middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_methods=["GET", "POST", "OPTIONS"],
            allow_headers=["Content-Type"],
        )
    ]

    app = Starlette(
        routes=routes,
        middleware=middleware,
        exception_handlers={404: not_found, 405: not_found},
        lifespan=lifespan,
    )
    app.state.trigger = trigger
    return app


def main() -> None:
    """Entry point for the webhook server"""
    app = create_app()
    logger.info(f"Webhook server listening on {config.webhook_host}:{config.webhook_port}")
    uvicorn.run(app, host=config.webhook_host, port=config.webhook_port)
