import asyncio
import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded

from app.config import settings
from app.core.errors import error_handler, ErrorContext
from app.core.monitoring import TimingMiddleware
from app.modules.auth import routes as auth_routes
from app.modules.profiles import routes as profiles_routes
from app.modules.avatars import routes as avatars_routes
from app.modules.github_stats import routes as github_stats_routes
from app.modules.github_stats.client import close_github_client
from app.modules.privacy import routes as privacy_routes
from app.modules.security import routes as security_routes

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)

limiter = Limiter(key_func=get_remote_address, default_limits=[settings.rate_limit])
app = FastAPI(
    title=settings.app_name,
    debug=settings.debug,
    redirect_slashes=False,
)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception: %s", exc)
    response = error_handler.handle_error(
        exc, ErrorContext(action=f"{request.method} {request.url.path}", component="api")
    )
    content = {"detail": response.user_message, "error_code": response.error_code}
    if not settings.is_production:
        content["technical_error"] = str(exc)
    return JSONResponse(status_code=500, content=content)


class SecurityHeadersMiddleware:
    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        async def send_with_headers(message):
            if message["type"] == "http.response.start":
                message.setdefault("headers", [])
                message["headers"].extend([
                    (b"X-Content-Type-Options", b"nosniff"),
                    (b"X-Frame-Options", b"DENY"),
                    (b"X-XSS-Protection", b"1; mode=block"),
                    (b"Referrer-Policy", b"strict-origin-when-cross-origin"),
                ])
            await send(message)

        await self.app(scope, receive, send_with_headers)


app.add_middleware(TimingMiddleware)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins_list(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include module routes
app.include_router(auth_routes.router, prefix="/api/v1")
app.include_router(profiles_routes.router, prefix="/api/v1")
app.include_router(avatars_routes.router, prefix="/api/v1")
app.include_router(github_stats_routes.router, prefix="/api/v1")
app.include_router(privacy_routes.router, prefix="/api/v1")
app.include_router(security_routes.router, prefix="/api/v1")
app.include_router(security_routes.monitoring_router, prefix="/api/v1")


@app.on_event("startup")
async def startup_event():
    logger.info("Application startup")

    if settings.retention_scheduler_enabled:
        from app.modules.privacy.retention_scheduler import retention_scheduler_loop
        asyncio.create_task(retention_scheduler_loop())
        logger.info(
            "Retention scheduler started - will process account deletions and expired exports every %ss",
            settings.retention_interval_seconds,
        )


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Application shutdown")
    close_github_client()


@app.get("/")
async def root():
    return {"message": f"Welcome to {settings.app_name}", "status": "healthy"}


@app.get("/health")
@limiter.exempt
async def health():
    return {"status": "healthy"}


@app.get("/ready")
@limiter.exempt
async def ready():
    """Readiness probe: extend here with a Supabase ping if needed."""
    return {"status": "ready"}
