import asyncio
import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from app.config import settings
from app.modules.users import routes as users_routes
from app.modules.auth import routes as auth_routes
from app.modules.webhooks import routes as webhooks_routes
from app.modules.conversations import routes as conversations_routes
from app.modules.messages import routes as messages_routes
from app.modules.freelancers import routes as freelancers_routes
from app.modules.offers import routes as offers_routes
from app.modules.freelancers.reconciler import reconciler_loop

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[settings.rate_limit],
    enabled=settings.rate_limit_enabled,
)
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
    if settings.is_production:
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})
    return JSONResponse(status_code=500, content={"detail": str(exc)})


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


app.add_middleware(SlowAPIMiddleware)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins_list(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include module routes
app.include_router(users_routes.router, prefix="/api/v1")
app.include_router(auth_routes.router, prefix="/api/v1")
app.include_router(webhooks_routes.router, prefix="/api/v1")
app.include_router(conversations_routes.router, prefix="/api/v1")
app.include_router(messages_routes.router, prefix="/api/v1")
app.include_router(messages_routes.conversation_router, prefix="/api/v1")
app.include_router(freelancers_routes.router, prefix="/api/v1")
app.include_router(freelancers_routes.categories_router, prefix="/api/v1")
app.include_router(offers_routes.router, prefix="/api/v1")


@app.on_event("startup")
async def startup_event():
    logger.info("Application startup (%s)", settings.environment)
    if settings.reconcile_interval_seconds > 0:
        app.state.reconciler = asyncio.create_task(reconciler_loop())
        logger.info(
            "Profile reconciler started - checking every %s seconds", settings.reconcile_interval_seconds
        )


@app.on_event("shutdown")
async def shutdown_event():
    task = getattr(app.state, "reconciler", None)
    if task is not None:
        task.cancel()
    logger.info("Application shutdown")


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
    return {"status": "ready"}
