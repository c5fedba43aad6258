from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging

from imagebox.exceptions import error_body
from imagebox.settings import Settings

log = logging.getLogger(__name__)


def origin_allowed(origin: str, request: Request, settings: Settings) -> bool:
    origin = origin.rstrip("/")
    if origin in settings.allowed_origins:
        return True
    # Same-origin requests from pages served by this service
    own = f"{request.url.scheme}://{request.url.netloc}"
    return origin in (own, settings.public_base_url)


def add_cors(app: FastAPI, settings: Settings):
    """Allows browsers on the configured origins and turns everyone else away."""
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    # Registered after CORSMiddleware so it runs first
    @app.middleware("http")
    async def reject_unknown_origins(request: Request, call_next):
        origin = request.headers.get("origin")
        if origin and not origin_allowed(origin, request, settings):
            log.warning("Rejected %s %s from origin %s", request.method, request.url.path, origin)
            return JSONResponse(
                status_code=403,
                content=error_body("cors_rejected", "Not allowed by CORS"),
            )
        return await call_next(request)
