import logging
import logging.config

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from app.routers.capture import limiter, router as capture_router
from app.routers.generate import router as generate_router
from app.routers.preview import router as preview_router
from app.routers.templates import router as templates_router
from app.services.templates import MalformedTemplate, TemplateNotFound

logging.config.dictConfig(
    {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {
                "format": '{"time": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", "message": "%(message)s"}',
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "json",
            },
        },
        "root": {"level": "INFO", "handlers": ["console"]},
    }
)

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Prospect Preview API",
    description=(
        "Captures a prospect's website, picks a matching landing-page template, "
        "fills it with the prospect's own content and brand colours, and serves "
        "an expiring, tracked preview link."
    ),
    version="1.0.0",
)

# Rate-limiting state
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(TemplateNotFound)
async def template_not_found_handler(request: Request, exc: TemplateNotFound) -> JSONResponse:
    logger.warning("Template not found: %s", exc.filename)
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(MalformedTemplate)
async def malformed_template_handler(request: Request, exc: MalformedTemplate) -> JSONResponse:
    logger.error("Malformed template %s: %s", exc.filename, exc.reason)
    return JSONResponse(status_code=422, content={"detail": str(exc)})


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception for %s", request.url)
    return JSONResponse(status_code=500, content={"detail": "An unexpected error occurred."})


app.include_router(capture_router)
app.include_router(generate_router)
app.include_router(preview_router)
app.include_router(templates_router)


@app.get("/", summary="Health check")
async def root() -> dict:
    return {"message": "Hello from Prospect Preview"}
