import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.routing import APIRoute
from starlette.middleware.cors import CORSMiddleware

from preview_engine.api.main import api_router
from preview_engine.core.budget import ExecutionBudgetExceeded
from preview_engine.core.config import settings
from preview_engine.engines.template import TemplateError

logging.basicConfig(level=settings.LOG_LEVEL.upper())
_logger = logging.getLogger(__name__)


def custom_generate_unique_id(route: APIRoute) -> str:
    return f"{route.tags[0]}-{route.name}"


app = FastAPI(
    title=settings.PROJECT_NAME,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    generate_unique_id_function=custom_generate_unique_id,
)


# ---------------------------------------------------------------------------
# Exception handlers: every error body is {"detail": str}
# ---------------------------------------------------------------------------


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """422 with one readable line per invalid field (e.g. a bad function name)."""
    messages = []
    for err in exc.errors():
        loc = " → ".join(str(part) for part in err.get("loc", []) if part != "body")
        msg = err.get("msg", "Invalid value")
        messages.append(f"{loc}: {msg}" if loc else msg)
    return JSONResponse(status_code=422, content={"detail": "; ".join(messages)})


@app.exception_handler(TemplateError)
async def template_error_handler(request: Request, exc: TemplateError) -> JSONResponse:
    """Broken template (syntax, unknown helper, render fault): nothing was rendered."""
    _logger.debug("Template error on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=422, content={"detail": str(exc)})


@app.exception_handler(ExecutionBudgetExceeded)
async def budget_exceeded_handler(
    request: Request, exc: ExecutionBudgetExceeded
) -> JSONResponse:
    _logger.warning("Execution budget exceeded on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=408, content={"detail": str(exc)})


@app.exception_handler(Exception)
async def unhandled_exception_handler(
    request: Request, exc: Exception
) -> JSONResponse:
    _logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    detail = "Internal server error"
    if settings.ENVIRONMENT == "local":
        detail = f"Internal server error: {exc}"
    return JSONResponse(status_code=500, content={"detail": detail})


# The editor front end runs on its own origin
if settings.all_cors_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.all_cors_origins,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

app.include_router(api_router, prefix=settings.API_V1_STR)
