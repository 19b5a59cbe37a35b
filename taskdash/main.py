import logging

from taskdash import config

# Log configuration (before other imports)
# ruff: noqa: E402
logging.basicConfig(
    level=config.LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    force=True
)

from contextlib import asynccontextmanager  # noqa: E402

from fastapi import FastAPI, Request  # noqa: E402
from fastapi.exceptions import RequestValidationError  # noqa: E402
from fastapi.middleware.cors import CORSMiddleware  # noqa: E402
from fastapi.responses import JSONResponse  # noqa: E402

from taskdash import __version__  # noqa: E402
from taskdash.api.base import api_router  # noqa: E402
from taskdash.db.session import init_db, log_pool_stats  # noqa: E402
from taskdash.features.tasks.domain import FieldError  # noqa: E402
from taskdash.features.tasks.schemas import ErrorResponse  # noqa: E402

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()
    log_pool_stats("startup")
    yield


app = FastAPI(
    title="taskdash API",
    description="Backend API for taskdash - rate, score and prioritize personal tasks",
    version=__version__,
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Report malformed requests in the same field-level shape as domain errors"""
    errors = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        errors.append(FieldError(field=".".join(loc) or "request", message=error.get("msg", "is invalid")))

    logger.info(f"Rejected {request.method} {request.url.path}: {len(errors)} invalid field(s)")
    body = ErrorResponse(errors=errors)
    return JSONResponse(status_code=422, content=body.model_dump(mode="json"))


# Include all API routes
app.include_router(api_router)


@app.get("/")
def read_root():
    return {
        "message": "taskdash API",
        "docs": "/docs",
        "version": __version__
    }
