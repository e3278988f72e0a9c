import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.core.exceptions import TimelineError
from app.core.logging_middleware import LoggingMiddleware
from app.db.init_db import init_db
from app.routers.auth import router as auth_router
from app.routers.module_timelines import router as module_timelines_router

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


app = FastAPI(title="Module Timelines", lifespan=lifespan)

# Middleware
app.add_middleware(LoggingMiddleware)


# Exception handlers
@app.exception_handler(TimelineError)
async def timeline_error_handler(request: Request, exc: TimelineError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, **exc.to_dict()},
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = [
        {"loc": [str(part) for part in err.get("loc", ())], "msg": err.get("msg", "")}
        for err in exc.errors()
    ]
    message = "; ".join(f"{'.'.join(e['loc'])}: {e['msg']}" for e in errors)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": message or "Invalid request", "code": "VALIDATION_ERROR", "errors": errors},
    )


# Health check
@app.get("/health")
def health():
    return {"status": "ok"}


# Include routers
app.include_router(auth_router, prefix="/auth", tags=["auth"])
app.include_router(
    module_timelines_router, prefix="/api/module-timelines", tags=["module-timelines"]
)
