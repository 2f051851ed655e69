import logging
import time
from datetime import datetime, timezone
from fastapi import APIRouter, FastAPI, Depends, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response, StreamingResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import get_settings, configure_logging
from .db import Base, engine
from .deps import get_event_bus
from .errors import OptimizerError, RateLimitError, ValidationError
from .events import JobEventBus
from .metrics import HTTP_LATENCY, HTTP_REQUESTS, RATE_LIMITED
from .rate_limiter import ClientRateLimiter
from . import models  # noqa: F401  registers tables on Base

API_PREFIX = "/api/v1"
OPTIMIZE_PATHS = (f"{API_PREFIX}/optimize", f"{API_PREFIX}/optimize/batch")

settings = get_settings()
configure_logging(settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title="Resume Optimizer Backend")
app.state.started_at = time.monotonic()
app.state.general_limiter = ClientRateLimiter(settings.general_rate_limit_max, settings.rate_limit_window_seconds)
app.state.optimize_limiter = ClientRateLimiter(settings.optimize_rate_limit_max, settings.rate_limit_window_seconds)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

Base.metadata.create_all(bind=engine)


def _rate_limited(request: Request, name: str, message: str) -> JSONResponse:
    RATE_LIMITED.labels(limiter=name).inc()
    HTTP_REQUESTS.labels(route=request.url.path, method=request.method, status="429").inc()
    logger.warning(f"Rate limit ({name}) exceeded for {request.client.host if request.client else '-'}")
    return JSONResponse(status_code=429, content=RateLimitError(message).to_dict())


@app.middleware("http")
async def metrics_middleware(request: Request, call_next):
    route = request.url.path
    method = request.method
    client_id = request.client.host if request.client else "unknown"
    if route.startswith("/api/"):
        if not request.app.state.general_limiter.allow(client_id):
            return _rate_limited(request, "general", "Too many requests, please try again later")
        if method == "POST" and route.rstrip("/") in OPTIMIZE_PATHS:
            if not request.app.state.optimize_limiter.allow(client_id):
                return _rate_limited(request, "optimize", "Too many optimization requests, please try again later")

    with HTTP_LATENCY.labels(route=route, method=method).time():
        resp = await call_next(request)
    HTTP_REQUESTS.labels(route=route, method=method, status=str(resp.status_code)).inc()
    return resp


@app.exception_handler(OptimizerError)
async def optimizer_error_handler(request: Request, exc: OptimizerError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.code} {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    details = [
        f"{'.'.join(str(p) for p in err.get('loc', ()) if p != 'body')}: {err.get('msg')}"
        for err in exc.errors()
    ]
    return JSONResponse(status_code=400, content=ValidationError("Invalid request", details=details).to_dict())

@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        content = {"error": {"message": "Endpoint not found", "code": "NOT_FOUND", "path": request.url.path}}
    else:
        content = {"error": {"message": str(exc.detail), "code": "HTTP_ERROR"}}
    return JSONResponse(status_code=exc.status_code, content=content, headers=getattr(exc, "headers", None))

api = APIRouter(prefix=API_PREFIX)

@api.get("/health")
def health(request: Request):
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "uptime": round(time.monotonic() - request.app.state.started_at, 3),
    }

@api.get("/metrics")
def metrics():
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

@api.get("/events")
async def events(bus: JobEventBus = Depends(get_event_bus)):
    """Server-Sent Events stream of job:created / job:updated / job:deleted."""
    return StreamingResponse(bus.stream(), media_type="text/event-stream")

from .api.routes_jobs import router as jobs_router
from .api.routes_resumes import router as resumes_router
from .api.routes_optimize import router as optimize_router
api.include_router(jobs_router)
api.include_router(resumes_router)
api.include_router(optimize_router)
app.include_router(api)

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("resume_optimizer.main:app", host="0.0.0.0", port=8000)
