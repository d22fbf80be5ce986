import logging
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .core.config import settings
from .core.exceptions import AuthError, ServiceError
from .api.routers.auth_router import router as auth_router
from .schemas.auth import HealthOut

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
log = logging.getLogger(__name__)

app = FastAPI(title=settings.app_name)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    log.info("%s %s", request.method, request.url.path)
    return await call_next(request)


def _envelope(status_code: int, message: str, detail=None, code=None) -> JSONResponse:
    body = {"ok": False, "message": message, "detail": detail}
    if code is not None:
        body["code"] = code
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))


def _jsonable_errors(exc: RequestValidationError):
    return [{"loc": list(e.get("loc", ())), "msg": e.get("msg")} for e in exc.errors()]


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    log.warning("%s %s -> %s: %s", request.method, request.url.path, type(exc).__name__, exc.message)
    code = exc.code if isinstance(exc, AuthError) else None
    return _envelope(exc.status_code, exc.message, exc.detail, code)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return _envelope(400, "Cuerpo de la petición inválido", _jsonable_errors(exc))


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    log.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _envelope(500, "Error interno del servidor", str(exc))


@app.get("/health", response_model=HealthOut)
def health():
    return HealthOut(time=datetime.now(timezone.utc).isoformat())


# Routers
app.include_router(auth_router, prefix=settings.api_prefix)


def run() -> None:
    import uvicorn

    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())
