from fastapi import FastAPI
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import SQLAlchemyError
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from timing_asgi import TimingMiddleware, TimingClient  # type: ignore
from timing_asgi.integrations import StarletteScopeToName  # type: ignore

from app.core import config
from app.core.database.engine import init_db
from app.core.errors import CredentialingError, ErrorKind, StorageError
from app.core.rate_limit import limiter
from app.features.companies.routes import router as company_router
from app.features.providers.routes import router as provider_router
from app.features.affiliations.routes import router as affiliation_router
from app.features.documents.routes import router as document_router
from app.features.licenses.routes import router as license_router
from app.features.alerts.routes import router as alert_router, cron_router
from app.features.audit.routes import router as audit_router
from app.utils import get_logger


log = get_logger(__name__)
log.info("Initializing server")
app = FastAPI(
    title="Credentialing Backend",
    description="Provider credentialing: company affiliations, document review, license verification",
    version="0.1.0",
    docs_url="/docs" if config.ENABLE_DOCS else None,
    redoc_url="/redoc" if config.ENABLE_DOCS else None,
    openapi_url="/openapi.json" if config.ENABLE_DOCS else None
)
app.state.limiter = limiter


class PrintTimings(TimingClient):
    def timing(self, metric_name, timing, tags):
        log.debug(dict(route=metric_name.removeprefix("main.app.features."), timing=timing, tags=tags))


app.add_middleware(TimingMiddleware, client=PrintTimings(), metric_namer=StarletteScopeToName("main", app))

if config.ENABLE_DOCS:
    log.warning("Docs enabled")
if config.ALLOW_ORIGIN:
    log.warning("Setting allow origin to %s", config.ALLOW_ORIGIN)
    origins = [config.ALLOW_ORIGIN]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


@app.exception_handler(CredentialingError)
async def credentialing_exception_handler(_request: Request, exc: CredentialingError):
    if exc.status_code >= 500:
        log.error("%s: %s", exc.kind.value, exc.message)
    else:
        log.info("%s: %s", exc.kind.value, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(_request: Request, exc: RequestValidationError):
    errors = dict()
    missing = False
    for error in exc.errors():
        if "loc" not in error or "msg" not in error:
            continue
        key = error["loc"][-1]
        if key == "__root__":
            key = "root"
        errors[key] = error["msg"]
        missing = missing or error.get("type") == "missing"
    log.info("Request validation error %s", errors)
    kind = ErrorKind.MISSING_FIELDS if missing else ErrorKind.INVALID_FORMAT
    message = "; ".join(f"{key}: {msg}" for key, msg in errors.items()) or "Invalid request"
    return JSONResponse(
        status_code=400,
        content=jsonable_encoder({"error": {"message": message, "code": kind.value, "fields": errors}}),
    )


@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(_request: Request, exc: SQLAlchemyError):
    log.error("Unhandled database error: %s", exc)
    error = StorageError()
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


@app.exception_handler(RateLimitExceeded)
def rate_limit_exceeded_handler(_request: Request, _exc: RateLimitExceeded) -> Response:
    return JSONResponse({"error": "You are going too fast"}, status_code=429)


@app.on_event("startup")
async def startup():
    """Initialize database on application startup."""
    log.info("Initializing database...")
    await init_db()
    log.info("Database initialized successfully")


@app.get("/")
async def root():
    """Root endpoint - API health check."""
    return {
        "message": "Credentialing Backend API",
        "version": "0.1.0",
        "status": "online",
        "docs": "/docs" if config.ENABLE_DOCS else None,
        "authentication": {
            "info": "Protected endpoints require Bearer token in Authorization header",
            "protected_endpoints": [
                "/companies/*", "/providers/*", "/affiliations/*",
                "/documents/*", "/licenses/*", "/alerts/*", "/audit/*"
            ],
            "scheduler_endpoints": ["/cron/check-expirations"]
        },
        "features": {
            "companies": "Companies with enrollment codes owned by one admin",
            "affiliations": "Provider join requests and admin approval",
            "documents": "Credential document upload and review",
            "licenses": "License tracking and state board verification",
            "alerts": "90/60/30 day license expiration alerts",
            "audit": "Append-only log of admin actions"
        }
    }


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


# Include routers
app.include_router(company_router, prefix="/companies", tags=["companies"])
app.include_router(provider_router, prefix="/providers", tags=["providers"])
app.include_router(affiliation_router, prefix="/affiliations", tags=["affiliations"])
app.include_router(document_router, prefix="/documents", tags=["documents"])
app.include_router(license_router, prefix="/licenses", tags=["licenses"])
app.include_router(alert_router, prefix="/alerts", tags=["alerts"])
app.include_router(audit_router, prefix="/audit", tags=["audit"])

# Called by the external scheduler, not by users
app.include_router(cron_router, prefix="/cron", tags=["cron"])
