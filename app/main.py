from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from app.config import settings
from app.routers import documents, health, signing
from app.services.errors import InvalidJobInput, SigningError
from app.utils.logging import get_logger

logger = get_logger(__name__)

app = FastAPI(
    title="PDFSign API",
    description="Place signature, image, text, date and radio fields on a PDF and flatten them into a signed copy",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

# CORS configuration
origins = [origin.strip() for origin in settings.cors_origins.split(",") if origin.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Mount routers
app.include_router(documents.router)
app.include_router(health.router)
app.include_router(signing.router)


@app.exception_handler(SigningError)
async def signing_error_handler(request: Request, exc: SigningError):
    if exc.status_code >= 500:
        logger.error(f"{exc.kind} on {request.url.path}: {exc.message}")
    else:
        logger.warning(f"{exc.kind} on {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.to_dict()})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    first = exc.errors()[0] if exc.errors() else {}
    location = ".".join(str(part) for part in first.get("loc", ()))
    error = InvalidJobInput(f"{location}: {first.get('msg', 'invalid request')}")
    logger.warning(f"{error.kind} on {request.url.path}: {error.message}")
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": error.to_dict()})


@app.on_event("startup")
async def startup_event():
    logger.info("PDFSign API starting up...")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Storage backend: {settings.storage_backend}")
    if settings.database_url.startswith("sqlite"):
        # Postgres deployments are migrated with alembic
        from app.models import AuditRecordRow, Document  # noqa: F401
        from app.database import Base, engine
        Base.metadata.create_all(bind=engine)


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("PDFSign API shutting down...")


@app.get("/")
async def root():
    return {
        "message": "PDFSign API",
        "version": "1.0.0",
        "docs": "/docs"
    }
