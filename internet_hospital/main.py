from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy.exc import SQLAlchemyError
import time
import logging

from .api.v1 import admin, appointments, auth, doctors, notifications, patients
from .core.config import settings
from .core.database import init_db

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.VERSION,
    description="Doctors publish appointment slots, patients reserve them",
    openapi_url=f"{API_PREFIX}/openapi.json",
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

if not settings.TESTING:
    app.add_middleware(
        TrustedHostMiddleware,
        allowed_hosts=["localhost", "127.0.0.1", "*.localhost"]
    )

@app.middleware("http")
async def log_requests(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    elapsed = time.perf_counter() - started

    response.headers["X-Process-Time"] = f"{elapsed:.4f}"
    logger.info(f"{request.method} {request.url.path} -> {response.status_code} ({elapsed:.4f}s)")
    return response

@app.exception_handler(404)
async def not_found_handler(request: Request, exc: HTTPException):
    return JSONResponse(
        status_code=404,
        content={"detail": getattr(exc, "detail", "Not Found"), "path": request.url.path}
    )

@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception(f"Database error on {request.method} {request.url.path}")
    return JSONResponse(status_code=503, content={"detail": "Database is temporarily unavailable"})

@app.exception_handler(500)
async def internal_error_handler(request: Request, exc: Exception):
    logger.error(f"Internal server error on {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"detail": "An unexpected error occurred"})

for module in (auth, admin, doctors, patients, appointments, notifications):
    app.include_router(module.router, prefix=API_PREFIX)

# Avatars and document scans
app.mount(settings.STATIC_URL, StaticFiles(directory=settings.UPLOAD_DIR, check_dir=False), name="static")

@app.on_event("startup")
async def startup_event():
    database = settings.get_database_url.split(":", 1)[0]
    logger.info(f"Starting {settings.APP_NAME} {settings.VERSION} on {database}")
    init_db()

@app.on_event("shutdown")
async def shutdown_event():
    logger.info(f"Stopping {settings.APP_NAME}")

@app.get("/health")
async def health_check():
    return {"status": "healthy", "timestamp": time.time(), "version": settings.VERSION}

@app.get(f"{API_PREFIX}/info")
async def api_info():
    """Entry points of the API."""
    return {
        "name": settings.APP_NAME,
        "version": settings.VERSION,
        "endpoints": {
            name: f"{API_PREFIX}/{name}"
            for name in ("auth", "admin", "doctors", "patients", "appointments", "notifications")
        },
        "docs": "/docs"
    }

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "internet_hospital.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level="info"
    )
