#entry point for server
#src/lockbox/main.py
from datetime import datetime, timezone

import uvicorn
from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from lockbox.config import settings
from lockbox.db.init_db import init_db, close_pool
from lockbox.api.rate_limit import api_limiter, auth_limiter
from lockbox.api.v1 import auth, vault
from lockbox.utils.logger import get_logger


#init app
app = FastAPI(
    title="Lockbox",
    description="Zero-knowledge password vault API. Stores one client-encrypted blob per account.",
    version="1.0"
)

# Init logger
logger = get_logger()
logger.info("Starting application...")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def limit_body_size(request: Request, call_next):
    content_length = request.headers.get("content-length")
    if content_length and content_length.isdigit() and int(content_length) > settings.MAX_BODY_BYTES:
        return JSONResponse(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            content={"detail": "Request body too large"}
        )
    return await call_next(request)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Report the first validation problem as a plain 400."""
    errors = exc.errors()
    message = errors[0]["msg"] if errors else "Invalid request"
    if message.startswith("Value error, "):
        message = message[len("Value error, "):]
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": message})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    detail = str(exc) if settings.DEBUG else "Internal server error"
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"detail": detail})


@app.on_event("startup")
async def startup_event():
    logger.info("Initializing database connection...")
    await init_db()
    logger.info("Database connected successfully.")


@app.on_event("shutdown")
async def shutdown_event():
    await close_pool()
    logger.info("Database pool closed.")


app.include_router(
    auth.router,
    prefix="/api/auth",
    tags=["Authentication"],
    dependencies=[Depends(api_limiter), Depends(auth_limiter)]
)
app.include_router(
    vault.router,
    prefix="/api/vault",
    tags=["Vault"],
    dependencies=[Depends(api_limiter)]
)

@app.get("/", tags=["Root"])
async def root():
    """
    Landing route - confirms API is alive.
    """
    return {
        "status": "ok",
        "service": "Lockbox API",
        "version": app.version
    }


@app.get("/health", tags=["System"])
async def health_check():
    """
    returns status
    """
    return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}


def main():
    uvicorn.run(
        "lockbox.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG
    )


if __name__ == "__main__":
    main()
