from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from sqlalchemy.exc import SQLAlchemyError
import uvicorn
import logging
from config import APP_HOST, APP_PORT, CREATE_TABLES, DEBUG, ENVIRONMENT, LOG_LEVEL
from database import create_tables, ping_database
from redis_caching import ping_cache
from shortener.errors import ShortenerError
from shortener.router import router as shortener_router, redirect_router
from account.router import router as account_router
from auth.auth import auth_backend, fastapi_users_app
from auth.schemas import UserRead, UserCreate

logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger('main')

@asynccontextmanager
async def lifespan(application: FastAPI):
    if CREATE_TABLES:
        await create_tables()
    yield

app = FastAPI(title="minilink", lifespan=lifespan)


@app.exception_handler(ShortenerError)
async def shortener_error_handler(request: Request, exc: ShortenerError):
    content = {"error": exc.category, "message": exc.message}
    if DEBUG:
        content["detail"] = repr(exc)
    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": "validation_error",
            "message": "Please check your input data",
            "details": jsonable_encoder(exc.errors(), custom_encoder={Exception: str}),
        },
    )


app.include_router(fastapi_users_app.get_auth_router(auth_backend), prefix="/auth/jwt", tags=["auth"])
app.include_router(fastapi_users_app.get_register_router(UserRead, UserCreate), prefix="/auth", tags=["auth"])
app.include_router(shortener_router)
app.include_router(account_router)

@app.get("/")
async def root():
    return {"message": "App healthy"}

@app.get("/health")
async def health():
    """Readiness: the database must answer, the cache is reported but optional."""
    try:
        database_ok = await ping_database()
    except (SQLAlchemyError, OSError) as e:
        logger.warning(f"Database ping failed: {e}")
        database_ok = False
    cache_ok = await ping_cache()
    return JSONResponse(
        status_code=status.HTTP_200_OK if database_ok else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "healthy" if database_ok else "unhealthy",
            "env": ENVIRONMENT,
            "database": database_ok,
            "cache": cache_ok,
        },
    )

# catch-all /{short_code}, must stay last
app.include_router(redirect_router)

if __name__ == "__main__":
    uvicorn.run("main:app", reload=False, host=APP_HOST, port=APP_PORT, log_level="info")
