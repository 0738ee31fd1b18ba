import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from core.config import settings
from core.errors import AppError
from core.logging_config import configure_logging
from db.database import create_db_and_tables
from routers.dashboard import router as dashboard_router
from routers.health import router as health_router
from routers.ingredients import router as ingredients_router
from routers.recipes import router as recipes_router
from routers.transactions import router as transactions_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.log_level)
    await create_db_and_tables()
    logger.info("%s started", settings.service_name)
    yield


app = FastAPI(
    title=settings.service_name,
    description="API for managing ingredients, recipes and stock consumption",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error_response(status_code: int, code: str, message: str, details=None) -> JSONResponse:
    error = {"code": code, "message": message}
    if details:
        error["details"] = details
    return JSONResponse(status_code=status_code, content={"error": error})


def _format_validation_error(err: dict) -> str:
    # Drop the "body"/"query" prefix; clients know where they sent the field
    path = [str(part) for part in err.get("loc", ())[1:]]
    message = err.get("msg", "Invalid value")
    if message.startswith("Value error, "):
        message = message[len("Value error, "):]
    return f"{'.'.join(path)}: {message}" if path else message


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return _error_response(
        status.HTTP_400_BAD_REQUEST,
        "VALIDATION_ERROR",
        "Invalid request payload",
        [_format_validation_error(err) for err in exc.errors()],
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        return _error_response(exc.status_code, "NOT_FOUND", "API route not found")
    if exc.status_code == status.HTTP_405_METHOD_NOT_ALLOWED:
        return _error_response(exc.status_code, "METHOD_NOT_ALLOWED", str(exc.detail))
    return _error_response(exc.status_code, "HTTP_ERROR", str(exc.detail))


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "INTERNAL_SERVER_ERROR", "Unexpected server error")


app.include_router(health_router, prefix="/api", tags=["health"])
app.include_router(ingredients_router, prefix="/api/ingredients", tags=["ingredients"])
app.include_router(recipes_router, prefix="/api/recipes", tags=["recipes"])
app.include_router(transactions_router, prefix="/api/transactions", tags=["transactions"])
app.include_router(dashboard_router, prefix="/api/dashboard", tags=["dashboard"])

if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
