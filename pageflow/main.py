# pageflow/main.py
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, status, HTTPException
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from pageflow.api import router as api_router
from pageflow.core.config import settings
from pageflow.core.exceptions import PageflowException, TestCaseNotFoundException
from pageflow.core.limiter import limiter
from pageflow.core.redis_client import RedisClient

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Layout defaults: node %sx%s, node gap %s, rank gap %s",
                settings.NODE_WIDTH, settings.NODE_HEIGHT, settings.NODE_SEP, settings.RANK_SEP)
    try:
        yield
    finally:
        await RedisClient.close_client()
        logger.info("Closed Redis connection.")


app = FastAPI(
    title="Pageflow API",
    description="Builds, lays out and highlights page-flow graphs collected from UI tests.",
    version="1.0.0",
    lifespan=lifespan
)

# Add Limiter to the application state
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Exempt all OPTIONS requests from rate limiting to prevent CORS preflight issues
app.state.limiter.exempt_methods = ["OPTIONS"]

allowed_origins = [
    "http://localhost:5173",
    "http://localhost:8000",
    "http://localhost:8080",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["Content-Type", "X-User-ID"],
)

@app.exception_handler(TestCaseNotFoundException)
async def test_case_not_found_exception_handler(request: Request, exc: TestCaseNotFoundException):
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"message": exc.message},
    )

@app.exception_handler(PageflowException)
async def pageflow_exception_handler(request: Request, exc: PageflowException):
    logger.error("Unhandled pageflow error on %s: %s", request.url.path, exc.message)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"message": exc.message},
    )

app.include_router(api_router.router)

@app.get("/")
async def root():
    return {"message": "Welcome to the Pageflow API"}

@app.get("/healthz", tags=["Health"], status_code=status.HTTP_200_OK)
async def health_check():
    """Returns the operational status of the service and the size of the layout cache."""
    return {
        "status": "ok",
        "layout_cache_entries": len(api_router.graph_service.layout_cache),
    }

@app.get("/redis-health", tags=["Health"], status_code=status.HTTP_200_OK)
async def redis_health_check():
    """Lightweight Redis readiness probe."""
    redis_client = RedisClient.get_client()
    try:
        pong = await redis_client.ping()
    except Exception as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Redis unavailable: {exc}"
        ) from exc
    return {"status": "ok", "ping": pong}
