from contextlib import asynccontextmanager
from functools import lru_cache
from typing import AsyncGenerator, Optional

import sentry_sdk
from fastapi import Depends, FastAPI, Header, Query, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.redis import RedisIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

from src.config import settings
from src.database.profile_repository import ProfileRepository
from src.models.discovery import DiscoverResponse
from src.models.profile import Profile
from src.models.session import LoginRequest, LoginResponse
from src.models.swipe import SwipeRequest, SwipeResponse
from src.services.matching_service import MatchingService
from src.utils.cache import build_session_authority
from src.utils.database import get_session_factory, init_database
from src.utils.errors import TinyDatesError
from src.utils.logging import configure_logging, get_logger

logger = get_logger(__name__)

# Initialize Sentry if DSN is provided
if settings.SENTRY_DSN:
    logger.info("Initializing Sentry...")
    try:
        sentry_sdk.init(
            dsn=settings.SENTRY_DSN,
            environment=settings.ENVIRONMENT,
            traces_sample_rate=1.0 if settings.ENVIRONMENT == "development" else 0.1,
            integrations=[
                FastApiIntegration(transaction_style="url"),
                SqlalchemyIntegration(),
                RedisIntegration(),
            ],
        )
        logger.info("Sentry initialized")
    except Exception as e:
        logger.error("Failed to initialize Sentry", error=str(e))


@lru_cache(maxsize=1)
def get_matching_service() -> MatchingService:
    """Build the process-wide matching service from configuration."""
    return MatchingService(ProfileRepository(get_session_factory()), build_session_authority())


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application lifespan."""
    configure_logging()
    logger.info("Starting API...")

    try:
        init_database()
    except Exception as e:
        logger.error("Failed to initialize database", error=str(e), details=getattr(e, "details", {}))
        raise

    yield

    logger.info("Shutting down API...")


app = FastAPI(
    title=settings.APP_NAME,
    description="TinyDates matching API",
    version="1.0.0",
    lifespan=lifespan,
)


@app.exception_handler(TinyDatesError)
async def tinydates_error_handler(request: Request, exc: TinyDatesError) -> JSONResponse:
    """Render service errors as `{"error": message}` with the error's status code."""
    if exc.status_code >= 500:
        logger.error("Request failed", path=request.url.path, error=exc.message, details=exc.details)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render malformed headers, query parameters and bodies as a 400 `{"error": message}`."""
    problems = [f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in exc.errors()]
    logger.info("Rejected malformed request", path=request.url.path, problems=problems)
    return JSONResponse(status_code=400, content={"error": "invalid request: " + "; ".join(problems)})


@app.get("/health")
async def health_check() -> JSONResponse:
    """Health check endpoint."""
    return JSONResponse(
        content={
            "status": "ok",
            "app": settings.APP_NAME,
            "environment": settings.ENVIRONMENT,
        },
    )


@app.get("/user/create", status_code=201, response_model=Profile)
def create_profile(service: MatchingService = Depends(get_matching_service)) -> Profile:
    """Create a profile with generated fields."""
    return service.create_profile()


@app.post("/login", status_code=201, response_model=LoginResponse)
def login(request: LoginRequest, service: MatchingService = Depends(get_matching_service)) -> LoginResponse:
    """Log in and receive a session token."""
    return service.login(request.email, request.password)


@app.post("/logout", status_code=204)
def logout(
    authorization: str = Header(default=""),
    service: MatchingService = Depends(get_matching_service),
) -> Response:
    """End the session of the supplied token."""
    service.logout(authorization)
    return Response(status_code=204)


@app.get("/discover", response_model=DiscoverResponse, response_model_exclude_none=True)
def discover(
    profile_id: int = Header(alias="Id"),
    authorization: str = Header(default=""),
    min_age: Optional[str] = Query(default=None, alias="minAge"),
    max_age: Optional[str] = Query(default=None, alias="maxAge"),
    order_by_popularity: bool = Query(default=False, alias="orderByPopularity"),
    service: MatchingService = Depends(get_matching_service),
) -> DiscoverResponse:
    """Discover candidates for the profile in the `Id` header."""
    return service.discover(profile_id, authorization, min_age, max_age, order_by_popularity)


@app.post("/swipe", response_model=SwipeResponse, response_model_exclude_none=True)
def swipe(
    request: SwipeRequest,
    authorization: str = Header(default=""),
    service: MatchingService = Depends(get_matching_service),
) -> SwipeResponse:
    """Record a swipe."""
    return service.swipe(authorization, request.swiper_id, request.swipee_id, request.decision)
