"""Health check endpoints for monitoring and deployment verification."""

import time

from fastapi import APIRouter, Response, status

from src.api.deps import CurrentUser
from src.api.middleware.auth import AuthError, get_signing_key
from src.api.middleware.latency_logging import get_latency_stats
from src.core.rate_limiter import get_attempt_limiter
from src.core.supabase import check_database_connection
from src.schemas.auth import AuthenticatedResponse
from src.schemas.common import CheckResult, HealthResponse, HealthStatus, ReadinessResponse

router = APIRouter(tags=["health"])


def _signing_key_check() -> CheckResult:
    try:
        get_signing_key()
    except AuthError as e:
        return CheckResult(name="signing_key", healthy=False, error=e.message)
    return CheckResult(name="signing_key", healthy=True)


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Liveness check",
    description="Basic health check to verify the service is running. Used for liveness probes.",
)
async def health_check() -> HealthResponse:
    """Return basic health status without touching external dependencies."""
    return HealthResponse(status=HealthStatus.HEALTHY)


@router.get(
    "/health/ready",
    response_model=ReadinessResponse,
    responses={
        200: {"description": "All dependencies healthy"},
        503: {"description": "One or more dependencies unhealthy"},
    },
    summary="Readiness check",
    description="Check that the profile database is reachable and the token signing key loads.",
)
async def readiness_check(response: Response) -> ReadinessResponse:
    """Check readiness of the Supabase database and JWT verification.

    Args:
        response: FastAPI response object for setting status code.

    Returns:
        ReadinessResponse: Status of each dependency check, 503 if any failed.
    """
    start_time = time.perf_counter()
    db_result = await check_database_connection()
    latency_ms = (time.perf_counter() - start_time) * 1000

    checks = [
        CheckResult(
            name="database",
            healthy=db_result["healthy"],
            latency_ms=round(latency_ms, 2),
            error=db_result.get("error"),
        ),
        _signing_key_check(),
    ]

    all_healthy = all(check.healthy for check in checks)
    if not all_healthy:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return ReadinessResponse(
        status=HealthStatus.HEALTHY if all_healthy else HealthStatus.UNHEALTHY,
        checks=checks,
    )


@router.get(
    "/health/auth",
    response_model=AuthenticatedResponse,
    summary="Authenticated health check",
    description="Protected endpoint to verify token verification is working.",
    responses={
        200: {"description": "Successfully authenticated"},
        401: {"description": "Authentication required or invalid token"},
    },
)
async def authenticated_check(user: CurrentUser) -> AuthenticatedResponse:
    return AuthenticatedResponse(
        authenticated=True,
        user_id=str(user.user_id),
        email=user.email,
        role=user.role,
    )


@router.get(
    "/health/stats",
    summary="Runtime statistics",
    description="Request latency and sign-in limiter statistics.",
)
async def runtime_stats() -> dict:
    stats = get_latency_stats()
    return {
        "latency": stats.get_stats(),
        "latency_by_path": stats.get_stats_by_path(),
        "signin_limiter": get_attempt_limiter().get_stats(),
    }
