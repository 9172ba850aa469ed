# app/api/v1/routes/reward_anomaly_route.py
from fastapi import APIRouter, Depends, Query, Request

from app.core.admin_security import require_admin
from app.core.exceptions import StoreUnavailable
from app.schemas.reward_anomaly_schemas import ErrorResponse
from app.services.reward_anomaly_service import RewardAnomalyService

router = APIRouter(tags=["Reward Anomalies"])


def get_reward_anomaly_service(request: Request) -> RewardAnomalyService:
    """The service is built once at startup and shared by all requests."""
    service = getattr(request.app.state, "reward_anomaly_service", None)
    if service is None:
        raise StoreUnavailable("Reward anomaly engine is not initialised.")
    return service


@router.get(
    "/reward-anomalies",
    responses={
        400: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
        504: {"model": ErrorResponse},
    },
)
async def get_reward_anomalies(
    timeframe: str = Query("24h", description="One of 24h, 7d, 30d"),
    admin: dict = Depends(require_admin),
    service: RewardAnomalyService = Depends(get_reward_anomaly_service),
):
    """
    Reward anomaly report for the admin dashboard: payout stats, top earners,
    duplicate content rewards and per-user daily spikes.
    """
    report = await service.get_report(timeframe)
    return {"data": report.model_dump(mode="json")}
