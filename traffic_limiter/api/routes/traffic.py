from fastapi import APIRouter, Depends, Request

from traffic_limiter.core.traffic_limit import enforce_traffic_limit
from traffic_limiter.schemas.traffic import TrafficCheckResponse

router = APIRouter(tags=["Traffic"])


@router.post(
    "/traffic/check",
    response_model=TrafficCheckResponse,
    dependencies=[Depends(enforce_traffic_limit)],
    responses={429: {"description": "Client must wait before the next post"}},
)
def check_traffic(request: Request) -> TrafficCheckResponse:
    """Admission check for the calling client.

    Meant to sit in front of a submission endpoint (e.g. as a reverse proxy
    sub-request): 200 means the client may post now, 429 means it posted
    within the configured window.
    """
    return TrafficCheckResponse(allowed=True, client_id=request.state.client_id)
