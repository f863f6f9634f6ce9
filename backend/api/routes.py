"""
Account Ingestor API Routes

Read access to the indexed accounts, the token leaderboard and the pending
callbacks, plus a couple of control endpoints for the mock event source.
"""

from fastapi import APIRouter, Depends, HTTPException, Path, Request

from models.account import AccountTimeRange, AccountToken, AccountType, AppStatus
from services import EventSourceError, ExitSignal, IngestorApp
from utils.logger import get_logger

logger = get_logger(__name__)
router = APIRouter(tags=["Account Ingestor"])


def get_ingestor_app(request: Request) -> IngestorApp:
    """Resolve the app services created by the lifespan handler"""
    app_services = getattr(request.app.state, "ingestor_app", None)
    if app_services is None:
        raise HTTPException(status_code=503, detail="Account ingestor services are not running")
    return app_services


@router.get("/ping")
async def get_ping(ingestor_app: IngestorApp = Depends(get_ingestor_app)) -> bool:
    """Basic availability probe"""
    return ingestor_app.is_connected()


@router.get("/status", response_model=AppStatus, response_model_by_alias=True)
async def get_status(ingestor_app: IngestorApp = Depends(get_ingestor_app)):
    """Indexed accounts, token leaderboard and pending callbacks"""
    return ingestor_app.report_status()


@router.get(
    "/accounts/leaderboard",
    response_model=dict[str, list[AccountToken]],
)
async def get_leaderboard(ingestor_app: IngestorApp = Depends(get_ingestor_app)):
    """Accounts owning the most tokens, grouped by account type"""
    return ingestor_app.leaderboard.report_leaderboard()


@router.get(
    "/accounts/maxholder/{account_type}/{time_ms}",
    response_model=AccountTimeRange,
    response_model_by_alias=True,
)
async def get_account_with_max_tokens(
    account_type: AccountType,
    time_ms: int = Path(..., ge=0, description="Unix epoch time in milliseconds"),
    ingestor_app: IngestorApp = Depends(get_ingestor_app),
):
    """Account that owned the most tokens of a type at a given time, and over which period"""
    return ingestor_app.leaderboard.retrieve_top_owner_at_time(account_type, time_ms)


@router.put("/mock/recast")
async def recast(ingestor_app: IngestorApp = Depends(get_ingestor_app)):
    """Flush the indexed updates and replay the mock event log"""
    if not ingestor_app.is_connected():
        raise HTTPException(status_code=503, detail="Account ingestor services are shut down")
    try:
        queued = await ingestor_app.recast()
    except EventSourceError as e:
        logger.error("Failed to recast mock account updates", error=str(e))
        raise HTTPException(status_code=502, detail=str(e))
    return {"status": "started", "queued": queued}


@router.put("/shutdown")
async def shutdown(ingestor_app: IngestorApp = Depends(get_ingestor_app)):
    """Stop the event source and shut the services down once callbacks have fired"""
    drained = await ingestor_app.graceful_shutdown(ExitSignal.SIGRPC.value)
    return {"status": "stopped", "drained": drained}
