"""Check trigger API endpoints."""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from fastapi.responses import JSONResponse

from ..exceptions import AuthenticationError, SiteNotFoundError
from ..schemas.checks import CheckSiteRequest, TestEmailRequest, TestEmailResponse
from ..services.identity import IdentityClient
from ..services.notifier import AlertNotifier
from ..services.orchestrator import BatchOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["checks"])


def get_orchestrator(request: Request) -> BatchOrchestrator:
    return request.app.state.orchestrator


def get_notifier(request: Request) -> AlertNotifier:
    return request.app.state.notifier


def get_identity(request: Request) -> IdentityClient:
    return request.app.state.identity


async def get_current_user(
    authorization: Optional[str] = Header(None),
    identity: IdentityClient = Depends(get_identity),
) -> str:
    """Resolve the bearer token to a user id."""
    if not authorization:
        raise HTTPException(status_code=401, detail="Unauthorized")

    token = authorization.removeprefix("Bearer ").strip()
    try:
        return await identity.get_user_id(token)
    except AuthenticationError as e:
        raise HTTPException(status_code=401, detail=str(e) or "Invalid Token")


@router.get("/trigger-check")
async def trigger_check(orchestrator: BatchOrchestrator = Depends(get_orchestrator)):
    """Run one batch of due checks immediately."""
    try:
        return await orchestrator.run_batch()
    except Exception as e:
        logger.error(f"Triggered batch failed: {type(e).__name__}: {e}")
        return JSONResponse(status_code=500, content={"error": str(e)})


@router.post("/check-site")
async def check_site(
    body: CheckSiteRequest,
    user_id: str = Depends(get_current_user),
    orchestrator: BatchOrchestrator = Depends(get_orchestrator),
):
    """Check one of the caller's sites now, ignoring its schedule."""
    try:
        return await orchestrator.run_single(body.site_id, user_id=user_id)
    except SiteNotFoundError:
        raise HTTPException(status_code=404, detail="Site not found")
    except Exception as e:
        logger.error(f"On-demand check of site {body.site_id} failed: {type(e).__name__}: {e}")
        return JSONResponse(status_code=500, content={"error": str(e)})


@router.post("/test-email", response_model=TestEmailResponse)
async def test_email(
    body: TestEmailRequest,
    user_id: str = Depends(get_current_user),
    notifier: AlertNotifier = Depends(get_notifier),
):
    """Send a test email to verify the sender configuration."""
    if not notifier.sender or not notifier.from_address:
        raise HTTPException(status_code=400, detail="Email sender is not configured")

    subject = "Configuration Test - Uptime Monitor"
    html = "<p>Your alert email configuration is working.</p>"

    success = await notifier.deliver(body.notification_email, subject, html)
    logger.info(f"Test email for user {user_id} to {body.notification_email}: {'sent' if success else 'failed'}")
    return TestEmailResponse(success=success)
