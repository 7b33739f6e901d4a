"""EtherFund — Campaign Dashboard Routes."""

from typing import NoReturn

from fastapi import APIRouter, Depends, HTTPException, Path

from etherfund.core.errors import (
    EtherFundError,
    NotFound,
    RpcError,
    StoreUnavailable,
    Timeout,
    UnavailableProvider,
    UserRejected,
    ValidationError,
)
from etherfund.core.logging import get_logger
from etherfund.dependencies import Services, get_services
from etherfund.presentation.forms import CampaignFormFields, UpdateFormFields, WriteResult
from etherfund.presentation.render import render_state, render_updates

logger = get_logger("api.dashboard")

router = APIRouter(prefix="/campaigns", tags=["Campaigns"])

STATUS_BY_ERROR = (
    (ValidationError, 422),
    (UserRejected, 409),
    (NotFound, 404),
    (UnavailableProvider, 503),
    (StoreUnavailable, 503),
    (Timeout, 504),
    (RpcError, 502),
)


def _raise_http(e: EtherFundError, action: str) -> NoReturn:
    """Surface a write-path error to the form that started it."""
    status_code = next((code for kind, code in STATUS_BY_ERROR if isinstance(e, kind)), 500)
    logger.error(f"{action} failed: {e.kind}: {e}", extra={"status_code": status_code})
    detail = {"error": e.kind, "message": str(e)}
    if isinstance(e, ValidationError):
        detail["fields"] = e.fields
    raise HTTPException(status_code=status_code, detail=detail) from e


def _write_response(result: WriteResult, services: Services) -> dict:
    return {
        "status": "success",
        "receipt": result.receipt.model_dump(),
        "dashboard": (
            render_state(result.dashboard, services.config.explorer_tx_url)
            if result.dashboard
            else None
        ),
    }


# ── Read ──


@router.get("/{campaign_id}/dashboard")
async def get_dashboard(
    campaign_id: int = Path(ge=0),
    services: Services = Depends(get_services),
):
    """Load and render the dashboard for one campaign.

    Any read failure comes back as a single ``unavailable`` state.
    """
    state = await services.controller_for(campaign_id).load(campaign_id)
    return render_state(state, services.config.explorer_tx_url)


@router.get("/{campaign_id}/updates")
async def get_updates(
    campaign_id: int = Path(ge=0),
    services: Services = Depends(get_services),
):
    """Campaign update feed, newest first."""
    try:
        updates = await services.reader.load_updates(campaign_id)
    except EtherFundError as e:
        logger.error(f"Updates unavailable: {e}", extra={"campaign_id": campaign_id})
        return {"status": "unavailable", "campaign_id": campaign_id, "error": str(e)}
    return {
        "status": "success",
        "campaign_id": campaign_id,
        "updates": render_updates(updates, services.config.explorer_tx_url),
    }


# ── Write ──


@router.post("/{campaign_id}/updates")
async def post_update(
    request: UpdateFormFields,
    campaign_id: int = Path(ge=0),
    services: Services = Depends(get_services),
):
    """Post an update: store the body, record it on-chain, reload the dashboard."""
    try:
        result = await services.forms.post_update(campaign_id, request.text)
    except EtherFundError as e:
        _raise_http(e, "Post update")
    return _write_response(result, services)


@router.post("")
async def create_campaign(
    request: CampaignFormFields,
    services: Services = Depends(get_services),
):
    """Create a new campaign from the form fields (amounts in ETH)."""
    try:
        result = await services.forms.create_campaign(request)
    except EtherFundError as e:
        _raise_http(e, "Create campaign")
    return _write_response(result, services)
