"""VM remediation webhook endpoint."""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import ValidationError

from ..exceptions import UnknownClusterError
from ..models import APIResponse, StartVMRequest
from ..services.remediation import RemediationService
from .utils import client_address

logger = logging.getLogger(__name__)

router = APIRouter(tags=["vms"])


def get_remediation(request: Request) -> RemediationService:
    """Dependency to get the remediation service built at startup."""
    remediation = getattr(request.app.state, "remediation", None)
    if remediation is None:
        raise RuntimeError("Remediation service not initialized")
    return remediation


@router.post("/start-vm", response_model=APIResponse)
async def start_vm(
    request: Request,
    background_tasks: BackgroundTasks,
    remediation: RemediationService = Depends(get_remediation),
):
    """
    Start an OOM-killed VM and report the outcome to Telegram.

    The body is decoded regardless of Content-Type. If the caller
    disconnects, the remaining upstream calls are skipped.
    """
    logger.info(f"[START-VM] {request.method} {request.url.path} from {client_address(request)}")

    body = await request.body()
    try:
        payload = StartVMRequest.model_validate_json(body)
    except ValidationError as e:
        logger.error(f"invalid payload: {e.errors(include_url=False)}")
        return PlainTextResponse("invalid payload\n", status_code=400)

    try:
        outcome = await remediation.start_vm(payload, cancelled=request.is_disconnected)
    except UnknownClusterError:
        logger.error(f"unknown cluster: {payload.cluster}")
        return PlainTextResponse("unknown cluster\n", status_code=400)

    if not outcome.success:
        if not outcome.vm_started:
            background_tasks.add_task(
                remediation.notify_failed, payload.node, payload.vm_id, outcome.error
            )
        return JSONResponse(
            status_code=502,
            content=APIResponse(success=False, error=outcome.error).to_body(),
        )

    return JSONResponse(status_code=200, content=APIResponse(success=True).to_body())
