"""Liveness endpoint."""

import logging

from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse

from .utils import client_address

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/ping", response_class=PlainTextResponse)
def ping(request: Request):
    """Always answers ``pong``."""
    logger.info(f"[PING] {request.method} {request.url.path} from {client_address(request)}")
    return PlainTextResponse("pong\n")
