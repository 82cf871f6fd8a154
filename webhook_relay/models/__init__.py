"""Pydantic models for webhook requests, responses and outbound payloads."""

from .requests import StartVMRequest, SendMessageRequest
from .responses import APIResponse

__all__ = [
    "StartVMRequest",
    "SendMessageRequest",
    "APIResponse",
]
