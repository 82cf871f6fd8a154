"""Helpers shared by the API routers."""

from fastapi import Request


def client_address(request: Request) -> str:
    """``host:port`` of the caller, for log lines."""
    if request.client is None:
        return "unknown"
    return f"{request.client.host}:{request.client.port}"
