"""Errors raised while talking to upstream APIs."""

from typing import Optional


class RelayError(Exception):
    """Base class for webhook relay errors."""


class UpstreamError(RelayError):
    """
    An outbound call did not succeed.

    The message is returned verbatim to the webhook caller, so it is kept
    short: ``create request: ...``, ``do request: ...``, ``bad status: ...``.

    Attributes:
        cause: Why the call failed: "request" (could not build it),
            "transport" (network/TLS/timeout), "status" (unexpected HTTP
            status), "deadline" (no time left to send it) or "cancelled"
            (the webhook caller went away before it was sent)
        status_code: HTTP status returned by the upstream, if any
    """

    def __init__(self, message: str, cause: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.cause = cause
        self.status_code = status_code


class NotificationError(UpstreamError):
    """The chat notification could not be delivered."""


class UnknownClusterError(RelayError):
    """The webhook named a cluster that is not configured."""

    def __init__(self, cluster: str):
        super().__init__(f"unknown cluster: {cluster}")
        self.cluster = cluster
