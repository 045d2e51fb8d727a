"""Accept JSON sent as text/plain by navigator.sendBeacon."""

import logging
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)


class BeaconBodyMiddleware(BaseHTTPMiddleware):
    """
    Relabel text/plain request bodies as JSON on beacon endpoints.

    Browsers send beacons as ``text/plain`` to avoid a CORS preflight, so the
    exam submission posted while a tab closes would otherwise fail body
    validation. Only the content-type header is changed; a body that is not
    valid JSON still fails validation as usual.
    """

    BEACON_PATH_SUFFIXES = ("/student/exam/submit",)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.method == "POST" and request.url.path.endswith(self.BEACON_PATH_SUFFIXES):
            content_type = request.headers.get("content-type", "")
            if content_type.startswith("text/plain"):
                headers = [
                    (name, value)
                    for name, value in request.scope["headers"]
                    if name != b"content-type"
                ]
                headers.append((b"content-type", b"application/json"))
                request.scope["headers"] = headers
                logger.debug(f"Treating text/plain body as JSON for {request.url.path}")

        return await call_next(request)
