"""Relay endpoint for chat-completion requests.

Accepts every HTTP method so that preflight and method errors are answered
by the relay itself, with the same cross-origin headers on every response.
"""

import logging

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse

from src.relay.service import RelayService, get_relay_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["relay"])

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
}

RELAY_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


@router.api_route("/openai", methods=RELAY_METHODS)
async def relay_chat_completion(
    request: Request,
    service: RelayService = Depends(get_relay_service),
) -> Response:
    """Relay one conversation turn to the chat-completion provider.

    Args:
        request: The inbound request (JSON body with messages, model, apiKey).
        service: Relay service instance.

    Returns:
        Empty 200 for preflight, the upstream body on success, or a JSON
        error body with the mapped status code.
    """
    body = await request.body()
    outcome = await service.handle(request.method, body)

    if outcome.empty:
        return Response(status_code=outcome.status_code, headers=CORS_HEADERS)

    return JSONResponse(
        content=outcome.body,
        status_code=outcome.status_code,
        headers=CORS_HEADERS,
    )
