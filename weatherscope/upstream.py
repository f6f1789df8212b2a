"""HTTP calls to third-party APIs with consistent logging."""

import httpx

from weatherscope.errors import ExternalAPIError
from weatherscope.logging_config import logger


def upstream_error_message(response: httpx.Response) -> str:
    """Pull a human readable message out of an upstream error body.

    OpenCage reports ``{"status": {"message": ...}}`` and Open-Meteo
    reports ``{"reason": ...}``.

    Args:
        response: The failed upstream response.

    Returns:
        The upstream message, or the status line when the body has none.
    """
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        status = body.get("status")
        if isinstance(status, dict) and status.get("message"):
            return str(status["message"])
        if body.get("reason"):
            return str(body["reason"])
    return f"Upstream responded with status {response.status_code}"


async def fetch_json(
    client: httpx.AsyncClient,
    *,
    url: str,
    params: dict,
    timeout: float,
    event_prefix: str,
    log_context: dict,
    error: str,
) -> dict:
    """Execute a single HTTP GET and decode its JSON body.

    Args:
        client: Shared async HTTP client.
        url: The URL to call.
        params: Query parameters to include in the request.
        timeout: Request timeout in seconds.
        event_prefix: Log event prefix for consistent names.
        log_context: Extra log fields for all events.
        error: Error label attached to the raised ExternalAPIError.

    Returns:
        The decoded JSON object.

    Raises:
        ExternalAPIError: When the request fails, times out, or the body is
            not a JSON object. The upstream message is passed through.
    """
    try:
        response = await client.get(url, params=params, timeout=timeout)
        logger.info(
            f"{event_prefix}_RESPONSE", **log_context, status=response.status_code
        )
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        message = upstream_error_message(exc.response)
        logger.error(
            f"{event_prefix}_BAD_STATUS",
            **log_context,
            status=exc.response.status_code,
            error=message,
        )
        raise ExternalAPIError(error, message) from exc
    except httpx.RequestError as exc:
        logger.error(f"{event_prefix}_REQUEST_FAILED", **log_context, error=str(exc))
        raise ExternalAPIError(error, str(exc) or type(exc).__name__) from exc

    try:
        data = response.json()
    except ValueError as exc:
        logger.error(f"{event_prefix}_BAD_PAYLOAD", **log_context, error=str(exc))
        raise ExternalAPIError(error, "Upstream returned invalid JSON") from exc
    if not isinstance(data, dict):
        logger.error(f"{event_prefix}_BAD_PAYLOAD", **log_context, error="not an object")
        raise ExternalAPIError(error, "Upstream returned an unexpected payload")
    return data
