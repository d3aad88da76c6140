"""
HTTP client helper with standardized timeout configuration.

Ensures all outbound HTTP calls (Graph API, lead sink) have explicit timeouts
so a slow external service cannot stall webhook processing.
"""

import httpx


def get_httpx_timeout(default: float = 10.0) -> httpx.Timeout:
    """
    Get standardized timeout configuration for HTTP clients.

    Args:
        default: Overall timeout in seconds (read timeout follows it)

    Returns:
        httpx.Timeout with appropriate timeout values for outbound calls
    """
    # httpx.Timeout API: first arg is default timeout, then keyword args for specific timeouts
    return httpx.Timeout(
        default,
        connect=5.0,  # Time to establish connection
        read=default,  # Time to read response
        write=5.0,  # Time to write request
        pool=5.0,  # Time to get connection from pool
    )


def create_httpx_client(
    timeout: float = 10.0,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """
    Create an httpx.AsyncClient with standardized timeout configuration.

    Args:
        timeout: Overall timeout in seconds
        transport: Optional transport (tests pass httpx.MockTransport)

    Returns:
        httpx.AsyncClient configured with appropriate timeouts
    """
    return httpx.AsyncClient(timeout=get_httpx_timeout(timeout), transport=transport)
