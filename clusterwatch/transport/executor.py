import asyncio
from typing import Optional

import httpx

from ..utils.logger import get_logger


class RequestError(Exception):
    def __init__(self, host: str, path: str, message: str):
        super().__init__(f"{host}/{path}: {message}")
        self.host = host
        self.path = path


class TransportError(RequestError):
    """DNS, connect or read failure."""


class RequestTimeout(RequestError):
    pass


class StatusError(RequestError):
    def __init__(self, host: str, path: str, status_code: int):
        super().__init__(host, path, f"response status was {status_code}")
        self.status_code = status_code


def build_url(host: str, path: str) -> str:
    return f"{host.rstrip('/')}/{path.lstrip('/')}"


class RequestExecutor:
    """Performs exactly one HTTP call against one host.

    Only 2xx responses yield a body; everything else comes back as a
    ``RequestError`` subclass so callers can tell timeouts, transport faults
    and bad statuses apart.
    """

    def __init__(self, timeout: float = 10.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.timeout = timeout
        self.logger = get_logger(__name__)
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def execute(self, host: str, method: str, path: str, body: Optional[bytes] = None) -> bytes:
        url = build_url(host, path)
        headers = {"Content-Type": "application/json"} if body is not None else None

        try:
            # httpx timeouts apply per phase; this bounds the whole call.
            response = await asyncio.wait_for(
                self._client.request(method, url, content=body, headers=headers),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            self.logger.warning(f"{method} {url} timed out after {self.timeout}s")
            raise RequestTimeout(host, path, "timed out") from e
        except httpx.TimeoutException as e:
            self.logger.warning(f"{method} {url} timed out after {self.timeout}s")
            raise RequestTimeout(host, path, str(e) or "timed out") from e
        except httpx.HTTPError as e:
            self.logger.warning(f"{method} {url} failed: {e}")
            raise TransportError(host, path, str(e) or type(e).__name__) from e
        except Exception as e:
            self.logger.error(f"Unexpected error during {method} {url}: {e}", exc_info=True)
            raise RequestError(host, path, f"unexpected error: {e}") from e

        if not 200 <= response.status_code < 300:
            self.logger.debug(f"{method} {url} returned {response.status_code}")
            raise StatusError(host, path, response.status_code)

        return response.content

    async def close(self) -> None:
        await self._client.aclose()
