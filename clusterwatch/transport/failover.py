from typing import List, Optional, Sequence

from .executor import RequestError, RequestExecutor
from ..utils.logger import get_logger


class FailoverError(Exception):
    def __init__(self, path: str, errors: Optional[List[Exception]] = None):
        super().__init__(f"No responding host was found for url: {path}")
        self.path = path
        self.errors = errors or []


class EmptyResponse(RequestError):
    """A 2xx answer without a body. Treated as a failed host."""


class FailoverDispatcher:
    def __init__(self, executor: RequestExecutor):
        self.executor = executor
        self.logger = get_logger(__name__)

    async def request(self, hosts: Sequence[str], method: str, path: str, body: Optional[bytes] = None) -> bytes:
        errors: List[Exception] = []

        for host in hosts:
            try:
                response_body = await self.executor.execute(host, method, path, body)
            except RequestError as e:
                errors.append(e)
                continue

            # An empty 2xx body (e.g. 204) is indistinguishable from failure here.
            if not response_body:
                errors.append(EmptyResponse(host, path, "empty response body"))
                continue

            return response_body

        self.logger.warning(f"All {len(hosts)} host(s) failed for {method} {path}")
        raise FailoverError(path, errors)
