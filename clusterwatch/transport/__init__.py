from .executor import RequestExecutor, RequestError, TransportError, RequestTimeout, StatusError
from .failover import FailoverDispatcher, FailoverError, EmptyResponse

__all__ = [
    "RequestExecutor",
    "RequestError",
    "TransportError",
    "RequestTimeout",
    "StatusError",
    "FailoverDispatcher",
    "FailoverError",
    "EmptyResponse",
]
