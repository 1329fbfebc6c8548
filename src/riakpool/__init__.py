"""riakpool: Riak HTTP client with retries, vclock-guarded writes, and sibling resolution."""

__version__ = "0.1.0"

from riakpool.client import RiakClient
from riakpool.config import RiakConfig
from riakpool.errors import (
    ConfigurationError,
    DecodeError,
    IntegrityError,
    ProtocolError,
    ResolutionError,
    RiakError,
    ServerError,
    TransportError,
    UnexpectedStatus,
)
from riakpool.observer import LoggingObserver, Observer
from riakpool.options import RequestOptions
from riakpool.retry import RetryPolicy
from riakpool.transport import HttpxTransport, Transport
from riakpool.values import (
    Absent,
    Document,
    ListValue,
    Mutation,
    Resolution,
    Response,
    Result,
    Scalar,
    Sibling,
    StoredValue,
)

__all__ = [
    "__version__",
    "RiakClient",
    "RiakConfig",
    "RequestOptions",
    "RetryPolicy",
    "Observer",
    "LoggingObserver",
    "Transport",
    "HttpxTransport",
    "Response",
    "Result",
    "Sibling",
    "Resolution",
    "Mutation",
    "StoredValue",
    "Absent",
    "Scalar",
    "ListValue",
    "Document",
    "RiakError",
    "TransportError",
    "ProtocolError",
    "DecodeError",
    "ConfigurationError",
    "ResolutionError",
    "IntegrityError",
    "ServerError",
    "UnexpectedStatus",
]
