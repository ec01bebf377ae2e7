from .parser import ConnectionDropped, HttpParseError, HttpRequest, read_request
from .router import CommandRouter
from .server import AgentHTTPServer

__all__ = [
    "ConnectionDropped",
    "HttpParseError",
    "HttpRequest",
    "read_request",
    "CommandRouter",
    "AgentHTTPServer",
]
