"""Transport layer: protocol, endpoint table and the aiohttp implementation."""

from .http import HTTPClient, HTTPResponse
from .transport import ENDPOINTS, CDFTransport, EndpointSpec, WriteTransport, parse_error_response

__all__ = [
    "CDFTransport",
    "ENDPOINTS",
    "EndpointSpec",
    "HTTPClient",
    "HTTPResponse",
    "WriteTransport",
    "parse_error_response",
]
