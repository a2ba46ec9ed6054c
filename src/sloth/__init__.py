"""
=============================================================================
SLOTH: A MINIMAL HTTP RESOURCE DISPATCHER
=============================================================================

Resources are plain objects. Whatever HTTP methods they implement is what
they answer:

    from sloth import API

    class Greeting:
        def get(self, request):
            return 200, {"hello": request.form_value("name", "world")}, None

    api = API()
    api.add_resource(Greeting(), "/greeting")
    api.start(8080)

    $ curl -i localhost:8080/greeting?name=sloth
    HTTP/1.1 200 OK
    Content-Type: application/json
    ...
    {
      "hello": "sloth"
    }

    $ curl -i -X DELETE localhost:8080/greeting
    HTTP/1.1 405 Method Not Allowed
    Allow: GET

=============================================================================
PACKAGE LAYOUT
=============================================================================

    sloth.api           API: router facade and server lifecycle
    sloth.dispatcher    resource → handler (form, capability, encode, write)
    sloth.resource      the six capability protocols
    sloth.encoding      Text / Bytes / Structured payloads and encode()
    sloth.config        APIConfig, ServerConfig
    sloth.errors        exception hierarchy
    sloth.http          request, headers, response writer, router, statuses
    sloth.middleware    wrappers: compression, access log, chain()
    sloth.server        threaded HTTP/1.1 server
    sloth.core          sockets, connections, thread pool
    sloth.resources     built-in health resources

=============================================================================
"""

__version__ = "1.0.0"

from .api import API, RouterSlot
from .config import APIConfig, ServerConfig
from .dispatcher import Dispatcher
from .encoding import Text, Bytes, Structured, Payload, encode
from .errors import SlothError, RouterAlreadySetError, NoResourceError, EncodingError
from .http import Headers, HTTPRequest, ResponseWriter, Router, Mux, Handler, FormParseError
from .resource import (
    GetSupported,
    PostSupported,
    PutSupported,
    DeleteSupported,
    HeadSupported,
    PatchSupported,
)

__all__ = [
    "__version__",
    "API",
    "RouterSlot",
    "APIConfig",
    "ServerConfig",
    "Dispatcher",
    "Text",
    "Bytes",
    "Structured",
    "Payload",
    "encode",
    "SlothError",
    "RouterAlreadySetError",
    "NoResourceError",
    "EncodingError",
    "Headers",
    "HTTPRequest",
    "ResponseWriter",
    "Router",
    "Mux",
    "Handler",
    "FormParseError",
    "GetSupported",
    "PostSupported",
    "PutSupported",
    "DeleteSupported",
    "HeadSupported",
    "PatchSupported",
]
