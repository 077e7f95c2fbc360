"""
The invoker on top of the Google API discovery client.

The services are the objects googleapiclient.discovery.build() hands back.
An operation's dotted method is walked down the resource tree, the request dict
becomes the method's keyword arguments and execute() makes the call.  Any
failure on the way out is wrapped in a TransportError, translating it is the
forwarder's business.
"""
import logging

import google.auth.exceptions
import google_auth_httplib2
import httplib2
from googleapiclient.discovery import Resource
from googleapiclient.errors import Error as GoogleApiClientError

from .errors import ArgumentError, TransportError
from .operations import Operation

log = logging.getLogger(__name__)

# everything execute() can raise when a call goes wrong
_TRANSPORT_FAILURES = (GoogleApiClientError, httplib2.HttpLib2Error,
                       google.auth.exceptions.TransportError,
                       google.auth.exceptions.RefreshError,
                       OSError)


class DiscoveryInvoker():
    """
    services:       Service handle name (see operations.SERVICES) to a built
                    discovery Resource.  Handles are built by the caller and
                    reused for every call.
    credentials:    Only needed for per call timeouts, which need their own
                    authorized http object.
    num_retries:    Passed to execute(), the discovery client does its own
                    backoff for retryable statuses.
    """
    def __init__(self, services: dict[str, Resource], credentials=None,
                 num_retries: int = 0) -> None:
        self._services = dict(services)
        self._credentials = credentials
        self.num_retries = int(num_retries)

    def __str__(self) -> str:
        return f"DiscoveryInvoker{sorted(self._services.keys())}"

    def __repr__(self) -> str:
        return f"{str(self.__class__)}:{str(self)}"

    def method(self, operation: Operation):
        """
        Walk 'projects.instances.tables.create' down the service resource to
        the bound create method.
        """
        service = self._services.get(operation.service)
        if service is None:
            raise ArgumentError(f"No '{operation.service}' service for {operation.name}")
        *collections, name = operation.method.split(".")
        resource = service
        for c in collections:
            resource = getattr(resource, c)()
        return getattr(resource, name)

    def _http(self, timeout: float):
        """An authorized http object with its own socket timeout"""
        http = httplib2.Http(timeout=timeout)
        if self._credentials is None:
            return http
        return google_auth_httplib2.AuthorizedHttp(self._credentials, http=http)

    def invoke(self, operation: Operation, request: dict, options: dict) -> dict:
        method = self.method(operation)
        # discovery parameter names with dots, e.g. updateMask.fieldPaths, are
        # exposed with underscores
        kwargs = {k.replace(".", "_"): v for k, v in request.items()}
        args = {"num_retries": self.num_retries}
        timeout = (options or {}).get("timeout")
        if timeout is not None:
            args["http"] = self._http(timeout)
        try:
            return method(**kwargs).execute(**args)
        except _TRANSPORT_FAILURES as e:
            log.debug("%s raised %s", operation.name, e.__class__.__name__)
            raise TransportError(f"{operation.name} failed: {e}", e) from e
