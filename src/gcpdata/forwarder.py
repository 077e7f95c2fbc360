"""
Forwarding operations to the services.

The forwarder takes a reference plus whatever parameters the call needs, works
out the request from the operation table, hands it to the invoker and sorts out
what comes back.  Everything that can be checked locally is checked before the
invoker is called so a bad path never costs a round trip.

Nothing here retries.  That and timeouts are up to the transport, the forwarder
only passes the timeout along.
"""
from collections.abc import Iterator
import base64
import copy
import logging
from typing import Protocol

from .bigtable.resources import BigtableEnum
from .errors import ArgumentError, TransportError, translate_error
from .operations import Operation, Target, get_operation
from .paths import DEFAULT_DATABASE, location_path
from .reference import ReferenceNode
from .resources import CloudResourceBase, Page

log = logging.getLogger(__name__)


class Invoker(Protocol):
    """
    What the forwarder needs from a transport: make the call described by the
    operation with the given request and return the response dict, or raise
    TransportError with the underlying failure as its cause.
    """
    def invoke(self, operation: Operation, request: dict, options: dict) -> dict:
        ...


def _to_body(value):
    """Dataclass resources go out trimmed, anything else as is"""
    if isinstance(value, CloudResourceBase):
        return value.trim()
    if isinstance(value, dict):
        return copy.deepcopy(value)
    return value


def _row_key(key: bytes|str) -> str:
    """Row keys are bytes, which the REST API wants base64 encoded"""
    k = key if isinstance(key, bytes) else str(key).encode("utf-8")
    return base64.b64encode(k).decode("ascii")


def _rewrite_location(project_id: str, request: dict) -> None:
    body = request.get("body") or {}
    if body.get("location"):
        body["location"] = location_path(project_id, body["location"])


def _rewrite_cluster_locations(project_id: str, request: dict) -> None:
    body = request.get("body") or {}
    clusters = body.get("clusters")
    if clusters:
        body["clusters"] = {str(cid): _to_body(c) for cid, c in dict(clusters).items()}
        for c in body["clusters"].values():
            if c.get("location"):
                c["location"] = location_path(project_id, c["location"])


def _rewrite_row_keys(project_id: str, request: dict) -> None:
    body = request.get("body") or {}
    if body.get("initialSplits"):
        body["initialSplits"] = [s if isinstance(s, dict) else {'key': _row_key(s)}
                                 for s in body["initialSplits"]]
    if body.get("rowKeyPrefix") is not None:
        body["rowKeyPrefix"] = _row_key(body["rowKeyPrefix"])


def _rewrite_drop_name(project_id: str, request: dict) -> None:
    # createDocument names the document through its parameters, not the body
    body = request.get("body") or {}
    body.pop("name", None)


def _rewrite_table_view(project_id: str, request: dict) -> None:
    if request.get("view"):
        view = BigtableEnum.tableView(request["view"])
        if not view:
            raise ArgumentError(f"Invalid table view: {request['view']}")
        request["view"] = view


_REWRITES = {
    "location": _rewrite_location,
    "cluster_locations": _rewrite_cluster_locations,
    "row_keys": _rewrite_row_keys,
    "drop_name": _rewrite_drop_name,
    "table_view": _rewrite_table_view,
}


class OperationForwarder():
    """
    Single entry point for calls to the Bigtable admin and Firestore APIs.

    project_id:         Default project for references made through this object.
    invoker:            The transport, see Invoker.  Built once by the caller
                        (normally CloudAccess.invoker()) and passed in.
    timeout:            Default timeout in seconds for every call, None for the
                        transport's own.
    operation_timeouts: Per operation name timeout overrides, e.g. a long
                        {'drop_row_range': 600}.
    """
    def __init__(self, project_id: str, invoker: Invoker,
                 timeout: float|None = None,
                 operation_timeouts: dict[str, float]|None = None) -> None:
        self._project = ReferenceNode.project(project_id)
        self._invoker = invoker
        self.timeout = timeout
        self.operation_timeouts = dict(operation_timeouts or {})

    def __str__(self) -> str:
        return f"{self.project_id}:{self._invoker}"

    def __repr__(self) -> str:
        return f"{str(self.__class__)}:{str(self)}"

    @property
    def project_id(self) -> str:
        return self._project.project_id

    @property
    def project(self) -> ReferenceNode:
        return self._project

    @property
    def invoker(self) -> Invoker:
        return self._invoker

    def instance(self, instance_id: str) -> ReferenceNode:
        return self._project.instance(instance_id)

    def database(self, database_id: str = DEFAULT_DATABASE) -> ReferenceNode:
        return self._project.database_ref(database_id)

    def collection(self, collection_path: str, database_id: str = DEFAULT_DATABASE) -> ReferenceNode:
        return self.database(database_id).collection(collection_path)

    def doc(self, document_path: str, database_id: str = DEFAULT_DATABASE) -> ReferenceNode:
        return self.database(database_id).doc(document_path)

    def timeout_for(self, operation: Operation, options: dict|None = None) -> float|None:
        """
        Caller's option first, then the configured override for the operation,
        then the operation's own default, then the forwarder default.
        """
        opts = options or {}
        for t in (opts.get("timeout"), self.operation_timeouts.get(operation.name),
                  operation.timeout, self.timeout):
            if t is not None:
                return float(t)
        return None

    def build_request(self, operation: Operation|str, ref: ReferenceNode,
                      body=None, **params) -> dict:
        """
        Assemble the request for an operation without sending it.
        Params with a None value are left out.
        """
        op = operation if isinstance(operation, Operation) else get_operation(operation)
        if not isinstance(ref, ReferenceNode):
            raise ArgumentError(f"{op.name} needs a ReferenceNode, got {type(ref).__name__}")
        if ref.kind not in op.kinds:
            wanted = ", ".join(k.value for k in op.kinds)
            raise ArgumentError(f"{op.name} needs a reference to a {wanted}, got a {ref.kind.value}")

        b = _to_body(body)
        if op.body_field:
            b = {op.body_field: b if b is not None else {}}
        for k in op.body_params:
            v = params.pop(k, None)
            if v is not None:
                b = b if b is not None else {}
                b[k] = _to_body(v)
        if b is None and (op.needs_body or op.id_in_body):
            b = {}

        request = {}
        if op.target == Target.NAME:
            request["name"] = ref.path
        elif op.target == Target.PARENT:
            request["parent"] = ref.path
        elif op.target == Target.RESOURCE:
            request["resource"] = ref.path
        elif op.target == Target.CHILD:
            request["parent"] = ref.parent().path
            if op.id_in_body:
                b[op.id_field] = ref.id
            else:
                request[op.id_field] = ref.id
        elif op.target == Target.COLLECTION:
            request["parent"] = ref.parent().document_parent_path
            request["collectionId"] = ref.collection_id
        elif op.target == Target.DOCUMENT_PARENT:
            request["parent"] = ref.document_parent_path
        elif op.target == Target.NEW_DOCUMENT:
            collection = ref.parent()
            request["parent"] = collection.parent().document_parent_path
            request["collectionId"] = collection.collection_id
            request["documentId"] = ref.document_id
        if b is not None:
            request["body"] = b
        request.update({k: v for k, v in params.items() if v is not None})
        for r in op.rewrites:
            _REWRITES[r](ref.project_id, request)
        return request

    def _send(self, op: Operation, ref: ReferenceNode, request: dict, options: dict|None) -> dict:
        opts = {}
        timeout = self.timeout_for(op, options)
        if timeout is not None:
            opts["timeout"] = timeout
        log.debug("%s on %s", op, ref.path)
        try:
            response = self._invoker.invoke(op, request, opts)
        except TransportError as e:
            domain = translate_error(e)
            if domain is None:
                log.debug("%s failed in transport: %s", op.name, e)
                raise
            log.debug("%s failed: %s", op.name, domain)
            raise domain from e
        return response or {}

    def invoke(self, name: str, ref: ReferenceNode, body=None,
               options: dict|None = None, **params):
        """
        Make a call.

        name:       Operation name, see operations.OPERATIONS.
        ref:        Reference the operation acts on.  For creates this is the
                    reference to the new resource.
        body:       Request body, a resource dataclass or dict.
        options:    Transport options, currently just 'timeout' in seconds.
        params:     Any further request parameters, named as the API names them
                    e.g. updateMask, view, ignoreWarnings, clusters.

        return: The response converted to the operation's resource class when it
                has one, otherwise the response dict.  A list operation returns
                its first Page, use list_page()/list_all() for more.

        Raises ArgumentError/MalformedPathError before sending, a DomainError
        subclass for a service reported failure and TransportError for anything else.
        """
        op = get_operation(name)
        if op.paged:
            return self.list_page(name, ref, body=body, options=options, **params)
        request = self.build_request(op, ref, body, **params)
        response = self._send(op, ref, request, options)
        if op.result is not None:
            return op.result.from_base(response)
        return response

    def list_page(self, name: str, ref: ReferenceNode, page_token: str|None = None,
                  options: dict|None = None, body=None, **params) -> Page:
        """
        Fetch one page of a list operation.  The token is what a previous page
        returned as next_page_token and goes to the service untouched.
        Only list calls made with a POST (list_collection_ids) take a body.
        """
        op = get_operation(name)
        if not op.paged:
            raise ArgumentError(f"{op.name} is not a list operation")
        if body is not None and not op.needs_body:
            raise ArgumentError(f"{op.name} takes no body, pass query params instead")
        request = self.build_request(op, ref, body, **params)
        if page_token:
            if op.token_in_body:
                request["body"]["pageToken"] = page_token
            else:
                request["pageToken"] = page_token
        response = self._send(op, ref, request, options)
        items = response.get(op.items, []) or []
        if op.result is not None:
            items = [op.result.from_base(i) for i in items]
        return Page(items=list(items), next_page_token=response.get("nextPageToken") or None)

    def list_all(self, name: str, ref: ReferenceNode, page_token: str|None = None,
                 options: dict|None = None, body=None, **params) -> Iterator:
        """
        Generator over every item of a list operation, fetching pages as it goes.
        Each page is its own call, a failure part way raises from the generator.
        """
        token = page_token
        while True:
            page = self.list_page(name, ref, token, options, body, **params)
            yield from page.items
            token = page.next_page_token
            if not token:
                break
