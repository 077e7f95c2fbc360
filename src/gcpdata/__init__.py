"""
A collection of utility wrappers around the Google API Python client for
Cloud Bigtable administration and Cloud Firestore.
The goal is to simplify the more complicated aspects like authentication,
resource names, pagination and error handling.

Resources are addressed with ReferenceNode, an immutable name that knows its
parent and children and never touches the network.  Operations go through a
single OperationForwarder that turns a reference plus parameters into a REST
call.  Python dataclasses are used for the resource structs.

    access = CloudAccess({'project': 'my-project'})
    fwd = access.forwarder()
    table = fwd.instance('my-instance').table('my-table')
    fwd.invoke('get_table', table)
    messages = fwd.collection('users/mike/messages')
    fwd.invoke('create_document', messages.doc(), Document.from_data({'text': 'hi'}))
"""
from .errors import (AlreadyExistsError, ArgumentError, DomainError, GcpDataError, MalformedPathError,
                     NotFoundError, PermissionDeniedError, RootHasNoParentError, TransportError,
                     translate_error)
from .paths import DEFAULT_DATABASE, ResourceKind, build_path, kind_for_depth, location_path, unique_id
from .reference import ReferenceNode, parse_path
from .resources import Page
from .forwarder import OperationForwarder
from .access import CloudAccess
from .firestore import Document
