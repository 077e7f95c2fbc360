"""
The table of operations the forwarder knows how to make.

Each admin/document call is a one liner against the REST client once the
resource names are worked out, so rather than a wrapper function per call each
one is described here: which service handle and discovery method it uses, what
kind of reference it takes, where that reference's path goes in the request and
any body wrapping or rewriting it needs.  OperationForwarder does the rest.

Method names follow the discovery documents, e.g. 'projects.instances.clusters.create'
is service.projects().instances().clusters().create(...).
See https://cloud.google.com/bigtable/docs/reference/admin/rest and
https://cloud.google.com/firestore/docs/reference/rest
"""
from dataclasses import dataclass, field
from enum import Enum

from .bigtable.resources import AppProfile, Cluster, Instance, Table
from .errors import ArgumentError
from .firestore.resources import Document
from .paths import ResourceKind

# service handle name -> (discovery api name, version)
SERVICES = {
    "instances": ("bigtableadmin", "v2"),
    "tables": ("bigtableadmin", "v2"),
    "documents": ("firestore", "v1"),
}


class Target(Enum):
    """Where the reference's path goes in the request"""
    # request['name'] = path of the reference itself
    NAME = "name"
    # request['parent'] = path of the reference, for list calls
    PARENT = "parent"
    # request['resource'] = path, for the IAM calls
    RESOURCE = "resource"
    # creating the referenced resource: its parent's path plus its id
    CHILD = "child"
    # document list: the collection's parent plus collectionId
    COLLECTION = "collection"
    # listCollectionIds: a document or the documents root
    DOCUMENT_PARENT = "document_parent"
    # createDocument: collection parent, collectionId and documentId
    NEW_DOCUMENT = "new_document"


@dataclass(frozen=True)
class Operation():
    """
    name:           Name callers use with OperationForwarder.invoke().
    service:        Service handle, a key of SERVICES.
    method:         Dotted discovery method.
    kinds:          Reference kinds accepted.
    target:         How the reference goes into the request.
    id_field:       For CHILD, the request field that takes the new id.
    id_in_body:     The id goes in the body rather than the query.
    body_field:     Wrap the caller's body under this key.
    body_params:    Caller params that belong in the body rather than the query.
    rewrites:       Named request rewrites applied before sending.
    items:          For list calls, the response field holding the items.
    token_in_body:  The page token goes in the body (listCollectionIds).
    needs_body:     Send an empty body when the caller gives none (POST calls).
    timeout:        Default timeout in seconds, None for the transport default.
    result:         Resource class to convert the response (or each item) to.
    """
    name: str
    service: str
    method: str
    kinds: tuple[ResourceKind, ...]
    target: Target = field(default=Target.NAME)
    id_field: str = field(default="")
    id_in_body: bool = field(default=False)
    body_field: str = field(default="")
    body_params: tuple[str, ...] = field(default=())
    rewrites: tuple[str, ...] = field(default=())
    items: str = field(default="")
    token_in_body: bool = field(default=False)
    needs_body: bool = field(default=False)
    timeout: float|None = field(default=None)
    result: type|None = field(default=None)

    @property
    def paged(self) -> bool:
        return bool(self.items)

    def __str__(self) -> str:
        return f"{self.name}({self.service}:{self.method})"


_INSTANCE = (ResourceKind.INSTANCE,)
_CLUSTER = (ResourceKind.CLUSTER,)
_TABLE = (ResourceKind.TABLE,)
_APP_PROFILE = (ResourceKind.APP_PROFILE,)
_DOCUMENT = (ResourceKind.DOCUMENT,)

_OPERATIONS = [
    # bigtable instance admin
    Operation("create_instance", "instances", "projects.instances.create", _INSTANCE,
              Target.CHILD, id_field="instanceId", id_in_body=True, body_field="instance",
              body_params=("clusters",), rewrites=("cluster_locations",)),
    Operation("list_instances", "instances", "projects.instances.list", (ResourceKind.PROJECT,),
              Target.PARENT, items="instances", result=Instance),
    Operation("get_instance", "instances", "projects.instances.get", _INSTANCE, result=Instance),
    Operation("partial_update_instance", "instances", "projects.instances.partialUpdateInstance", _INSTANCE),
    Operation("delete_instance", "instances", "projects.instances.delete", _INSTANCE),
    Operation("create_cluster", "instances", "projects.instances.clusters.create", _CLUSTER,
              Target.CHILD, id_field="clusterId", rewrites=("location",)),
    Operation("list_clusters", "instances", "projects.instances.clusters.list", _INSTANCE,
              Target.PARENT, items="clusters", result=Cluster),
    Operation("get_cluster", "instances", "projects.instances.clusters.get", _CLUSTER, result=Cluster),
    Operation("update_cluster", "instances", "projects.instances.clusters.update", _CLUSTER,
              rewrites=("location",)),
    Operation("delete_cluster", "instances", "projects.instances.clusters.delete", _CLUSTER),
    Operation("create_app_profile", "instances", "projects.instances.appProfiles.create", _APP_PROFILE,
              Target.CHILD, id_field="appProfileId", result=AppProfile),
    Operation("get_app_profile", "instances", "projects.instances.appProfiles.get", _APP_PROFILE,
              result=AppProfile),
    Operation("list_app_profiles", "instances", "projects.instances.appProfiles.list", _INSTANCE,
              Target.PARENT, items="appProfiles", result=AppProfile),
    Operation("update_app_profile", "instances", "projects.instances.appProfiles.patch", _APP_PROFILE),
    Operation("delete_app_profile", "instances", "projects.instances.appProfiles.delete", _APP_PROFILE),
    Operation("get_instance_policy", "instances", "projects.instances.getIamPolicy", _INSTANCE,
              Target.RESOURCE, needs_body=True),
    Operation("set_instance_policy", "instances", "projects.instances.setIamPolicy", _INSTANCE,
              Target.RESOURCE, body_params=("policy",), needs_body=True),
    Operation("test_instance_permissions", "instances", "projects.instances.testIamPermissions", _INSTANCE,
              Target.RESOURCE, body_params=("permissions",), needs_body=True),

    # bigtable table admin
    Operation("create_table", "tables", "projects.instances.tables.create", _TABLE,
              Target.CHILD, id_field="tableId", id_in_body=True, body_field="table",
              body_params=("initialSplits",), rewrites=("row_keys",), result=Table),
    Operation("list_tables", "tables", "projects.instances.tables.list", _INSTANCE,
              Target.PARENT, items="tables", rewrites=("table_view",), result=Table),
    Operation("get_table", "tables", "projects.instances.tables.get", _TABLE,
              rewrites=("table_view",), result=Table),
    Operation("delete_table", "tables", "projects.instances.tables.delete", _TABLE),
    Operation("modify_column_families", "tables", "projects.instances.tables.modifyColumnFamilies", _TABLE,
              body_params=("modifications",), needs_body=True, result=Table),
    Operation("generate_consistency_token", "tables", "projects.instances.tables.generateConsistencyToken",
              _TABLE, needs_body=True),
    Operation("check_consistency", "tables", "projects.instances.tables.checkConsistency", _TABLE,
              body_params=("consistencyToken",), needs_body=True),
    Operation("drop_row_range", "tables", "projects.instances.tables.dropRowRange", _TABLE,
              body_params=("rowKeyPrefix", "deleteAllDataFromTable"), rewrites=("row_keys",),
              needs_body=True),

    # firestore documents
    Operation("get_document", "documents", "projects.databases.documents.get", _DOCUMENT,
              result=Document),
    Operation("create_document", "documents", "projects.databases.documents.createDocument", _DOCUMENT,
              Target.NEW_DOCUMENT, rewrites=("drop_name",), needs_body=True, result=Document),
    Operation("update_document", "documents", "projects.databases.documents.patch", _DOCUMENT,
              needs_body=True, result=Document),
    Operation("delete_document", "documents", "projects.databases.documents.delete", _DOCUMENT),
    Operation("list_documents", "documents", "projects.databases.documents.list", (ResourceKind.COLLECTION,),
              Target.COLLECTION, items="documents", result=Document),
    Operation("list_collection_ids", "documents", "projects.databases.documents.listCollectionIds",
              (ResourceKind.DATABASE, ResourceKind.DOCUMENT), Target.DOCUMENT_PARENT,
              body_params=("pageSize",), items="collectionIds", token_in_body=True, needs_body=True),
]

OPERATIONS: dict[str, Operation] = {op.name: op for op in _OPERATIONS}


def get_operation(name: str) -> Operation:
    op = OPERATIONS.get(str(name))
    if op is None:
        raise ArgumentError(f"Unknown operation: {name}")
    return op
