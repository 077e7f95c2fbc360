import base64
import json

import httplib2
import pytest
from googleapiclient.errors import HttpError

from gcpdata.bigtable import AppProfile, Cluster, ColumnFamily, Instance, Table
from gcpdata.errors import ArgumentError, MalformedPathError, NotFoundError, TransportError
from gcpdata.firestore import Document
from gcpdata.forwarder import OperationForwarder
from gcpdata.operations import OPERATIONS
from gcpdata.resources import Page

PROJECT = "proj"

class RecordingInvoker():
    """Stands in for the transport, hands back queued responses or raises queued errors"""
    def __init__(self, *responses) -> None:
        self.responses = list(responses)
        self.calls = []

    def invoke(self, operation, request, options):
        self.calls.append((operation, request, options))
        r = self.responses.pop(0) if self.responses else {}
        if isinstance(r, BaseException):
            raise r
        return r

    @property
    def request(self) -> dict:
        return self.calls[-1][1]

def make(*responses, **kwargs):
    invoker = RecordingInvoker(*responses)
    return OperationForwarder(PROJECT, invoker, **kwargs), invoker

def test_every_operation_has_a_service():
    for op in OPERATIONS.values():
        assert(op.service in ("instances", "tables", "documents"))
        assert(op.method.startswith("projects."))

def test_get_table():
    fwd, invoker = make({"name": "projects/proj/instances/inst/tables/t1", "unknownField": 1})
    table = fwd.invoke("get_table", fwd.instance("inst").table("t1"), view="SCHEMA_VIEW")
    assert(isinstance(table, Table))
    assert(table.name == "projects/proj/instances/inst/tables/t1")
    op, request, options = invoker.calls[0]
    assert(op.name == "get_table")
    assert(request == {"name": "projects/proj/instances/inst/tables/t1", "view": "SCHEMA_VIEW"})
    assert(options == {})

def test_create_cluster_rewrites_location():
    fwd, invoker = make({"name": "operations/1"})
    cluster = fwd.instance("inst").cluster("c1")
    fwd.invoke("create_cluster", cluster, Cluster(location="us-east1-b", serveNodes=3))
    request = invoker.request
    assert(request["parent"] == "projects/proj/instances/inst")
    assert(request["clusterId"] == "c1")
    assert(request["body"]["location"] == "projects/proj/locations/us-east1-b")
    assert(request["body"]["serveNodes"] == 3)

def test_qualified_location_passes_through():
    fwd, invoker = make()
    qualified = "projects/elsewhere/locations/us-east1-b"
    fwd.invoke("update_cluster", fwd.instance("inst").cluster("c1"), {"location": qualified, "serveNodes": 5})
    assert(invoker.request["body"]["location"] == qualified)
    assert(invoker.request["name"] == "projects/proj/instances/inst/clusters/c1")

def test_create_instance():
    fwd, invoker = make({"name": "operations/2"})
    response = fwd.invoke("create_instance", fwd.instance("inst"),
                          Instance(displayName="My Instance", type="PRODUCTION"),
                          clusters={"c1": Cluster(location="us-central1-f", serveNodes=3, defaultStorageType="ssd")})
    assert(response == {"name": "operations/2"})
    request = invoker.request
    assert(request["parent"] == "projects/proj")
    body = request["body"]
    assert(body["instanceId"] == "inst")
    assert(body["instance"] == {"displayName": "My Instance", "type": "PRODUCTION"})
    assert(body["clusters"]["c1"]["location"] == "projects/proj/locations/us-central1-f")
    assert(body["clusters"]["c1"]["defaultStorageType"] == "SSD")

def test_create_table_with_splits():
    fwd, invoker = make({"name": "projects/proj/instances/inst/tables/t1"})
    table = Table(columnFamilies={"cf": ColumnFamily.max_versions(1)})
    result = fwd.invoke("create_table", fwd.instance("inst").table("t1"), table, initialSplits=[b"a", "m"])
    assert(isinstance(result, Table))
    body = invoker.request["body"]
    assert(invoker.request["parent"] == "projects/proj/instances/inst")
    assert(body["tableId"] == "t1")
    assert(body["table"]["columnFamilies"] == {"cf": {"gcRule": {"maxNumVersions": 1}}})
    assert(body["initialSplits"] == [{"key": base64.b64encode(b"a").decode()},
                                     {"key": base64.b64encode(b"m").decode()}])

def test_drop_row_range_timeout_override():
    fwd, invoker = make({}, {}, {}, operation_timeouts={"drop_row_range": 600})
    table = fwd.instance("inst").table("t1")
    fwd.invoke("drop_row_range", table, rowKeyPrefix=b"user#")
    assert(invoker.calls[0][2] == {"timeout": 600.0})
    assert(invoker.request["body"] == {"rowKeyPrefix": base64.b64encode(b"user#").decode()})
    fwd.invoke("drop_row_range", table, options={"timeout": 30}, deleteAllDataFromTable=True)
    assert(invoker.calls[1][2] == {"timeout": 30.0})
    assert(invoker.request["body"] == {"deleteAllDataFromTable": True})
    fwd.invoke("get_table", table)
    assert(invoker.calls[2][2] == {})

def test_default_timeout():
    fwd, invoker = make(timeout=10)
    fwd.invoke("get_instance", fwd.instance("inst"))
    assert(invoker.calls[0][2] == {"timeout": 10.0})

def test_iam_and_app_profiles():
    fwd, invoker = make({}, {}, {"name": "projects/proj/instances/inst/appProfiles/ap"})
    instance = fwd.instance("inst")
    fwd.invoke("get_instance_policy", instance)
    assert(invoker.request == {"resource": "projects/proj/instances/inst", "body": {}})
    fwd.invoke("test_instance_permissions", instance, permissions=["bigtable.tables.get"])
    assert(invoker.request["body"] == {"permissions": ["bigtable.tables.get"]})
    profile = fwd.invoke("create_app_profile", instance.app_profile("ap"),
                         AppProfile(description="reads", multiClusterRoutingUseAny={}),
                         ignoreWarnings=True)
    assert(isinstance(profile, AppProfile))
    request = invoker.request
    assert(request["appProfileId"] == "ap")
    assert(request["ignoreWarnings"] is True)
    assert("singleClusterRouting" not in request["body"])
    assert(request["body"]["multiClusterRoutingUseAny"] == {})
    assert(request["body"]["description"] == "reads")

def test_wrong_reference_kind_never_sends():
    fwd, invoker = make()
    with pytest.raises(ArgumentError):
        fwd.invoke("get_table", fwd.instance("inst"))
    with pytest.raises(ArgumentError):
        fwd.invoke("no_such_operation", fwd.instance("inst"))
    with pytest.raises(ArgumentError):
        fwd.invoke("get_document", fwd.collection("users"))
    with pytest.raises(MalformedPathError):
        fwd.invoke("get_table", fwd.instance("inst").table("bad/id"))
    assert(invoker.calls == [])

def test_domain_error_translation():
    raw = HttpError(httplib2.Response({"status": 404}),
                    json.dumps({"error": {"code": 404, "message": "Instance not found", "status": "NOT_FOUND"}}).encode())
    fwd, invoker = make(TransportError("get_instance failed", raw))
    with pytest.raises(NotFoundError) as e:
        fwd.invoke("get_instance", fwd.instance("inst"))
    assert(e.value.code == "NOT_FOUND")
    assert(e.value.message == "Instance not found")
    assert(isinstance(e.value.__cause__, TransportError))

def test_transport_error_passes_through():
    err = TransportError("get_instance failed", ConnectionResetError())
    fwd, invoker = make(err)
    with pytest.raises(TransportError) as e:
        fwd.invoke("get_instance", fwd.instance("inst"))
    assert(e.value is err)

def test_list_pages():
    fwd, invoker = make({"instances": [{"name": "projects/proj/instances/a"}], "nextPageToken": "tok1"},
                        {"instances": [{"name": "projects/proj/instances/b"}]})
    page = fwd.list_page("list_instances", fwd.project)
    assert(isinstance(page, Page))
    assert(page.next_page_token == "tok1")
    assert(not page.last)
    assert(isinstance(page.items[0], Instance))
    assert("pageToken" not in invoker.request)
    page = fwd.list_page("list_instances", fwd.project, page.next_page_token)
    assert(invoker.request["pageToken"] == "tok1")
    assert(page.next_page_token is None)
    assert(page.last)
    assert([i.name for i in page] == ["projects/proj/instances/b"])

def test_list_all():
    fwd, invoker = make({"clusters": [{"name": "c1"}, {"name": "c2"}], "nextPageToken": "t"},
                        {"clusters": [{"name": "c3"}], "nextPageToken": ""})
    names = [c.name for c in fwd.list_all("list_clusters", fwd.instance("inst"))]
    assert(names == ["c1", "c2", "c3"])
    assert(len(invoker.calls) == 2)
    assert(invoker.calls[1][1]["pageToken"] == "t")

def test_invoke_on_list_operation_returns_first_page():
    fwd, invoker = make({"tables": []})
    page = fwd.invoke("list_tables", fwd.instance("inst"), view="NAME_ONLY")
    assert(isinstance(page, Page))
    assert(len(page) == 0)
    assert(invoker.request == {"parent": "projects/proj/instances/inst", "view": "NAME_ONLY"})

def test_list_page_needs_list_operation():
    fwd, invoker = make()
    with pytest.raises(ArgumentError):
        fwd.list_page("get_instance", fwd.instance("inst"))

def test_create_document():
    name = "projects/proj/databases/(default)/documents/users/mike/messages/abc"
    fwd, invoker = make({"name": name, "fields": {"text": {"stringValue": "hi"}}})
    messages = fwd.collection("users/mike/messages")
    ref = messages.doc(id_source=lambda: "abc")
    doc = fwd.invoke("create_document", ref, Document.from_data({"text": "hi"}, ref))
    assert(isinstance(doc, Document))
    assert(doc.data == {"text": "hi"})
    assert(doc.ref == ref)
    request = invoker.request
    assert(request["parent"] == "projects/proj/databases/(default)/documents/users/mike")
    assert(request["collectionId"] == "messages")
    assert(request["documentId"] == "abc")
    assert(request["body"] == {"fields": {"text": {"stringValue": "hi"}}})

def test_top_level_document_requests():
    fwd, invoker = make({}, {"documents": [{"name": "x/y"}], "nextPageToken": "n"}, {"collectionIds": ["users"]})
    fwd.invoke("create_document", fwd.collection("users").doc("mike"), Document.from_data({}))
    assert(invoker.request["parent"] == "projects/proj/databases/(default)/documents")
    assert(invoker.request["collectionId"] == "users")
    page = fwd.list_page("list_documents", fwd.collection("users"), pageSize=10)
    assert(invoker.request["parent"] == "projects/proj/databases/(default)/documents")
    assert(invoker.request["collectionId"] == "users")
    assert(invoker.request["pageSize"] == 10)
    assert(page.items[0].name == "x/y")
    page = fwd.list_page("list_collection_ids", fwd.database(), "tok", pageSize=5)
    assert(invoker.request["parent"] == "projects/proj/databases/(default)/documents")
    assert(invoker.request["body"] == {"pageSize": 5, "pageToken": "tok"})
    assert(page.items == ["users"])

def test_update_and_delete_document():
    fwd, invoker = make({"name": "projects/proj/databases/(default)/documents/users/mike"}, {})
    mike = fwd.doc("users/mike")
    fwd.invoke("update_document", mike, Document.from_data({"age": 30}), **{"updateMask.fieldPaths": ["age"]})
    assert(invoker.request["name"] == mike.path)
    assert(invoker.request["updateMask.fieldPaths"] == ["age"])
    assert(invoker.request["body"]["fields"] == {"age": {"integerValue": "30"}})
    fwd.invoke("delete_document", mike)
    assert(invoker.request == {"name": mike.path})

def test_unspecified_enums_from_service():
    fwd, invoker = make({"name": "projects/proj/instances/inst", "type": "TYPE_UNSPECIFIED"},
                        {"clusters": [{"name": "c1", "defaultStorageType": "STORAGE_TYPE_UNSPECIFIED"}]})
    instance = fwd.invoke("get_instance", fwd.instance("inst"))
    assert(instance.type == "TYPE_UNSPECIFIED")
    page = fwd.list_page("list_clusters", fwd.instance("inst"))
    assert(page.items[0].defaultStorageType == "STORAGE_TYPE_UNSPECIFIED")

def test_invoke_list_with_body():
    fwd, invoker = make({"collectionIds": ["users"]})
    page = fwd.invoke("list_collection_ids", fwd.database(), {"pageSize": 5})
    assert(page.items == ["users"])
    assert(invoker.request["body"] == {"pageSize": 5})
    with pytest.raises(ArgumentError):
        fwd.invoke("list_tables", fwd.instance("inst"), {"pageSize": 5})
    assert(len(invoker.calls) == 1)

def test_table_view_normalized():
    fwd, invoker = make({"name": "t1"}, {"tables": []})
    fwd.invoke("get_table", fwd.instance("inst").table("t1"), view="schema")
    assert(invoker.request["view"] == "SCHEMA_VIEW")
    fwd.invoke("list_tables", fwd.instance("inst"), view="name")
    assert(invoker.request["view"] == "NAME_ONLY")
    with pytest.raises(ArgumentError):
        fwd.invoke("get_table", fwd.instance("inst").table("t1"), view="everything")
    assert(len(invoker.calls) == 2)
