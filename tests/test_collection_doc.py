import pytest

import gcpdata.paths
from gcpdata.errors import ArgumentError
from gcpdata.paths import ResourceKind
from gcpdata.reference import ReferenceNode

COLLECTION_PATH = "users/mike/messages"
ROOT = "projects/projectID/databases/(default)/documents"

@pytest.fixture
def collection():
    return ReferenceNode.from_path(f"{ROOT}/{COLLECTION_PATH}")

@pytest.fixture(params=["doc", "document"])
def accessor(request):
    """doc and document are the same accessor"""
    return request.param

def test_doc_for_document_id(collection, accessor):
    document = getattr(collection, accessor)("abc123")

    assert(document.kind == ResourceKind.DOCUMENT)
    assert(document.document_id == "abc123")
    assert(document.document_path == f"{COLLECTION_PATH}/abc123")
    assert(document.path == f"{ROOT}/users/mike/messages/abc123")

    assert(document.parent().kind == ResourceKind.COLLECTION)
    assert(document.parent().collection_id == "messages")
    assert(document.parent().collection_path == COLLECTION_PATH)
    assert(document.parent().path == f"{ROOT}/users/mike/messages")

def test_doc_for_document_path(collection, accessor):
    document = getattr(collection, accessor)("abc123/likes/xyz789")

    assert(document.kind == ResourceKind.DOCUMENT)
    assert(document.document_id == "xyz789")
    assert(document.document_path == "users/mike/messages/abc123/likes/xyz789")
    assert(document.path == f"{ROOT}/users/mike/messages/abc123/likes/xyz789")

    assert(document.parent().kind == ResourceKind.COLLECTION)
    assert(document.parent().collection_id == "likes")
    assert(document.parent().collection_path == "users/mike/messages/abc123/likes")
    assert(document.parent().path == f"{ROOT}/users/mike/messages/abc123/likes")

def test_doc_with_random_id(collection, accessor, monkeypatch):
    random_document_id = "helloiamarandomdocid"
    monkeypatch.setattr(gcpdata.paths, "unique_id", lambda: random_document_id)

    document = getattr(collection, accessor)()

    assert(document.kind == ResourceKind.DOCUMENT)
    assert(document.document_id == random_document_id)
    assert(document.document_path == f"{COLLECTION_PATH}/{random_document_id}")
    assert(document.path == f"{ROOT}/users/mike/messages/helloiamarandomdocid")
    assert(document.parent().collection_id == "messages")
    assert(document.parent().path == f"{ROOT}/users/mike/messages")

def test_doc_with_id_source(collection):
    document = collection.doc(id_source=lambda: "injected")
    assert(document.document_path == f"{COLLECTION_PATH}/injected")
    assert(document == collection.doc(id_source=lambda: "injected"))

def test_doc_generated_ids_differ(collection):
    first = collection.doc()
    second = collection.doc()
    assert(first != second)
    for d in (first, second):
        assert(d.document_id)
        assert("/" not in d.document_id)

def test_doc_does_not_allow_a_collection_path(collection, accessor):
    with pytest.raises(ArgumentError) as e:
        getattr(collection, accessor)("abc123/likes")
    assert(str(e.value) == "document_path must refer to a document.")

def test_doc_rejects_empty_segments(collection):
    for bad in ["/abc123", "abc123/", "abc123//likes/x"]:
        with pytest.raises(ValueError):
            collection.doc(bad)

def test_only_collections_generate_ids(collection):
    with pytest.raises(ArgumentError):
        collection.doc("abc123").doc()
