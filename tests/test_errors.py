import json

import httplib2
import pytest
from googleapiclient.errors import HttpError

from gcpdata.errors import (AlreadyExistsError, DomainError, NotFoundError, PermissionDeniedError,
                            TransportError, UnavailableError, error_class, translate_error)

def http_error(status: int, body: dict|None = None) -> HttpError:
    content = json.dumps(body).encode("utf-8") if body is not None else b""
    return HttpError(httplib2.Response({"status": status}), content)

def test_status_from_body():
    raw = http_error(404, {"error": {"code": 404, "message": "Table not found.", "status": "NOT_FOUND"}})
    err = translate_error(raw)
    assert(isinstance(err, NotFoundError))
    assert(isinstance(err, DomainError))
    assert(err.code == "NOT_FOUND")
    assert(err.http_status == 404)
    assert(err.message == "Table not found.")
    assert(str(err) == "NOT_FOUND: Table not found.")

def test_body_status_wins_over_http_status():
    # firestore reports an existing document as 409 ALREADY_EXISTS, aborted transactions as 409 ABORTED
    raw = http_error(409, {"error": {"code": 409, "message": "Document already exists", "status": "ALREADY_EXISTS"}})
    assert(isinstance(translate_error(raw), AlreadyExistsError))
    raw = http_error(409, {"error": {"code": 409, "message": "Too much contention", "status": "ABORTED"}})
    err = translate_error(raw)
    assert(err.code == "ABORTED")

def test_status_from_http_status():
    err = translate_error(http_error(403))
    assert(isinstance(err, PermissionDeniedError))
    assert(err.http_status == 403)
    assert(isinstance(translate_error(http_error(503, {"unexpected": True})), UnavailableError))

def test_wrapped_transport_error():
    raw = http_error(404, {"error": {"code": 404, "message": "gone", "status": "NOT_FOUND"}})
    err = translate_error(TransportError("get_table failed", raw))
    assert(isinstance(err, NotFoundError))
    assert(err.message == "gone")

def test_details_carried():
    details = [{"@type": "type.googleapis.com/google.rpc.BadRequest", "fieldViolations": []}]
    raw = http_error(400, {"error": {"code": 400, "message": "bad", "status": "INVALID_ARGUMENT", "details": details}})
    assert(translate_error(raw).details == details)

def test_unrecognized_stays_transport():
    assert(translate_error(TransportError("reset", ConnectionResetError())) is None)
    assert(translate_error(httplib2.ServerNotFoundError("no such host")) is None)
    assert(translate_error(http_error(302)) is None)

def test_error_class_lookup():
    assert(error_class("not_found") is NotFoundError)
    assert(error_class("SOMETHING_ELSE") is None)

def test_validation_errors_are_value_errors():
    from gcpdata.errors import ArgumentError, MalformedPathError, RootHasNoParentError
    assert(issubclass(MalformedPathError, ValueError))
    assert(issubclass(ArgumentError, ValueError))
    assert(issubclass(RootHasNoParentError, ArgumentError))
    with pytest.raises(ValueError):
        raise MalformedPathError("x")
