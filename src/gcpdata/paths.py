"""
Resource name templates for the Bigtable admin and Firestore APIs.

Every resource the services deal with is addressed by a slash delimited name
rooted at projects/{project}.  A name is literal tokens ('projects', 'instances',
'tables', ...) interleaved with caller supplied segments, so a template here is
just that sequence with None marking where a segment goes:

    TABLE: projects/{project}/instances/{instance}/tables/{table}

Firestore is the odd one out.  Below projects/{p}/databases/{db}/documents the
path alternates collection/document for as long as the caller likes, so there is
no fixed length and the kind is decided by how deep the path is.  Odd depth is
a collection, even depth is a document.  That rule lives in kind_for_depth()
and nowhere else.
"""
from collections.abc import Callable, Sequence
from enum import Enum
import secrets
import string

from .errors import ArgumentError, MalformedPathError

DELIMITER = "/"
DEFAULT_DATABASE = "(default)"

# firestore's own auto ids are 20 chars of this alphabet, ~119 bits
_ID_ALPHABET = string.ascii_letters + string.digits
_ID_LENGTH = 20


class ResourceKind(Enum):
    PROJECT = "project"
    INSTANCE = "instance"
    CLUSTER = "cluster"
    TABLE = "table"
    APP_PROFILE = "appProfile"
    SNAPSHOT = "snapshot"
    LOCATION = "location"
    DATABASE = "database"
    COLLECTION = "collection"
    DOCUMENT = "document"

    @property
    def is_firestore(self) -> bool:
        """Collections and documents have variable depth paths"""
        return self in (ResourceKind.DATABASE, ResourceKind.COLLECTION, ResourceKind.DOCUMENT)

    @property
    def parent_kind(self) -> "ResourceKind|None":
        """
        The kind one level up.  A collection can sit under a document or
        directly under the database, this returns DOCUMENT and leaves the
        depth 1 case to the reference.
        """
        return _PARENTS[self]


_PARENTS = {
    ResourceKind.PROJECT: None,
    ResourceKind.INSTANCE: ResourceKind.PROJECT,
    ResourceKind.CLUSTER: ResourceKind.INSTANCE,
    ResourceKind.TABLE: ResourceKind.INSTANCE,
    ResourceKind.APP_PROFILE: ResourceKind.INSTANCE,
    ResourceKind.SNAPSHOT: ResourceKind.CLUSTER,
    ResourceKind.LOCATION: ResourceKind.PROJECT,
    ResourceKind.DATABASE: ResourceKind.PROJECT,
    ResourceKind.COLLECTION: ResourceKind.DOCUMENT,
    ResourceKind.DOCUMENT: ResourceKind.COLLECTION,
}

# None is a caller segment, anything else a literal token.
# The first segment is always the project id.
_TEMPLATES: dict[ResourceKind, tuple[str|None, ...]] = {
    ResourceKind.PROJECT: ("projects", None),
    ResourceKind.INSTANCE: ("projects", None, "instances", None),
    ResourceKind.CLUSTER: ("projects", None, "instances", None, "clusters", None),
    ResourceKind.TABLE: ("projects", None, "instances", None, "tables", None),
    ResourceKind.APP_PROFILE: ("projects", None, "instances", None, "appProfiles", None),
    ResourceKind.SNAPSHOT: ("projects", None, "instances", None, "clusters", None, "snapshots", None),
    ResourceKind.LOCATION: ("projects", None, "locations", None),
    ResourceKind.DATABASE: ("projects", None, "databases", None),
}
# prefix for anything inside a database, followed by the document tree
_DOCUMENTS_PREFIX = ("projects", None, "databases", None, "documents")


def segment_count(kind: ResourceKind) -> int:
    """
    Number of segments below the project for a fixed template kind.
    Firestore collection/document kinds have no fixed count and return -1.
    """
    template = _TEMPLATES.get(kind)
    if template is None:
        return -1
    return template.count(None) - 1


def kind_for_depth(depth: int) -> ResourceKind:
    """
    The parity rule.  Depth is the number of components beneath the documents
    root: 0 is the database itself, odd is a collection, even is a document.
    """
    if depth < 0:
        raise ArgumentError(f"Invalid document tree depth: {depth}")
    if depth == 0:
        return ResourceKind.DATABASE
    return ResourceKind.COLLECTION if depth % 2 else ResourceKind.DOCUMENT


def _fill(template: Sequence[str|None], values: Sequence[str]) -> list[str]:
    it = iter(values)
    return [next(it) if t is None else t for t in template]


def build_path(kind: ResourceKind, project_id: str, *segments: str,
               database: str|None = None) -> str:
    """
    Build the canonical name for a resource of the given kind.

    kind:       Kind of resource, picks the template.
    project_id: Owning project.
    segments:   The remaining caller segments in template order.  For collections
                and documents these are the components below 'documents'.
    database:   Firestore database id, defaults to '(default)'.

    return: The canonical path.  Segments are used as is, no encoding.
    """
    if kind.is_firestore and kind != ResourceKind.DATABASE:
        if not segments or kind_for_depth(len(segments)) != kind:
            raise ArgumentError(f"{len(segments)} segments can not name a {kind.value}")
        db = database or DEFAULT_DATABASE
        return DELIMITER.join(_fill(_DOCUMENTS_PREFIX, (project_id, db)) + list(segments))
    if kind == ResourceKind.DATABASE:
        if segments and database:
            raise ArgumentError("database given both as a segment and a keyword")
        segments = segments or (database or DEFAULT_DATABASE,)
    expected = segment_count(kind)
    if len(segments) != expected:
        raise ArgumentError(f"{kind.value} needs {expected} segments after the project, got {len(segments)}")
    return DELIMITER.join(_fill(_TEMPLATES[kind], (project_id, *segments)))


def split_relative(path: str) -> list[str]:
    """
    Split a relative path into its segments.  A leading, trailing or
    doubled delimiter leaves an empty segment, which is never valid.
    """
    p = str(path)
    parts = p.split(DELIMITER)
    if not p or any(not s for s in parts):
        raise MalformedPathError(f"Invalid path, empty segment: '{p}'")
    return parts


def _match(template: Sequence[str|None], parts: Sequence[str], path: str) -> list[str]:
    """Check literal tokens in position and pull out the segments"""
    if len(parts) < len(template):
        raise MalformedPathError(f"Path is too short: '{path}'")
    values = []
    for t, p in zip(template, parts):
        if t is None:
            if not p:
                raise MalformedPathError(f"Invalid path, empty segment: '{path}'")
            values.append(p)
        elif t != p:
            raise MalformedPathError(f"Expected '{t}' but found '{p}' in '{path}'")
    return values


def is_document_tree_path(path: str) -> bool:
    """Does the string start with projects/{p}/databases/{db}/documents?"""
    parts = str(path).split(DELIMITER)
    if len(parts) < len(_DOCUMENTS_PREFIX):
        return False
    return all(p if t is None else t == p for t, p in zip(_DOCUMENTS_PREFIX, parts))


def decompose(kind: ResourceKind|None, path: str) -> tuple[ResourceKind, str, tuple[str, ...], str|None]:
    """
    Absolute parse of a canonical name.

    kind:   Expected kind, or None to let the path decide.  Only document tree
            paths (and databases) can be classified without one.
    path:   Canonical name rooted at 'projects'.

    return: (kind, project id, segments below the project, database or None)
    """
    p = str(path)
    parts = p.split(DELIMITER)
    if kind is None or kind in (ResourceKind.COLLECTION, ResourceKind.DOCUMENT):
        if kind is None and not is_document_tree_path(p):
            project, database = _match(_TEMPLATES[ResourceKind.DATABASE], parts, p)
            if len(parts) != len(_TEMPLATES[ResourceKind.DATABASE]):
                raise MalformedPathError(f"Can not tell what kind of resource '{p}' is")
            return (ResourceKind.DATABASE, project, (), database)
        project, database = _match(_DOCUMENTS_PREFIX, parts, p)
        tree = parts[len(_DOCUMENTS_PREFIX):]
        if any(not s for s in tree):
            raise MalformedPathError(f"Invalid path, empty segment: '{p}'")
        found = kind_for_depth(len(tree))
        if kind is not None and found != kind:
            raise MalformedPathError(f"'{p}' is a {found.value} path, not a {kind.value}")
        return (found, project, tuple(tree), database)

    template = _TEMPLATES[kind]
    if len(parts) != len(template):
        raise MalformedPathError(f"Expected {len(template)} components for a {kind.value}, found {len(parts)}: '{p}'")
    values = _match(template, parts, p)
    if kind == ResourceKind.DATABASE:
        return (kind, values[0], (), values[1])
    return (kind, values[0], tuple(values[1:]), None)


def unique_id() -> str:
    """A random 20 character id, safe to use as a document id"""
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(_ID_LENGTH))


def new_id(id_source: Callable[[], str]|None = None) -> str:
    """
    Get a generated id, from the supplied source if there is one.
    Whatever comes back still has to be a valid segment.
    """
    i = str(id_source() if id_source is not None else unique_id())
    if not i or DELIMITER in i:
        raise ArgumentError(f"Generated id is not a valid segment: '{i}'")
    return i


def location_path(project_id: str, location: str) -> str:
    """
    Qualify a bare zone like 'us-east1-b' into projects/{p}/locations/{zone}.
    Anything that already carries the 'locations' token is passed through
    and so is an empty location.
    """
    loc = str(location) if location is not None else ""
    if not loc or "locations" in loc.split(DELIMITER):
        return loc
    return build_path(ResourceKind.LOCATION, project_id, loc)
