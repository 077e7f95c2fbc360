"""
References to Bigtable and Firestore resources.

A ReferenceNode is only a name.  It knows what kind of thing it points to and
where it lives, and can hand out references to its parent and children, but it
never talks to a service.  Pass one to OperationForwarder.invoke() to actually
do something with it.
"""
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Self

from .errors import ArgumentError, MalformedPathError, RootHasNoParentError
from .paths import (DEFAULT_DATABASE, DELIMITER, ResourceKind, build_path, decompose,
                    is_document_tree_path, kind_for_depth, new_id, segment_count, split_relative)

_DOCUMENT_ROLE = "document_path must refer to a document."
_COLLECTION_ROLE = "collection_path must refer to a collection."


@dataclass(frozen=True, eq=False)
class ReferenceNode():
    """
    kind:       What the reference points at.
    project_id: Owning project.
    full_path:  Segments below the project in template order.  For collections
                and documents it is the components below the 'documents' root,
                so the length decides collection (odd) vs document (even).
    database:   Firestore database id, None for Bigtable resources.

    Two references are equal when their canonical paths are equal, no matter
    how they were made.
    """
    kind: ResourceKind
    project_id: str
    full_path: tuple[str, ...] = field(default=())
    database: str|None = field(default=None)

    def __post_init__(self) -> None:
        # normalize so a list passed in still hashes
        object.__setattr__(self, 'full_path', tuple(str(s) for s in self.full_path))
        if not self.project_id or DELIMITER in self.project_id:
            raise MalformedPathError(f"Invalid project id: '{self.project_id}'")
        for s in self.full_path:
            if not s or DELIMITER in s:
                raise MalformedPathError(f"Invalid segment: '{s}'")
        if self.kind.is_firestore:
            if self.database is None:
                object.__setattr__(self, 'database', DEFAULT_DATABASE)
            if not self.database or DELIMITER in self.database:
                raise MalformedPathError(f"Invalid database id: '{self.database}'")
            if kind_for_depth(len(self.full_path)) != self.kind:
                raise ArgumentError(f"{len(self.full_path)} segments can not name a {self.kind.value}")
        else:
            if self.database is not None:
                raise ArgumentError(f"A {self.kind.value} does not belong to a database")
            if len(self.full_path) != segment_count(self.kind):
                raise ArgumentError(f"{self.kind.value} needs {segment_count(self.kind)} segments, got {len(self.full_path)}")

    @classmethod
    def project(cls, project_id: str) -> Self:
        return cls(ResourceKind.PROJECT, project_id)

    @classmethod
    def from_path(cls, path: str, kind: ResourceKind|None = None) -> Self:
        """Parse a canonical name, see parse_path()"""
        return parse_path(kind, path)

    @property
    def path(self) -> str:
        """The canonical resource name"""
        if self.kind.is_firestore:
            if self.kind == ResourceKind.DATABASE:
                return build_path(self.kind, self.project_id, self.database)
            return build_path(self.kind, self.project_id, *self.full_path, database=self.database)
        return build_path(self.kind, self.project_id, *self.full_path)

    def __str__(self) -> str:
        return self.path

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.kind.value}:{self.path})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ReferenceNode):
            return self.path == other.path
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.path)

    @property
    def id(self) -> str:
        """The leaf segment, the database id for a database and the project id for a project"""
        if self.full_path:
            return self.full_path[-1]
        if self.kind == ResourceKind.DATABASE:
            return self.database
        return self.project_id

    @property
    def depth(self) -> int:
        return len(self.full_path)

    @property
    def instance_id(self) -> str|None:
        """Bigtable instance the resource belongs to, if any"""
        if self.kind in (ResourceKind.INSTANCE, ResourceKind.CLUSTER, ResourceKind.TABLE,
                         ResourceKind.APP_PROFILE, ResourceKind.SNAPSHOT):
            return self.full_path[0]
        return None

    # firestore style accessors

    @property
    def document_path(self) -> str:
        """Path of a document relative to the documents root, e.g. users/mike"""
        if self.kind != ResourceKind.DOCUMENT:
            raise ArgumentError(f"A {self.kind.value} has no document_path")
        return DELIMITER.join(self.full_path)

    @property
    def document_id(self) -> str:
        if self.kind != ResourceKind.DOCUMENT:
            raise ArgumentError(f"A {self.kind.value} has no document_id")
        return self.full_path[-1]

    @property
    def collection_path(self) -> str:
        if self.kind != ResourceKind.COLLECTION:
            raise ArgumentError(f"A {self.kind.value} has no collection_path")
        return DELIMITER.join(self.full_path)

    @property
    def collection_id(self) -> str:
        if self.kind != ResourceKind.COLLECTION:
            raise ArgumentError(f"A {self.kind.value} has no collection_id")
        return self.full_path[-1]

    @property
    def documents_root(self) -> str:
        """projects/{p}/databases/{db}/documents for anything inside a database"""
        if not self.kind.is_firestore:
            raise ArgumentError(f"A {self.kind.value} is not inside a database")
        return f"{build_path(ResourceKind.DATABASE, self.project_id, self.database)}{DELIMITER}documents"

    @property
    def document_parent_path(self) -> str:
        """
        The name the document API wants as 'parent' when addressing children:
        the document itself, or the documents root for the database.
        """
        if self.kind == ResourceKind.DOCUMENT:
            return self.path
        if self.kind == ResourceKind.DATABASE:
            return self.documents_root
        raise ArgumentError(f"A {self.kind.value} can not be the parent of a collection")

    def _derive(self, kind: ResourceKind, full_path: tuple[str, ...]) -> Self:
        return self.__class__(kind, self.project_id, full_path,
                              self.database if kind.is_firestore else None)

    def parent(self) -> Self:
        """
        Reference one level up.
        Table/Cluster/AppProfile -> Instance, Snapshot -> Cluster, Document -> Collection,
        Collection -> Document or the Database at the top level.
        """
        if self.kind == ResourceKind.PROJECT:
            raise RootHasNoParentError("A project has no parent")
        if self.kind == ResourceKind.DATABASE:
            return self.__class__(ResourceKind.PROJECT, self.project_id)
        if self.kind.is_firestore:
            up = self.full_path[:-1]
            return self._derive(kind_for_depth(len(up)), up)
        return self._derive(self.kind.parent_kind, self.full_path[:-1])

    def _descend(self, segments: list[str], role: ResourceKind) -> Self:
        """
        Firestore relative resolution.  The role check is over the combined depth,
        a collection at depth 3 asking for 'a/b' gets a document at depth 5.
        """
        if not self.kind.is_firestore:
            raise ArgumentError(f"A {self.kind.value} has no collections or documents")
        combined = self.full_path + tuple(segments)
        if kind_for_depth(len(combined)) != role:
            raise ArgumentError(_DOCUMENT_ROLE if role == ResourceKind.DOCUMENT else _COLLECTION_ROLE)
        return self._derive(role, combined)

    def doc(self, document_path: str|None = None,
            id_source: Callable[[], str]|None = None) -> Self:
        """
        A document below this reference.

        document_path:  A document id or a path relative to this reference
                        that ends at a document.  When absent a random id is
                        generated.
        id_source:      Optional callable supplying the generated id.
        """
        if document_path is None:
            if self.kind != ResourceKind.COLLECTION:
                raise ArgumentError("Only a collection can generate a document id")
            return self._descend([new_id(id_source)], ResourceKind.DOCUMENT)
        if is_document_tree_path(document_path):
            ref = parse_path(ResourceKind.DOCUMENT, document_path)
            self._check_inside(ref)
            return ref
        return self._descend(split_relative(document_path), ResourceKind.DOCUMENT)

    document = doc

    def collection(self, collection_path: str) -> Self:
        """A collection below this reference, a single id or a relative path ending at a collection"""
        if is_document_tree_path(collection_path):
            ref = parse_path(ResourceKind.COLLECTION, collection_path)
            self._check_inside(ref)
            return ref
        return self._descend(split_relative(collection_path), ResourceKind.COLLECTION)

    col = collection

    def _check_inside(self, ref: "ReferenceNode") -> None:
        """An absolute path handed to a relative accessor has to be below us"""
        if (ref.project_id != self.project_id or ref.database != self.database
                or ref.full_path[:self.depth] != self.full_path
                or ref.depth <= self.depth):
            raise ArgumentError(f"{ref.path} is not below {self.path}")

    def child(self, kind: ResourceKind, id_or_path: str|None = None,
              id_source: Callable[[], str]|None = None) -> Self:
        """
        Reference one level down.  Firestore kinds accept relative paths and follow
        the same rules as doc() and collection().  Everything else takes a single id
        and only documents get one generated when it is left out.
        """
        if kind == ResourceKind.DOCUMENT:
            return self.doc(id_or_path, id_source)
        if kind == ResourceKind.COLLECTION:
            if id_or_path is None:
                raise ArgumentError("collection id is required")
            return self.collection(id_or_path)
        if kind.parent_kind != self.kind:
            raise ArgumentError(f"A {kind.value} does not belong to a {self.kind.value}")
        if id_or_path is None:
            raise ArgumentError(f"{kind.value} id is required")
        i = str(id_or_path)
        if not i or DELIMITER in i:
            raise MalformedPathError(f"Invalid {kind.value} id: '{i}'")
        if kind == ResourceKind.DATABASE:
            return self.__class__(kind, self.project_id, (), i)
        return self._derive(kind, self.full_path + (i,))

    # bigtable style accessors

    def instance(self, instance_id: str) -> Self:
        return self.child(ResourceKind.INSTANCE, instance_id)

    def cluster(self, cluster_id: str) -> Self:
        return self.child(ResourceKind.CLUSTER, cluster_id)

    def table(self, table_id: str) -> Self:
        return self.child(ResourceKind.TABLE, table_id)

    def app_profile(self, app_profile_id: str) -> Self:
        return self.child(ResourceKind.APP_PROFILE, app_profile_id)

    def snapshot(self, snapshot_id: str) -> Self:
        return self.child(ResourceKind.SNAPSHOT, snapshot_id)

    def location(self, location_id: str) -> Self:
        return self.child(ResourceKind.LOCATION, location_id)

    def database_ref(self, database_id: str = DEFAULT_DATABASE) -> Self:
        return self.child(ResourceKind.DATABASE, database_id)


def parse_path(kind: ResourceKind|None, path: str,
               relative_to: ReferenceNode|None = None) -> ReferenceNode:
    """
    Turn a path string into a reference.

    kind:           Expected kind.  None is allowed for document tree paths and
                    the kind comes from the depth.
    path:           A canonical name, or with relative_to a path below it.
    relative_to:    Parent reference for a relative path.  An absolute
                    document tree path is still accepted here.

    Raises MalformedPathError when the string does not fit the template and
    ArgumentError when it resolves to the wrong kind.
    """
    if relative_to is not None and not is_document_tree_path(path):
        if relative_to.kind.is_firestore and kind in (None, ResourceKind.COLLECTION, ResourceKind.DOCUMENT):
            segments = split_relative(path)
            role = kind_for_depth(relative_to.depth + len(segments)) if kind is None else kind
            return relative_to._descend(segments, role)
        if kind is None:
            raise ArgumentError(f"A kind is needed to resolve '{path}' below a {relative_to.kind.value}")
        return relative_to.child(kind, path)
    found, project, segments, database = decompose(kind, path)
    ref = ReferenceNode(found, project, segments, database)
    if relative_to is not None:
        relative_to._check_inside(ref)
    return ref
