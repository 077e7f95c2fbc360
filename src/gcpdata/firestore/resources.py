"""
Class implementations of the Firestore document resources.
"""
from dataclasses import dataclass, field
from typing import Self

from ..paths import ResourceKind
from ..reference import ReferenceNode, parse_path
from ..resources import CloudResourceBase
from .values import decode_fields, encode_fields


@dataclass
class Document(CloudResourceBase):
    """
    https://cloud.google.com/firestore/docs/reference/rest/v1/projects.databases.documents#Document
    fields holds the encoded Firestore values, use data/from_data() to
    work with plain Python values.
    """
    name: str = field(default="")
    fields: dict = field(default_factory=dict)
    createTime: str = field(default="")
    updateTime: str = field(default="")

    def __bool__(self) -> bool:
        """A document with no name was never read from or written to the service"""
        return bool(self.name)

    def __str__(self) -> str:
        return f"{self.name}{self.data}" if self else "<empty>"

    def __contains__(self, key: str) -> bool:
        return key in self.fields

    def __getitem__(self, key: str):
        return self.data[key]

    @classmethod
    def from_data(cls, data: dict, ref: ReferenceNode|None = None) -> Self:
        """Document from plain Python values, optionally named by a reference"""
        return cls(name=ref.path if ref is not None else "", fields=encode_fields(data))

    @property
    def data(self) -> dict:
        return decode_fields(self.fields)

    @property
    def ref(self) -> ReferenceNode|None:
        return parse_path(ResourceKind.DOCUMENT, self.name) if self.name else None

    @property
    def id(self) -> str:
        return self.name.rsplit("/", 1)[-1] if self.name else ""

    def to_base(self) -> dict:
        # only name and fields are writable
        b = {'fields': dict(self.fields)}
        if self.name:
            b['name'] = self.name
        return b
