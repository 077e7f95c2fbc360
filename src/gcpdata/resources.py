"""
Wrappers around the Bigtable admin and Firestore REST clients.

Python dataclasses are used for the resource structs and most of the logic is
translating between those and the raw dicts the discovery client sends and
receives.  Resource names are handled by ReferenceNode, the dataclasses here
just carry them in their 'name' field the way the API does.
"""
from dataclasses import asdict, dataclass, field, fields, is_dataclass
from typing import List, Self


class CloudResourceBase():
    """
    Intended to be subclassed by a dataclass but isnt actually a dataclass.
    Subclasses with nested resources override fixup() to convert the dicts
    coming back from the API into their dataclass form and to_base() to go
    the other way.
    """
    @classmethod
    def from_base(cls, base: dict|None) -> Self:
        """
        Build from an API response dict.  The API adds fields over time so
        anything we don't have a field for is dropped rather than blowing up
        the constructor.
        """
        if not base:
            return cls()
        names = {f.name for f in fields(cls)} if is_dataclass(cls) else set()
        return cls(**{k: v for k, v in dict(base).items() if k in names})

    def to_base(self) -> dict:
        """
        Default just return the dict representation of the object as needed by
        the API client.  Something more complicated can override.
        Call fixup() first to ensure all fields are in correct format.
        """
        self.fixup()
        return asdict(self)

    def trim(self) -> dict|None:
        """
        Return a 'trimmed' dict of the resource.  That is, removing any top level attributes
        that are an empty or None.  Numbers and bools are kept as 0/False can be real values.
        Create and update requests only want the filled-in fields.
        """
        b = self.to_base()
        if b:
            vals = dict(b.items())
            for k, v in vals.items():
                if v is None or (type(v) not in [int, bool, float] and not v):
                    del b[k]
        return b

    def fixup(self) -> None:
        """
        notify a subclass to do any field adjustments
        """
        pass

    def update_fields(self, **kwargs) -> List[str]:
        """
        Update fields that may be present, typically from a fresh response.
        """
        updated_fields = []
        if is_dataclass(self):
            flist = fields(self)
            for k, v in kwargs.items():
                for f in flist:
                    if v is not None and k == f.name:
                        setattr(self, k, v)
                        updated_fields.append(k)
            self.fixup()
        return updated_fields


@dataclass
class Page():
    """
    One page of a list call.  Pass next_page_token back to the same list call
    to get the next one, None means this was the last.
    """
    items: list = field(default_factory=list)
    next_page_token: str|None = field(default=None)

    def __bool__(self) -> bool:
        return bool(self.items)

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self):
        return iter(self.items)

    @property
    def last(self) -> bool:
        return not self.next_page_token
