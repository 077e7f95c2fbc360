"""
Class implementations of the Bigtable admin resources.
Only the fields the v2 admin API documents are carried, response fields
we don't know about are dropped by from_base().
Not all resources are implemented.
"""
from dataclasses import asdict, dataclass, field
from typing import ClassVar, List

from ..resources import CloudResourceBase


class BigtableEnum():
    """
    An 'enum' in the REST client is just a string so this is
    just to translate and validate input.
    """
    _VALID_INSTANCE_TYPES = {
        "PRODUCTION": "PRODUCTION",
        "DEVELOPMENT": "DEVELOPMENT",
        "DEV": "DEVELOPMENT",
        "TYPE_UNSPECIFIED": "TYPE_UNSPECIFIED",
    }
    _VALID_STORAGE_TYPES = {
        "SSD": "SSD",
        "HDD": "HDD",
        "STORAGE_TYPE_UNSPECIFIED": "STORAGE_TYPE_UNSPECIFIED",
    }
    _VALID_TABLE_VIEWS = {
        "NAME": "NAME_ONLY",
        "NAME_ONLY": "NAME_ONLY",
        "SCHEMA": "SCHEMA_VIEW",
        "SCHEMA_VIEW": "SCHEMA_VIEW",
        "REPLICATION": "REPLICATION_VIEW",
        "REPLICATION_VIEW": "REPLICATION_VIEW",
        "ENCRYPTION": "ENCRYPTION_VIEW",
        "ENCRYPTION_VIEW": "ENCRYPTION_VIEW",
        "FULL": "FULL",
        "VIEW_UNSPECIFIED": "VIEW_UNSPECIFIED",
    }

    @classmethod
    def instanceType(cls, option: str) -> str:
        """https://cloud.google.com/bigtable/docs/reference/admin/rest/v2/projects.instances#Instance.Type"""
        return cls._VALID_INSTANCE_TYPES.get(str(option).upper(), "")

    @classmethod
    def storageType(cls, option: str) -> str:
        """https://cloud.google.com/bigtable/docs/reference/admin/rest/v2/projects.instances.clusters#StorageType"""
        return cls._VALID_STORAGE_TYPES.get(str(option).upper(), "")

    @classmethod
    def tableView(cls, option: str) -> str:
        """https://cloud.google.com/bigtable/docs/reference/admin/rest/v2/projects.instances.tables#View"""
        return cls._VALID_TABLE_VIEWS.get(str(option).upper(), "")


@dataclass
class Instance(CloudResourceBase):
    """
    https://cloud.google.com/bigtable/docs/reference/admin/rest/v2/projects.instances#Instance
    """
    name: str = field(default="")
    displayName: str = field(default="")
    state: str = field(default="")
    type: str = field(default="")
    labels: dict = field(default_factory=dict)
    createTime: str = field(default="")

    def __post_init__(self) -> None:
        self.fixup()

    def fixup(self) -> None:
        if self.type:
            t = str(self.type)
            self.type = BigtableEnum.instanceType(t)
            if not self.type:
                raise ValueError(f"Invalid instance type: {t}")

    def __bool__(self) -> bool:
        return bool(self.name)

    def __str__(self) -> str:
        return f"{self.displayName}<{self.name}>" if self else "<empty>"


@dataclass
class Cluster(CloudResourceBase):
    """
    https://cloud.google.com/bigtable/docs/reference/admin/rest/v2/projects.instances.clusters#Cluster
    location can be given as a bare zone, e.g. 'us-east1-b', the forwarder
    qualifies it before sending.
    """
    name: str = field(default="")
    location: str = field(default="")
    state: str = field(default="")
    serveNodes: int = field(default=0)
    defaultStorageType: str = field(default="")
    encryptionConfig: dict = field(default_factory=dict)
    clusterConfig: dict = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.fixup()

    def fixup(self) -> None:
        if self.defaultStorageType:
            s = str(self.defaultStorageType)
            self.defaultStorageType = BigtableEnum.storageType(s)
            if not self.defaultStorageType:
                raise ValueError(f"Invalid storage type: {s}")
        self.serveNodes = int(self.serveNodes or 0)

    def __bool__(self) -> bool:
        return bool(self.name)

    @property
    def zone(self) -> str:
        """Location without the projects/{p}/locations/ prefix"""
        return self.location.rsplit("/", 1)[-1]


@dataclass
class ColumnFamily(CloudResourceBase):
    """
    https://cloud.google.com/bigtable/docs/reference/admin/rest/v2/projects.instances.tables#ColumnFamily
    gcRule is left as the raw dict, e.g. {'maxNumVersions': 1}
    """
    gcRule: dict = field(default_factory=dict)
    stats: dict = field(default_factory=dict)

    @staticmethod
    def max_versions(versions: int) -> "ColumnFamily":
        return ColumnFamily(gcRule={'maxNumVersions': int(versions)})

    @staticmethod
    def max_age(seconds: int|float) -> "ColumnFamily":
        # Duration is a string of seconds with an 's' suffix
        return ColumnFamily(gcRule={'maxAge': f"{seconds}s"})


@dataclass
class Table(CloudResourceBase):
    """
    https://cloud.google.com/bigtable/docs/reference/admin/rest/v2/projects.instances.tables#Table
    """
    name: str = field(default="")
    clusterStates: dict = field(default_factory=dict)
    columnFamilies: dict[str, ColumnFamily|dict] = field(default_factory=dict)
    granularity: str = field(default="")
    restoreInfo: dict = field(default_factory=dict)
    deletionProtection: bool = field(default=False)

    def __post_init__(self) -> None:
        self.fixup()

    def fixup(self) -> None:
        self.columnFamilies = {k: cf if isinstance(cf, ColumnFamily) else ColumnFamily.from_base(cf)
                               for k, cf in dict(self.columnFamilies).items()}

    def to_base(self) -> dict:
        self.fixup()
        b = asdict(self)
        b['columnFamilies'] = {k: cf.trim() for k, cf in self.columnFamilies.items()}
        return b

    def __bool__(self) -> bool:
        return bool(self.name)

    def __contains__(self, family: str) -> bool:
        return family in self.columnFamilies


@dataclass
class AppProfile(CloudResourceBase):
    """
    https://cloud.google.com/bigtable/docs/reference/admin/rest/v2/projects.instances.appProfiles#AppProfile
    One of multiClusterRoutingUseAny or singleClusterRouting should be set.
    """
    name: str = field(default="")
    etag: str = field(default="")
    description: str = field(default="")
    multiClusterRoutingUseAny: dict|None = field(default=None)
    singleClusterRouting: dict|None = field(default=None)

    routing_fields: ClassVar[List[str]] = ['multiClusterRoutingUseAny', 'singleClusterRouting']

    def __bool__(self) -> bool:
        return bool(self.name)

    @property
    def multi_cluster(self) -> bool:
        return self.multiClusterRoutingUseAny is not None

    def to_base(self) -> dict:
        b = asdict(self)
        # the API rejects both routing options being present, even as null
        for k in self.routing_fields:
            if b[k] is None:
                del b[k]
        return b

    def trim(self) -> dict|None:
        # an empty multiClusterRoutingUseAny {} is how 'any cluster' is asked for
        b = super().trim()
        for k in self.routing_fields:
            v = getattr(self, k)
            if v is not None:
                b[k] = v
        return b
