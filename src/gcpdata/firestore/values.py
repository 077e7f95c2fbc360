"""
Translating between Python values and Firestore Value objects.
See https://cloud.google.com/firestore/docs/reference/rest/v1/Value

Every field in a Firestore document is a one key dict naming its type,
e.g. {'stringValue': 'mike'} or {'integerValue': '42'}.  Note int64 goes over the
wire as a string and bytes as base64.
"""
import base64
import datetime
import re
from dataclasses import dataclass, field

from ..errors import ArgumentError
from ..paths import ResourceKind
from ..reference import ReferenceNode, parse_path


@dataclass(frozen=True)
class GeoPoint():
    """https://cloud.google.com/firestore/docs/reference/rest/Shared.Types/LatLng"""
    latitude: float = field(default=0.0)
    longitude: float = field(default=0.0)


# firestore hands back up to nanoseconds, datetime only holds micro
_TIMESTAMP_RE = re.compile(r"^(?P<base>\d{4}-\d\d-\d\dT\d\d:\d\d:\d\d)(\.(?P<frac>\d+))?(?P<tz>Z|[+-]\d\d:\d\d)?$")


def encode_timestamp(value: datetime.datetime) -> str:
    """RFC 3339 in UTC with a Z suffix.  A naive datetime is taken as UTC."""
    v = value if value.tzinfo else value.replace(tzinfo=datetime.timezone.utc)
    v = v.astimezone(datetime.timezone.utc)
    return v.replace(tzinfo=None).isoformat() + "Z"


def decode_timestamp(value: str) -> datetime.datetime:
    m = _TIMESTAMP_RE.match(str(value))
    if not m:
        raise ArgumentError(f"Invalid timestamp value: {value}")
    s = m.group('base')
    if m.group('frac'):
        s += '.' + m.group('frac')[:6].ljust(6, '0')
    tz = m.group('tz') or 'Z'
    s += '+00:00' if tz == 'Z' else tz
    return datetime.datetime.fromisoformat(s)


def encode_value(value, in_array: bool = False) -> dict:
    """
    Python value to a Firestore Value dict.
    bool is checked before int as bool is an int subclass.
    Arrays can't directly hold arrays in Firestore so that is rejected here.
    """
    if value is None:
        return {'nullValue': None}
    if isinstance(value, bool):
        return {'booleanValue': value}
    if isinstance(value, int):
        return {'integerValue': str(value)}
    if isinstance(value, float):
        return {'doubleValue': value}
    if isinstance(value, str):
        return {'stringValue': value}
    if isinstance(value, (bytes, bytearray)):
        return {'bytesValue': base64.b64encode(bytes(value)).decode('ascii')}
    if isinstance(value, datetime.datetime):
        return {'timestampValue': encode_timestamp(value)}
    if isinstance(value, GeoPoint):
        return {'geoPointValue': {'latitude': value.latitude, 'longitude': value.longitude}}
    if isinstance(value, ReferenceNode):
        if value.kind != ResourceKind.DOCUMENT:
            raise ArgumentError(f"Only document references can be stored, got a {value.kind.value}")
        return {'referenceValue': value.path}
    if isinstance(value, dict):
        return {'mapValue': {'fields': encode_fields(value)}}
    if isinstance(value, (list, tuple)):
        if in_array:
            raise ArgumentError("Firestore arrays can not directly contain arrays")
        return {'arrayValue': {'values': [encode_value(v, True) for v in value]}}
    raise ArgumentError(f"Can't store a {type(value).__name__} in a document")


def encode_fields(data: dict) -> dict:
    """A dict of Python values to a document 'fields' dict"""
    return {str(k): encode_value(v) for k, v in data.items()}


def decode_value(value: dict):
    """Firestore Value dict to a Python value"""
    if not value:
        return None
    (k, v), = value.items()
    if k == 'nullValue':
        return None
    elif k == 'booleanValue':
        return bool(v)
    elif k == 'integerValue':
        return int(v)
    elif k == 'doubleValue':
        # NaN and Infinity come back as strings
        return float(v)
    elif k == 'stringValue':
        return str(v)
    elif k == 'bytesValue':
        return base64.b64decode(v)
    elif k == 'timestampValue':
        return decode_timestamp(v)
    elif k == 'geoPointValue':
        return GeoPoint(float(v.get('latitude', 0.0)), float(v.get('longitude', 0.0)))
    elif k == 'referenceValue':
        return parse_path(ResourceKind.DOCUMENT, v)
    elif k == 'mapValue':
        return decode_fields(v.get('fields', {}))
    elif k == 'arrayValue':
        return [decode_value(i) for i in v.get('values', [])]
    raise ArgumentError(f"Unknown Firestore value type: {k}")


def decode_fields(fields: dict) -> dict:
    return {k: decode_value(v) for k, v in dict(fields or {}).items()}
