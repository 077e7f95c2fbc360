"""
Classes to facilitate working with Cloud Firestore documents.
References to collections and documents are plain ReferenceNodes, see
ReferenceNode.doc() and ReferenceNode.collection().
"""
from .resources import Document
from .values import GeoPoint, decode_fields, decode_value, encode_fields, encode_value
