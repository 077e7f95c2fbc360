"""
Classes to facilitate working with Cloud Bigtable administration.
The operations themselves are in the forwarder's dispatch table, this
is just the resource representations.
"""
from .resources import AppProfile, BigtableEnum, Cluster, ColumnFamily, Instance, Table
