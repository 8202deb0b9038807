# coding: utf-8

from geonapi.credentials import KeyringStore, MemoryStore, SecretStore
from geonapi.errors import (
    GeonetworkError,
    ConstructionError,
    MalformedVersionError,
    PayloadSourceError,
    MissingGroupError,
    InvalidOptionError,
    GeonetworkAuthError,
    GeonetworkApiError,
    RemoteOperationError,
    UnsupportedVersionError,
    NotImplementedYetError,
)
from geonapi.manager import GeonetworkManager
from geonapi.metadata import MetadataCodec, MetadataRecord
from geonapi.privileges import GNPrivConfiguration
from geonapi.version import ServiceVersion

__version__ = "0.3.1"
