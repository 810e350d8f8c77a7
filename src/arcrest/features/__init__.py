"""
The ``arcrest.features`` module contains types and functions for working with features and feature layers in the
:class:`~arcrest.gis.GIS` .

Entities located in space with a geometrical representation (such as points, lines or polygons) and a set of properties
can be represented as features.  A collection of feature classes and tables, with the associated relationships among
the entities, is a feature layer collection, published as a feature service.

Branch versioned feature services are edited through the :class:`~arcrest.features.VersionManager` of their
:class:`~arcrest.features.FeatureLayerCollection`, where every :class:`~arcrest.features.Version` holds its own
edit session.
"""

from .feature import Feature, FeatureSet
from .layer import FeatureLayer, Table, FeatureLayerCollection
from .managers import AttachmentManager
from ._version import VersionManager, Version
from .elevation import ElevationService
from ._types import (
    VersioningType,
    AccessPermission,
    ConflictDetection,
    DifferenceResultType,
    SessionMode,
    EditSessionError,
    SessionResponse,
    OperationResponse,
    VersionInfo,
    VersionInfosResponse,
    CreateVersionResponse,
    ReconcileResponse,
    PostResponse,
    Conflict,
    LayerConflicts,
    ConflictsResponse,
    LayerDifferences,
    DifferencesResponse,
    PartialPostRow,
    RestoreRowsLayer,
    InspectConflictFeature,
    InspectConflictLayer,
)

__all__ = [
    "Feature",
    "FeatureSet",
    "FeatureLayer",
    "Table",
    "FeatureLayerCollection",
    "AttachmentManager",
    "VersionManager",
    "Version",
    "ElevationService",
    "VersioningType",
    "AccessPermission",
    "ConflictDetection",
    "DifferenceResultType",
    "SessionMode",
    "EditSessionError",
    "SessionResponse",
    "OperationResponse",
    "VersionInfo",
    "VersionInfosResponse",
    "CreateVersionResponse",
    "ReconcileResponse",
    "PostResponse",
    "Conflict",
    "LayerConflicts",
    "ConflictsResponse",
    "LayerDifferences",
    "DifferencesResponse",
    "PartialPostRow",
    "RestoreRowsLayer",
    "InspectConflictFeature",
    "InspectConflictLayer",
]
