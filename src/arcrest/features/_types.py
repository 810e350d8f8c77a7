"""
Typed requests and responses of the Version Management Service.
"""
from __future__ import annotations
import uuid
from enum import Enum
from dataclasses import dataclass, field
from typing import Any, Optional

__all__ = [
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
    "new_session_id",
    "normalize_guid",
]


###########################################################################
def _parse_enum(value: Any) -> Any:
    """returns the Enum's value or the current value"""
    if isinstance(value, Enum):
        return value.value
    return value


# ----------------------------------------------------------------------
def new_session_id() -> str:
    """A new edit/read session id in the braced form the service expects."""
    return "{%s}" % str(uuid.uuid4()).upper()


# ----------------------------------------------------------------------
def normalize_guid(guid: str) -> str:
    """Strips the braces from a version GUID so it can be used in a URL."""
    return str(guid).strip().strip("{}")


###########################################################################
class VersioningType(Enum):
    BRANCH = "branch"
    TRADITIONAL = "traditional"


###########################################################################
class AccessPermission(Enum):
    PUBLIC = "public"
    PROTECTED = "protected"
    PRIVATE = "private"
    HIDDEN = "hidden"


###########################################################################
class ConflictDetection(Enum):
    BY_OBJECT = "byObject"
    BY_ATTRIBUTE = "byAttribute"


###########################################################################
class DifferenceResultType(Enum):
    OBJECT_IDS = "objectIds"
    FEATURES = "features"


###########################################################################
class SessionMode(Enum):
    EDIT = "edit"
    READ = "read"


###########################################################################
@dataclass
class EditSessionError:
    """The `error` object the service returns with `success: false`."""

    code: int
    message: str
    details: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> Optional[EditSessionError]:
        if not data:
            return None
        if isinstance(data, str):
            return cls(code=0, message=data)
        return cls(
            code=int(data.get("code", 0) or 0),
            message=data.get("message", "") or "",
            details=list(data.get("details", None) or []),
        )

    def as_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}


###########################################################################
@dataclass
class SessionResponse:
    """
    Response of `startEditing`, `stopEditing`, `startReading` and
    `stopReading`.
    """

    success: bool
    moment: Optional[int] = None
    error: Optional[EditSessionError] = None

    @classmethod
    def from_dict(cls, data: dict) -> SessionResponse:
        return cls(
            success=bool(data.get("success", False)),
            moment=data.get("moment", None),
            error=EditSessionError.from_dict(data.get("error", None)),
        )

    def as_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "moment": self.moment,
            "error": self.error.as_dict() if self.error else None,
        }


###########################################################################
@dataclass
class OperationResponse(SessionResponse):
    """
    Response of `alter`, `delete`, `purgeLock`, `inspectConflicts`,
    `restoreRows` and `deleteForwardEdits`.
    """


###########################################################################
@dataclass
class VersionInfo:
    """
    ====================    ====================================================================
    **Field**                **Description**
    --------------------    --------------------------------------------------------------------
    version_guid            String. The GUID without braces.
    --------------------    --------------------------------------------------------------------
    version_name            String. The fully qualified name, `owner.name`.
    --------------------    --------------------------------------------------------------------
    access                  String. public, protected, private or hidden.
    --------------------    --------------------------------------------------------------------
    is_locked               Boolean. True while any session holds a lock on the version.
    ====================    ====================================================================
    """

    version_guid: str
    version_name: str
    description: Optional[str] = None
    access: Optional[str] = None
    created_date: Optional[int] = None
    modified_date: Optional[int] = None
    reconcile_date: Optional[int] = None
    post_date: Optional[int] = None
    parent_version_name: Optional[str] = None
    is_being_edited: bool = False
    is_being_read: bool = False
    is_locked: bool = False

    @classmethod
    def from_dict(cls, data: dict) -> VersionInfo:
        parent = data.get("parentVersionName", None)
        if parent is None and isinstance(data.get("parent", None), dict):
            parent = data["parent"].get("versionName", None)
        return cls(
            version_guid=normalize_guid(data.get("versionGuid", "")),
            version_name=data.get("versionName", ""),
            description=data.get("description", None),
            access=data.get("access", None),
            created_date=data.get("creationDate", data.get("createdDate", None)),
            modified_date=data.get("modifiedDate", None),
            reconcile_date=data.get("reconcileDate", None),
            post_date=data.get("postDate", data.get("commonAncestorDate", None)),
            parent_version_name=parent,
            is_being_edited=bool(data.get("isBeingEdited", False)),
            is_being_read=bool(data.get("isBeingRead", False)),
            is_locked=bool(data.get("isLocked", False)),
        )

    def as_dict(self) -> dict[str, Any]:
        return {
            "versionGuid": "{%s}" % self.version_guid,
            "versionName": self.version_name,
            "description": self.description,
            "access": self.access,
            "creationDate": self.created_date,
            "modifiedDate": self.modified_date,
            "reconcileDate": self.reconcile_date,
            "postDate": self.post_date,
            "parentVersionName": self.parent_version_name,
            "isBeingEdited": self.is_being_edited,
            "isBeingRead": self.is_being_read,
            "isLocked": self.is_locked,
        }


###########################################################################
@dataclass
class VersionInfosResponse:
    versions: list[VersionInfo] = field(default_factory=list)
    success: bool = True
    error: Optional[EditSessionError] = None

    @classmethod
    def from_dict(cls, data: dict) -> VersionInfosResponse:
        return cls(
            versions=[VersionInfo.from_dict(v) for v in data.get("versions", [])],
            success=bool(data.get("success", "error" not in data)),
            error=EditSessionError.from_dict(data.get("error", None)),
        )


###########################################################################
@dataclass
class CreateVersionResponse:
    success: bool
    version_info: Optional[VersionInfo] = None
    error: Optional[EditSessionError] = None

    @classmethod
    def from_dict(cls, data: dict) -> CreateVersionResponse:
        info = data.get("versionInfo", None)
        return cls(
            success=bool(data.get("success", False)),
            version_info=VersionInfo.from_dict(info) if info else None,
            error=EditSessionError.from_dict(data.get("error", None)),
        )


###########################################################################
@dataclass
class ReconcileResponse:
    success: bool
    has_conflicts: bool = False
    did_post: bool = False
    moment: Optional[int] = None
    error: Optional[EditSessionError] = None

    @classmethod
    def from_dict(cls, data: dict) -> ReconcileResponse:
        return cls(
            success=bool(data.get("success", False)),
            has_conflicts=bool(data.get("hasConflicts", False)),
            did_post=bool(data.get("didPost", False)),
            moment=data.get("moment", None),
            error=EditSessionError.from_dict(data.get("error", None)),
        )


###########################################################################
@dataclass
class PostResponse:
    success: bool
    moment: Optional[int] = None
    error: Optional[EditSessionError] = None

    @classmethod
    def from_dict(cls, data: dict) -> PostResponse:
        return cls(
            success=bool(data.get("success", False)),
            moment=data.get("moment", None),
            error=EditSessionError.from_dict(data.get("error", None)),
        )


###########################################################################
@dataclass
class Conflict:
    """
    One conflicting row as it exists in the branch, the common ancestor and
    the default version.  Any side can be missing (deleted rows).
    """

    branch_version: Optional[dict] = None
    ancestor: Optional[dict] = None
    default_version: Optional[dict] = None

    @property
    def object_id(self) -> Optional[int]:
        return self.get_object_id()

    def get_object_id(self, oid_field: Optional[str] = None) -> Optional[int]:
        """The row's object id, read from `oid_field` or any `objectid` key."""
        names = {"objectid"}
        if oid_field:
            names.add(oid_field.lower())
        for side in (self.branch_version, self.ancestor, self.default_version):
            if not side:
                continue
            attributes = side.get("attributes", side)
            for key, value in attributes.items():
                if key.lower() in names and value is not None:
                    return value
        return None

    @classmethod
    def from_dict(cls, data: dict) -> Conflict:
        return cls(
            branch_version=data.get("branchVersion", None),
            ancestor=data.get("ancestor", None),
            default_version=data.get("defaultVersion", None),
        )

    def as_dict(self) -> dict[str, Any]:
        return {
            "branchVersion": self.branch_version,
            "ancestor": self.ancestor,
            "defaultVersion": self.default_version,
        }


###########################################################################
@dataclass
class LayerConflicts:
    layer_id: int
    update_update: list[Conflict] = field(default_factory=list)
    update_delete: list[Conflict] = field(default_factory=list)
    delete_update: list[Conflict] = field(default_factory=list)

    @property
    def all(self) -> list[Conflict]:
        return self.update_update + self.update_delete + self.delete_update

    @classmethod
    def from_dict(cls, data: dict) -> LayerConflicts:
        def _conflicts(key):
            return [Conflict.from_dict(c) for c in data.get(key, None) or []]

        return cls(
            layer_id=data.get("layerId"),
            update_update=_conflicts("updateUpdateConflicts"),
            update_delete=_conflicts("updateDeleteConflicts"),
            delete_update=_conflicts("deleteUpdateConflicts"),
        )


###########################################################################
@dataclass
class ConflictsResponse:
    success: bool
    features: list[LayerConflicts] = field(default_factory=list)
    error: Optional[EditSessionError] = None

    @classmethod
    def from_dict(cls, data: dict) -> ConflictsResponse:
        return cls(
            success=bool(data.get("success", False)),
            features=[LayerConflicts.from_dict(f) for f in data.get("features", [])],
            error=EditSessionError.from_dict(data.get("error", None)),
        )

    def object_ids(self, oid_fields: Optional[dict[int, str]] = None) -> dict[int, set]:
        """
        Conflicting object ids per layer id.  `oid_fields` maps a layer id to
        its object id field when that field is not named `objectid`.
        """
        oid_fields = oid_fields or {}
        ids = {}
        for layer in self.features:
            oid_field = oid_fields.get(layer.layer_id, None)
            oids = {c.get_object_id(oid_field) for c in layer.all}
            oids.discard(None)
            if oids:
                ids.setdefault(layer.layer_id, set()).update(oids)
        return ids

    def unidentified(self, oid_fields: Optional[dict[int, str]] = None) -> list[int]:
        """Layer ids holding conflicts whose object id cannot be read."""
        oid_fields = oid_fields or {}
        layer_ids = []
        for layer in self.features:
            oid_field = oid_fields.get(layer.layer_id, None)
            if any(c.get_object_id(oid_field) is None for c in layer.all):
                if layer.layer_id not in layer_ids:
                    layer_ids.append(layer.layer_id)
        return layer_ids


###########################################################################
@dataclass
class LayerDifferences:
    """
    Inserts, updates and deletes of a layer.  With the `objectIds` result
    type the lists hold object ids, with `features` they hold feature
    dictionaries.
    """

    layer_id: int
    inserts: list = field(default_factory=list)
    updates: list = field(default_factory=list)
    deletes: list = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> LayerDifferences:
        return cls(
            layer_id=data.get("layerId"),
            inserts=list(data.get("inserts", None) or []),
            updates=list(data.get("updates", None) or []),
            deletes=list(data.get("deletes", None) or []),
        )


###########################################################################
@dataclass
class DifferencesResponse:
    success: bool
    differences: list[LayerDifferences] = field(default_factory=list)
    moment: Optional[int] = None
    error: Optional[EditSessionError] = None

    @classmethod
    def from_dict(cls, data: dict) -> DifferencesResponse:
        return cls(
            success=bool(data.get("success", False)),
            differences=[
                LayerDifferences.from_dict(d) for d in data.get("differences", [])
            ],
            moment=data.get("moment", data.get("previousMoment", None)),
            error=EditSessionError.from_dict(data.get("error", None)),
        )


###########################################################################
@dataclass
class PartialPostRow:
    """Rows of a layer to include in a partial post."""

    layer_id: int
    object_ids: list[int]

    def as_dict(self) -> dict[str, Any]:
        return {"layerId": self.layer_id, "objectIds": list(self.object_ids)}


###########################################################################
@dataclass
class RestoreRowsLayer:
    """Rows of a layer to restore from the common ancestor."""

    layer_id: int
    object_ids: list[int]

    def as_dict(self) -> dict[str, Any]:
        return {"layerId": self.layer_id, "objectIds": list(self.object_ids)}


###########################################################################
@dataclass
class InspectConflictFeature:
    object_id: int
    note: Optional[str] = None

    def as_dict(self) -> dict[str, Any]:
        data = {"objectId": self.object_id}
        if self.note is not None:
            data["note"] = self.note
        return data


###########################################################################
@dataclass
class InspectConflictLayer:
    layer_id: int
    features: list[InspectConflictFeature] = field(default_factory=list)

    def as_dict(self) -> dict[str, Any]:
        return {
            "layerId": self.layer_id,
            "features": [f.as_dict() for f in self.features],
        }
