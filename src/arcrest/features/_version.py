from __future__ import annotations
import os
import time
import logging
import concurrent.futures
from typing import Any, Optional, Union

from arcrest import env
from arcrest.auth._error import EsriHttpResponseError, VersionStateError
from arcrest._impl.common._mixins import PropertyMap
from ._types import (
    VersioningType,
    AccessPermission,
    ConflictDetection,
    DifferenceResultType,
    SessionMode,
    SessionResponse,
    OperationResponse,
    VersionInfo,
    VersionInfosResponse,
    CreateVersionResponse,
    ReconcileResponse,
    PostResponse,
    ConflictsResponse,
    DifferencesResponse,
    PartialPostRow,
    RestoreRowsLayer,
    InspectConflictLayer,
    _parse_enum,
    new_session_id,
    normalize_guid,
)

_log = logging.getLogger(__name__)

__all__ = ["VersionManager", "Version"]

_RUNNING = ("pending", "executing", "inprogress")
_COMPLETED = ("completed", "completedwitherrors")


###########################################################################
def _connection(gis):
    """returns the Connection of a GIS, a resource or a Connection"""
    if gis is None:
        gis = env.active_gis
    if gis is None:
        raise ValueError("A GIS or a Connection is required.")
    if hasattr(gis, "_con"):
        return gis, gis._con
    if hasattr(gis, "post") and hasattr(gis, "get"):
        return gis, gis
    raise ValueError("gis must be of type GIS")


###########################################################################
class VersionManager(object):
    """
    Client of a `VersionManagementServer`, the service that lists, creates,
    alters and unlocks the branch versions of a feature service.  A
    :class:`~arcrest.features.FeatureLayerCollection` with branch versioning
    exposes one as its `versions` property.

    ===============     ====================================================================
    **Parameter**        **Description**
    ---------------     --------------------------------------------------------------------
    url                 Required String.  The URI of the `VersionManagementServer`.
    ---------------     --------------------------------------------------------------------
    gis                 Optional :class:`~arcrest.gis.GIS` or Connection. Defaults to
                        `env.active_gis`.
    ---------------     --------------------------------------------------------------------
    flc                 Optional :class:`~arcrest.features.FeatureLayerCollection` whose data
                        is versioned. Found next to the service url when not given.
    ===============     ====================================================================

    """

    _con = None
    _flc = None
    _gis = None
    _versions = None
    _properties = None

    # ----------------------------------------------------------------------
    def __init__(self, url: str, gis=None, flc=None):
        self._gis, self._con = _connection(gis)
        self._url = url.rstrip("/")
        self._flc = flc

    # ----------------------------------------------------------------------
    def __str__(self):
        return "< VersionManager @ {url} >".format(url=self._url)

    # ----------------------------------------------------------------------
    def __repr__(self):
        return self.__str__()

    # ----------------------------------------------------------------------
    @property
    def url(self) -> str:
        return self._url

    # ----------------------------------------------------------------------
    @property
    def flc(self):
        """the :class:`~arcrest.features.FeatureLayerCollection` next to the service"""
        if self._flc is None:
            from arcrest.features.layer import FeatureLayerCollection

            furl = os.path.dirname(self._url) + "/FeatureServer"
            self._flc = FeatureLayerCollection(url=furl, gis=self._gis)
        return self._flc

    # ----------------------------------------------------------------------
    @property
    def properties(self) -> PropertyMap:
        """the properties of the VersionManagementServer"""
        if self._properties is None:
            res = self._con.get(self._url, {"f": "json"})
            self._properties = PropertyMap(res)
        return self._properties

    # ----------------------------------------------------------------------
    @property
    def versioning_type(self) -> VersioningType:
        """branch or traditional, branch when the service does not say"""
        value = self.properties.get("versioningType", None) or "branch"
        try:
            return VersioningType(str(value).lower())
        except ValueError:
            _log.debug("Unknown versioning type %s, assuming branch", value)
            return VersioningType.BRANCH

    # ----------------------------------------------------------------------
    def create(
        self,
        name: str,
        permission: Union[str, AccessPermission] = "public",
        description: str = "",
    ) -> CreateVersionResponse:
        """
        Branches a new version from DEFAULT.  The service prefixes `name`
        with the owner, so `parcels` becomes `editor.parcels`.

        ===============     ====================================================================
        **Parameter**        **Description**
        ---------------     --------------------------------------------------------------------
        name                Required String. Name of the new version, without the owner.
        ---------------     --------------------------------------------------------------------
        permission          Optional String or :class:`AccessPermission`. Who may see and
                            edit the version: `private`, `public` (the default),
                            `protected` or `hidden`.
        ---------------     --------------------------------------------------------------------
        description         Optional String. Free text stored with the version.
        ===============     ====================================================================


        :return: :class:`~arcrest.features._types.CreateVersionResponse`

        """
        permission = AccessPermission(_parse_enum(permission))
        params = {
            "f": "json",
            "versionName": name,
            "description": description,
            "accessPermission": permission.value,
        }
        url = self._url + "/create"
        res = CreateVersionResponse.from_dict(
            self._con.post(url, params, ignore_error_key=True)
        )
        self._versions = None
        if res.success:
            _log.info("Created version %s", name)
        else:
            _log.warning("Unable to create version %s: %s", name, res.error)
        return res

    # ----------------------------------------------------------------------
    def purge(self, version: Union[str, "Version"]) -> OperationResponse:
        """
        Clears the read and edit locks other sessions left on a version.

        ===============     ====================================================================
        **Parameter**        **Description**
        ---------------     --------------------------------------------------------------------
        version             Required String or :class:`Version`. The locked version.
        ===============     ====================================================================

        :return: :class:`~arcrest.features._types.OperationResponse`

        """
        if isinstance(version, Version):
            version = version.properties.versionName
        url = "%s/purgeLock" % self._url
        params = {"f": "json", "versionName": version}
        res = OperationResponse.from_dict(
            self._con.post(url, params, ignore_error_key=True)
        )
        if not res.success:
            _log.warning("Unable to purge the lock of %s: %s", version, res.error)
        self._versions = None
        return res

    # ----------------------------------------------------------------------
    @property
    def locks(self) -> list["Version"]:
        """
        The versions some session holds a lock on.
        """
        return [v for v in self.all if v.properties.isLocked]

    # ----------------------------------------------------------------------
    @property
    def all(self) -> list["Version"]:
        """every version visible to the signed in user, cached until changed"""
        if not self._versions:
            self._versions = []
            for info in self.search().versions:
                vurl = "%s/versions/%s" % (self._url, info.version_guid)
                version = Version(url=vurl, gis=self._gis, manager=self)
                version._properties = PropertyMap(info.as_dict())
                self._versions.append(version)
        return self._versions

    # ----------------------------------------------------------------------
    def search(
        self, owner: Optional[str] = None, show_hidden: bool = False
    ) -> VersionInfosResponse:
        """
        Lists the versions the caller may see.  The service owner sees all
        of them.

        ===============     ====================================================================
        **Parameter**        **Description**
        ---------------     --------------------------------------------------------------------
        owner               Optional String. Only versions of this owner.
        ---------------     --------------------------------------------------------------------
        show_hidden         Optional Boolean. Include hidden versions.
        ===============     ====================================================================

        :return: :class:`~arcrest.features._types.VersionInfosResponse`

        """
        url = "%s/versionInfos" % self._url
        params = {"ownerFilter": owner, "includeHidden": show_hidden, "f": "json"}
        return VersionInfosResponse.from_dict(
            self._con.get(url, params, ignore_error_key=True)
        )

    # ----------------------------------------------------------------------
    def info(self, guid: str) -> VersionInfo:
        """returns the :class:`VersionInfo` of a version GUID"""
        url = "%s/versions/%s" % (self._url, normalize_guid(guid))
        return VersionInfo.from_dict(self._con.get(url, {"f": "json"}))

    # ----------------------------------------------------------------------
    def get(
        self, version: str, mode: Optional[Union[str, SessionMode]] = None
    ) -> Optional["Version"]:
        """
        Looks a version up by its full name, ignoring case.

        ===============     ====================================================================
        **Parameter**        **Description**
        ---------------     --------------------------------------------------------------------
        version             Required String. The full name, for example `editor.parcels`.
        ---------------     --------------------------------------------------------------------
        mode                Optional String. `edit` or `read` opens that session on the
                            version before it is returned.
        ===============     ====================================================================

        :return: :class:`Version` or None when no version has that name
        """
        for v in self.all:
            if version.lower() == v.properties["versionName"].lower():
                if mode:
                    v.mode = mode
                return v
        return None


########################################################################
class Version(object):
    """
    A `Version` represents a single branch in the version tree and the
    edit/read session this client holds on it.

    The session rules are checked locally before a request is sent and a
    :class:`~arcrest.auth.VersionStateError` is raised when one is broken:

    - edits, reconcile, inspect, restore and post need an edit session
    - post needs a reconcile that no later edit invalidated
    - conflicts found by the reconcile must be inspected or restored before
      posting, unless `force=True`

    ===============     ====================================================================
    **Parameter**        **Description**
    ---------------     --------------------------------------------------------------------
    url                 Required String.  The URI to the web resource,
                        `.../VersionManagementServer/versions/<guid>`.
    ---------------     --------------------------------------------------------------------
    gis                 Optional :class:`~arcrest.gis.GIS` or Connection.
    ---------------     --------------------------------------------------------------------
    flc                 Optional :class:`~arcrest.features.FeatureLayerCollection` whose data
                        is versioned. Found next to the service url when not given.
    ---------------     --------------------------------------------------------------------
    session_guid        Optional String. Reuse this session id instead of a new one.
    ---------------     --------------------------------------------------------------------
    mode                Optional String. The session (`edit` or `read`) the `with`
                        statement opens.
    ---------------     --------------------------------------------------------------------
    manager             Optional :class:`VersionManager` that owns the version.
    ===============     ====================================================================

    .. code-block:: python

        version = vms.get("editor.parcels")
        version.save_edits = True
        with Version(version.url, gis, mode="edit") as v:
            v.edit(layer, adds=[feature])
            v.reconcile()
            v.post()

    """

    _flc = None
    _gis = None
    _url = None
    _guid = None
    _mode = None
    _save = None
    _properties = None
    _manager = None
    _edit_generation = 0

    # ----------------------------------------------------------------------
    def __init__(
        self,
        url: str,
        gis=None,
        flc=None,
        session_guid: Optional[str] = None,
        mode: Optional[Union[str, SessionMode]] = None,
        manager: Optional[VersionManager] = None,
    ):
        self._url = url.rstrip("/")
        self._save = False
        self._gis, self._con = _connection(gis)
        self._guid = session_guid or new_session_id()
        self._flc = flc
        self._manager = manager
        self._requested_mode = self._parse_mode(mode)
        self._reset_edit_state()

    # ----------------------------------------------------------------------
    def _reset_edit_state(self):
        self._reconciled = False
        self._has_conflicts = False
        self._pending_conflicts = None
        self._unidentified_conflicts = False
        self._edit_generation += 1

    # ----------------------------------------------------------------------
    @staticmethod
    def _parse_mode(value) -> Optional[str]:
        value = _parse_enum(value)
        if value is None or str(value).lower() == "none":
            return None
        return SessionMode(str(value).lower()).value

    # ----------------------------------------------------------------------
    def __str__(self):
        return "<Version {name} @ {guid}>".format(
            name=self.properties.versionName, guid=self.properties.versionGuid
        )

    # ----------------------------------------------------------------------
    def __repr__(self):
        return self.__str__()

    # ----------------------------------------------------------------------
    @property
    def url(self) -> str:
        return self._url

    # ----------------------------------------------------------------------
    @property
    def session_id(self) -> str:
        """the `{GUID}` sent as `sessionId`"""
        return self._guid

    # ----------------------------------------------------------------------
    @property
    def _service_url(self) -> str:
        """the VersionManagementServer URL"""
        return os.path.dirname(os.path.dirname(self._url))

    # ----------------------------------------------------------------------
    @property
    def properties(self) -> PropertyMap:
        """the versionInfo of the version, fetched once"""
        if self._properties is None:
            res = self._con.get(self._url, {"f": "json"})
            self._properties = PropertyMap(res)
        return self._properties

    # ----------------------------------------------------------------------
    @property
    def info(self) -> VersionInfo:
        """returns the version properties as a :class:`VersionInfo`"""
        return VersionInfo.from_dict(dict(self.properties))

    # ----------------------------------------------------------------------
    @property
    def layers(self) -> list:
        """returns the layers in the :class:`~arcrest.features.FeatureLayerCollection`"""
        return self._container.layers

    # ----------------------------------------------------------------------
    @property
    def tables(self) -> list:
        """returns the tables in the :class:`~arcrest.features.FeatureLayerCollection`"""
        return self._container.tables

    # ----------------------------------------------------------------------
    @property
    def _container(self):
        if self._flc is None:
            if self._manager is not None:
                self._flc = self._manager.flc
            else:
                from arcrest.features.layer import FeatureLayerCollection

                furl = os.path.dirname(self._service_url) + "/FeatureServer"
                self._flc = FeatureLayerCollection(url=furl, gis=self._gis)
        return self._flc

    # ----------------------------------------------------------------------
    @property
    def is_reconciled(self) -> bool:
        """True when a reconcile succeeded and nothing invalidated it since"""
        return self._reconciled

    # ----------------------------------------------------------------------
    @property
    def has_conflicts(self) -> bool:
        """True while conflicts of the last reconcile are not resolved"""
        return self._has_conflicts

    # ----------------------------------------------------------------------
    @property
    def pending_conflicts(self) -> Optional[dict[int, set]]:
        """
        Object ids in conflict per layer id, as last returned by
        :meth:`conflicts`, minus the ones inspected or restored since.
        None when the conflicts were not fetched.
        """
        return self._pending_conflicts

    # ----------------------------------------------------------------------
    @property
    def mode(self) -> Optional[str]:
        """
        The session this client holds on the version: `edit`, `read` or
        None.  Setting it opens or closes sessions as needed; leaving `edit`
        for `read` stops editing with :attr:`save_edits`, and None releases
        every lock.
        """
        return self._mode

    # ----------------------------------------------------------------------
    @mode.setter
    def mode(self, value: Optional[Union[str, SessionMode]]):
        # edit means reading is started and edit is started
        # read means reading is started and edit is stopped
        # None means reading is stopped and edit is stopped
        value = self._parse_mode(value)
        if value == self._mode:
            return
        if value == "edit":
            self.start_editing()
        elif value == "read":
            if self._mode == "edit":
                self.stop_editing(save=self.save_edits)
            else:
                self.start_reading()
        else:
            self.stop_reading()

    # ----------------------------------------------------------------------
    @property
    def save_edits(self) -> bool:
        """
        Whether the edits are kept when the edit session stops without an
        explicit `save` argument.
        """
        return self._save

    # ----------------------------------------------------------------------
    @save_edits.setter
    def save_edits(self, value: bool):
        self._save = bool(value)

    # ----------------------------------------------------------------------
    def _require_edit(self, operation: str):
        if self._mode != "edit":
            raise VersionStateError(
                "Version must be in `edit` mode to run %s." % operation,
                operation=operation,
            )

    # ----------------------------------------------------------------------
    def _session_post(self, operation: str, params: Optional[dict] = None) -> dict:
        """POSTs `operation` with the session id"""
        url = "%s/%s" % (self._url, operation)
        data = {"f": "json", "sessionId": self._guid}
        data.update(params or {})
        _log.debug("%s %s", operation, self._url)
        return self._con.post(url, data, ignore_error_key=True)

    # ----------------------------------------------------------------------
    def start_reading(self) -> SessionResponse:
        """
        Opens the long lived read session that holds a shared lock.  While it
        is held no other session can edit or reconcile the version.

        :return: :class:`~arcrest.features._types.SessionResponse`

        """
        if self._mode is not None:
            _log.debug("Session %s already holds a read lock", self._guid)
            return SessionResponse(success=True)
        res = SessionResponse.from_dict(self._session_post("startReading"))
        if res.success:
            self._mode = "read"
            self._properties = None
            _log.info("Started reading %s", self._url)
        else:
            _log.warning("Unable to start reading %s: %s", self._url, res.error)
        return res

    # ----------------------------------------------------------------------
    def stop_reading(self) -> SessionResponse:
        """
        Stops and releases a reading session.  An open edit session is
        stopped first; the read lock is released even when that fails.  The
        local mode is cleared even when the request fails.

        :return: :class:`~arcrest.features._types.SessionResponse`

        """
        if self._mode is None:
            return SessionResponse(success=True)
        try:
            if self._mode == "edit":
                self.stop_editing(save=self.save_edits)
        finally:
            try:
                res = SessionResponse.from_dict(self._session_post("stopReading"))
                if res.success:
                    _log.info("Stopped reading %s", self._url)
                else:
                    _log.warning("Unable to stop reading %s: %s", self._url, res.error)
            finally:
                self._mode = None
                self._properties = None
        return res

    # ----------------------------------------------------------------------
    def start_editing(self) -> SessionResponse:
        """
        Starts an edit session for the current user.  A read session is
        started first when none is open.

        :return: :class:`~arcrest.features._types.SessionResponse`
        """
        if self._mode == "edit":
            raise VersionStateError(
                "Version already in edit mode. Only one user can be "
                "editing a branch version.",
                operation="start_editing",
            )
        if self._mode is None:
            res = self.start_reading()
            if not res.success:
                return res
        res = SessionResponse.from_dict(self._session_post("startEditing"))
        if res.success:
            self._mode = "edit"
            self._reset_edit_state()
            self._properties = None
            _log.info("Started editing %s", self._url)
        else:
            _log.warning("Unable to start editing %s: %s", self._url, res.error)
        return res

    # ----------------------------------------------------------------------
    def stop_editing(self, save: Optional[bool] = None) -> SessionResponse:
        """
        Stops the edit session.  The write lock is released locally even
        when the request fails; the read lock is kept.

        ===============     ====================================================================
        **Parameter**        **Description**
        ---------------     --------------------------------------------------------------------
        save                Optional Boolean. Keep the edits. Falls back to :attr:`save_edits`.
        ===============     ====================================================================

        :return: :class:`~arcrest.features._types.SessionResponse`

        """
        self._require_edit("stop_editing")
        if save is None:
            save = self.save_edits
        try:
            res = SessionResponse.from_dict(
                self._session_post("stopEditing", {"saveEdits": save})
            )
            if res.success:
                _log.info("Stopped editing %s (saved: %s)", self._url, save)
            else:
                _log.warning("Unable to stop editing %s: %s", self._url, res.error)
            return res
        finally:
            self._reset_edit_state()
            self._mode = "read"
            self._properties = None

    # ----------------------------------------------------------------------
    def edit(
        self,
        layer,
        adds=None,
        updates=None,
        deletes=None,
        use_global_ids: bool = False,
        rollback_on_failure: bool = True,
    ) -> dict:
        """
        Applies edits to `layer` inside this version and edit session.  Needs
        `edit` mode, and any edit invalidates the last reconcile.

        =====================   ===========================================
        **Inputs**              **Description**
        ---------------------   -------------------------------------------
        layer                   Required :class:`~arcrest.features.FeatureLayer` to edit.
        ---------------------   -------------------------------------------
        adds                    Optional :class:`~arcrest.features.FeatureSet` or list of new
                                features.
        ---------------------   -------------------------------------------
        updates                 Optional :class:`~arcrest.features.FeatureSet` or list of changed
                                features, matched by object id.
        ---------------------   -------------------------------------------
        deletes                 Optional list or comma separated object ids.
        ---------------------   -------------------------------------------
        use_global_ids          Optional boolean. Match rows by global id
                                instead of object id.
        ---------------------   -------------------------------------------
        rollback_on_failure     Optional boolean. All or nothing. On by default.
        =====================   ===========================================

        :return: Dictionary of the `applyEdits` results

        """
        self._require_edit("edit")
        try:
            return layer.edit_features(
                adds=adds,
                updates=updates,
                deletes=deletes,
                gdb_version=self.properties.versionName,
                use_global_ids=use_global_ids,
                rollback_on_failure=rollback_on_failure,
                session_id=self._guid,
            )
        finally:
            self._invalidate_reconcile("edit")

    # ----------------------------------------------------------------------
    def _invalidate_reconcile(self, reason: str):
        if self._reconciled:
            _log.debug("%s invalidated the last reconcile of %s", reason, self._url)
        self._reconciled = False
        self._edit_generation += 1

    # ----------------------------------------------------------------------
    def delete_forward_edits(self, moment: int) -> OperationResponse:
        """
        Trims the edit moments after `moment`.  The moment must be one at
        which an edit operation of this session was applied, the call fails
        otherwise.  The session must hold the write lock.

        ===============     ====================================================================
        **Parameter**        **Description**
        ---------------     --------------------------------------------------------------------
        moment              Required Integer. Epoch milliseconds of the new tail of the version;
                            later moments are discarded.
        ===============     ====================================================================

        :return: :class:`~arcrest.features._types.OperationResponse`

        """
        self._require_edit("delete_forward_edits")
        res = OperationResponse.from_dict(
            self._session_post("deleteForwardEdits", {"moment": int(moment)})
        )
        if res.success:
            self._invalidate_reconcile("delete_forward_edits")
        else:
            _log.warning("deleteForwardEdits failed on %s: %s", self._url, res.error)
        return res

    # ----------------------------------------------------------------------
    def reconcile(
        self,
        end_with_conflict: bool = False,
        with_post: bool = False,
        conflict_detection: Union[str, ConflictDetection] = "byObject",
        future: bool = False,
    ) -> Union[ReconcileResponse, concurrent.futures.Future]:
        """
        Merges DEFAULT into the version and reports the rows changed on both
        sides.  Only the editing session may reconcile; it holds the version
        until it saves or posts.  A reconcile stopped by `end_with_conflict`
        merges nothing and leaves the version unreconciled, and the result
        of a ``future`` is ignored when the version was edited meanwhile.

        ==================     ====================================================================
        **Parameter**           **Description**
        ------------------     --------------------------------------------------------------------
        end_with_conflict      Optional Boolean. Abort when a conflict is found.
        ------------------     --------------------------------------------------------------------
        with_post              Optional Boolean. Post right after a clean reconcile.
        ------------------     --------------------------------------------------------------------
        conflict_detection     Optional String. `byObject` flags rows edited on both sides,
                               `byAttribute` only rows where the same field changed.
        ------------------     --------------------------------------------------------------------
        future                 Optional boolean. Run as a server job and return a Future.
        ==================     ====================================================================

        :return: :class:`~arcrest.features._types.ReconcileResponse`.
        With ``future=True`` a :class:`concurrent.futures.Future` of it.

        """
        self._require_edit("reconcile")
        conflict_detection = ConflictDetection(_parse_enum(conflict_detection))
        params = {
            "abortIfConflicts": end_with_conflict,
            "withPost": with_post,
            "conflictDetection": conflict_detection.value,
            "async": future,
        }
        res = self._session_post("reconcile", params)
        if future:
            generation = self._edit_generation
            f = self._submit_status(res, ReconcileResponse)
            f.add_done_callback(
                lambda done: self._reconcile_done(done, end_with_conflict, generation)
            )
            return f
        res = ReconcileResponse.from_dict(res)
        self._apply_reconcile(res, end_with_conflict)
        return res

    # ----------------------------------------------------------------------
    def _reconcile_done(
        self, future: concurrent.futures.Future, end_with_conflict: bool, generation: int
    ):
        if future.cancelled() or future.exception() is not None:
            return
        if generation != self._edit_generation:
            _log.debug(
                "The version changed while %s was reconciling, the result is not applied",
                self._url,
            )
            return
        self._apply_reconcile(future.result(), end_with_conflict)

    # ----------------------------------------------------------------------
    def _apply_reconcile(self, res: ReconcileResponse, end_with_conflict: bool = False):
        if not res.success:
            self._reconciled = False
            _log.warning("Reconcile of %s failed: %s", self._url, res.error)
            return
        self._has_conflicts = res.has_conflicts
        self._pending_conflicts = None if res.has_conflicts else {}
        self._unidentified_conflicts = False
        if end_with_conflict and res.has_conflicts:
            # aborted: nothing was merged and no conflicts were recorded
            self._reconciled = False
            _log.warning("Reconcile of %s stopped on conflicts", self._url)
            return
        self._reconciled = not res.did_post
        _log.info(
            "Reconciled %s (conflicts: %s, posted: %s)",
            self._url,
            res.has_conflicts,
            res.did_post,
        )

    # ----------------------------------------------------------------------
    def conflicts(self) -> ConflictsResponse:
        """
        Fetches the conflicts the last reconcile found, per layer and kind
        (update-update, update-delete, delete-update), each with the rows as
        they are in the branch, in the common ancestor and in DEFAULT.

        A temporary read session is opened when the version has no session.

        :return: :class:`~arcrest.features._types.ConflictsResponse`
        """
        temporary = self._mode is None
        if temporary:
            started = self.start_reading()
            if not started.success:
                return ConflictsResponse(success=False, error=started.error)
        try:
            res = ConflictsResponse.from_dict(self._session_post("conflicts"))
        finally:
            if temporary:
                self.stop_reading()
        if res.success:
            oid_fields = {
                layer_id: self._oid_field(layer_id) for layer_id in res.unidentified()
            }
            self._pending_conflicts = res.object_ids(oid_fields)
            self._unidentified_conflicts = bool(res.unidentified(oid_fields))
            if self._unidentified_conflicts:
                _log.warning(
                    "Some conflicts of %s have no object id, they can only be "
                    "cleared with inspect_all",
                    self._url,
                )
            self._has_conflicts = (
                bool(self._pending_conflicts) or self._unidentified_conflicts
            )
        return res

    # ----------------------------------------------------------------------
    def _oid_field(self, layer_id: int) -> Optional[str]:
        """the object id field of a layer or table of the service"""
        try:
            container = self._container
            for layer in list(container.layers) + list(container.tables):
                if layer.url.rsplit("/", 1)[-1] != str(layer_id):
                    continue
                name = layer.properties.get("objectIdFieldName", None)
                if name:
                    return name
                for fld in layer.properties.get("fields", None) or []:
                    if fld.get("type") == "esriFieldTypeOID":
                        return fld.get("name")
        except EsriHttpResponseError as err:
            _log.warning("Unable to read the object id field of layer %s: %s", layer_id, err)
        return None

    # ----------------------------------------------------------------------
    def _resolve(self, rows: list[dict]):
        """removes the object ids of `rows` from the pending conflicts"""
        if self._pending_conflicts is None:
            return
        for row in rows:
            layer_id = row.get("layerId")
            oids = row.get("objectIds", None)
            if oids is None:
                oids = [f.get("objectId") for f in row.get("features", [])]
            pending = self._pending_conflicts.get(layer_id, None)
            if pending is None:
                continue
            pending.difference_update(oids)
            if not pending:
                del self._pending_conflicts[layer_id]
        self._has_conflicts = bool(self._pending_conflicts) or self._unidentified_conflicts

    # ----------------------------------------------------------------------
    def inspect(
        self,
        conflicts: Optional[list[Union[InspectConflictLayer, dict[str, Any]]]] = None,
        inspect_all: bool = False,
        set_inspected: bool = False,
    ) -> OperationResponse:
        """
        Marks conflicts of the last reconcile as reviewed, optionally with a
        note per row.  Marked rows leave :attr:`pending_conflicts`.

        ===============     ====================================================================
        **Parameter**        **Description**
        ---------------     --------------------------------------------------------------------
        conflicts           Optional List of :class:`InspectConflictLayer` or dictionaries.
                            The rows to mark. Required unless ``inspect_all`` is True.

                            Parameter Format:

                                | [{
                                |      "layerId" : <layerId>,
                                |      "features" : [{
                                |          "objectId" : <objectId>,
                                |          "note" : string
                                |        }]}]
        ---------------     --------------------------------------------------------------------
        inspect_all         Optional Boolean. Mark every conflict.
        ---------------     --------------------------------------------------------------------
        set_inspected       Optional Boolean. Sent as `setInspected`; the flag stored on
                            the rows.
        ===============     ====================================================================


        :return: :class:`~arcrest.features._types.OperationResponse`

        """
        self._require_edit("inspect")
        if not inspect_all and not conflicts:
            raise ValueError("conflicts are required unless inspect_all is True.")
        rows = [_as_row(c) for c in conflicts or []]
        params = {"inspectAll": inspect_all, "setInspected": set_inspected}
        if not inspect_all:
            params["conflicts"] = rows
        res = OperationResponse.from_dict(
            self._session_post("inspectConflicts", params)
        )
        if res.success:
            if inspect_all:
                self._pending_conflicts = {}
                self._unidentified_conflicts = False
                self._has_conflicts = False
            else:
                self._resolve(rows)
        else:
            _log.warning("inspectConflicts failed on %s: %s", self._url, res.error)
        return res

    # ----------------------------------------------------------------------
    def restore(
        self, rows: list[Union[RestoreRowsLayer, dict[str, Any]]]
    ) -> OperationResponse:
        """
        Brings rows back from the common ancestor, the usual answer to a
        `DeleteUpdate` conflict.  Restored rows leave :attr:`pending_conflicts`.

        ==================     ====================================================================
        **Parameter**           **Description**
        ------------------     --------------------------------------------------------------------
        rows                   Required List of :class:`RestoreRowsLayer` or dictionaries.

                               Each entry names a layer and object ids:

                                   | [{
                                   |        "layerId": <layerId>,
                                   |        "objectIds":[<objectId>]
                                   |     }]
        ==================     ====================================================================

        :return: :class:`~arcrest.features._types.OperationResponse`

        """
        self._require_edit("restore")
        rows = [_as_row(r) for r in rows]
        res = OperationResponse.from_dict(self._session_post("restoreRows", {"rows": rows}))
        if res.success:
            self._resolve(rows)
        else:
            _log.warning("restoreRows failed on %s: %s", self._url, res.error)
        return res

    # ----------------------------------------------------------------------
    def post(
        self,
        rows: Optional[list[Union[PartialPostRow, dict[str, Any]]]] = None,
        future: bool = False,
        force: bool = False,
    ) -> Union[PostResponse, concurrent.futures.Future]:
        """
        Moves the edits of the version into DEFAULT.  Needs a reconcile after
        the last edit and no unresolved conflicts; if DEFAULT moved on since,
        the server refuses and the version has to be reconciled again.

        ===============     ====================================================================
        **Parameter**        **Description**
        ---------------     --------------------------------------------------------------------
        rows                Optional List of :class:`PartialPostRow` or dictionaries. Post
                            only these rows.

                            .. code-block:: python

                                rows = [
                                        {"layerId": 0,
                                         "objectIds": [14,15,17,20]
                                        },
                                       ]
        ---------------     --------------------------------------------------------------------
        future              Optional Boolean. Run as a server job and return a Future.
        ---------------     --------------------------------------------------------------------
        force               Optional Boolean. Skips the local reconcile and conflict checks
                            and lets the server decide.
        ===============     ====================================================================

        :return:
            :class:`~arcrest.features._types.PostResponse` or a Future.

        """
        self._require_edit("post")
        if not force:
            if not self._reconciled:
                raise VersionStateError(
                    "The version must be reconciled after the last edit before posting.",
                    operation="post",
                )
            if self._has_conflicts:
                raise VersionStateError(
                    "Conflicts from the last reconcile must be inspected or "
                    "restored before posting.",
                    operation="post",
                )
        params = {"async": future}
        if rows:
            params["rows"] = [_as_row(r) for r in rows]
        res = self._session_post("post", params)
        if future:
            f = self._submit_status(res, PostResponse)
            f.add_done_callback(self._post_done)
            return f
        res = PostResponse.from_dict(res)
        self._apply_post(res)
        return res

    # ----------------------------------------------------------------------
    def _post_done(self, future: concurrent.futures.Future):
        if future.cancelled() or future.exception() is not None:
            return
        self._apply_post(future.result())

    # ----------------------------------------------------------------------
    def _apply_post(self, res: PostResponse):
        if res.success:
            self._reconciled = False
            _log.info("Posted %s at moment %s", self._url, res.moment)
        else:
            _log.warning("Post of %s failed: %s", self._url, res.error)

    # ----------------------------------------------------------------------
    def differences(
        self,
        result_type: Union[str, DifferenceResultType] = "objectIds",
        moment: Optional[int] = None,
        from_moment: Optional[int] = None,
        layers: Optional[list[int]] = None,
        future: bool = False,
    ) -> Union[DifferencesResponse, concurrent.futures.Future]:
        """
        Compares the version with DEFAULT and reports rows inserted, updated
        and deleted in the version.

        ===============     ====================================================================
        **Parameter**        **Description**
        ---------------     --------------------------------------------------------------------
        result_type         Optional String.  `objectIds` (default) or `features`.
        ---------------     --------------------------------------------------------------------
        moment              Optional Integer. Compare the version as of this moment.
        ---------------     --------------------------------------------------------------------
        from_moment         Optional Integer. Only changes after this epoch millisecond
                            moment. DEFAULT only.
        ---------------     --------------------------------------------------------------------
        layers              Optional list of layer ids. Every layer when not given.
        ---------------     --------------------------------------------------------------------
        future              Optional boolean. Run as a server job and return a Future.
        ===============     ====================================================================

        :return:
            :class:`~arcrest.features._types.DifferencesResponse` or a Future.

        """
        result_type = DifferenceResultType(_parse_enum(result_type))
        if from_moment is not None:
            name = str(self.properties.versionName or "")
            if not name.upper().endswith("DEFAULT"):
                raise ValueError(
                    "The from_moment parameter is only available for the DEFAULT version."
                )
        params = {
            "resultType": result_type.value,
            "moment": moment,
            "fromMoment": from_moment,
            "layers": layers,
            "async": future,
        }
        if self._mode is None:
            params["sessionId"] = None
        res = self._session_post("differences", params)
        if future:
            return self._submit_status(res, DifferencesResponse)
        return DifferencesResponse.from_dict(res)

    # ----------------------------------------------------------------------
    def alter(
        self,
        owner: Optional[str] = None,
        version: Optional[str] = None,
        description: Optional[str] = None,
        permission: Optional[Union[str, AccessPermission]] = None,
    ) -> Optional[OperationResponse]:
        """
        Renames the version or changes its owner, description or access.

        ===============     ====================================================================
        **Parameter**        **Description**
        ---------------     --------------------------------------------------------------------
        owner               Optional String. The new owner.
        ---------------     --------------------------------------------------------------------
        version             Optional String. The new name, without the owner.
        ---------------     --------------------------------------------------------------------
        permission          Optional String. `private`, `public`, `protected` or `hidden`.
        ---------------     --------------------------------------------------------------------
        description         Optional String. The new description.
        ===============     ====================================================================

        :return: :class:`~arcrest.features._types.OperationResponse` or None when
                 nothing was given to change.

        """
        params = {}
        if owner:
            params["ownerName"] = owner
        if version:
            params["versionName"] = version
        if description:
            params["description"] = description
        if permission:
            params["accessPermission"] = AccessPermission(_parse_enum(permission)).value
        if not params:
            return None
        params["f"] = "json"
        url = "%s/alter" % self._url
        res = OperationResponse.from_dict(
            self._con.post(url, params, ignore_error_key=True)
        )
        self._properties = None
        return res

    # ----------------------------------------------------------------------
    def delete(self) -> OperationResponse:
        """
        Deletes the version.  DEFAULT cannot be deleted.
        """
        url = "%s/delete" % self._service_url
        params = {"f": "json", "versionName": self.properties.versionName}
        res = OperationResponse.from_dict(
            self._con.post(url, params, ignore_error_key=True)
        )
        if res.success:
            _log.info("Deleted version %s", params["versionName"])
            if self._manager is not None:
                self._manager._versions = None
        return res

    # ----------------------------------------------------------------------
    def __enter__(self):
        if self._requested_mode is not None:
            self.mode = self._requested_mode
        return self

    # ----------------------------------------------------------------------
    def __exit__(self, exc_type, exc, tb):
        save = exc_type is None and self.save_edits
        try:
            if self._mode == "edit":
                self.stop_editing(save=save)
        finally:
            if self._mode is not None:
                self.stop_reading()

    # ----------------------------------------------------------------------
    def _submit_status(self, res: dict, response_type) -> concurrent.futures.Future:
        """polls the `statusUrl` of an asynchronous request on a worker thread"""
        if "statusUrl" not in res:
            raise EsriHttpResponseError(
                "The service did not return a statusUrl for the asynchronous request.",
                url=self._url,
            )
        return self._run_async(
            self._status_via_url,
            con=self._con,
            url=res["statusUrl"],
            params={"f": "json"},
            response_type=response_type,
        )

    # ----------------------------------------------------------------------
    def _run_async(self, fn, **inputs) -> concurrent.futures.Future:
        """runs `fn` on a one shot worker thread"""
        pool = concurrent.futures.ThreadPoolExecutor(1)
        future = pool.submit(fn, **inputs)
        pool.shutdown(False)
        return future

    # ----------------------------------------------------------------------
    def _status_via_url(self, con, url: str, params: dict, response_type=None):
        """polls `url` until the job leaves the pending and executing states"""
        start = time.time()
        status = con.get(url, params)
        state = str(status.get("status", "")).lower()
        while state in _RUNNING:
            if env.status_poll_max_wait and time.time() - start > env.status_poll_max_wait:
                raise EsriHttpResponseError(
                    "Timed out waiting for %s" % url, url=url
                )
            if env.verbose:
                _log.info("%s: %s", url, status.get("status"))
            time.sleep(env.status_poll_interval)
            status = con.get(url, params)
            state = str(status.get("status", "")).lower()
        if state not in _COMPLETED:
            raise EsriHttpResponseError(
                "Asynchronous operation ended with status %s" % status.get("status"),
                details=status.get("messages", None),
                url=url,
            )
        if state == "completedwitherrors":
            _log.warning("%s completed with errors", url)
        result = dict(status)
        result.setdefault("success", True)
        if response_type is None:
            return result
        return response_type.from_dict(result)


# ----------------------------------------------------------------------
def _as_row(row) -> dict:
    if hasattr(row, "as_dict"):
        return row.as_dict()
    return dict(row)
