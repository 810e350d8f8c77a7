"""
Clients of feature services: the layers and tables that are queried and
edited, and the `FeatureServer` that groups them.
"""
from __future__ import annotations
import os
import time
import logging
from typing import Optional, Union

from arcrest import env
from arcrest.gis import _GISResource
from arcrest._impl.common._utils import admin_url
from arcrest.geometry import Geometry
from .feature import Feature, FeatureSet
from .managers import AttachmentManager

_log = logging.getLogger(__name__)


def _csv(values) -> Optional[str]:
    if values is None:
        return None
    if isinstance(values, (list, tuple, set)):
        return ",".join([str(v) for v in values])
    return str(values)


# ----------------------------------------------------------------------
def _features_payload(values) -> Optional[list]:
    """adds/updates as a list of feature dictionaries"""
    if values is None:
        return None
    if isinstance(values, FeatureSet):
        values = values.features
    if isinstance(values, (Feature, dict)):
        values = [values]
    rows = []
    for value in values:
        if isinstance(value, Feature):
            d = value.as_dict
            if value.attributes is None:
                d["attributes"] = {}
            rows.append(d)
        elif isinstance(value, dict):
            rows.append(dict(value))
        else:
            raise ValueError(
                "pass in features as list of Features, dicts or PropertyMap, not %s"
                % type(value).__name__
            )
    return rows or None


###########################################################################
class FeatureLayer(_GISResource):
    """
    The ``FeatureLayer`` class is the primary concept for working with :class:`~arcrest.features.Feature` objects
    in a :class:`~arcrest.gis.GIS`.

    Feature layers are exposed by feature services. Feature layer objects can be created from the layer url,
    or obtained through the ``layers`` attribute of a :class:`~arcrest.features.FeatureLayerCollection`.

    .. code-block:: python

        >>> lyr = FeatureLayer("https://.../FeatureServer/0", gis)
        >>> lyr.query(where="STATE = 'CA'", return_count_only=True)
        58
    """

    _container = None

    def __init__(self, url, gis=None, container=None):
        """
        `url` is `.../FeatureServer/<layer id>`.  `container` is the
        :class:`FeatureLayerCollection` the layer was listed by, if any.
        """
        super(FeatureLayer, self).__init__(url, gis)
        self._container = container
        self.attachments = AttachmentManager(self)

    # ----------------------------------------------------------------------
    @property
    def layer_id(self) -> int:
        """the id of the layer within its service"""
        return int(os.path.basename(self._url))

    # ----------------------------------------------------------------------
    @property
    def container(self) -> FeatureLayerCollection:
        """
        The :class:`~arcrest.features.FeatureLayerCollection` to which the layer belongs.
        """
        if self._container is None:
            self._container = FeatureLayerCollection(
                os.path.dirname(self._url), self._gis
            )
        return self._container

    @container.setter
    def container(self, value: Optional[FeatureLayerCollection]):
        self._container = value

    # ----------------------------------------------------------------------
    def _query(self, path: str, params: dict) -> Union[int, dict, FeatureSet]:
        """returns results of query"""
        result = self._con.post("%s/%s" % (self._url, path), params)
        if params.get("returnCountOnly"):
            return result["count"]
        elif params.get("returnIdsOnly"):
            return result
        elif params.get("returnExtentOnly"):
            return result
        return FeatureSet.from_dict(result)

    # ----------------------------------------------------------------------
    def query(
        self,
        where: str = "1=1",
        out_fields: Union[str, list[str]] = "*",
        return_geometry: bool = True,
        geometry: Optional[Union[Geometry, dict]] = None,
        geometry_type: Optional[str] = None,
        spatial_rel: Optional[str] = None,
        in_sr: Optional[Union[int, dict]] = None,
        out_sr: Optional[Union[int, dict]] = None,
        object_ids: Optional[Union[str, list]] = None,
        order_by_fields: Optional[str] = None,
        result_offset: Optional[int] = None,
        result_record_count: Optional[int] = None,
        return_count_only: bool = False,
        return_ids_only: bool = False,
        return_distinct_values: bool = False,
        gdb_version: Optional[str] = None,
        return_all_records: bool = False,
        **kwargs,
    ) -> Union[int, dict, FeatureSet]:
        """
        Queries a :class:`~arcrest.features.FeatureLayer` based on a sql statement.

        ===========================     ====================================================================
        **Parameter**                    **Description**
        ---------------------------     --------------------------------------------------------------------
        where                           Optional string. The default is 1=1. The selection sql statement.
        ---------------------------     --------------------------------------------------------------------
        out_fields                      Optional list or comma separated string of fields. `*`, the
                                        default, returns every field.
        ---------------------------     --------------------------------------------------------------------
        return_geometry                 Optional boolean. True means a geometry will be returned,
                                        else just the attributes
        ---------------------------     --------------------------------------------------------------------
        geometry                        Optional :class:`~arcrest.geometry.Geometry` to filter the
                                        features with. ``geometry_type`` is derived from it when not given.
        ---------------------------     --------------------------------------------------------------------
        spatial_rel                     Optional string. The spatial relationship applied with ``geometry``.
                                        The default is `esriSpatialRelIntersects`.
        ---------------------------     --------------------------------------------------------------------
        in_sr                           Optional. The spatial reference of ``geometry``.
        ---------------------------     --------------------------------------------------------------------
        out_sr                          Optional. The spatial reference of the returned geometry.
        ---------------------------     --------------------------------------------------------------------
        object_ids                      Optional string or list. The object IDs of this layer or table to be queried.
        ---------------------------     --------------------------------------------------------------------
        order_by_fields                 Optional string. One or more field names on which the features/records
                                        need to be ordered, for example `STATE_NAME ASC`.
        ---------------------------     --------------------------------------------------------------------
        result_offset                   Optional integer. Fetch query results starting from this offset.
        ---------------------------     --------------------------------------------------------------------
        result_record_count             Optional integer. The page size of the query.
        ---------------------------     --------------------------------------------------------------------
        return_count_only               Optional boolean. If True, only the count of the matching features
                                        is returned, as an integer.
        ---------------------------     --------------------------------------------------------------------
        return_ids_only                 Optional boolean. If True, only the object ids are returned as a
                                        dictionary with `objectIdFieldName` and `objectIds`.
        ---------------------------     --------------------------------------------------------------------
        gdb_version                     Optional string. The geodatabase version to query.
        ---------------------------     --------------------------------------------------------------------
        return_all_records              Optional boolean. When True, pages through the results with
                                        `resultOffset` as long as the service reports
                                        `exceededTransferLimit`.
        ---------------------------     --------------------------------------------------------------------
        kwargs                          Optional. Any other `query` parameter, in its REST name, for
                                        example `historicMoment` or `sessionId`.
        ===========================     ====================================================================

        :return:
            A :class:`~arcrest.features.FeatureSet`, an integer for ``return_count_only``
            or a dictionary for ``return_ids_only``.
        """
        if isinstance(out_fields, (list, tuple)):
            out_fields = ",".join(out_fields)
        params = {
            "where": where,
            "outFields": out_fields,
            "returnGeometry": return_geometry,
            "objectIds": _csv(object_ids),
            "orderByFields": order_by_fields,
            "resultOffset": result_offset,
            "resultRecordCount": result_record_count,
            "returnCountOnly": return_count_only,
            "returnIdsOnly": return_ids_only,
            "returnDistinctValues": return_distinct_values or None,
            "gdbVersion": gdb_version,
            "inSR": in_sr,
            "outSR": out_sr,
        }
        if geometry is not None:
            if not isinstance(geometry, Geometry):
                geometry = Geometry(geometry)
            params["geometry"] = dict(geometry)
            params["geometryType"] = geometry_type or geometry.geometry_type
            params["spatialRel"] = spatial_rel or "esriSpatialRelIntersects"
            if in_sr is None and geometry.spatial_reference:
                params["inSR"] = dict(geometry.spatial_reference)
        for key, value in kwargs.items():
            params[key] = value

        result = self._query("query", params)
        if (
            not return_all_records
            or return_count_only
            or return_ids_only
            or not isinstance(result, FeatureSet)
        ):
            return result

        offset = result_offset or 0
        page = len(result)
        while result.exceeded_transfer_limit and page > 0:
            offset += page
            params["resultOffset"] = offset
            _log.debug("Fetching the next page of %s at offset %s", self._url, offset)
            records = self._query("query", params)
            result.extend(records)
            page = len(records)
        return result

    # ----------------------------------------------------------------------
    def query_related_records(
        self,
        object_ids: Union[str, list],
        relationship_id: Union[str, int],
        out_fields: Union[str, list[str]] = "*",
        definition_expression: Optional[str] = None,
        return_geometry: bool = True,
        out_sr: Optional[Union[int, dict]] = None,
        gdb_version: Optional[str] = None,
        return_count_only: bool = False,
    ) -> dict:
        """
        Follows relationship `relationship_id` from the rows in `object_ids`
        and returns the related records grouped by source object id.

        ======================     ====================================================================
        **Parameter**               **Description**
        ----------------------     --------------------------------------------------------------------
        object_ids                 Required string or list. Source object ids.
        ----------------------     --------------------------------------------------------------------
        relationship_id            Required string. Id of the relationship to follow.
        ----------------------     --------------------------------------------------------------------
        out_fields                 Optional string. Fields of the related records.
        ----------------------     --------------------------------------------------------------------
        definition_expression      Optional string. Filter on the related records.
        ----------------------     --------------------------------------------------------------------
        return_count_only          Optional boolean. Return only the related record counts.
        ======================     ====================================================================

        :return: Dictionary of the query results, with the `relatedRecordGroups`
        """
        if isinstance(out_fields, (list, tuple)):
            out_fields = ",".join(out_fields)
        params = {
            "objectIds": _csv(object_ids),
            "relationshipId": relationship_id,
            "outFields": out_fields,
            "definitionExpression": definition_expression,
            "returnGeometry": return_geometry,
            "outSR": out_sr,
            "gdbVersion": gdb_version,
            "returnCountOnly": return_count_only,
        }
        return self._con.post("%s/queryRelatedRecords" % self._url, params)

    # ----------------------------------------------------------------------
    def query_top_features(
        self,
        top_filter: dict,
        where: Optional[str] = None,
        object_ids: Optional[Union[str, list]] = None,
        out_fields: Union[str, list[str]] = "*",
        return_geometry: bool = True,
        out_sr: Optional[Union[int, dict]] = None,
        return_count_only: bool = False,
        return_ids_only: bool = False,
    ) -> Union[int, dict, FeatureSet]:
        """
        Returns the top features of each group of a
        :class:`~arcrest.features.FeatureLayer`.

        ======================     ====================================================================
        **Parameter**               **Description**
        ----------------------     --------------------------------------------------------------------
        top_filter                 Required Dict. The `groupByFields`, `topCount` and `orderByFields`
                                   of the query, for example
                                   `{"groupByFields": "State", "topCount": 3, "orderByFields": "Pop DESC"}`
        ----------------------     --------------------------------------------------------------------
        where                      Optional String. A where clause for the query filter.
        ----------------------     --------------------------------------------------------------------
        object_ids                 Optional list or string. The object IDs to query.
        ======================     ====================================================================

        :return:
            A :class:`~arcrest.features.FeatureSet`, a count or the object ids.
        """
        if not isinstance(top_filter, dict) or "topCount" not in top_filter:
            raise ValueError("top_filter must be a dictionary with a topCount")
        if isinstance(out_fields, (list, tuple)):
            out_fields = ",".join(out_fields)
        params = {
            "topFilter": top_filter,
            "where": where,
            "objectIds": _csv(object_ids),
            "outFields": out_fields,
            "returnGeometry": return_geometry,
            "outSR": out_sr,
            "returnCountOnly": return_count_only,
            "returnIdsOnly": return_ids_only,
        }
        return self._query("queryTopFeatures", params)

    # ----------------------------------------------------------------------
    def get_unique_values(self, attribute: str, query_string: str = "1=1") -> list:
        """
        Returns the distinct values of `attribute`.

        ===============================     ====================================================================
        **Parameter**                        **Description**
        -------------------------------     --------------------------------------------------------------------
        attribute                           Required string. The field name.
        -------------------------------     --------------------------------------------------------------------
        query_string                        Optional string. Where clause limiting the rows looked at,
                                            for example "NAME like '%K%'".
        ===============================     ====================================================================

        :return:
            A list of unique values
        """
        result = self.query(
            query_string,
            return_geometry=False,
            out_fields=attribute,
            return_distinct_values=True,
        )
        return [feature.attributes[attribute] for feature in result.features]

    # ----------------------------------------------------------------------
    def edit_features(
        self,
        adds: Optional[Union[FeatureSet, list]] = None,
        updates: Optional[Union[FeatureSet, list]] = None,
        deletes: Optional[Union[FeatureSet, list, str]] = None,
        gdb_version: Optional[str] = None,
        use_global_ids: bool = False,
        rollback_on_failure: bool = True,
        return_edit_moment: bool = False,
        session_id: Optional[str] = None,
    ) -> Optional[dict]:
        """
        Sends adds, updates and deletes to the layer in one `applyEdits` request.

        =====================   ======================================================================================
        **Inputs**              **Description**
        ---------------------   --------------------------------------------------------------------------------------
        adds                    Optional :class:`~arcrest.features.FeatureSet` or list of new features.
        ---------------------   --------------------------------------------------------------------------------------
        updates                 Optional :class:`~arcrest.features.FeatureSet` or list of changed features.
        ---------------------   --------------------------------------------------------------------------------------
        deletes                 Optional :class:`~arcrest.features.FeatureSet`, list or string of object ids.
        ---------------------   --------------------------------------------------------------------------------------
        gdb_version             Optional string. The version that receives the edits.
        ---------------------   --------------------------------------------------------------------------------------
        use_global_ids          Optional boolean. Match rows by global id instead of object id.
        ---------------------   --------------------------------------------------------------------------------------
        rollback_on_failure     Optional boolean. Apply nothing unless every edit succeeds.
        ---------------------   --------------------------------------------------------------------------------------
        return_edit_moment      Optional boolean. Specifies whether the response will report the time edits
                                were applied, in its `editMoment` key.
        ---------------------   --------------------------------------------------------------------------------------
        session_id              Optional String. The edit session of a branch version the edits are made in.
        =====================   ======================================================================================

        :return:
            A dictionary with the `addResults`, `updateResults` and `deleteResults`,
            or None when nothing was given to edit.
        """
        params = {
            "useGlobalIds": use_global_ids,
            "rollbackOnFailure": rollback_on_failure,
            "gdbVersion": gdb_version,
            "adds": _features_payload(adds),
            "updates": _features_payload(updates),
            "returnEditMoment": return_edit_moment or None,
        }
        if isinstance(deletes, FeatureSet):
            field_name = deletes.object_id_field_name
            if field_name is None:
                raise ValueError(
                    "deletes FeatureSet must have object_id_field_name parameter set"
                )
            params["deletes"] = _csv(
                [feat.get_value(field_name) for feat in deletes.features]
            )
        else:
            params["deletes"] = _csv(deletes) or None
        if session_id and isinstance(session_id, str):
            params["sessionID"] = session_id
        if all(params[key] is None for key in ("adds", "updates", "deletes")):
            _log.warning("Parameters not valid for edit_features, nothing to edit")
            return None
        return self._con.post("%s/applyEdits" % self._url, params)

    # ----------------------------------------------------------------------
    def delete_features(
        self,
        where: Optional[str] = None,
        object_ids: Optional[Union[str, list]] = None,
        geometry: Optional[Union[Geometry, dict]] = None,
        gdb_version: Optional[str] = None,
        rollback_on_failure: bool = True,
        return_delete_results: bool = True,
        session_id: Optional[str] = None,
    ) -> dict:
        """
        Deletes features by object ids, a where clause or a geometry.

        =========================   ===============================================================
        **Parameter**                **Description**
        -------------------------   ---------------------------------------------------------------
        where                       Optional string. A where clause for the query filter.
        -------------------------   ---------------------------------------------------------------
        object_ids                  Optional string or list. The object IDs to delete.
        -------------------------   ---------------------------------------------------------------
        geometry                    Optional :class:`~arcrest.geometry.Geometry`. Features
                                    intersecting it are deleted.
        -------------------------   ---------------------------------------------------------------
        gdb_version                 Optional string. The geodatabase version to apply the edits.
        -------------------------   ---------------------------------------------------------------
        session_id                  Optional String. The edit session of a branch version.
        =========================   ===============================================================

        :return: A dictionary with the `deleteResults`
        """
        if object_ids is None and where is None and geometry is None:
            raise ValueError("object_ids, where or geometry is required")
        params = {
            "objectIds": _csv(object_ids),
            "where": where,
            "gdbVersion": gdb_version,
            "rollbackOnFailure": rollback_on_failure,
            "returnDeleteResults": return_delete_results,
            "sessionID": session_id,
        }
        if geometry is not None:
            geometry = Geometry(geometry)
            params["geometry"] = dict(geometry)
            params["geometryType"] = geometry.geometry_type
            params["spatialRel"] = "esriSpatialRelIntersects"
        return self._con.post("%s/deleteFeatures" % self._url, params)

    # ----------------------------------------------------------------------
    def calculate(
        self,
        where: str,
        calc_expression: Union[dict, list[dict]],
        sql_format: str = "standard",
        version: Optional[str] = None,
        session_id: Optional[str] = None,
        return_edit_moment: Optional[bool] = None,
    ) -> dict:
        """
        Updates the values of one or more fields in an existing feature
        service layer based on SQL expressions or scalar values.

        =====================   ====================================================
        **Inputs**              **Description**
        ---------------------   ----------------------------------------------------
        where                   Required String. The rows to update.
        ---------------------   ----------------------------------------------------
        calc_expression         Required List or dict. The field name and the value
                                or sql expression to set, for example
                                `{"field" : "Quality", "value" : 3}` or
                                `{"field" : "A", "sqlExpression": "B*3"}`
        ---------------------   ----------------------------------------------------
        sql_format              Optional String. `standard` or `native`.
        ---------------------   ----------------------------------------------------
        version                 Optional String. The version to calculate in.
        ---------------------   ----------------------------------------------------
        session_id              Optional String. The edit session of a branch version.
        =====================   ====================================================

        :return: Dictionary with the `updatedFeatureCount`
        """
        if isinstance(calc_expression, dict):
            calc_expression = [calc_expression]
        if sql_format.lower() not in ("standard", "native"):
            raise ValueError("sql_format must be 'standard' or 'native'")
        params = {
            "where": where,
            "calcExpression": calc_expression,
            "sqlFormat": sql_format.lower(),
            "gdbVersion": version,
            "sessionID": session_id,
            "returnEditMoment": return_edit_moment,
        }
        return self._con.post("%s/calculate" % self._url, params)

    # ----------------------------------------------------------------------
    def truncate(self, attachment_only: bool = False, asynchronous: bool = False) -> dict:
        """
        Deletes every feature, or only every attachment, of a hosted layer
        through its administrative endpoint.  Layers that are the origin of
        a relationship or have sync enabled cannot be truncated.

        ===============     ====================================================================
        **Parameter**        **Description**
        ---------------     --------------------------------------------------------------------
        attachment_only     Optional boolean. Deletes the attachments and keeps the features.
        ---------------     --------------------------------------------------------------------
        asynchronous        Optional boolean. Runs as a server job; the call waits for it.
        ===============     ====================================================================

        :return: Dictionary indicating `success` or `error`
        """
        params = {"attachmentOnly": attachment_only, "async": asynchronous}
        url = "%s/truncate" % admin_url(self._url)
        res = self._con.post(url, params)
        if asynchronous and "statusURL" in res:
            status_url = res["statusURL"]
            res = self._con.get(status_url, {"f": "json"})
            while res.get("status") not in ("Completed", "CompletedWithErrors", "Failed"):
                time.sleep(env.status_poll_interval)
                res = self._con.get(status_url, {"f": "json"})
            res = dict(res)
            res.setdefault("success", res.get("status") != "Failed")
        if res.get("success", False):
            _log.info("Truncated %s (attachments only: %s)", self._url, attachment_only)
        else:
            _log.warning("Unable to truncate %s: %s", self._url, res)
        return res

    # ----------------------------------------------------------------------
    def query_domains(self) -> list[dict]:
        """
        Returns the domains referenced by this layer, as reported by
        :meth:`FeatureLayerCollection.query_domains`.
        """
        return self.container.query_domains([self.layer_id])


###########################################################################
class Table(FeatureLayer):
    """
    A layer without geometry.  Queries never ask for geometry.
    """

    # ----------------------------------------------------------------------
    def query(self, where: str = "1=1", out_fields: Union[str, list[str]] = "*", **kwargs):
        """
        Queries the table, never requesting geometry. See
        :meth:`FeatureLayer.query` for the parameters.
        """
        kwargs["return_geometry"] = False
        return super(Table, self).query(where=where, out_fields=out_fields, **kwargs)


###########################################################################
class FeatureLayerCollection(_GISResource):
    """
    A feature service (`.../FeatureServer`).  Its ``layers`` and ``tables``
    are built from the service properties; branch versioned services also
    expose ``versions``.
    """

    _vermgr = None
    _layers = None
    _tables = None

    def __init__(self, url, gis=None):
        super(FeatureLayerCollection, self).__init__(url, gis)

    # ----------------------------------------------------------------------
    def _populate_layers(self):
        """builds the layer and table objects listed by the service"""
        layers = []
        tables = []

        for lyr in self.properties.get("layers", None) or []:
            layers.append(FeatureLayer(self.url + "/" + str(lyr["id"]), self._gis, self))

        for lyr in self.properties.get("tables", None) or []:
            tables.append(Table(self.url + "/" + str(lyr["id"]), self._gis, self))

        self._layers = layers
        self._tables = tables

    # ----------------------------------------------------------------------
    @property
    def layers(self) -> list[FeatureLayer]:
        """The :class:`~arcrest.features.FeatureLayer` objects of the service"""
        if self._layers is None:
            self._populate_layers()
        return self._layers

    # ----------------------------------------------------------------------
    @property
    def tables(self) -> list[Table]:
        """The :class:`~arcrest.features.Table` objects of the service"""
        if self._tables is None:
            self._populate_layers()
        return self._tables

    # ----------------------------------------------------------------------
    @property
    def relationships(self) -> list[dict]:
        """
        Gets relationship information for the layers and tables in the
        :class:`~arcrest.features.FeatureLayerCollection` object.

        :return: List of Dictionaries
        """
        if self.properties.get("supportsRelationshipsResource", False):
            res = self._con.get("%s/relationships" % self._url)
            return res.get("relationships", res)
        return []

    # ----------------------------------------------------------------------
    @property
    def versions(self):
        """
        The :class:`~arcrest.features.VersionManager` of the service, or
        None when the service has no versioned data.
        """
        if self.properties.get("hasVersionedData", False) == True:
            if self._vermgr is None:
                from ._version import VersionManager

                url = os.path.dirname(self.url) + "/VersionManagementServer"
                self._vermgr = VersionManager(url=url, gis=self._gis, flc=self)
            return self._vermgr
        return None

    # ----------------------------------------------------------------------
    def query_domains(self, layers: Union[tuple, list[int]]) -> list[dict]:
        """
        Returns the domains used by the given layers.

        ================================     ====================================================================
        **Parameter**                         **Description**
        --------------------------------     --------------------------------------------------------------------
        layers                               Required List of layer ids, for example `[0, 2]`.
        ================================     ====================================================================

        :return:
            List of dictionaries

        """
        if not isinstance(layers, (tuple, list)):
            raise ValueError("The layer variable must be a list.")
        if not self.properties.get("supportsQueryDomains", False):
            return []
        res = self._con.post("%s/queryDomains" % self._url, {"layers": list(layers)})
        if "domains" in res:
            return res["domains"]
        return res
