"""
Helper objects that manage resources hanging off a
:class:`~arcrest.features.FeatureLayer`.
"""
from __future__ import annotations
import logging
import tempfile
from typing import Optional, Union

_log = logging.getLogger(__name__)


def _csv(values) -> Optional[str]:
    if values is None:
        return None
    if isinstance(values, (list, tuple, set)):
        return ",".join([str(v) for v in values])
    return str(values)


###########################################################################
class AttachmentManager(object):
    """
    Lists, uploads, replaces, removes and downloads the files attached to
    the features of a layer.  Layers expose one as ``layer.attachments``;
    build one directly to work inside a branch version.

    ==============     ==========================================================
    **Argument**       **Description**
    --------------     ----------------------------------------------------------
    layer              Required :class:`~arcrest.features.FeatureLayer` with
                       `hasAttachments` enabled.
    --------------     ----------------------------------------------------------
    version            Optional :class:`~arcrest.features.Version` or version
                       name. Sent as `gdbVersion` with every request.
    ==============     ==========================================================

    """

    def __init__(self, layer, version=None):
        self._layer = layer
        if version is None or isinstance(version, str):
            self._version = version
        else:
            self._version = version.properties.versionName

    # ----------------------------------------------------------------------
    @property
    def _con(self):
        return self._layer._con

    # ----------------------------------------------------------------------
    def _feature_url(self, oid) -> str:
        return "%s/%s" % (self._layer.url, oid)

    # ----------------------------------------------------------------------
    def get_list(self, oid: Union[str, int]) -> list[dict]:
        """
        Returns the `attachmentInfos` of the feature with object id `oid`.
        """
        res = self._con.get("%s/attachments" % self._feature_url(oid), {"gdbVersion": self._version})
        return res.get("attachmentInfos", [])

    # ----------------------------------------------------------------------
    def search(
        self,
        where: str = "1=1",
        object_ids: Optional[Union[str, list]] = None,
        attachment_types: Optional[Union[str, list]] = None,
        return_url: bool = False,
    ) -> list[dict]:
        """
        Queries attachments across the layer with `queryAttachments`.

        =========================   ===============================================================
        **Parameter**                **Description**
        -------------------------   ---------------------------------------------------------------
        where                       Optional string.  The definition expression applied to the
                                    layer. Only attachments of the matching features are returned.
        -------------------------   ---------------------------------------------------------------
        object_ids                  Optional list/string. Limit the search to these features.
        -------------------------   ---------------------------------------------------------------
        attachment_types            Optional list/string. The file formats to return, for example
                                    `image/jpeg`.
        -------------------------   ---------------------------------------------------------------
        return_url                  Optional bool. Include the download url of every attachment.
        =========================   ===============================================================

        :return:
            A list of dictionaries, one per attachment, carrying the `PARENTOBJECTID`
            of the feature it belongs to.
        """
        params = {
            "definitionExpression": where,
            "objectIds": _csv(object_ids),
            "attachmentTypes": _csv(attachment_types),
            "returnUrl": return_url,
            "gdbVersion": self._version,
        }
        res = self._con.post("%s/queryAttachments" % self._layer.url, params)
        rows = []
        for group in res.get("attachmentGroups", []):
            for info in group.get("attachmentInfos", []):
                row = dict(info)
                row["PARENTOBJECTID"] = group.get("parentObjectId")
                row["PARENTGLOBALID"] = group.get("parentGlobalId")
                rows.append(row)
        return rows

    # ----------------------------------------------------------------------
    def add(
        self,
        oid: Union[str, int],
        file_path: str,
        keywords: Optional[str] = None,
        return_moment: bool = False,
    ) -> dict:
        """
        Uploads `file_path` and attaches it to feature `oid`.  The service
        takes the name, size and content type of the attachment from the file.

        ===============     ====================================================================
        **Argument**        **Description**
        ---------------     --------------------------------------------------------------------
        oid                 Required. Object id of the feature.
        ---------------     --------------------------------------------------------------------
        file_path           Required string. The file to upload.
        ---------------     --------------------------------------------------------------------
        keywords            Optional string. Stored in the `KEYWORDS` of the attachment.
        ---------------     --------------------------------------------------------------------
        return_moment       Optional bool. Ask for the `editMoment` of the upload.
        ===============     ====================================================================

        :return: the `addAttachmentResult` dictionary
        """
        params = {
            "gdbVersion": self._version,
            "returnEditMoment": return_moment,
            "keywords": keywords,
        }
        return self._con.post_multipart(
            "%s/addAttachment" % self._feature_url(oid),
            params,
            files={"attachment": file_path},
        )

    # ----------------------------------------------------------------------
    def update(
        self,
        oid: Union[str, int],
        attachment_id: Union[str, int],
        file_path: str,
        return_moment: bool = False,
    ) -> dict:
        """
        Replaces the file of attachment `attachment_id` on feature `oid`.
        """
        params = {
            "attachmentId": attachment_id,
            "returnEditMoment": return_moment,
            "gdbVersion": self._version,
        }
        return self._con.post_multipart(
            "%s/updateAttachment" % self._feature_url(oid),
            params,
            files={"attachment": file_path},
        )

    # ----------------------------------------------------------------------
    def delete(
        self,
        oid: Union[str, int],
        attachment_id: Union[str, int, list],
        return_moment: bool = False,
        rollback_on_failure: bool = True,
    ) -> dict:
        """
        Deletes attachments of feature `oid`.  `attachment_id` takes one id
        or a list; with `rollback_on_failure` nothing is deleted unless every
        delete succeeds.

        :return: the `deleteAttachmentResults` dictionary
        """
        params = {
            "attachmentIds": _csv(attachment_id),
            "gdbVersion": self._version,
            "returnEditMoment": return_moment,
            "rollbackOnFailure": rollback_on_failure,
        }
        return self._con.post("%s/deleteAttachments" % self._feature_url(oid), params)

    # ----------------------------------------------------------------------
    def download(
        self,
        oid: Union[str, int],
        attachment_id: Optional[Union[str, int]] = None,
        save_path: Optional[str] = None,
    ) -> list[str]:
        """
        Downloads attachments of a feature and returns their paths on disk.
        When no ``attachment_id`` is given every attachment of the feature is
        downloaded.

        :return: A list of file paths
        """
        if not save_path:
            save_path = tempfile.gettempdir()
        infos = self.get_list(oid)
        if attachment_id is not None:
            wanted = [int(a) for a in str(_csv(attachment_id)).split(",")]
            infos = [info for info in infos if int(info["id"]) in wanted]
            if not infos:
                raise ValueError(
                    "Attachment %s was not found on feature %s" % (attachment_id, oid)
                )
        paths = []
        for info in infos:
            paths.append(
                self._con.download(
                    "%s/attachments/%s" % (self._feature_url(oid), info["id"]),
                    save_path=save_path,
                    file_name=info.get("name"),
                )
            )
        _log.debug("Downloaded %s attachment(s) of feature %s", len(paths), oid)
        return paths
