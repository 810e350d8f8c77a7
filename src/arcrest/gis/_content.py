from __future__ import annotations
import os
import logging
import datetime
from typing import Any, Iterator, Optional, Union

from arcrest._impl.common._mixins import PropertyMap
from arcrest._impl.common._utils import admin_url
from arcrest.auth._error import EsriHttpResponseError

_log = logging.getLogger(__name__)

_CONTENT_STATUS = ["deprecated", "org_authoritative", "public_authoritative"]


def date_range_search_string(
    from_datetime: Optional[datetime.datetime] = None,
    to_datetime: Optional[datetime.datetime] = None,
) -> str:
    """
    Returns a search string for filtering data within a specified date range.

    Args:
        from_datetime (Optional[datetime.datetime]): The starting date and time of the range.
            If not provided, the range will start from the epoch (0).
        to_datetime (Optional[datetime.datetime]): The ending date and time of the range.
            If not provided, the range will end at the current date and time.

    Returns:
        str: The search string in the format "[from_datetime TO to_datetime]" in epoch milliseconds.
    """
    start = int(from_datetime.timestamp() * 1000) if from_datetime else 0
    end = int((to_datetime or datetime.datetime.now()).timestamp() * 1000)
    return f"[{start} TO {end}]"


###########################################################################
class Item(object):
    """
    A portal item.  The item description is available both as attributes
    (`item.title`) and as a dictionary (`item["title"]`).
    """

    _gis = None
    _data = None

    # ----------------------------------------------------------------------
    def __init__(self, gis, itemid: str, itemdict: Optional[dict] = None):
        self._gis = gis
        self._con = gis._con
        self.itemid = itemid
        if itemdict is None:
            itemdict = self._con.get("content/items/%s" % itemid)
        self._data = PropertyMap(itemdict)

    # ----------------------------------------------------------------------
    def __getattr__(self, name: str):
        if name.startswith("_"):
            raise AttributeError(name)
        return getattr(self._data, name)

    # ----------------------------------------------------------------------
    def __getitem__(self, key: str):
        return self._data[key]

    # ----------------------------------------------------------------------
    def __str__(self):
        return '<Item title:"{}" type:{} owner:{}>'.format(
            self._data.get("title"), self._data.get("type"), self._data.get("owner")
        )

    # ----------------------------------------------------------------------
    def __repr__(self):
        return self.__str__()

    # ----------------------------------------------------------------------
    @property
    def id(self) -> str:
        return self.itemid

    # ----------------------------------------------------------------------
    @property
    def _owner_url(self) -> str:
        return "content/users/%s/items/%s" % (self._data.get("owner"), self.itemid)

    # ----------------------------------------------------------------------
    def _reload(self):
        self._data = PropertyMap(self._con.get("content/items/%s" % self.itemid))

    # ----------------------------------------------------------------------
    def update(
        self, item_properties: Optional[dict] = None, data: Optional[str] = None
    ) -> bool:
        """
        Updates the item's description and optionally its data file.

        ===============     ====================================================================
        **Parameter**        **Description**
        ---------------     --------------------------------------------------------------------
        item_properties     Optional Dict. Keys such as `title`, `tags`, `snippet`,
                            `description`, `text`, `url`. Lists are sent comma separated.
        ---------------     --------------------------------------------------------------------
        data                Optional String. Path to a file that replaces the item's data.
        ===============     ====================================================================

        :return: Boolean. True if successful else False.
        """
        params = _item_params(item_properties or {})
        url = "%s/update" % self._owner_url
        if data:
            res = self._con.post(url, params, files={"file": data})
        else:
            res = self._con.post(url, params)
        if res.get("success", False):
            self._reload()
        return res.get("success", False)

    # ----------------------------------------------------------------------
    def delete(self) -> bool:
        """
        Deletes the item.

        :return: Boolean. True if successful else False.
        """
        res = self._con.post("%s/delete" % self._owner_url)
        return res.get("success", False)

    # ----------------------------------------------------------------------
    def get_data(self, try_json: bool = True) -> Union[dict, str]:
        """
        Returns the item's data: a dictionary for JSON content (web maps,
        apps), the text otherwise.
        """
        return self._con.get(
            "content/items/%s/data" % self.itemid,
            try_json=try_json,
            add_format=False,
        )

    # ----------------------------------------------------------------------
    def download(self, save_path: str, file_name: Optional[str] = None) -> str:
        """Downloads the item's data file and returns the path written."""
        return self._con.download(
            "content/items/%s/data" % self.itemid,
            save_path=save_path,
            file_name=file_name or self._data.get("name"),
        )

    # ----------------------------------------------------------------------
    def share(
        self,
        everyone: bool = False,
        org: bool = False,
        groups: Optional[list] = None,
    ) -> dict:
        """
        Shares the item with everyone, the organization and/or groups.

        :return: Dictionary with the `notSharedWith` group ids
        """
        params = {
            "everyone": everyone,
            "org": org,
            "groups": _group_ids(groups),
            "items": self.itemid,
        }
        return self._con.post("%s/share" % self._owner_url, params)

    # ----------------------------------------------------------------------
    def unshare(self, groups: list) -> dict:
        """Stops sharing the item with the given groups."""
        params = {"groups": _group_ids(groups), "items": self.itemid}
        return self._con.post("%s/unshare" % self._owner_url, params)


###########################################################################
class ContentManager(object):
    """Searches, creates and publishes portal items."""

    # ----------------------------------------------------------------------
    def __init__(self, gis):
        self._gis = gis
        self._con = gis._con

    # ----------------------------------------------------------------------
    def __str__(self):
        return "<ContentManager for {}>".format(self._gis.url)

    # ----------------------------------------------------------------------
    def __repr__(self):
        return self.__str__()

    # ----------------------------------------------------------------------
    def get(self, itemid: str) -> Optional[Item]:
        """Returns the item or None when it does not exist or is not visible."""
        try:
            res = self._con.get("content/items/%s" % itemid)
        except EsriHttpResponseError as e:
            if "does not exist or is inaccessible" in e.message:
                return None
            raise
        return Item(self._gis, itemid, res)

    # ----------------------------------------------------------------------
    def _search_pages(
        self,
        query: str,
        max_items: int,
        sort_field: Optional[str] = None,
        sort_order: Optional[str] = None,
        path: str = "search",
    ) -> Iterator[dict]:
        start = 1
        fetched = 0
        while max_items < 0 or fetched < max_items:
            num = 100 if max_items < 0 else min(100, max_items - fetched)
            params = {
                "q": query,
                "start": start,
                "num": num,
                "sortField": sort_field,
                "sortOrder": sort_order,
            }
            res = self._con.get(path, params)
            results = res.get("results", [])
            for r in results:
                yield r
                fetched += 1
                if max_items >= 0 and fetched >= max_items:
                    return
            start = res.get("nextStart", -1)
            if start is None or start < 0 or not results:
                return

    # ----------------------------------------------------------------------
    def search(
        self,
        query: str,
        item_type: Optional[str] = None,
        max_items: int = 100,
        sort_field: Optional[str] = None,
        sort_order: Optional[str] = None,
    ) -> list[Item]:
        """
        Searches for portal items.

        ===============     ====================================================================
        **Parameter**        **Description**
        ---------------     --------------------------------------------------------------------
        query               Required String. The portal search query,
                            e.g. `owner:jdoe AND tags:parcels`.
        ---------------     --------------------------------------------------------------------
        item_type           Optional String. Restricts the search to an item type.
        ---------------     --------------------------------------------------------------------
        max_items           Optional Integer. The maximum number of items returned. -1 returns
                            everything. The default is 100.
        ---------------     --------------------------------------------------------------------
        sort_field          Optional String. Field to sort by, e.g. `title` or `modified`.
        ---------------     --------------------------------------------------------------------
        sort_order          Optional String. `asc` or `desc`.
        ===============     ====================================================================

        :return: List of :class:`Item`
        """
        if item_type:
            query = '%s AND type:"%s"' % (query, item_type)
        return [
            Item(self._gis, r["id"], r)
            for r in self._search_pages(query, max_items, sort_field, sort_order)
        ]

    # ----------------------------------------------------------------------
    def advanced_search(self, query: str, max_items: int = 100) -> dict:
        """
        Runs a search and returns the raw result dictionaries along with the
        total reported by the portal.

        :return: Dictionary with `total` and `results`
        """
        res = self._con.get("search", {"q": query, "num": 1, "start": 1})
        results = list(self._search_pages(query, max_items))
        return {"total": res.get("total", len(results)), "results": results}

    # ----------------------------------------------------------------------
    def items_search(
        self,
        append_search_string: Optional[str] = None,
        owner: Optional[str] = None,
        group: Optional[str] = None,
        tag: Optional[str] = None,
        content_status: Optional[str] = None,
        created_from: Optional[datetime.datetime] = None,
        created_to: Optional[datetime.datetime] = None,
        modified_from: Optional[datetime.datetime] = None,
        modified_to: Optional[datetime.datetime] = None,
        max_items: int = 10000,
    ) -> dict:
        """
        Builds an organization scoped search string from the criteria and
        runs it with :meth:`advanced_search`.

        Args:
            append_search_string (str, optional): Extra query ANDed to the generated one.
            owner (str, optional): Username of the item owner.
            group (str, optional): Group id the items are shared with.
            tag (str, optional): Tag to filter by.
            content_status (str, optional): One of "deprecated", "org_authoritative",
                "public_authoritative".
            created_from, created_to (datetime, optional): Item creation range.
            modified_from, modified_to (datetime, optional): Item modification range.

        Returns:
            dict: `total` and `results`.
        """
        search_string = f'(orgid:"{self._gis.properties["id"]}")'
        if content_status:
            if content_status not in _CONTENT_STATUS:
                raise ValueError(
                    f"Invalid content status. Must be one of {_CONTENT_STATUS}"
                )
            search_string += f" AND contentStatus:{content_status}"
        if owner:
            search_string += f" AND owner:{owner}"
        if group:
            search_string += f" AND group:{group}"
        if tag:
            search_string += f" AND tags:{tag}"
        if created_from or created_to:
            search_string += (
                f" AND created: {date_range_search_string(created_from, created_to)}"
            )
        if modified_from or modified_to:
            search_string += (
                f" AND modified: {date_range_search_string(modified_from, modified_to)}"
            )
        if append_search_string:
            search_string += f" AND ({append_search_string})"
        _log.debug("items_search query: %s", search_string)
        return self.advanced_search(query=search_string, max_items=max_items)

    # ----------------------------------------------------------------------
    def _user_url(self, owner: Optional[str], folder: Optional[str]) -> str:
        if owner is None:
            me = self._gis.me
            if me is None:
                raise ValueError("An owner is required for anonymous connections.")
            owner = me.username
        if folder:
            return "content/users/%s/%s" % (owner, folder)
        return "content/users/%s" % owner

    # ----------------------------------------------------------------------
    def add(
        self,
        item_properties: dict,
        data: Optional[str] = None,
        owner: Optional[str] = None,
        folder: Optional[str] = None,
    ) -> Item:
        """
        Adds an item.

        ===============     ====================================================================
        **Parameter**        **Description**
        ---------------     --------------------------------------------------------------------
        item_properties     Required Dict. Must contain `type` and `title`; may contain
                            `tags`, `snippet`, `description`, `url`, `text`, `typeKeywords`,
                            `extent`, `spatialReference`, `access`.
        ---------------     --------------------------------------------------------------------
        data                Optional String. Path to a file to upload as the item's data.
        ---------------     --------------------------------------------------------------------
        owner               Optional String. Defaults to the logged in user.
        ---------------     --------------------------------------------------------------------
        folder              Optional String. The folder id to add the item to.
        ===============     ====================================================================

        :return: :class:`Item`
        """
        if "type" not in item_properties or "title" not in item_properties:
            raise ValueError("item_properties must contain a type and a title.")
        params = _item_params(item_properties)
        url = "%s/addItem" % self._user_url(owner, folder)
        if data:
            params.setdefault("filename", os.path.basename(data))
            res = self._con.post(url, params, files={"file": data})
        else:
            res = self._con.post(url, params)
        if not res.get("success", False):
            raise RuntimeError("Unable to add item: %s" % res)
        _log.info("Added item %s", res["id"])
        return Item(self._gis, res["id"])

    # ----------------------------------------------------------------------
    def analyze(self, item: Union[Item, str], file_type: str) -> dict:
        """
        Analyzes a hosted file (csv, shapefile, excel, geojson, ...) and
        returns the publish parameters the portal proposes.
        """
        itemid = item.itemid if isinstance(item, Item) else item
        params = {"itemid": itemid, "filetype": file_type}
        return self._con.post("content/features/analyze", params)

    # ----------------------------------------------------------------------
    def publish(
        self,
        item: Union[Item, str],
        publish_parameters: Optional[dict] = None,
        file_type: Optional[str] = None,
        output_type: Optional[str] = None,
        owner: Optional[str] = None,
        overwrite: bool = False,
    ) -> list[dict]:
        """
        Publishes a hosted file as a service.  When `publish_parameters` is
        not given the ones proposed by :meth:`analyze` are used.  With
        `overwrite` the service named in the parameters is replaced in place.

        :return: List of the `services` entries returned by the portal
        """
        if isinstance(item, str):
            item = Item(self._gis, item)
        if file_type is None:
            file_type = _FILE_TYPES.get(str(item.type), str(item.type).lower())
        if publish_parameters is None:
            publish_parameters = self.analyze(item, file_type).get(
                "publishParameters", {}
            )
        params = {
            "itemid": item.itemid,
            "filetype": file_type,
            "publishParameters": publish_parameters,
            "outputType": output_type,
        }
        if overwrite:
            params["overwrite"] = True
        url = "%s/publish" % self._user_url(owner or item.owner, None)
        res = self._con.post(url, params)
        services = res.get("services", [])
        for service in services:
            if "error" in service:
                _log.warning("Publishing %s failed: %s", item.itemid, service["error"])
        return services

    # ----------------------------------------------------------------------
    def _as_item(self, item: Union[Item, str]) -> Item:
        if isinstance(item, Item):
            return item
        return Item(self._gis, item)

    # ----------------------------------------------------------------------
    def create_service(
        self,
        name: str,
        service_description: str = "",
        has_static_data: bool = False,
        max_record_count: int = 1000,
        supported_query_formats: str = "JSON",
        capabilities: str = "Query",
        spatial_reference: Optional[dict] = None,
        initial_extent: Optional[dict] = None,
        layers: Optional[list[dict]] = None,
        service_type: str = "featureService",
        owner: Optional[str] = None,
        folder: Optional[str] = None,
    ) -> Item:
        """
        Creates an empty hosted service and its item.

        =======================     ===============================================================
        **Parameter**                **Description**
        -----------------------     ---------------------------------------------------------------
        name                        Required String. The service name, unique in the organization.
        -----------------------     ---------------------------------------------------------------
        service_description         Optional String. The description of the service.
        -----------------------     ---------------------------------------------------------------
        has_static_data             Optional Boolean. The data does not change.
        -----------------------     ---------------------------------------------------------------
        max_record_count            Optional Int. The page size of queries. The default is 1000.
        -----------------------     ---------------------------------------------------------------
        supported_query_formats     Optional String. The default is `JSON`.
        -----------------------     ---------------------------------------------------------------
        capabilities                Optional String. Comma separated, for example
                                    `Create,Delete,Query,Update,Editing`.
        -----------------------     ---------------------------------------------------------------
        spatial_reference           Optional Dict. For example `{"wkid": 102100}`.
        -----------------------     ---------------------------------------------------------------
        initial_extent              Optional Dict. The initial extent of the service.
        -----------------------     ---------------------------------------------------------------
        layers                      Optional List. Layer definitions created with the service.
        -----------------------     ---------------------------------------------------------------
        service_type                Optional String. `featureService` or `vectorTileService`.
        -----------------------     ---------------------------------------------------------------
        owner                       Optional String. Defaults to the logged in user.
        -----------------------     ---------------------------------------------------------------
        folder                      Optional String. The folder id to create the item in.
        =======================     ===============================================================

        :return: The service :class:`Item`
        """
        create_params = {
            "name": name,
            "serviceDescription": service_description,
            "hasStaticData": has_static_data,
            "maxRecordCount": max_record_count,
            "supportedQueryFormats": supported_query_formats,
            "capabilities": capabilities,
        }
        if spatial_reference is not None:
            create_params["spatialReference"] = spatial_reference
        if initial_extent is not None:
            create_params["initialExtent"] = initial_extent
        if layers:
            create_params["layers"] = layers
        params = {"createParameters": create_params, "outputType": service_type}
        url = "%s/createService" % self._user_url(owner, folder)
        res = self._con.post(url, params)
        if not res.get("success", False):
            raise RuntimeError("Unable to create service %s: %s" % (name, res))
        itemid = res.get("itemId", None) or res.get("serviceItemId")
        _log.info("Created service %s (%s)", name, res.get("serviceurl"))
        return Item(self._gis, itemid)

    # ----------------------------------------------------------------------
    def update_service_definition(
        self,
        item: Union[Item, str],
        definition: Optional[dict] = None,
        description: Optional[str] = None,
        capabilities: Optional[str] = None,
        max_record_count: Optional[int] = None,
        add: bool = False,
    ) -> dict:
        """
        Changes the definition of a hosted feature service through its
        administrative endpoint.  With `add` the definition holds new
        `layers` or `tables` and goes to `addToDefinition`; otherwise the
        properties are updated with `updateDefinition`.

        :return: Dictionary indicating `success` or `error`
        """
        item = self._as_item(item)
        if not item.url:
            raise ValueError("Item %s has no service url." % item.itemid)
        definition = dict(definition or {})
        if description is not None:
            definition["description"] = description
        if capabilities is not None:
            definition["capabilities"] = capabilities
        if max_record_count is not None:
            definition["maxRecordCount"] = max_record_count
        if not definition:
            raise ValueError("Nothing to change in the service definition.")
        operation = "addToDefinition" if add else "updateDefinition"
        url = "%s/%s" % (admin_url(item.url), operation)
        res = self._con.post(url, {operation: definition})
        if res.get("success", False):
            _log.info("%s on %s", operation, item.url)
        else:
            _log.warning("%s failed on %s: %s", operation, item.url, res)
        return res

    # ----------------------------------------------------------------------
    def delete_service(self, item: Union[Item, str]) -> bool:
        """
        Deletes a hosted service.  Deleting the service item removes the
        service with it.

        :return: Boolean. True if successful else False.
        """
        item = self._as_item(item)
        deleted = item.delete()
        if deleted:
            _log.info("Deleted service %s", item.itemid)
        return deleted

    # ----------------------------------------------------------------------
    def overwrite_service(
        self,
        source: Union[Item, str],
        target: Union[Item, str],
        publish_parameters: Optional[dict] = None,
        file_type: Optional[str] = None,
    ) -> list[dict]:
        """
        Replaces the data of the hosted service `target` with the file item
        `source`.  The service keeps its url and item id.

        :return: List of the `services` entries returned by the portal
        """
        target = self._as_item(target)
        if not target.url:
            raise ValueError("Item %s has no service url." % target.itemid)
        service_name = target.url.rstrip("/").split("/")[-2]
        source = self._as_item(source)
        if file_type is None:
            file_type = _FILE_TYPES.get(str(source.type), str(source.type).lower())
        if publish_parameters is None:
            publish_parameters = self.analyze(source, file_type).get(
                "publishParameters", {}
            )
        publish_parameters = dict(publish_parameters, name=service_name)
        return self.publish(
            source,
            publish_parameters=publish_parameters,
            file_type=file_type,
            owner=target.owner,
            overwrite=True,
        )

    # ----------------------------------------------------------------------
    def get_publish_status(
        self,
        item: Union[Item, str],
        job_id: Optional[str] = None,
        job_type: str = "publish",
        owner: Optional[str] = None,
    ) -> dict:
        """
        Returns the `status` (`processing`, `completed`, `failed`) of an
        item's creation or publishing job.

        :return: Dictionary with `status`, `statusMessage` and `itemId`
        """
        item = self._as_item(item)
        url = "%s/items/%s/status" % (self._user_url(owner or item.owner, None), item.itemid)
        params = {"jobId": job_id, "jobType": job_type}
        return self._con.get(url, params)


###########################################################################
class Group(object):
    """A portal group."""

    # ----------------------------------------------------------------------
    def __init__(self, gis, groupid: str, groupdict: Optional[dict] = None):
        self._gis = gis
        self._con = gis._con
        self.groupid = groupid
        if groupdict is None:
            groupdict = self._con.get("community/groups/%s" % groupid)
        self._data = PropertyMap(groupdict)

    # ----------------------------------------------------------------------
    def __getattr__(self, name: str):
        if name.startswith("_"):
            raise AttributeError(name)
        return getattr(self._data, name)

    # ----------------------------------------------------------------------
    def __str__(self):
        return '<Group title:"{}" owner:{}>'.format(
            self._data.get("title"), self._data.get("owner")
        )

    # ----------------------------------------------------------------------
    def __repr__(self):
        return self.__str__()

    # ----------------------------------------------------------------------
    def _url(self, operation: str) -> str:
        return "community/groups/%s/%s" % (self.groupid, operation)

    # ----------------------------------------------------------------------
    def add_users(self, usernames: list) -> dict:
        """Adds users to the group; returns `notAdded` usernames."""
        return self._con.post(self._url("addUsers"), {"users": ",".join(usernames)})

    # ----------------------------------------------------------------------
    def remove_users(self, usernames: list) -> dict:
        """Removes users from the group; returns `notRemoved` usernames."""
        return self._con.post(
            self._url("removeUsers"), {"users": ",".join(usernames)}
        )

    # ----------------------------------------------------------------------
    def get_members(self) -> dict:
        """Returns the `owner`, `admins` and `users` of the group."""
        return self._con.get(self._url("users"))

    # ----------------------------------------------------------------------
    def join(self) -> bool:
        return self._con.post(self._url("join")).get("success", False)

    # ----------------------------------------------------------------------
    def leave(self) -> bool:
        return self._con.post(self._url("leave")).get("success", False)

    # ----------------------------------------------------------------------
    def update(self, **properties) -> bool:
        """Updates `title`, `tags`, `description`, `snippet`, `access`, ..."""
        res = self._con.post(self._url("update"), _item_params(properties))
        if res.get("success", False):
            self._data = PropertyMap(
                self._con.get("community/groups/%s" % self.groupid)
            )
        return res.get("success", False)

    # ----------------------------------------------------------------------
    def delete(self) -> bool:
        return self._con.post(self._url("delete")).get("success", False)

    # ----------------------------------------------------------------------
    def content(self, max_items: int = 1000) -> list[Item]:
        """The items shared with the group."""
        return self._gis.content.search(
            query="group:%s" % self.groupid, max_items=max_items
        )


###########################################################################
class GroupManager(object):
    """Searches and creates portal groups."""

    # ----------------------------------------------------------------------
    def __init__(self, gis):
        self._gis = gis
        self._con = gis._con

    # ----------------------------------------------------------------------
    def get(self, groupid: str) -> Group:
        return Group(self._gis, groupid)

    # ----------------------------------------------------------------------
    def search(self, query: str = "", max_groups: int = 1000) -> list[Group]:
        """Searches for groups, e.g. `title:Editors AND owner:jdoe`."""
        results = self._gis.content._search_pages(
            query or "*", max_groups, path="community/groups"
        )
        return [Group(self._gis, g["id"], g) for g in results]

    # ----------------------------------------------------------------------
    def create(
        self,
        title: str,
        tags: Union[str, list],
        description: Optional[str] = None,
        snippet: Optional[str] = None,
        access: str = "private",
        is_invitation_only: bool = False,
        is_view_only: bool = False,
        auto_join: bool = False,
    ) -> Group:
        """
        Creates a group.  `access` is one of `private`, `org` or `public`.

        :return: :class:`Group`
        """
        params = _item_params(
            {
                "title": title,
                "tags": tags,
                "description": description,
                "snippet": snippet,
                "access": access,
                "isInvitationOnly": is_invitation_only,
                "isViewOnly": is_view_only,
                "autoJoin": auto_join,
            }
        )
        res = self._con.post("community/createGroup", params)
        if not res.get("success", False):
            raise RuntimeError("Unable to create group: %s" % res)
        group = res["group"]
        return Group(self._gis, group["id"], group)


_FILE_TYPES = {
    "CSV": "csv",
    "Shapefile": "shapefile",
    "Microsoft Excel": "excel",
    "GeoJson": "geojson",
    "File Geodatabase": "fileGeodatabase",
    "Service Definition": "serviceDefinition",
}


def _item_params(properties: dict) -> dict:
    """Lists of tags/keywords/categories are sent comma separated."""
    params = {}
    for key, value in properties.items():
        if value is None:
            continue
        if key in ("tags", "typeKeywords", "categories") and isinstance(
            value, (list, tuple)
        ):
            value = ",".join(value)
        params[key] = value
    return params


def _group_ids(groups: Optional[list]) -> Optional[str]:
    if not groups:
        return None
    return ",".join(g.groupid if isinstance(g, Group) else str(g) for g in groups)
