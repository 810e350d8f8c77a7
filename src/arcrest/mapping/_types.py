from __future__ import annotations
import logging
from typing import Iterator, Optional, Union

from arcrest.gis import _GISResource
from arcrest.geometry import Geometry
from arcrest._impl.common._mixins import PropertyMap

_log = logging.getLogger(__name__)

_GEOMETRY_TYPES = {
    "x": "esriGeometryPoint",
    "points": "esriGeometryMultipoint",
    "paths": "esriGeometryPolyline",
    "rings": "esriGeometryPolygon",
    "xmin": "esriGeometryEnvelope",
}


def _geometry_type(geometry) -> Optional[str]:
    if isinstance(geometry, dict):
        for key, value in _GEOMETRY_TYPES.items():
            if key in geometry:
                return value
    return None


# ----------------------------------------------------------------------
def _layer_ids(layers) -> Optional[str]:
    if layers is None:
        return None
    if isinstance(layers, (list, tuple)):
        return ",".join([str(lyr) for lyr in layers])
    return str(layers)


###########################################################################
class MapImageLayer(_GISResource):
    """
    A map service (`.../MapServer`).  The server draws its sublayers into
    images on request; the layer also answers identify, find, KML and
    legend requests against those sublayers.

    .. note::
        Cached services also serve pre-rendered tiles through :meth:`export_tile`.
    """

    def __init__(self, url, gis=None):
        """
        `url` ends in `MapServer`, for example
        `https://host/server/rest/services/Parcels/MapServer`.
        """
        super(MapImageLayer, self).__init__(url, gis)

    # ----------------------------------------------------------------------
    @property
    def layers(self) -> list[dict]:
        """the sublayer descriptions of the map service"""
        return list(self.properties.get("layers", None) or [])

    # ----------------------------------------------------------------------
    @property
    def tables(self) -> list[dict]:
        return list(self.properties.get("tables", None) or [])

    # ----------------------------------------------------------------------
    @property
    def legend(self) -> dict:
        """
        The legend of every sublayer: labels with their symbol images, which
        the service renders at 20 x 20 pixels.

        :return: Dictionary
        """
        url = "%s/legend" % self._url
        return self._con.get(path=url, params={"f": "json"})

    # ----------------------------------------------------------------------
    def metadata(self) -> PropertyMap:
        """
        Fetches the current service description (layers, extents, tiling
        scheme, capabilities) and refreshes ``properties``.

        :return: :class:`~arcrest._impl.common._mixins.PropertyMap`
        """
        self._refresh()
        return self.properties

    # ----------------------------------------------------------------------
    def identify(
        self,
        geometry: Union[Geometry, dict, list],
        map_extent: Union[str, dict],
        image_display: Optional[str] = None,
        tolerance: int = 5,
        layers: str = "top",
        geometry_type: Optional[str] = None,
        sr: Optional[Union[int, dict]] = None,
        layer_defs: Optional[dict] = None,
        time_value: Optional[Union[list, str]] = None,
        return_geometry: bool = True,
        max_offset: Optional[int] = None,
        precision: Optional[int] = None,
        return_z: bool = False,
        return_m: bool = False,
        gdb_version: Optional[str] = None,
        return_unformatted: bool = False,
        return_field_name: bool = False,
        **kwargs,
    ) -> dict:
        """
        Returns the features of the sublayers found at `geometry`.

        ===================     ====================================================================
        **Parameter**            **Description**
        -------------------     --------------------------------------------------------------------
        geometry                Required :class:`~arcrest.geometry.Geometry` or list. The geometry
                                to identify on. A list is read as the `[x, y]` of a point.
        -------------------     --------------------------------------------------------------------
        map_extent              Required string or dict. The extent or bounding box of the map
                                currently being viewed.
        -------------------     --------------------------------------------------------------------
        image_display           Optional string. The screen image display parameters (width,
                                height, and DPI) of the map being currently viewed.
                                The default is "400,400,96".
        -------------------     --------------------------------------------------------------------
        tolerance               Optional integer. The distance in screen pixels from the specified
                                geometry within which the ``identify`` operation should be performed.
        -------------------     --------------------------------------------------------------------
        layers                  Optional string. The layers to perform the identify operation on,
                                `top`, `visible` or `all`, optionally followed by `:` and the
                                layer ids. The default is `top`.
        -------------------     --------------------------------------------------------------------
        geometry_type           Optional string. The type of geometry specified by the geometry
                                parameter. Inferred from the geometry when omitted.
        -------------------     --------------------------------------------------------------------
        return_geometry         Optional boolean. If true, the result set will include the geometries
                                associated with each result. The default is true.
        ===================     ====================================================================

        :return: Dictionary with the `results` list
        """
        if isinstance(geometry, (list, tuple)):
            geometry = {"x": geometry[0], "y": geometry[1]}
        if geometry_type is None:
            geometry_type = _geometry_type(geometry)
        params = {
            "geometry": geometry,
            "geometryType": geometry_type,
            "sr": sr,
            "layerDefs": layer_defs,
            "time": time_value,
            "layers": layers,
            "tolerance": tolerance,
            "mapExtent": map_extent,
            "imageDisplay": image_display or "400,400,96",
            "returnGeometry": return_geometry,
            "maxAllowableOffset": max_offset,
            "geometryPrecision": precision,
            "returnZ": return_z,
            "returnM": return_m,
            "gdbVersion": gdb_version,
            "returnUnformattedValues": return_unformatted,
            "returnFieldName": return_field_name,
        }
        for k, v in kwargs.items():
            params[k] = v
        url = "%s/identify" % self._url
        return self._con.get(url, params)

    # ----------------------------------------------------------------------
    def find(
        self,
        search_text: str,
        layers: Union[str, list[int]],
        contains: bool = True,
        search_fields: Optional[Union[str, list[str]]] = None,
        sr: Optional[Union[int, dict]] = None,
        layer_defs: Optional[dict] = None,
        return_geometry: bool = True,
        max_offset: Optional[int] = None,
        precision: Optional[int] = None,
        return_z: bool = False,
        return_m: bool = False,
        gdb_version: Optional[str] = None,
        return_unformatted: bool = False,
        return_field_name: bool = False,
        **kwargs,
    ) -> dict:
        """
        Searches the attribute values of the sublayers for `search_text`.

        ===================     ====================================================================
        **Parameter**            **Description**
        -------------------     --------------------------------------------------------------------
        search_text             Required string. The search string. This is the text that is
                                searched across the layers and fields the user specifies.
        -------------------     --------------------------------------------------------------------
        layers                  Required string or list. The layers to perform the find operation on.
        -------------------     --------------------------------------------------------------------
        contains                Optional boolean. If false, the operation searches for an exact
                                match of the search_text string.
        -------------------     --------------------------------------------------------------------
        search_fields           Optional string or list. The names of the fields to search.
        ===================     ====================================================================

        :return: Dictionary with the `results` list
        """
        if isinstance(search_fields, (list, tuple)):
            search_fields = ",".join(search_fields)
        params = {
            "searchText": search_text,
            "contains": contains,
            "searchFields": search_fields,
            "sr": sr,
            "layerDefs": layer_defs,
            "returnGeometry": return_geometry,
            "maxAllowableOffset": max_offset,
            "geometryPrecision": precision,
            "returnZ": return_z,
            "returnM": return_m,
            "gdbVersion": gdb_version,
            "layers": _layer_ids(layers),
            "returnUnformattedValues": return_unformatted,
            "returnFieldName": return_field_name,
        }
        for k, v in kwargs.items():
            params[k] = v
        url = "{url}/find".format(url=self._url)
        return self._con.get(url, params)

    # ----------------------------------------------------------------------
    def generate_kml(
        self,
        save_location: str,
        name: str,
        layers: Union[str, list[int]],
        options: str = "composite",
    ) -> str:
        """
        Exports sublayers to a `.kmz` file in `save_location` and returns
        the path of the file.

        =================     ====================================================================
        **Parameter**          **Description**
        -----------------     --------------------------------------------------------------------
        save_location         Required string. Save folder.
        -----------------     --------------------------------------------------------------------
        name                  Required string. The name of the resulting KML document.
        -----------------     --------------------------------------------------------------------
        layers                Required string or list. The layer ids to perform the
                              generateKML operation on.
        -----------------     --------------------------------------------------------------------
        options               Optional string. The layer drawing options:
                              composite, separateImage, nonComposite
        =================     ====================================================================

        :return:
            A string to the file path
        """
        if options not in ("composite", "separateImage", "nonComposite"):
            raise ValueError("Invalid layer options: %s" % options)
        url = self._url + "/generateKml"
        params = {
            "f": "kmz",
            "docName": name,
            "layers": _layer_ids(layers),
            "layerOptions": options,
        }
        return self._con.download(
            url, save_path=save_location, file_name="%s.kmz" % name, params=params
        )

    # ----------------------------------------------------------------------
    def generate_renderer(
        self,
        layer_id: int,
        classification_def: dict,
        where: Optional[str] = None,
        gdb_version: Optional[str] = None,
        **kwargs,
    ) -> dict:
        """
        The ``generate_renderer`` operation groups data of a sublayer using
        the supplied classification definition (class breaks or unique
        values) and returns the renderer.

        ====================  ====================================================================
        **Parameter**          **Description**
        --------------------  --------------------------------------------------------------------
        layer_id              Required integer. The sublayer id.
        --------------------  --------------------------------------------------------------------
        classification_def    Required dict. The classification definition, for example a
                              `classBreaksDef` or `uniqueValueDef`.
        --------------------  --------------------------------------------------------------------
        where                 Optional string. A where clause for which the data needs
                              to be classified.
        ====================  ====================================================================

        :return: Dictionary of the renderer
        """
        if not isinstance(classification_def, dict) or "type" not in classification_def:
            raise ValueError("classification_def must be a dictionary with a type")
        params = {
            "classificationDef": classification_def,
            "where": where,
            "gdbVersion": gdb_version,
        }
        for k, v in kwargs.items():
            params[k] = v
        url = "%s/%s/generateRenderer" % (self._url, layer_id)
        return self._con.post(url, params)

    # ----------------------------------------------------------------------
    def export_map(
        self,
        bbox: Union[str, list, dict],
        bbox_sr: Optional[int] = None,
        size: str = "600,550",
        dpi: int = 200,
        image_sr: Optional[Union[int, dict]] = None,
        image_format: str = "png",
        layer_defs: Optional[dict] = None,
        layers: Optional[str] = None,
        transparent: bool = False,
        time_value: Optional[Union[list, str]] = None,
        scale: Optional[float] = None,
        rotation: Optional[int] = None,
        gdb_version: Optional[str] = None,
        f: str = "json",
        save_folder: Optional[str] = None,
        save_file: Optional[str] = None,
        **kwargs,
    ) -> Union[dict, bytes, str]:
        """
        Draws the map for `bbox`.  With `f="json"` the reply describes the
        image (its href, size, extent and scale); `f="image"` returns the
        image bytes, or writes them when `save_folder` and `save_file` are
        given.

        ===================     ====================================================================
        **Parameter**            **Description**
        -------------------     --------------------------------------------------------------------
        bbox                    Required string, list or envelope. The extent (bounding box) of
                                the exported image.
        -------------------     --------------------------------------------------------------------
        bbox_sr                 Optional integer. The spatial reference of the bbox.
        -------------------     --------------------------------------------------------------------
        size                    Optional string. size - size of image in pixels
        -------------------     --------------------------------------------------------------------
        dpi                     Optional integer. dots per inch
        -------------------     --------------------------------------------------------------------
        image_sr                Optional integer. The spatial reference of the output image.
        -------------------     --------------------------------------------------------------------
        image_format            Optional string. The format of the exported image.
                                `png` unless set otherwise. One of png | png8 | png24 | jpg | pdf | bmp | gif
                                | svg | svgz | emf | ps | png32
        -------------------     --------------------------------------------------------------------
        layers                  Optional string. Determines which layers appear on the exported
                                map, for example `show:0,2`.
        -------------------     --------------------------------------------------------------------
        transparent             Optional boolean. If true, the image will be exported with the
                                background color of the map set as its transparent color.
        -------------------     --------------------------------------------------------------------
        f                       Optional string. The response format: `json` returns the
                                image description with its `href`, `image` returns the bytes
                                (or the saved path with ``save_folder`` and ``save_file``)
                                and `kmz` saves a KMZ file.
        ===================     ====================================================================

        :return: Dictionary, bytes or the path of the saved file
        """
        if not bbox:
            raise ValueError("bbox is required")
        if isinstance(bbox, (list, tuple)):
            bbox = ",".join([str(b) for b in bbox])
        params = {
            "bbox": bbox,
            "bboxSR": bbox_sr,
            "dpi": dpi,
            "size": size,
            "imageSR": {"wkid": image_sr} if isinstance(image_sr, int) else image_sr,
            "format": image_format,
            "layerDefs": layer_defs,
            "layers": layers,
            "transparent": transparent,
            "time": time_value,
            "mapScale": scale,
            "rotation": rotation,
            "gdbVersion": gdb_version,
        }
        for k, v in kwargs.items():
            params[k] = v
        url = self._url + "/export"

        if f == "json":
            return self._con.get(url, params)
        elif f == "image":
            params["f"] = "image"
            if save_folder is not None and save_file is not None:
                return self._con.download(
                    url, save_path=save_folder, file_name=save_file, params=params
                )
            return self._con.get_bytes(url, params)
        elif f == "kmz":
            params["f"] = "kmz"
            return self._con.download(
                url, save_path=save_folder or ".", file_name=save_file, params=params
            )
        raise ValueError("Unsupported output format: %s" % f)

    # ----------------------------------------------------------------------
    def export_tile(self, level: int, row: int, column: int) -> bytes:
        """
        The ``export_tile`` method returns the bytes of a single tile of a
        cached map service.

        ============================    ================================================
        **Parameter**                    **Description**
        ----------------------------    ------------------------------------------------
        level                           Required integer. The level of detail.
        ----------------------------    ------------------------------------------------
        row                             Required integer. The row of the tile.
        ----------------------------    ------------------------------------------------
        column                          Required integer. The column of the tile.
        ============================    ================================================

        :return: bytes of the image
        """
        url = "{url}/tile/{level}/{row}/{column}".format(
            url=self._url, level=level, row=row, column=column
        )
        return self._con.get_bytes(url)

    # ----------------------------------------------------------------------
    def query_domains(self, layers: Optional[list[int]] = None) -> list[dict]:
        """
        Returns full domain information for the domains referenced by the
        sublayers of the map service.

        :return: list of dictionaries
        """
        if layers is not None and not isinstance(layers, (list, tuple)):
            raise ValueError("The layers must be a list of layer ids.")
        url = "%s/queryDomains" % self._url
        params = {"layers": list(layers) if layers else None}
        res = self._con.post(url, params)
        return res.get("domains", [])


###########################################################################
class VectorTileLayer(_GISResource):
    """
    A vector tile service (`.../VectorTileServer`) with its style, sprite
    and font resources.  Tiles come back as the raw protocol buffer bytes.
    """

    def __init__(self, url, gis=None):
        super(VectorTileLayer, self).__init__(url, gis)

    # ----------------------------------------------------------------------
    @classmethod
    def fromitem(cls, item) -> VectorTileLayer:
        if not item.type == "Vector Tile Service":
            raise TypeError(
                "Item must be a type of Vector Tile Service, not " + item.type
            )
        return cls(item.url, item._gis)

    # ----------------------------------------------------------------------
    @property
    def styles(self) -> dict:
        """
        The root style document (Mapbox GL style version 8).  Its `sprite`
        and `glyphs` entries are paths relative to the service.
        """
        url = "{url}/resources/styles/root.json".format(url=self._url)
        return self._con.get(path=url, params={}, add_format=False)

    # ----------------------------------------------------------------------
    @property
    def tile_map(self) -> dict:
        """
        The quadtree of tiles that exist on the server.
        """
        url = "{url}/tilemap".format(url=self._url)
        return self._con.get(path=url, params={})

    # ----------------------------------------------------------------------
    @property
    def info(self) -> list:
        """
        Paths of the resource files of the service, relative to `resources`.
        """
        url = "{url}/resources/info".format(url=self._url)
        res = self._con.get(path=url, params={"f": "json"})
        return res["resourceInfo"]

    # ----------------------------------------------------------------------
    def tile(self, z: int, y: int, x: int) -> bytes:
        """
        The ``tile`` method returns a single vector tile for the map.

        ============================    ================================================
        **Parameter**                    **Description**
        ----------------------------    ------------------------------------------------
        z                               Required integer. The level of detail.
        ----------------------------    ------------------------------------------------
        y                               Required integer. The row of the tile.
        ----------------------------    ------------------------------------------------
        x                               Required integer. The column of the tile.
        ============================    ================================================

        :returns:
            Bytes in PBF format
        """
        url = "{url}/tile/{z}/{y}/{x}.pbf".format(url=self._url, z=z, y=y, x=x)
        return self._con.get_bytes(url)

    # ----------------------------------------------------------------------
    def tiles(self, coords) -> Iterator[tuple[tuple[int, int, int], bytes]]:
        """
        Yields `((z, y, x), bytes)` for every `(z, y, x)` coordinate.  The
        tiles are fetched one at a time as the generator is consumed.
        """
        for z, y, x in coords:
            _log.debug("Fetching vector tile %s/%s/%s", z, y, x)
            yield (z, y, x), self.tile(z, y, x)

    # ----------------------------------------------------------------------
    def tile_fonts(self, fontstack: str, stack_range: str) -> bytes:
        """
        The ``tile_fonts`` method retrieves glyphs in protocol buffer format.

        ============================    ===========================================================
        **Parameter**                    **Description**
        ----------------------------    -----------------------------------------------------------
        fontstack                       Required string. The font stack, for example
                                        `Arial Regular`.
        ----------------------------    -----------------------------------------------------------
        stack_range                     Required string that depict a range. Ex: "0-255"
        ============================    ===========================================================

        :return:
            Glyphs in PBF format
        """
        url = "{url}/resources/fonts/{fontstack}/{stack_range}.pbf".format(
            url=self._url, fontstack=fontstack, stack_range=stack_range
        )
        return self._con.get_bytes(url)

    # ----------------------------------------------------------------------
    def tile_sprite(self, out_format: str = "sprite.json") -> Union[dict, bytes]:
        """
        Fetches the sprite sheet, as its json index or the png images.

        ============================    ================================================
        **Parameter**                    **Description**
        ----------------------------    ------------------------------------------------
        out_format                      Optional string. One of ``sprite.json`` | ``sprite.png`` | ``sprite@2x.png``
        ============================    ================================================

        :return:
            The sprite metadata as a dictionary, or the image bytes.
        """
        if out_format not in ("sprite.json", "sprite.png", "sprite@2x.png"):
            raise ValueError("Invalid sprite format: %s" % out_format)
        url = "{url}/resources/sprites/{f}".format(url=self._url, f=out_format)
        if out_format.endswith(".json"):
            return self._con.get(path=url, params={}, add_format=False)
        return self._con.get_bytes(url)
