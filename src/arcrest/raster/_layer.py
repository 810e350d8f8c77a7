"""
Image services as ImageryLayer objects: export, identify, sample and
compute statistics of raster data served by an ImageServer.
"""
from __future__ import annotations
import copy
import datetime
import logging
from typing import Any, Optional, Union

from arcrest.gis import _GISResource
from arcrest._impl.common._utils import _date_handler

_LOGGER = logging.getLogger(__name__)

_ALLOWED_FORMATS = [
    "jpgpng",
    "png",
    "png8",
    "png24",
    "jpg",
    "bmp",
    "gif",
    "tiff",
    "png32",
    "bip",
    "bsq",
    "lerc",
]
_ALLOWED_PIXEL_TYPES = [
    "C128",
    "C64",
    "F32",
    "F64",
    "S16",
    "S32",
    "S8",
    "U1",
    "U16",
    "U2",
    "U32",
    "U4",
    "U8",
    "UNKNOWN",
]
_ALLOWED_INTERPOLATION = [
    "RSP_BilinearInterpolation",
    "RSP_CubicConvolution",
    "RSP_Majority",
    "RSP_NearestNeighbor",
]
_RASTER_INFO_KEYS = [
    "extent",
    "bandCount",
    "pixelType",
    "pixelSizeX",
    "pixelSizeY",
    "compressionType",
    "spatialReference",
]


def _geometry_type(geometry: dict) -> str:
    if "x" in geometry:
        return "esriGeometryPoint"
    elif "points" in geometry:
        return "esriGeometryMultipoint"
    elif "paths" in geometry:
        return "esriGeometryPolyline"
    elif "xmin" in geometry:
        return "esriGeometryEnvelope"
    return "esriGeometryPolygon"


# ----------------------------------------------------------------------
def _set_time_param(time) -> Optional[str]:
    """a datetime or a [start, end] pair as epoch milliseconds"""
    if time is None:
        return None
    if isinstance(time, (list, tuple)):
        start = _date_handler(time[0])
        end = _date_handler(time[1])
        return "%s,%s" % (
            "null" if start is None else start,
            "null" if end is None else end,
        )
    return str(_date_handler(time))


###########################################################################
class ImageryLayer(_GISResource):
    """
    The ``ImageryLayer`` class is used to access an image service.  A
    default ``mosaic_rule`` and ``rendering_rule`` can be set on the layer;
    they are used by every operation that does not pass its own.

    ================  ===============================================================
    **Parameter**      **Description**
    ----------------  ---------------------------------------------------------------
    url               Required String. The `ImageServer` url.
    ----------------  ---------------------------------------------------------------
    gis               Optional :class:`~arcrest.gis.GIS`.
    ================  ===============================================================
    """

    _mosaic_rule = None
    _fn = None
    _raster_info = None

    def __init__(self, url, gis=None):
        super(ImageryLayer, self).__init__(url, gis)
        self._raster_info = {}

    # ----------------------------------------------------------------------
    @property
    def mosaic_rule(self) -> Optional[dict]:
        """The default mosaic rule of the layer"""
        return self._mosaic_rule

    # ----------------------------------------------------------------------
    @mosaic_rule.setter
    def mosaic_rule(self, value: Optional[dict]):
        self._mosaic_rule = value

    # ----------------------------------------------------------------------
    @property
    def rendering_rule(self) -> Optional[dict]:
        """The default rendering rule (raster function) of the layer"""
        return self._fn

    # ----------------------------------------------------------------------
    @rendering_rule.setter
    def rendering_rule(self, value: Optional[dict]):
        self._fn = value

    # ----------------------------------------------------------------------
    @property
    def extent(self) -> Optional[dict]:
        return self.properties.get("extent", None)

    # ----------------------------------------------------------------------
    @property
    def raster_info(self) -> dict:
        """
        The `rasterInfo` of the service: band count, extent, pixel size and
        pixel type.  Fetched once and cached.
        """
        if self._raster_info:
            return self._raster_info
        for key in _RASTER_INFO_KEYS:
            if key in self.properties:
                value = self.properties[key]
                self._raster_info[key] = dict(value) if isinstance(value, dict) else value
        return self._raster_info

    # ----------------------------------------------------------------------
    def _apply_rules(self, params: dict, mosaic_rule=None, rendering_rule=None):
        if mosaic_rule is not None:
            params["mosaicRule"] = mosaic_rule
        elif self._mosaic_rule is not None:
            params["mosaicRule"] = self._mosaic_rule
        if rendering_rule is not None:
            params["renderingRule"] = rendering_rule
        elif self._fn is not None:
            params["renderingRule"] = self._fn

    # ----------------------------------------------------------------------
    def export_image(
        self,
        bbox: Optional[Union[str, list, dict]] = None,
        image_sr: Optional[Union[int, dict]] = None,
        bbox_sr: Optional[Union[int, dict]] = None,
        size: Optional[list[int]] = None,
        time: Optional[Union[datetime.datetime, list]] = None,
        export_format: str = "jpgpng",
        pixel_type: Optional[str] = None,
        no_data: Optional[Union[float, str]] = None,
        no_data_interpretation: str = "esriNoDataMatchAny",
        interpolation: Optional[str] = None,
        compression: Optional[str] = None,
        compression_quality: Optional[int] = None,
        band_ids: Optional[list[int]] = None,
        mosaic_rule: Optional[dict] = None,
        rendering_rule: Optional[dict] = None,
        f: str = "json",
        save_folder: Optional[str] = None,
        save_file: Optional[str] = None,
    ) -> Union[dict, bytes, str]:
        """
        The ``export_image`` operation is performed on an
        :class:`~arcrest.raster.ImageryLayer`.  The result of this operation
        is an image resource, or the image itself with ``f="image"``.

        ======================  ====================================================================
        **Parameter**            **Description**
        ----------------------  --------------------------------------------------------------------
        bbox                    Optional. The extent of the exported image as a string, a list
                                `[xmin, ymin, xmax, ymax]` or an envelope. The default is the
                                extent of the service.
        ----------------------  --------------------------------------------------------------------
        image_sr                Optional. The spatial reference of the exported image.
        ----------------------  --------------------------------------------------------------------
        bbox_sr                 Optional. The spatial reference of the bbox.
        ----------------------  --------------------------------------------------------------------
        size                    Optional list. `[width, height]` of the image in pixels. The
                                default is `[1200, 450]`.
        ----------------------  --------------------------------------------------------------------
        time                    Optional datetime or `[start, end]` list.
        ----------------------  --------------------------------------------------------------------
        export_format           Optional string. One of jpgpng, png, png8, png24, jpg, bmp, gif,
                                tiff, png32, bip, bsq, lerc. The default is jpgpng.
        ----------------------  --------------------------------------------------------------------
        pixel_type              Optional string. The pixel type, for example `U8` or `F32`.
        ----------------------  --------------------------------------------------------------------
        no_data                 Optional. The pixel value representing no information.
        ----------------------  --------------------------------------------------------------------
        interpolation           Optional string. The resampling process, for example
                                `RSP_BilinearInterpolation`.
        ----------------------  --------------------------------------------------------------------
        compression_quality     Optional integer. The quality of JPEG compression, 0 to 100.
        ----------------------  --------------------------------------------------------------------
        f                       Optional string. `json` returns the image description with its
                                `href`, `image` returns the bytes (or the saved path with
                                ``save_folder`` and ``save_file``).
        ======================  ====================================================================

        :return: Dictionary, bytes or the path of the saved file
        """
        if size is None:
            size = [1200, 450]
        params: dict[str, Any] = {"size": "%s,%s" % (size[0], size[1])}

        if bbox is None:
            bbox = self.extent
        if isinstance(bbox, str):
            params["bbox"] = bbox
        elif isinstance(bbox, (list, tuple)):
            params["bbox"] = "%s,%s,%s,%s" % (bbox[0], bbox[1], bbox[2], bbox[3])
        elif isinstance(bbox, dict):
            if bbox_sr is None and "spatialReference" in bbox:
                bbox_sr = bbox["spatialReference"]
            params["bbox"] = "%s,%s,%s,%s" % (
                bbox["xmin"],
                bbox["ymin"],
                bbox["xmax"],
                bbox["ymax"],
            )
        else:
            raise ValueError("A bbox is required to export an image")

        if export_format not in _ALLOWED_FORMATS:
            raise ValueError("Invalid export_format: %s" % export_format)
        if pixel_type is not None and pixel_type not in _ALLOWED_PIXEL_TYPES:
            raise ValueError("Invalid pixel_type: %s" % pixel_type)
        if interpolation is not None and interpolation not in _ALLOWED_INTERPOLATION:
            raise ValueError("Invalid interpolation: %s" % interpolation)
        if compression_quality is not None and not 0 <= compression_quality <= 100:
            raise ValueError("compression_quality must be between 0 and 100")

        params.update(
            {
                "imageSR": image_sr,
                "bboxSR": bbox_sr,
                "format": export_format,
                "pixelType": pixel_type,
                "time": _set_time_param(time),
                "noData": no_data,
                "noDataInterpretation": no_data_interpretation,
                "interpolation": interpolation,
                "compression": compression,
                "compressionQuality": compression_quality,
                "bandIds": ",".join([str(b) for b in band_ids]) if band_ids else None,
            }
        )
        self._apply_rules(params, mosaic_rule, rendering_rule)
        url = self._url + "/exportImage"
        if f == "json":
            return self._con.post(url, params)
        elif f == "image":
            params["f"] = "image"
            if save_folder is not None and save_file is not None:
                return self._con.download(
                    url, save_path=save_folder, file_name=save_file, params=params
                )
            return self._con.get_bytes(url, params)
        raise ValueError("Unsupported output format: %s" % f)

    # ----------------------------------------------------------------------
    def identify(
        self,
        geometry: dict[str, Any],
        mosaic_rule: Optional[dict] = None,
        rendering_rules: Optional[Union[list[dict], dict]] = None,
        pixel_size: Optional[Union[str, dict]] = None,
        time_extent: Optional[Union[datetime.datetime, list]] = None,
        return_geometry: bool = False,
        return_catalog_items: bool = True,
        return_pixel_values: bool = True,
        max_item_count: Optional[int] = None,
    ) -> dict:
        """
        Reads the pixel values at `geometry` (a point, multipoint, polygon
        or envelope) under the mosaic and rendering rules in effect.

        ============================    ====================================================================
        **Parameter**                    **Description**
        ----------------------------    --------------------------------------------------------------------
        geometry                        Required geometry or dict.
        ----------------------------    --------------------------------------------------------------------
        mosaic_rule                     Optional dict. Specifies the mosaic rule when defining how
                                        individual images should be mosaicked.
        ----------------------------    --------------------------------------------------------------------
        rendering_rules                 Optional dict or list. One rendering rule, or a list of them.
        ----------------------------    --------------------------------------------------------------------
        pixel_size                      Optional string or dict. The pixel level being identified.
        ----------------------------    --------------------------------------------------------------------
        time_extent                     Optional datetime or `[start, end]` list.
        ----------------------------    --------------------------------------------------------------------
        return_geometry                 Optional boolean. Return the geometry of the catalog items.
        ----------------------------    --------------------------------------------------------------------
        return_catalog_items            Optional boolean. Return the catalog items.
        ============================    ====================================================================

        :return: A dictionary
        """
        geometry = dict(geometry)
        params: dict[str, Any] = {
            "geometry": geometry,
            "geometryType": _geometry_type(geometry),
            "pixelSize": pixel_size,
            "time": _set_time_param(time_extent),
            "returnGeometry": return_geometry,
            "returnCatalogItems": return_catalog_items,
            "returnPixelValues": return_pixel_values,
            "maxItemCount": max_item_count,
        }
        if rendering_rules is not None:
            if isinstance(rendering_rules, dict):
                params["renderingRule"] = rendering_rules
            elif isinstance(rendering_rules, list):
                params["renderingRules"] = rendering_rules
            else:
                raise ValueError(
                    "rendering_rules must be a dictionary or a list of dictionaries"
                )
        self._apply_rules(params, mosaic_rule)
        if "renderingRule" not in params and "renderingRules" not in params and self._fn:
            params["renderingRule"] = self._fn
        url = "%s/identify" % self._url
        return self._con.post(url, params)

    # ----------------------------------------------------------------------
    def get_samples(
        self,
        geometry: dict[str, Any],
        geometry_type: Optional[str] = None,
        sample_distance: Optional[float] = None,
        sample_count: Optional[int] = None,
        mosaic_rule: Optional[dict] = None,
        pixel_size: Optional[Union[str, dict]] = None,
        return_first_value_only: Optional[bool] = None,
        interpolation: Optional[str] = None,
        out_fields: Optional[str] = None,
        time: Optional[Union[datetime.datetime, list]] = None,
    ) -> list[dict]:
        """
        Samples pixel values along or inside `geometry`.  Every sample has
        its location, the pixel value and the resolution of the source raster.

        =======================  ====================================================================
        **Parameter**             **Description**
        -----------------------  --------------------------------------------------------------------
        geometry                 Required geometry or dict. A geometry that defines the location(s)
                                 to be sampled.
        -----------------------  --------------------------------------------------------------------
        geometry_type            Optional string. `point`, `multipoint`, `polyline`, `polygon`,
                                 `envelope` or the esriGeometry name. Inferred when omitted.
        -----------------------  --------------------------------------------------------------------
        sample_distance          Optional float. The distance interval used to sample points
                                 from the provided path.
        -----------------------  --------------------------------------------------------------------
        sample_count             Optional integer. The count of sample points on a line or
                                 polygon.
        -----------------------  --------------------------------------------------------------------
        return_first_value_only  Optional boolean. Return only the first pixel value for a
                                 multi-valued mosaic.
        -----------------------  --------------------------------------------------------------------
        out_fields               Optional string. Comma separated fields of each sample.
        =======================  ====================================================================

        :return: A list of sample dictionaries.  Space separated pixel values are also parsed into
                 the `values` list of numbers.
        """
        geometry = dict(geometry)
        if geometry_type is None:
            geometry_type = _geometry_type(geometry)
        elif geometry_type.lower() in (
            "point",
            "multipoint",
            "polyline",
            "polygon",
            "envelope",
        ):
            geometry_type = "esriGeometry" + geometry_type.lower().capitalize()
        params = {
            "geometry": geometry,
            "geometryType": geometry_type,
            "sampleDistance": sample_distance,
            "sampleCount": sample_count,
            "pixelSize": pixel_size,
            "returnFirstValueOnly": return_first_value_only,
            "interpolation": interpolation,
            "outFields": out_fields,
            "time": _set_time_param(time),
        }
        self._apply_rules(params, mosaic_rule)
        params.pop("renderingRule", None)
        url = self._url + "/getSamples"
        sample_data = self._con.post(url, params).get("samples", [])
        new_sample_data = copy.deepcopy(sample_data)
        try:
            for element in new_sample_data:
                if "value" in element and isinstance(element["value"], str):
                    element["values"] = [float(s) for s in element["value"].split(" ")]
        except ValueError:
            _LOGGER.debug("Sample values are not numeric, returning them as is")
            return sample_data
        return new_sample_data

    # ----------------------------------------------------------------------
    def compute_histograms(
        self,
        geometry: dict[str, Any],
        mosaic_rule: Optional[dict] = None,
        rendering_rule: Optional[dict] = None,
        pixel_size: Optional[Union[str, dict]] = None,
        time: Optional[Union[datetime.datetime, list]] = None,
    ) -> dict:
        """
        The ``compute_histograms`` operation is performed on an
        :class:`~arcrest.raster.ImageryLayer` method.  This operation is
        supported by any image service published with mosaic datasets or a
        raster dataset.  The result of this operation contains both
        statistics and histograms computed from the given extent.

        ====================  ====================================================================
        **Parameter**          **Description**
        --------------------  --------------------------------------------------------------------
        geometry              Required polygon or envelope. A geometry that defines the
                              geometry within which the histogram is computed.
        --------------------  --------------------------------------------------------------------
        mosaic_rule           Optional dict. Specifies the mosaic rule.
        --------------------  --------------------------------------------------------------------
        rendering_rule        Optional dict. The raster function applied before counting.
        --------------------  --------------------------------------------------------------------
        pixel_size            Optional string or dict. The pixel level being used.
        ====================  ====================================================================

        :return: dict with `histograms` and `statistics`
        """
        geometry = dict(geometry)
        if "xmin" in geometry:
            geometry_type = "esriGeometryEnvelope"
        elif "rings" in geometry:
            geometry_type = "esriGeometryPolygon"
        else:
            raise ValueError("Histograms are computed for a polygon or an envelope")
        params = {
            "geometry": geometry,
            "geometryType": geometry_type,
            "pixelSize": pixel_size,
            "time": _set_time_param(time),
        }
        self._apply_rules(params, mosaic_rule, rendering_rule)
        url = "%s/computeHistograms" % self._url
        return self._con.post(url, params)

    # ----------------------------------------------------------------------
    def key_properties(self, rendering_rule: Optional[dict[str, Any]] = None) -> dict:
        """
        The ``key_properties`` method retrieves the key properties of the :class:`~arcrest.raster.ImageryLayer`,
        such as band properties.

        :return:
            A dictionary representing the key properties of the :class:`~arcrest.raster.ImageryLayer`
        """
        url = self._url + "/keyProperties"
        params = {}
        self._apply_rules(params, rendering_rule=rendering_rule)
        params.pop("mosaicRule", None)
        return self._con.get(url, params)
