"""
Profiles, elevation summaries and viewsheds computed by the ArcGIS
elevation analysis service.
"""
from __future__ import annotations
import logging
from typing import Optional, Union

from arcrest.gis import _GISResource
from .feature import FeatureSet

_log = logging.getLogger(__name__)

_DEFAULT_URL = "https://elevation.arcgis.com/arcgis/rest/services/Tools/ElevationSync/GPServer"

_UNITS = ["Meters", "Kilometers", "Feet", "Yards", "Miles"]


def _check_units(value: str, name: str) -> str:
    if value not in _UNITS:
        raise ValueError("%s must be one of %s" % (name, ", ".join(_UNITS)))
    return value


###########################################################################
class ElevationService(_GISResource):
    """
    The ArcGIS Online Elevation analysis service.  Every tool runs
    synchronously with `execute`, or as a :class:`~arcrest.geoprocessing.GPJob`
    when ``future=True``.

    ================  ===============================================================================
    **Keys**          **Description**
    ----------------  -------------------------------------------------------------------------------
    url               Optional String. The elevation `GPServer`. The default is the ElevationSync
                      service of ArcGIS Online.
    ----------------  -------------------------------------------------------------------------------
    gis               Optional :class:`~arcrest.gis.GIS`.
    ================  ===============================================================================
    """

    # ----------------------------------------------------------------------
    def __init__(self, url: Optional[str] = None, gis=None):
        super(ElevationService, self).__init__(url or _DEFAULT_URL, gis)

    # ----------------------------------------------------------------------
    def _task(self, name: str):
        from arcrest.geoprocessing import GPTask

        return GPTask("%s/%s" % (self._url, name), self._gis)

    # ----------------------------------------------------------------------
    def profile(
        self,
        input_line_features: Union[FeatureSet, dict],
        dem_resolution: Optional[str] = None,
        profile_id_field: Optional[str] = None,
        maximum_sample_distance: Optional[float] = None,
        maximum_sample_distance_units: str = "Meters",
        return_first_point: Optional[bool] = None,
        return_last_point: Optional[bool] = None,
        future: bool = False,
    ):
        """
        Samples the elevation along each input line.  The output lines carry
        `z` values, ready to be drawn as a profile graph.

        =====================================    ===========================================================================
        **Parameter**                             **Description**
        -------------------------------------    ---------------------------------------------------------------------------
        input_line_features                      Required featureset of lines to sample.
        -------------------------------------    ---------------------------------------------------------------------------
        dem_resolution                           Optional string. Cell size of the elevation data: `FINEST`,
                                                 `10m`, `30m` or `90m`.
        -------------------------------------    ---------------------------------------------------------------------------
        profile_id_field                         Optional string. Field copied to the output to match each
                                                 profile with its input line.
        -------------------------------------    ---------------------------------------------------------------------------
        maximum_sample_distance                  Optional float. Largest gap between two samples.
        -------------------------------------    ---------------------------------------------------------------------------
        maximum_sample_distance_units            Optional string. `Meters` (default), `Kilometers`, `Feet`,
                                                 `Yards` or `Miles`.
        -------------------------------------    ---------------------------------------------------------------------------
        return_first_point                       Optional boolean. Include the first point of every profile.
        -------------------------------------    ---------------------------------------------------------------------------
        return_last_point                        Optional boolean. Include the last point of every profile.
        -------------------------------------    ---------------------------------------------------------------------------
        future                                   Optional boolean. Submit as a job and return the `GPJob`.
        =====================================    ===========================================================================

        :return: the output profile :class:`~arcrest.features.FeatureSet`

        .. code-block:: python

            trail = svc.profile(trail_fs, dem_resolution="10m", maximum_sample_distance=25)
        """
        params = {
            "InputLineFeatures": input_line_features,
            "ProfileIDField": profile_id_field,
            "DEMResolution": dem_resolution,
            "MaximumSampleDistance": maximum_sample_distance,
            "MaximumSampleDistanceUnits": _check_units(
                maximum_sample_distance_units, "maximum_sample_distance_units"
            ),
            "returnFirstPoint": return_first_point,
            "returnLastPoint": return_last_point,
            "returnZ": True,
        }
        return self._task("Profile").execute(params, future=future)

    # ----------------------------------------------------------------------
    def summarize_elevation(
        self,
        input_features: Union[FeatureSet, dict],
        feature_id_field: Optional[str] = None,
        dem_resolution: Optional[str] = None,
        include_slope_aspect: bool = False,
        future: bool = False,
    ):
        """
        Elevation statistics for points, lines or polygons.  Slope and aspect
        statistics are added with `include_slope_aspect`.

        =========================    =========================================================
        **Parameter**                 **Description**
        -------------------------    ---------------------------------------------------------
        input_features               Required FeatureSet to summarize.
        -------------------------    ---------------------------------------------------------
        feature_id_field             Optional string. Field identifying each input in the output.
        -------------------------    ---------------------------------------------------------
        dem_resolution               Optional string. Cell size of the elevation data.
        -------------------------    ---------------------------------------------------------
        include_slope_aspect         Optional boolean. Add slope and aspect statistics.
        -------------------------    ---------------------------------------------------------
        future                       Optional boolean. Return the `GPJob` instead of waiting.
        =========================    =========================================================

        :return: the summary :class:`~arcrest.features.FeatureSet`
        """
        params = {
            "InputFeatures": input_features,
            "FeatureIDField": feature_id_field,
            "DEMResolution": dem_resolution,
            "IncludeSlopeAspect": include_slope_aspect,
        }
        return self._task("SummarizeElevation").execute(params, future=future)

    # ----------------------------------------------------------------------
    def viewshed(
        self,
        input_points: Union[FeatureSet, dict],
        maximum_distance: Optional[float] = None,
        maximum_distance_units: str = "Meters",
        dem_resolution: Optional[str] = None,
        observer_height: Optional[float] = None,
        observer_height_units: str = "Meters",
        surface_offset: Optional[float] = None,
        surface_offset_units: str = "Meters",
        generalize_viewshed_polygons: bool = True,
        future: bool = False,
    ):
        """
        Polygons of the ground visible from the observer points.

        ===============================    =========================================================
        **Parameter**                       **Description**
        -------------------------------    ---------------------------------------------------------
        input_points                       Required FeatureSet of observer points.
        -------------------------------    ---------------------------------------------------------
        maximum_distance                   Optional float. How far to look, at most 50 kilometers.
        -------------------------------    ---------------------------------------------------------
        dem_resolution                     Optional string. Cell size of the elevation data.
        -------------------------------    ---------------------------------------------------------
        observer_height                    Optional float. Eye height above the ground.
        -------------------------------    ---------------------------------------------------------
        surface_offset                     Optional float. Height of the target above the ground.
        -------------------------------    ---------------------------------------------------------
        generalize_viewshed_polygons       Optional boolean. Smooth the output polygons.
        -------------------------------    ---------------------------------------------------------
        future                             Optional boolean. Return the `GPJob` instead of waiting.
        ===============================    =========================================================

        :return: the visible areas as a :class:`~arcrest.features.FeatureSet`
        """
        params = {
            "InputPoints": input_points,
            "MaximumDistance": maximum_distance,
            "MaximumDistanceUnits": _check_units(
                maximum_distance_units, "maximum_distance_units"
            ),
            "DEMResolution": dem_resolution,
            "ObserverHeight": observer_height,
            "ObserverHeightUnits": _check_units(
                observer_height_units, "observer_height_units"
            ),
            "SurfaceOffset": surface_offset,
            "SurfaceOffsetUnits": _check_units(
                surface_offset_units, "surface_offset_units"
            ),
            "GeneralizeViewshedPolygons": generalize_viewshed_polygons,
        }
        return self._task("Viewshed").execute(params, future=future)
