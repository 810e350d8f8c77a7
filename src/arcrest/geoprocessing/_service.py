from __future__ import annotations
import os
import logging
import concurrent.futures
from typing import Any, Optional

from arcrest.gis import _GISResource
from ._job import GPJob
from ._support import _execute_gp_tool, _future_op

_log = logging.getLogger(__name__)


###########################################################################
class GPTask(_GISResource):
    """
    The GP Task resource represents a single task in a geoprocessing
    service published using ArcGIS Server. It provides basic information
    about the task including its name and display name. It also provides
    detailed information about the various input and output parameters
    exposed by the task.

    .. code-block:: python

        >>> task = GPTask("https://.../GPServer/Profile", gis)
        >>> task.execute({"InputLineFeatures": line_fs, "DEMResolution": "30m"})
        <FeatureSet> 10 features
    """

    # ----------------------------------------------------------------------
    def __str__(self):
        return f"< {self.__class__.__name__} @ {self._url} >"

    # ----------------------------------------------------------------------
    @property
    def name(self) -> str:
        return os.path.basename(self._url)

    # ----------------------------------------------------------------------
    def execute(self, params: Optional[dict[str, Any]] = None, future: bool = False):
        """
        Runs the task.

        ================  ===============================================================
        **Parameter**      **Description**
        ----------------  ---------------------------------------------------------------
        params            Optional dictionary of the task parameters, keyed by their
                          REST names. :class:`~arcrest.features.FeatureSet` values are
                          sent as FeatureSet JSON.
        ----------------  ---------------------------------------------------------------
        future            Optional boolean. When True, the task is submitted with
                          `submitJob` and a :class:`~arcrest.geoprocessing.GPJob` is
                          returned.
        ================  ===============================================================

        :return: The output value, a dictionary of outputs, or a
                 :class:`~arcrest.geoprocessing.GPJob`
        """
        return _execute_gp_tool(
            self._con, self._url, dict(params or {}), future=future, gis=self._gis
        )

    # ----------------------------------------------------------------------
    def submit_job(self, params: Optional[dict[str, Any]] = None) -> GPJob:
        """Submits the task as an asynchronous job."""
        return self.execute(params, future=True)

    # ----------------------------------------------------------------------
    def get_job(self, job_id: str) -> GPJob:
        """
        Tracks a job submitted earlier, for example by another process.
        """
        executor = concurrent.futures.ThreadPoolExecutor(1)
        fut = executor.submit(_future_op, self._con, self._url, {"jobId": job_id})
        executor.shutdown(False)
        return GPJob(fut, self._url, job_id, self._gis)


###########################################################################
class GPService(_GISResource):
    """
    A geoprocessing service (`GPServer`) and its tasks.
    """

    # ----------------------------------------------------------------------
    @property
    def tasks(self) -> list[GPTask]:
        """the :class:`GPTask` objects of the service"""
        return [
            GPTask("%s/%s" % (self._url, name), self._gis)
            for name in self.properties.get("tasks", [])
        ]

    # ----------------------------------------------------------------------
    def get_task(self, name: str) -> GPTask:
        """returns the task with the given name, without a request"""
        return GPTask("%s/%s" % (self._url, name), self._gis)
