import os
import datetime
import logging
from concurrent.futures import Future

from ._support import _return_output

_log = logging.getLogger(__name__)


class GPJob(object):
    """
    A geoprocessing job submitted with `submitJob`.  The job is tracked on a
    worker thread; ``result()`` blocks until the service reports a terminal
    status and then returns the job outputs.  Jobs are created by
    :meth:`~arcrest.geoprocessing.GPTask.execute` with ``future=True``
    and :meth:`~arcrest.geoprocessing.GPTask.get_job`.

    ================  ===============================================================
    **Parameter**      **Description**
    ----------------  ---------------------------------------------------------------
    future            Required :class:`concurrent.futures.Future` polling the job.
    ----------------  ---------------------------------------------------------------
    task_url          Required String. The task the job was submitted to.
    ----------------  ---------------------------------------------------------------
    jobid             Required String. The `jobId` assigned by the service.
    ----------------  ---------------------------------------------------------------
    gis               Required :class:`~arcrest.gis.GIS` or connection used for
                      the status requests.
    ----------------  ---------------------------------------------------------------
    notify            Optional Boolean. Log the outcome when the job ends.
    ================  ===============================================================
    """

    _future = None
    _jobid = None
    _url = None
    _gis = None
    _cancelled = False
    _submitted = None
    _finished = None

    # ----------------------------------------------------------------------
    def __init__(self, future, task_url, jobid, gis, notify=False):
        if not isinstance(future, Future):
            raise TypeError("future must be a concurrent.futures.Future")
        self._future = future
        self._url = task_url
        self._jobid = jobid
        self._gis = gis
        self._submitted = datetime.datetime.now()
        self._future.add_done_callback(self._mark_finished)
        if notify:
            self._future.add_done_callback(self._log_outcome)

    # ----------------------------------------------------------------------
    def __str__(self):
        return "<%s GP Job: %s>" % (self.task, self._jobid)

    # ----------------------------------------------------------------------
    def __repr__(self):
        return self.__str__()

    # ----------------------------------------------------------------------
    @property
    def _con(self):
        return getattr(self._gis, "_con", self._gis)

    # ----------------------------------------------------------------------
    def _mark_finished(self, future):
        self._finished = datetime.datetime.now()

    # ----------------------------------------------------------------------
    def _log_outcome(self, future):
        if future.cancelled():
            _log.info("Job %s of %s was cancelled", self._jobid, self.task)
        elif future.exception() is not None:
            _log.info("Job %s of %s failed: %s", self._jobid, self.task, future.exception())
        else:
            _log.info("Job %s of %s succeeded", self._jobid, self.task)

    # ----------------------------------------------------------------------
    @property
    def jobid(self) -> str:
        return self._jobid

    # ----------------------------------------------------------------------
    @property
    def task(self) -> str:
        """the name of the task, the last part of its url"""
        return os.path.basename(self._url)

    # ----------------------------------------------------------------------
    @property
    def elapsed_time(self) -> datetime.timedelta:
        """time since submission, or the run time once the job ended"""
        end = self._finished or datetime.datetime.now()
        return end - self._submitted

    # ----------------------------------------------------------------------
    def _job_info(self) -> dict:
        return self._con.get(
            "%s/jobs/%s" % (self._url, self._jobid), {"returnMessages": True}
        )

    # ----------------------------------------------------------------------
    @property
    def messages(self) -> list:
        """the messages the service reported for the job so far"""
        return self._job_info().get("messages", [])

    # ----------------------------------------------------------------------
    @property
    def status(self) -> str:
        """
        The `jobStatus` reported by the service, for example
        `esriJobExecuting` or `esriJobSucceeded`.
        """
        info = self._job_info()
        return info.get("jobStatus", info)

    # ----------------------------------------------------------------------
    def cancel(self) -> bool:
        """
        Asks the service to cancel the job.  Returns False when the job
        already ended or was cancelled before.
        """
        if self._cancelled or self._future.done():
            return False
        res = self._con.post("%s/jobs/%s/cancel" % (self._url, self._jobid), {})
        _log.debug("Cancel requested for %s: %s", self._jobid, res.get("jobStatus"))
        self._future.cancel()
        self._cancelled = True
        return True

    # ----------------------------------------------------------------------
    def cancelled(self) -> bool:
        return self._cancelled

    # ----------------------------------------------------------------------
    def running(self) -> bool:
        return self._future.running()

    # ----------------------------------------------------------------------
    def done(self) -> bool:
        return self._future.done()

    # ----------------------------------------------------------------------
    def result(self, timeout=None):
        """
        Waits for the job and returns its outputs: the value itself for a
        task with one output, otherwise a dictionary keyed by output name.
        A cancelled job returns None.
        """
        if self._cancelled:
            return None
        return _return_output(self._future.result(timeout=timeout))
