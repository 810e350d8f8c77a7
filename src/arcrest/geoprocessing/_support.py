"""
Submits geoprocessing jobs, tracks their status and collects their results.
"""
from __future__ import annotations
import time
import logging
import concurrent.futures
from typing import Any

from arcrest import env
from arcrest.auth._error import EsriHttpResponseError
from arcrest.features.feature import Feature, FeatureSet

_log = logging.getLogger(__name__)

_TERMINAL = (
    "esriJobSucceeded",
    "esriJobFailed",
    "esriJobCancelled",
    "esriJobTimedOut",
)


def _feature_input(value) -> Any:
    """Feature inputs are sent as FeatureSet JSON"""
    if isinstance(value, FeatureSet):
        return value.value
    if isinstance(value, Feature):
        return FeatureSet([value]).value
    if isinstance(value, (list, tuple)) and value and isinstance(value[0], Feature):
        return FeatureSet(list(value)).value
    return value


# ----------------------------------------------------------------------
def _output_value(value) -> Any:
    """FeatureSet JSON outputs become FeatureSet objects"""
    if isinstance(value, dict) and "features" in value:
        return FeatureSet.from_dict(value)
    return value


# ----------------------------------------------------------------------
def _gp_params(params: dict) -> dict:
    return {key: _feature_input(value) for key, value in params.items()}


# ----------------------------------------------------------------------
def _log_messages(messages: list, start: int = 0) -> int:
    """logs the job messages not logged yet and returns how many were seen"""
    for msg in messages[start:]:
        description = msg.get("description", "")
        msg_type = msg.get("type", "")
        if msg_type == "esriJobMessageTypeInformative":
            if env.verbose:
                _log.info(description)
            else:
                _log.debug(description)
        elif msg_type == "esriJobMessageTypeError":
            _log.error(description)
        else:
            _log.warning(description)
    return len(messages)


# ----------------------------------------------------------------------
def _analysis_job(con, task_url: str, params: dict) -> dict:
    """Submits a job and returns the job information with its `jobId`."""
    resp = con.post("%s/submitJob" % task_url, _gp_params(params))
    if "jobId" not in resp:
        raise EsriHttpResponseError(
            "The service did not return a jobId for the submitted job.",
            url=task_url,
        )
    return resp


# ----------------------------------------------------------------------
def _analysis_job_status(con, task_url: str, job_info: dict) -> dict:
    """Tracks the status of the submitted job until it reaches a terminal state."""
    job_url = "%s/jobs/%s" % (task_url, job_info["jobId"])
    params = {"returnMessages": True}
    start = time.time()
    num_messages = 0
    job_response = job_info
    while job_response.get("jobStatus") not in _TERMINAL:
        if env.status_poll_max_wait and time.time() - start > env.status_poll_max_wait:
            raise EsriHttpResponseError("Timed out waiting for %s" % job_url, url=job_url)
        time.sleep(env.status_poll_interval)
        job_response = con.get(job_url, params)
        num_messages = _log_messages(job_response.get("messages", []), num_messages)

    status = job_response.get("jobStatus")
    if status != "esriJobSucceeded":
        details = [m.get("description", "") for m in job_response.get("messages", [])]
        raise EsriHttpResponseError(
            "Job %s ended with status %s" % (job_info["jobId"], status),
            details=details,
            url=job_url,
        )
    if "results" not in job_response:
        job_response = con.get(job_url, params)
    return job_response


# ----------------------------------------------------------------------
def _analysis_job_results(con, task_url: str, job_info: dict) -> dict:
    """Fetches every `results/{param}` of a finished job."""
    job_id = job_info.get("jobId")
    results = job_info.get("results", None)
    if results is None:
        raise EsriHttpResponseError(
            "Unable to get the results of job %s" % job_id, url=task_url
        )
    result_values = {}
    for key, param_value in results.items():
        param_url = param_value.get("paramUrl", "results/%s" % key)
        param_result = con.get("%s/jobs/%s/%s" % (task_url, job_id, param_url))
        if isinstance(param_result, list):
            result_values[key] = [_output_value(v.get("value")) for v in param_result]
        else:
            result_values[key] = _output_value(param_result.get("value"))
    return result_values


# ----------------------------------------------------------------------
def _future_op(con, task_url: str, job_info: dict) -> dict:
    job_id = job_info["jobId"]
    job_info = dict(_analysis_job_status(con, task_url, job_info))
    job_info.setdefault("jobId", job_id)
    return _analysis_job_results(con, task_url, job_info)


# ----------------------------------------------------------------------
def _return_output(output: dict) -> Any:
    """a single output is returned as its value"""
    if len(output) == 1:
        return list(output.values())[0]
    return output


# ----------------------------------------------------------------------
def _execute_gp_tool(
    con,
    task_url: str,
    params: dict,
    future: bool = False,
    gis=None,
):
    """
    Runs a geoprocessing task.  Synchronous tasks are run with `execute`;
    with ``future`` the job is submitted and a
    :class:`~arcrest.geoprocessing.GPJob` is returned.
    """
    from ._job import GPJob

    if future:
        job_info = _analysis_job(con, task_url, params)
        executor = concurrent.futures.ThreadPoolExecutor(1)
        fut = executor.submit(_future_op, con, task_url, job_info)
        executor.shutdown(False)
        return GPJob(fut, task_url, job_info["jobId"], gis or con)

    resp = con.post("%s/execute" % task_url, _gp_params(params))
    _log_messages(resp.get("messages", []))
    output = {}
    for result in resp.get("results", []):
        output[result.get("paramName")] = _output_value(result.get("value"))
    return _return_output(output)
