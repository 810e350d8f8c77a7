"""
`requests` response hooks for tracing and throttling the traffic of an
:class:`~arcrest.auth.EsriSession`.  Every hook returns the response it
was given so hooks can be chained.
"""
from __future__ import annotations
import time
import logging
import threading

import requests

_log = logging.getLogger(__name__)

# failures that are expected and not worth reporting: status code and url substring
_EXEMPTIONS = [
    {"status_code": 403, "url_substring": "info/metadata/metadata.xml"},
    {"status_code": 400, "url_substring": "info/metadata/metadata.xml"},
]


def _describe(response: requests.Response) -> str:
    request = response.request
    headers = dict(request.headers)
    if "X-Esri-Authorization" in headers:
        headers["X-Esri-Authorization"] = "Bearer ....."
    return (
        f"Networking: {response.status_code} response for {response.url}\n"
        f"Request details:\n"
        f"Method: {request.method}\n"
        f"URL: {request.url}\n"
        f"Body: {request.body}\n"
        f"Headers: {headers}\n"
        f"Response: {response.status_code} {response.reason}\n"
        f"Response Text: {response.text}\n"
    )


def log_all_requests(response: requests.Response, *args, **kwargs):
    """
    Logs the status and url of every response.

    Args:
        response (requests.Response): The HTTP response to handle.

    Returns:
        requests.Response: The original HTTP response.
    """
    _log.info("Networking: %s response for %s.", response.status_code, response.url)
    return response


def log_all_requests_detailed(response: requests.Response, *args, **kwargs):
    """
    Logs the full request and response of every call.  The bearer header is
    masked but a `token` query parameter is logged as sent.

    Returns:
        requests.Response: The original HTTP response.
    """
    _log.debug(_describe(response))
    return response


class RequestThrottle:
    """
    Counts requests and sleeps for `pause` seconds once more than
    `threshold` requests were made within `period` seconds.

    Args:
        threshold (int, optional): The maximum number of requests allowed in the given period. Defaults to 1500.
        period (int, optional): The time period in seconds. Defaults to 300.
        pause (int, optional): The amount of time to pause once the threshold is exceeded. Defaults to 300.
        log_all_requests (bool, optional): Whether to log the counters for every request. Defaults to False.
        log_rate (bool, optional): Whether to log the request rate. Defaults to False.
    """

    def __init__(
        self,
        threshold: int = 1500,
        period: int = 300,
        pause: int = 300,
        log_all_requests: bool = False,
        log_rate: bool = False,
        clock=time.time,
        sleep=time.sleep,
    ):
        self.threshold = threshold
        self.period = period
        self.pause = pause
        self.log_all_requests = log_all_requests
        self.log_rate = log_rate
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self.request_count = 0
        self.window_start = None

    def __call__(self, response: requests.Response, *args, **kwargs):
        with self._lock:
            now = self._clock()
            if self.window_start is None:
                self.window_start = now
            self.request_count += 1
            elapsed = now - self.window_start

            if elapsed > self.period:
                self.window_start = now
                self.request_count = 1
                elapsed = 0

            if self.request_count > self.threshold:
                _log.warning(
                    "Networking: Request count exceeded threshold of %s requests per %s seconds "
                    "in %s seconds, pausing for %s seconds.",
                    self.threshold,
                    self.period,
                    elapsed,
                    self.pause,
                )
                self._sleep(self.pause)
                self.window_start = self._clock()
                self.request_count = 0

            rate = self.request_count / elapsed if elapsed > 0 else 0
            if self.log_all_requests:
                _log.info(
                    "Networking: Request stats: %s requests in past %s seconds, a rate of %s "
                    "requests/second. Threshold is %s requests per %s seconds.",
                    self.request_count,
                    elapsed,
                    rate,
                    self.threshold,
                    self.period,
                )
            if self.log_rate:
                _log.info(
                    "Networking: Request rate: %s requests/second.",
                    rate,
                )
        return response


def throttle_rate(
    threshold: int = 1500,
    period: int = 300,
    pause: int = 300,
    log_all_requests: bool = False,
    log_rate: bool = False,
) -> RequestThrottle:
    """
    Returns a response hook that throttles the request rate, see
    :class:`RequestThrottle`.
    """
    return RequestThrottle(threshold, period, pause, log_all_requests, log_rate)


def response_error_handling(response: requests.Response, *args, **kwargs):
    """
    Logs failed responses (anything but 200 and 302) with the request that
    produced them, skipping the known harmless failures.

    Returns:
        requests.Response: The original HTTP response.
    """
    if response.status_code in (200, 302):
        return response
    if any(
        exemption["status_code"] == response.status_code
        and exemption["url_substring"] in response.url
        for exemption in _EXEMPTIONS
    ):
        return response
    _log.error(_describe(response))
    if response.status_code == 403 and response.reason == "FORBIDDEN":
        _log.error(
            "Networking: A 403 FORBIDDEN response indicates the requests may be getting "
            "blocked. Check any firewalls that may be blocking this."
        )
    return response
