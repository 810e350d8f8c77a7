from __future__ import annotations

from arcrest.auth import hooks


def log_all_requests(gis):
    """
    Logs all requests made by the GIS object.

    Args:
        gis (GIS): The GIS object to log requests for.

    Returns:
        GIS: The same GIS object.
    """
    gis._con.session.add_response_hook(hooks.log_all_requests)
    return gis


def log_all_requests_detailed(gis):
    """
    Logs all requests made by the GIS object in a detailed format.

    Args:
        gis (GIS): The GIS object to log requests for.

    Returns:
        GIS: The same GIS object.
    """
    gis._con.session.add_response_hook(hooks.log_all_requests_detailed)
    return gis


def throttle_rate(
    gis,
    threshold: int = 1500,
    period: int = 300,
    pause: int = 300,
    log_all_requests: bool = False,
    log_rate: bool = False,
):
    """
    Throttles the rate of requests made through the GIS object.

    Args:
        gis (GIS): The GIS object to throttle the requests for.
        threshold (int, optional): The maximum number of requests allowed within the specified period. Defaults to 1500.
        period (int, optional): The time period (in seconds) within which the maximum number of requests is allowed. Defaults to 300.
        pause (int, optional): The time (in seconds) to pause when the threshold is reached. Defaults to 300.
        log_all_requests (bool, optional): Whether to log every request. Defaults to False.
        log_rate (bool, optional): Whether to log the request rate information. Defaults to False.

    Returns:
        GIS: The same GIS object.
    """
    gis._con.session.add_response_hook(
        hooks.throttle_rate(threshold, period, pause, log_all_requests, log_rate)
    )
    return gis


def response_error_handling(gis):
    """
    Logs failed responses of the GIS object.

    Args:
        gis (GIS): The GIS object to handle response errors for.

    Returns:
        GIS: The same GIS object.
    """
    gis._con.session.add_response_hook(hooks.response_error_handling)
    return gis


def clear_hooks(gis):
    """
    Removes every response hook installed on the GIS session.

    Parameters:
        gis (GIS): The GIS object representing the GIS session.

    Returns:
        GIS: The same GIS object.
    """
    gis._con.session.clear_response_hooks()
    return gis
