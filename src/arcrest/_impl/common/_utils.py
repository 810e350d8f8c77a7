"""set of common utilities"""
import datetime
import decimal
from enum import Enum

from ._mixins import PropertyMap


# ----------------------------------------------------------------------
def local_time_to_online(dt=None):
    """
    converts datetime object to a UTC timestamp for AGOL
    Inputs:
       dt - datetime object
    Output:
       Long value
    """
    if dt is None:
        dt = datetime.datetime.now()
    return int(dt.timestamp() * 1000)


# ----------------------------------------------------------------------
def _date_handler(obj):
    """
    `default` hook for JSON encoding: dates become epoch milliseconds,
    enums their values and property maps plain dictionaries.
    """
    if type(obj) is datetime.date:
        obj = datetime.datetime.combine(obj, datetime.datetime.min.time())
    if isinstance(obj, datetime.datetime):
        return local_time_to_online(obj)
    elif isinstance(obj, decimal.Decimal):
        return float(obj)
    elif isinstance(obj, Enum):
        return obj.value
    elif isinstance(obj, PropertyMap):
        return dict(obj)
    elif hasattr(obj, "as_dict"):
        # Feature exposes as_dict as a property
        return obj.as_dict() if callable(obj.as_dict) else obj.as_dict
    elif hasattr(obj, "to_dict"):
        return obj.to_dict()
    return obj


# --------------------------------------------------------------------------
def _to_jsonable(obj):
    """recursively applies `_date_handler` so the payload can be dumped"""
    obj = _date_handler(obj)
    if isinstance(obj, dict):
        return {k: _to_jsonable(v) for k, v in obj.items()}
    elif isinstance(obj, (list, tuple, set)):
        return [_to_jsonable(v) for v in obj]
    return obj


# --------------------------------------------------------------------------
def chunks(l, n):
    """yield successive n-sized chunks from l."""
    for i in range(0, len(l), n):
        yield l[i : i + n]


# --------------------------------------------------------------------------
def admin_url(url: str) -> str:
    """the administrative endpoint of a hosted service or layer url"""
    return url.replace("/rest/services/", "/rest/admin/services/")
