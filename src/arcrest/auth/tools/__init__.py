from ._lazy import LazyLoader
from ._util import (
    parse_url,
    url_key,
    check_module_exists,
    detect_proxy,
    merge_proxies,
)

__all__ = [
    "LazyLoader",
    "parse_url",
    "url_key",
    "check_module_exists",
    "detect_proxy",
    "merge_proxies",
]
