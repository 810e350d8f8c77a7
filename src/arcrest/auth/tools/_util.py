from __future__ import annotations
import typing
import importlib.util
from functools import lru_cache
import urllib.parse as urllib_parse
import urllib.request as urllib_request

__all__ = [
    "check_module_exists",
    "parse_url",
    "url_key",
    "detect_proxy",
    "merge_proxies",
]


def check_module_exists(name: str) -> bool:
    """Checks if a module exists"""
    try:
        return importlib.util.find_spec(name) is not None
    except (ImportError, ValueError):
        return False


@lru_cache(maxsize=255)
def parse_url(url: str) -> urllib_parse.ParseResult:
    """
    Parses a URL string into it's pieces.

    :returns: Named Tuple
    """
    return urllib_parse.urlparse(url)


def url_key(url: str) -> tuple:
    """The (scheme, netloc, path) triple used to remember per-resource auth decisions."""
    parsed = parse_url(url)
    return (parsed.scheme, parsed.netloc, parsed.path)


def detect_proxy(replace_https: bool = True) -> typing.Optional[typing.Dict[str, str]]:
    """
    Builds a `requests` proxy dictionary from `urllib.request.getproxies`.

    ===============     ====================================================================
    **Parameter**        **Description**
    ---------------     --------------------------------------------------------------------
    replace_https       Optional Bool. Many forward proxies only listen on http; when True
                        an `https://` proxy address is rewritten to `http://`.
    ===============     ====================================================================

    :returns: dict or None
    """
    proxies = urllib_request.getproxies()
    found = {}
    for scheme in ("http", "https"):
        if scheme in proxies:
            value = proxies[scheme]
            if replace_https:
                value = value.replace("https://", "http://")
            found[scheme] = value
    return found or None


def merge_proxies(
    proxy_dict: typing.Dict[str, str] = None,
    proxy_host: str = None,
    proxy_port: str = "8888",
    detect: bool = False,
    replace_https: bool = False,
) -> typing.Dict[str, str]:
    """
    Combines the proxy settings into a single dictionary.  The `proxy_host`
    and `proxy_port` are considered first, then the detected system proxies,
    and finally `proxy_dict`.  Later sources overwrite earlier keys.

    :returns: dict
    """
    merged = {}
    if proxy_host:
        address = f"http://{proxy_host}:{proxy_port}"
        merged.update({"http": address, "https": address})
    if detect:
        merged.update(detect_proxy(replace_https=replace_https) or {})
    if proxy_dict:
        merged.update(proxy_dict)
    return merged
