from urllib.parse import urlparse


def validate_url(x) -> bool:
    """True when `x` is an absolute URL (it has both a scheme and a host)"""
    if not isinstance(x, str) or not x:
        return False
    try:
        result = urlparse(x)
    except ValueError:
        return False
    return result.scheme in ("http", "https") and bool(result.netloc)
