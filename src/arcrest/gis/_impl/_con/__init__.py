from ._connection import Connection
from ._url_validator import validate_url

__all__ = ["Connection", "validate_url"]
