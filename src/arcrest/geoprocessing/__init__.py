"""
The arcrest.geoprocessing module runs the tasks of geoprocessing services,
synchronously with `execute` or asynchronously as a :class:`GPJob`.
"""

from ._job import GPJob
from ._service import GPService, GPTask

__all__ = [
    "GPJob",
    "GPService",
    "GPTask",
]
