import copy
import os

import pytest

from arcrest import env
from arcrest._impl.common._mixins import PropertyMap


class FakeConnection:
    """Records the requests and answers them by the longest matching URL suffix."""

    def __init__(self, responses=None):
        self.responses = dict(responses or {})
        self.calls = []
        self.token = None

    def _answer(self, url, params):
        matches = [key for key in self.responses if str(url).endswith(key)]
        if not matches:
            raise AssertionError("No fake response for %s" % url)
        key = max(matches, key=len)
        value = self.responses[key]
        if isinstance(value, list):
            value = value.pop(0) if len(value) > 1 else value[0]
        if callable(value):
            value = value(url, params)
        return copy.deepcopy(value)

    def calls_to(self, suffix):
        return [c for c in self.calls if str(c[1]).endswith(suffix)]

    def get(self, path, params=None, **kwargs):
        self.calls.append(("GET", path, dict(params or {})))
        return self._answer(path, params)

    def post(self, path, params=None, files=None, **kwargs):
        self.calls.append(("POST", path, dict(params or {})))
        return self._answer(path, params)

    def post_multipart(self, path, params=None, files=None, **kwargs):
        self.calls.append(("MULTIPART", path, dict(params or {})))
        return self._answer(path, params)

    def get_bytes(self, path, params=None, **kwargs):
        self.calls.append(("BYTES", path, dict(params or {})))
        return self._answer(path, params)

    def download(self, path, save_path, file_name=None, params=None, **kwargs):
        self.calls.append(("DOWNLOAD", path, dict(params or {})))
        return os.path.join(save_path, file_name or os.path.basename(path))


class FakeGIS:
    """Stands in for a GIS: a connection, a login state and the portal description."""

    def __init__(self, con=None, anonymous=False, properties=None):
        self._con = con or FakeConnection()
        self._anonymous = anonymous
        self.properties = PropertyMap(properties or {})

    @property
    def is_anonymous(self):
        return self._anonymous


@pytest.fixture(autouse=True)
def reset_env():
    env.active_gis = None
    env.status_poll_interval = 0
    env.status_poll_max_wait = 0
    env.verbose = False
    env.EnvConfig.reset()
    yield
    env.active_gis = None
    env.EnvConfig.reset()


@pytest.fixture
def con():
    return FakeConnection()


@pytest.fixture
def gis(con):
    return FakeGIS(con)
