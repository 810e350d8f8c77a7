"""
The **env** module provides a shared environment used by the different modules.
It stores globals such as the currently active :class:`~arcrest.gis.GIS` and the
transport defaults, and it loads ArcGIS credentials from the process
environment (or a ``.env`` file) through :class:`EnvConfig`.

active_gis
==========

.. py:data:: active_gis
The currently active :class:`~arcrest.gis.GIS`, used by service resources
when no ``gis`` is passed to them.  Creating a new :class:`~arcrest.gis.GIS`
makes it active unless ``set_active=False`` is given.

Credentials
===========

========================   ====================================================
**Variable**               **Used by**
------------------------   ----------------------------------------------------
ARCGIS_API_KEY             :meth:`EsriAPIKeyAuth.from_env` (lowest priority)
ARCGIS_PUBLIC_KEY          :meth:`EsriAPIKeyAuth.from_env`
ARCGIS_LOCATION_KEY        :meth:`EsriAPIKeyAuth.from_env` (highest priority)
ARCGIS_CONTENT_KEY         :meth:`EsriAPIKeyAuth.from_env`
ARCGIS_FEATURES_KEY        :meth:`EsriAPIKeyAuth.from_env`
ARCGIS_CLIENT_ID           :meth:`EsriClientCredentialsAuth.from_env`
ARCGIS_CLIENT_SECRET       :meth:`EsriClientCredentialsAuth.from_env`
========================   ====================================================
"""
from __future__ import annotations
import os
import logging
from dataclasses import dataclass, field, fields
from typing import Optional

from dotenv import load_dotenv, find_dotenv

_log = logging.getLogger(__name__)

#: The currently active GIS, used by service resources unless one is explicitly given.
active_gis = None
#: If True, status polling and geoprocessing messages are echoed at INFO level.
verbose = False
#: Seconds before an HTTP request times out.
timeout = 600
#: Number of retries for 413/429/50x responses.
retries = 3
#: Seconds between two polls of an asynchronous job status.
status_poll_interval = 1
#: Maximum seconds to poll an asynchronous job; 0 polls until a terminal status.
status_poll_max_wait = 0

_ENV_VARS = {
    "api_key": "ARCGIS_API_KEY",
    "public_key": "ARCGIS_PUBLIC_KEY",
    "location_key": "ARCGIS_LOCATION_KEY",
    "content_key": "ARCGIS_CONTENT_KEY",
    "features_key": "ARCGIS_FEATURES_KEY",
    "client_id": "ARCGIS_CLIENT_ID",
    "client_secret": "ARCGIS_CLIENT_SECRET",
}

_cached_config = None


###########################################################################
@dataclass(frozen=True)
class EnvConfig:
    """
    Credentials read from the environment.  Values are never shown by
    ``repr`` so the object can be logged safely.
    """

    api_key: Optional[str] = field(default=None, repr=False)
    public_key: Optional[str] = field(default=None, repr=False)
    location_key: Optional[str] = field(default=None, repr=False)
    content_key: Optional[str] = field(default=None, repr=False)
    features_key: Optional[str] = field(default=None, repr=False)
    client_id: Optional[str] = field(default=None, repr=False)
    client_secret: Optional[str] = field(default=None, repr=False)

    # ----------------------------------------------------------------------
    @classmethod
    def load(cls, dotenv_path: Optional[str] = None) -> "EnvConfig":
        """
        Loads a ``.env`` file (searched from the working directory when
        `dotenv_path` is not given) and reads the ARCGIS_* variables.
        Variables already set in the process win over the file.
        """
        load_dotenv(dotenv_path or find_dotenv(usecwd=True), override=False)
        values = {}
        for name, var in _ENV_VARS.items():
            value = os.environ.get(var)
            if value:
                _log.debug("%s loaded from environment", var)
                values[name] = value
        return cls(**values)

    # ----------------------------------------------------------------------
    @classmethod
    def from_env(cls) -> "EnvConfig":
        """returns the process wide configuration, loading it on first use"""
        global _cached_config
        if _cached_config is None:
            _cached_config = cls.load()
        return _cached_config

    # ----------------------------------------------------------------------
    @staticmethod
    def reset() -> None:
        """forgets the cached configuration so the next `from_env` reloads it"""
        global _cached_config
        _cached_config = None

    # ----------------------------------------------------------------------
    def preferred_api_key(self) -> Optional[str]:
        """
        Returns the most specific API key that is set: location, content,
        features, public and finally the generic key.
        """
        for key in (
            self.location_key,
            self.content_key,
            self.features_key,
            self.public_key,
            self.api_key,
        ):
            if key:
                return key
        return None

    # ----------------------------------------------------------------------
    @property
    def configured(self) -> list:
        """names of the variables that are set"""
        return [_ENV_VARS[f.name] for f in fields(self) if getattr(self, f.name)]
