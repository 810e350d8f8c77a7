from ._base import BaseEsriAuth
from .._error import ArcGISLoginError


class NoAuth(BaseEsriAuth):
    """
    Anonymous access for public services.  No header and no `token`
    parameter are sent.
    """

    # ----------------------------------------------------------------------
    def __call__(self, r):
        return r

    # ----------------------------------------------------------------------
    def get_token(self) -> str:
        raise ArcGISLoginError(
            "NoAuth does not provide tokens. Use it for public services only."
        )

    # ----------------------------------------------------------------------
    @property
    def requires_token_param(self) -> bool:
        return False

    # ----------------------------------------------------------------------
    def __str__(self):
        return "<NoAuth>"
