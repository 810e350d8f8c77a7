import types
import importlib

from ._util import check_module_exists


###########################################################################
class LazyLoader(types.ModuleType):
    """
    Defers the import of a module until one of its attributes is used.

    ujson = LazyLoader("ujson")
    cf = LazyLoader("concurrent.futures")
    dotenv = LazyLoader("dotenv", strict=True)

    """

    def __init__(self, module_name: str, submod_name: str = None, strict: bool = False):
        """
        Set `strict` to True when the module must be installed; a
        ModuleNotFoundError is raised at construction instead of first use.
        """
        if strict and not check_module_exists(module_name):
            raise ModuleNotFoundError(f"Required {module_name} not found.")

        if submod_name:
            module_name = f"{module_name}.{submod_name}"
        self._module_name = module_name
        self._mod = None
        super(LazyLoader, self).__init__(self._module_name)

    # ----------------------------------------------------------------------
    def _load(self):
        if self._mod is None:
            self._mod = importlib.import_module(self._module_name)
        return self._mod

    # ----------------------------------------------------------------------
    def __getattr__(self, attrb):
        return getattr(self._load(), attrb)

    # ----------------------------------------------------------------------
    def __dir__(self):
        return dir(self._load())

    # ----------------------------------------------------------------------
    def __repr__(self):
        state = "loaded" if self._mod is not None else "deferred"
        return f"<LazyLoader {self._module_name} ({state})>"
