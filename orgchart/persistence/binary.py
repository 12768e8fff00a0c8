"""
Native object serialization of a whole chart.

Only the model classes may be rebuilt on load; any other global referenced by
the payload is refused.
"""
import io
import logging
import pickle

from orgchart.config import StorageFormat
from orgchart.errors import FormatError, OperationReport
from orgchart.models import Employee, Role, Unit, UnitKind

from .base import StorageStrategy

logger = logging.getLogger(__name__)

PICKLE_PROTO = 0x80
PICKLE_PROTOCOLS = range(2, 6)

_ALLOWED = {
    (cls.__module__, cls.__qualname__): cls
    for cls in (Unit, Role, Employee, UnitKind)
}


def has_pickle_signature(payload: bytes) -> bool:
    return len(payload) >= 2 and payload[0] == PICKLE_PROTO and payload[1] in PICKLE_PROTOCOLS


class ChartUnpickler(pickle.Unpickler):
    def find_class(self, module, name):
        cls = _ALLOWED.get((module, name))
        if cls is None:
            raise pickle.UnpicklingError(f"Refusing to load global {module}.{name}")
        return cls


class BinaryStorage(StorageStrategy):
    FORMAT = StorageFormat.BINARY
    EXTENSIONS = ('.ser', '.bin')

    def _encode(self, root: Unit) -> bytes:
        return pickle.dumps(root, protocol=pickle.HIGHEST_PROTOCOL)

    def _decode(self, payload: bytes, report: OperationReport) -> Unit:
        if not payload:
            raise FormatError("Empty binary payload")
        if not has_pickle_signature(payload):
            raise FormatError("Not a binary chart: missing serialization header")
        try:
            root = ChartUnpickler(io.BytesIO(payload)).load()
        except (pickle.UnpicklingError, EOFError, AttributeError, TypeError, ValueError, IndexError, KeyError) as ex:
            raise FormatError(f"Corrupt binary chart: {ex}") from ex
        if not isinstance(root, Unit):
            raise FormatError(f"Binary payload holds a {type(root).__name__}, not a unit")
        if root.parent is not None:
            raise FormatError("Binary payload does not start at a root unit")

        logger.debug("Unpickled chart rooted at %r", root.name)
        self._validate(root, report)
        return root
