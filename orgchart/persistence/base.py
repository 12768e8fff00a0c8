import logging
import sqlite3
from abc import ABC, abstractmethod
from typing import Optional, Tuple, Union

from orgchart.config import StorageConfig, StorageFormat
from orgchart.errors import FormatError, OperationReport, PersistenceError, StructuralViolation
from orgchart.models import Unit
from orgchart.validation import StructuralValidator

from . import files
from .builder import GraphBuilder
from .root_inference import infer_root

logger = logging.getLogger(__name__)

Payload = Union[str, bytes]


class StorageStrategy(ABC):
    """
    Save and load an organizational chart in one external format.

    ``save`` and ``load`` never raise: failures come back as ``False``/``None``
    and ``last_report`` holds the reason. ``encode`` and ``decode`` are the
    raising core they are built on.
    """

    FORMAT: StorageFormat = None
    EXTENSIONS: Tuple[str, ...] = ()

    def __init__(self, config: Optional[StorageConfig] = None):
        self.config = config or StorageConfig()
        self.validator = StructuralValidator(load_time=True)
        self.last_report = OperationReport()

    def __repr__(self):
        return f"{type(self).__name__}(format={self.FORMAT})"

    @abstractmethod
    def _encode(self, root: Unit) -> Payload:
        """Serialize ``root``; must not modify the graph."""
        pass

    @abstractmethod
    def _decode(self, payload: bytes, report: OperationReport) -> Unit:
        """Parse, rebuild and validate; record recoverable issues in ``report``."""
        pass

    def encode(self, root: Unit) -> Payload:
        if not isinstance(root, Unit):
            raise TypeError(f"Expected a Unit to encode, got {type(root).__name__}")
        return self._encode(root)

    def decode(self, payload: Payload) -> Unit:
        self.last_report = report = OperationReport(operation='decode')
        if isinstance(payload, str):
            payload = payload.encode('utf-8')
        root = self._decode(payload, report)
        report.succeed()
        return root

    def _save(self, root: Unit, destination: str):
        files.write_atomic(destination, self.encode(root))

    def _load(self, source: str, report: OperationReport) -> Unit:
        return self._decode(files.read_bytes(source), report)

    def save(self, root: Unit, destination: str) -> bool:
        self.last_report = report = OperationReport(operation='save')
        try:
            self._save(root, destination)
        except (PersistenceError, TypeError, ValueError) as ex:
            self._failed(report, 'save', destination, ex)
            return False
        except (OSError, sqlite3.Error) as ex:
            self._failed(report, 'save', destination, ex, io=True)
            return False
        except Exception as ex:
            logger.exception("Unexpected error saving %s", destination)
            report.fail(f"Unexpected error: {ex}")
            return False

        report.succeed(f"Saved {root.name!r} to {destination}")
        logger.info("Saved %r to %s as %s", root.name, destination, self.FORMAT)
        return True

    def load(self, source: str) -> Optional[Unit]:
        self.last_report = report = OperationReport(operation='load')
        try:
            root = self._load(source, report)
        except PersistenceError as ex:
            self._failed(report, 'load', source, ex)
            return None
        except (OSError, sqlite3.Error, UnicodeDecodeError) as ex:
            self._failed(report, 'load', source, ex, io=True)
            return None
        except Exception as ex:
            logger.exception("Unexpected error loading %s", source)
            report.fail(f"Unexpected error: {ex}")
            return None

        report.succeed(report.fallback_reason)
        logger.info("Loaded %r from %s (%d unresolved references, %d warnings)",
                    root.name, source, len(report.references), len(report.warnings))
        return root

    @staticmethod
    def _failed(report: OperationReport, operation: str, path: str, ex: Exception, io: bool = False):
        if isinstance(ex, StructuralViolation):
            reason = f"Structural violation: {ex.format_errors()}"
        elif io:
            reason = f"I/O error: {ex}"
        else:
            reason = str(ex)
        report.fail(reason)
        logger.error("Failed to %s %s: %s", operation, path, reason)

    def _complete(self, builder: GraphBuilder, report: OperationReport, root: Optional[Unit] = None) -> Unit:
        """Choose the root when the format does not mark it, drop the rest and validate."""
        if root is None:
            choice = infer_root(list(builder.units.values()), self.config.root_keywords)
            if choice is None:
                raise FormatError("No units found")
            root = choice.unit
            report.root_rule = choice.rule
        builder.finish(root)

        problems = builder.verify()
        if problems:
            raise StructuralViolation(problems)
        self._validate(root, report)
        return root

    def _validate(self, root: Unit, report: OperationReport):
        if not self.config.VALIDATE_ON_LOAD:
            return
        result = self.validator.validate(root)
        for warning in result.warnings:
            report.warnings.append(warning)
            logger.warning("Structural warning: %s", warning)
        if not result.ok:
            raise StructuralViolation(result.violations)
