from .base import StorageStrategy
from .binary import BinaryStorage
from .builder import GraphBuilder
from .document import DocumentStorage
from .factory import StorageFactory, storage_factory
from .reader import DocumentReader, read_document
from .relational import RelationalStorage, default_structure
from .root_inference import RootChoice, infer_root
from .tabular import TabularStorage


__all__ = [
    "StorageStrategy",
    "BinaryStorage",
    "DocumentStorage",
    "RelationalStorage",
    "TabularStorage",
    "GraphBuilder",
    "StorageFactory",
    "storage_factory",
    "DocumentReader",
    "read_document",
    "default_structure",
    "RootChoice",
    "infer_root",
]
