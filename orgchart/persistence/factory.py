import os
from typing import Dict, Optional, Type, Union

from orgchart.config import StorageConfig, StorageFormat

from .base import StorageStrategy
from .binary import BinaryStorage
from .document import DocumentStorage
from .relational import RelationalStorage
from .tabular import TabularStorage


class StorageFactory:
    def __init__(self):
        self._strategies: Dict[StorageFormat, Type[StorageStrategy]] = {}
        self._extensions: Dict[str, StorageFormat] = {}

    def register_strategy(self, key: StorageFormat, strategy: Type[StorageStrategy]):
        self._strategies[key] = strategy
        for extension in strategy.EXTENSIONS:
            self._extensions[extension.lower()] = key

    def _create(self, key: StorageFormat, config: Optional[StorageConfig] = None) -> StorageStrategy:
        strategy_class = self._strategies.get(key)

        if not strategy_class:
            raise ValueError(f"No storage strategy registered for {key}")

        return strategy_class(config=config)

    def get(self, key: Union[StorageFormat, str, None] = None, config: Optional[StorageConfig] = None) -> StorageStrategy:
        """Strategy for ``key``, or for the configured STORAGE_FORMAT when no key is given."""
        config = config or StorageConfig()
        if key is None:
            key = config.STORAGE_FORMAT
        return self._create(StorageFormat(key), config)

    def format_for_path(self, path: str) -> StorageFormat:
        extension = os.path.splitext(path)[1].lower()
        key = self._extensions.get(extension)
        if key is None:
            raise ValueError(f"Unknown file extension {extension!r} for {path}")
        return key

    def for_path(self, path: str, config: Optional[StorageConfig] = None) -> StorageStrategy:
        return self.get(self.format_for_path(path), config)

    def extension_for(self, key: Union[StorageFormat, str]) -> str:
        strategy_class = self._strategies.get(StorageFormat(key))
        if not strategy_class:
            raise ValueError(f"No storage strategy registered for {key}")
        return strategy_class.EXTENSIONS[0]


storage_factory = StorageFactory()

storage_factory.register_strategy(key=StorageFormat.DOCUMENT, strategy=DocumentStorage)
storage_factory.register_strategy(key=StorageFormat.TABULAR, strategy=TabularStorage)
storage_factory.register_strategy(key=StorageFormat.RELATIONAL, strategy=RelationalStorage)
storage_factory.register_strategy(key=StorageFormat.BINARY, strategy=BinaryStorage)
