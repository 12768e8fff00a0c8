from .config import StorageConfig
from .enums import StorageFormat
