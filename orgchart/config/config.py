"""
Storage settings read from the environment and an optional ``.env`` file.
"""
from typing import Any, List, Tuple

from pydantic.v1 import BaseSettings, Extra, validator

from .enums import StorageFormat

DEFAULT_ROOT_KEYWORDS = 'acme,root,azienda,company,corp'


class StorageConfig(BaseSettings):
    STORAGE_FORMAT: StorageFormat = StorageFormat.DOCUMENT
    ROOT_KEYWORDS: str = DEFAULT_ROOT_KEYWORDS
    BINARY_FALLBACK: bool = True
    LOG_LEVEL: str = 'INFO'
    VALIDATE_ON_LOAD: bool = True

    class Config:
        env_prefix = 'ORGCHART_'
        env_file = '.env'
        extra = Extra.ignore

    @validator('STORAGE_FORMAT', pre=True)
    def _lower_format(cls, value: Any):
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @validator('LOG_LEVEL')
    def _upper_level(cls, value: str):
        return value.strip().upper()

    @property
    def root_keywords(self) -> Tuple[str, ...]:
        return tuple(self.get_var_as_list('ROOT_KEYWORDS'))

    def get_var_as_list(self, var_name: str) -> List[str]:
        """Returns a comma-delimited setting as a list, blanks dropped."""
        value = getattr(self, var_name) or ''
        return [item.strip() for item in value.split(',') if item.strip()]
