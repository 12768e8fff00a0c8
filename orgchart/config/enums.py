from enum import Enum


class StorageFormat(str, Enum):
    DOCUMENT = 'document'
    TABULAR = 'tabular'
    RELATIONAL = 'relational'
    BINARY = 'binary'

    def __str__(self):
        return self.value
