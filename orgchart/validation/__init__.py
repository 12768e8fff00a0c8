"""validation module"""

from .validator import StructuralValidator, ValidationResult
