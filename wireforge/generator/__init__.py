"""Wireforge protocol code generator."""

from .profile import LanguageProfile as LanguageProfile
from .profile import TargetLanguage as TargetLanguage
from .profile import create_language_profile as create_language_profile
from .types import *
from .validator import StructuralError as StructuralError
from .validator import ValidationIssue as ValidationIssue
from .validator import ValidationResult as ValidationResult
from .validator import require_valid as require_valid
from .validator import validate as validate
