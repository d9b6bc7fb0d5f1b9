"""Language steering documents and idiom rewriting."""

from .idioms import IdiomApplication as IdiomApplication
from .idioms import IdiomResult as IdiomResult
from .idioms import apply_idiom as apply_idiom
from .idioms import apply_idioms as apply_idioms
from .idioms import create_idiom_applier as create_idiom_applier
from .idioms import idiom_stats as idiom_stats
from .idioms import validate_idioms as validate_idioms
from .loader import SteeringCache as SteeringCache
from .loader import SteeringDocument as SteeringDocument
from .loader import SteeringParseError as SteeringParseError
from .loader import clear_steering_cache as clear_steering_cache
from .loader import create_language_profile_with_steering as create_language_profile_with_steering
from .loader import has_steering_document as has_steering_document
from .loader import load_steering_document as load_steering_document
from .loader import load_steering_documents as load_steering_documents
