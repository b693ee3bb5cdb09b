"""Reference detection and resolution for the chat composer."""

from enso.domain.references.detector import detect
from enso.domain.references.resolver import ReferenceResolver
from enso.domain.references.schemas import Detection, Reference, ReferenceType, ResolveContext

__all__ = [
	"Detection",
	"Reference",
	"ReferenceResolver",
	"ReferenceType",
	"ResolveContext",
	"detect",
]
