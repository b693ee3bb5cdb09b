"""Classify raw input text into a reference intent.

Trigger characters route deterministically: ``@`` searches people, ``>``
searches messages in the current chat and ``#`` searches topics. A string
that parses as an absolute URL becomes a link. Anything else falls back to a
low-confidence message search so callers can always attempt a resolution.

URL validity is decided by pydantic's URL parser; every scheme it accepts
counts (``mailto:``, ``ftp:``, ``urn:``...).
"""

from __future__ import annotations

from pydantic import AnyUrl, TypeAdapter, ValidationError

from enso.domain.references.schemas import Detection, ReferenceType
from enso.obs import metrics as obs_metrics

EXPLICIT_CONFIDENCE = 1.0
FALLBACK_CONFIDENCE = 0.5

TRIGGERS: dict[str, ReferenceType] = {
	"@": ReferenceType.USER,
	">": ReferenceType.MESSAGE,
	"#": ReferenceType.TOPIC,
}

_URL_ADAPTER = TypeAdapter(AnyUrl)


def is_valid_url(value: str) -> bool:
	"""True when the whole string parses as an absolute URL."""
	if not value or value != value.strip():
		return False
	try:
		_URL_ADAPTER.validate_python(value)
	except ValidationError:
		return False
	return True


def detect(input: str) -> Detection:  # noqa: A002 (mirrors the public contract)
	"""Return the detection for ``input``. Never raises."""
	text = input or ""
	ref_type = TRIGGERS.get(text[:1])
	if ref_type is not None:
		detection = Detection(
			type=ref_type,
			confidence=EXPLICIT_CONFIDENCE,
			metadata={"query": text[1:]},
		)
	elif is_valid_url(text):
		detection = Detection(
			type=ReferenceType.LINK,
			confidence=EXPLICIT_CONFIDENCE,
			metadata={"url": text},
		)
	else:
		detection = Detection(
			type=ReferenceType.MESSAGE,
			confidence=FALLBACK_CONFIDENCE,
			metadata={"query": text},
		)
	obs_metrics.inc_reference_detection(detection.type.value, detection.explicit)
	return detection


__all__ = ["detect", "is_valid_url", "EXPLICIT_CONFIDENCE", "FALLBACK_CONFIDENCE"]
