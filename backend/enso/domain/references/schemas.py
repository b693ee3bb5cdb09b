"""Pydantic schemas for reference detection and resolution."""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ReferenceType(str, Enum):
	USER = "user"
	MESSAGE = "message"
	CHAT = "chat"
	FILE = "file"
	LINK = "link"
	TOPIC = "topic"


class Detection(BaseModel):
	"""Classified intent for a raw input string."""

	model_config = ConfigDict(frozen=True)

	type: ReferenceType
	confidence: float = Field(ge=0.0, le=1.0)
	metadata: Dict[str, Any] = Field(default_factory=dict)

	@property
	def query(self) -> str:
		return str(self.metadata.get("query") or "")

	@property
	def url(self) -> Optional[str]:
		value = self.metadata.get("url")
		return str(value) if value is not None else None

	@property
	def explicit(self) -> bool:
		return self.confidence >= 1.0


class Reference(BaseModel):
	"""A candidate entity the user may be referring to."""

	id: str
	type: ReferenceType
	title: str
	preview: Optional[str] = None
	metadata: Dict[str, Any] = Field(default_factory=dict)


class ResolveContext(BaseModel):
	chat_id: str
	auth_token: Optional[str] = None


class DetectRequest(BaseModel):
	input: str = Field(max_length=2048)


class ResolveRequest(BaseModel):
	detection: Detection
	chat_id: str = Field(min_length=1, max_length=128)


class SearchRequest(BaseModel):
	input: str = Field(max_length=2048)
	chat_id: str = Field(min_length=1, max_length=128)


class ReferenceListResponse(BaseModel):
	items: List[Reference]


class SearchResponse(BaseModel):
	detection: Detection
	items: List[Reference]
