from __future__ import annotations

from typing import Annotated, Any, List, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel


class DetectedHeaders(BaseModel):
    delimiter: str = Field(default=",", examples=[",", ";"])
    headers: List[str] = Field(default_factory=list)


class HeadersResponse(DetectedHeaders):
    filename: str
    columns_detected: bool


class _MappingPayload(BaseModel):
    # Wire format is camelCase; snake_case is accepted too.
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class FullNameMapping(_MappingPayload):
    type: Literal["full"] = "full"
    name_column: str = Field(min_length=1)
    ticket_number_column: str = Field(min_length=1)


class SplitNameMapping(_MappingPayload):
    type: Literal["split"] = "split"
    first_name_column: str = Field(min_length=1)
    last_name_column: str = Field(min_length=1)
    ticket_number_column: str = Field(min_length=1)


NormalizedMapping = Annotated[
    Union[FullNameMapping, SplitNameMapping], Field(discriminator="type")
]

_normalized_mapping = TypeAdapter(NormalizedMapping)


def parse_mapping(raw: str) -> Union[FullNameMapping, SplitNameMapping]:
    """Parse a JSON mapping payload; raises pydantic.ValidationError."""
    return _normalized_mapping.validate_json(raw)


class ImportResponse(BaseModel):
    filename: str
    mapping: NormalizedMapping
    result: Any = None


class HealthResponse(BaseModel):
    ok: bool = True
