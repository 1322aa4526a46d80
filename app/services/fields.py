"""
Field payloads

The editor submits fields as loosely-typed JSON objects where `value`
means something different for every `type`. They are parsed one at a time
into a tagged variant (one dataclass per field type) so the renderer only
ever sees the attributes relevant to a type. A field that fails to parse
is reported as skipped; it never fails the whole job.
"""
from dataclasses import dataclass, field as dc_field
from enum import Enum
from typing import Any, ClassVar, List, Optional, Tuple, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from app.services.geometry import NormalizedRect

RADIO_TRUTHY = {"true", "yes", "1", "checked", "on", "selected"}


class FieldKind(str, Enum):
    signature = "signature"
    image = "image"
    text = "text"
    date = "date"
    radio = "radio"


@dataclass(frozen=True)
class SignatureField:
    id: str
    rect: NormalizedRect
    image_data: str  # base64, optionally prefixed with data:<mime>;base64,
    kind: ClassVar[FieldKind] = FieldKind.signature


@dataclass(frozen=True)
class ImageField:
    id: str
    rect: NormalizedRect
    image_data: str
    kind: ClassVar[FieldKind] = FieldKind.image


@dataclass(frozen=True)
class TextField:
    id: str
    rect: NormalizedRect
    text: str
    kind: ClassVar[FieldKind] = FieldKind.text


@dataclass(frozen=True)
class DateField:
    id: str
    rect: NormalizedRect
    text: str  # already formatted by the caller; blank means "today"
    kind: ClassVar[FieldKind] = FieldKind.date


@dataclass(frozen=True)
class RadioField:
    id: str
    rect: NormalizedRect
    selected: bool
    label: Optional[str] = None
    kind: ClassVar[FieldKind] = FieldKind.radio


@dataclass(frozen=True)
class UnknownField:
    """A field whose type this service does not draw. Kept so it can be reported."""
    id: str
    rect: NormalizedRect
    type_name: str
    kind: ClassVar[Optional[FieldKind]] = None


FormField = Union[SignatureField, ImageField, TextField, DateField, RadioField, UnknownField]


@dataclass(frozen=True)
class SkippedField:
    field_id: Optional[str]
    reason: str


@dataclass
class CompositionJob:
    """One signing request: a stored source document and the fields to burn in."""
    source_document_id: str
    fields: List[FormField] = dc_field(default_factory=list)
    rejected: List[SkippedField] = dc_field(default_factory=list)


# Wire format

class RectPayload(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    pageIndex: int = Field(0, validation_alias=AliasChoices("pageIndex", "page_index", "page"))
    leftPct: float = Field(validation_alias=AliasChoices("leftPct", "leftFrac", "left_frac"), allow_inf_nan=False)
    topPct: float = Field(validation_alias=AliasChoices("topPct", "topFrac", "top_frac"), allow_inf_nan=False)
    widthPct: float = Field(validation_alias=AliasChoices("widthPct", "widthFrac", "width_frac"), allow_inf_nan=False)
    heightPct: float = Field(validation_alias=AliasChoices("heightPct", "heightFrac", "height_frac"), allow_inf_nan=False)

    def to_rect(self) -> NormalizedRect:
        return NormalizedRect(
            page_index=self.pageIndex,
            left_frac=self.leftPct,
            top_frac=self.topPct,
            width_frac=self.widthPct,
            height_frac=self.heightPct,
        )


class FieldPayload(BaseModel):
    """
    One field as submitted by the editor.

    Accepts the flat shape `{id, type, pageIndex, leftPct, ..., value}` as
    well as a nested `rect` object.
    """
    model_config = ConfigDict(extra="ignore")

    id: str = ""
    type: str
    rect: RectPayload
    value: Optional[Union[str, bool, int, float]] = None
    label: Optional[str] = None
    selected: Optional[bool] = None

    @model_validator(mode="before")
    @classmethod
    def lift_flat_rect(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        rect = data.get("rect")
        if rect is None:
            return {**data, "rect": data}
        if isinstance(rect, dict) and "pageIndex" not in rect and "pageIndex" in data:
            return {**data, "rect": {"pageIndex": data["pageIndex"], **rect}}
        return data

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> str:
        return "" if v is None else str(v)

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, v: Any) -> Any:
        return v.strip().lower() if isinstance(v, str) else v

    def value_text(self) -> str:
        if self.value is None:
            return ""
        return str(self.value)

    def is_selected(self) -> bool:
        if self.selected is not None:
            return self.selected
        if isinstance(self.value, bool):
            return self.value
        return self.value_text().strip().lower() in RADIO_TRUTHY

    def to_field(self) -> FormField:
        rect = self.rect.to_rect()
        if self.type == FieldKind.signature.value:
            return SignatureField(id=self.id, rect=rect, image_data=self.value_text())
        if self.type == FieldKind.image.value:
            return ImageField(id=self.id, rect=rect, image_data=self.value_text())
        if self.type == FieldKind.text.value:
            return TextField(id=self.id, rect=rect, text=self.value_text())
        if self.type == FieldKind.date.value:
            return DateField(id=self.id, rect=rect, text=self.value_text())
        if self.type == FieldKind.radio.value:
            return RadioField(id=self.id, rect=rect, selected=self.is_selected(), label=self.label or None)
        return UnknownField(id=self.id, rect=rect, type_name=self.type)


def _describe_validation_error(exc: ValidationError) -> str:
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    return f"invalid field: {location}: {first.get('msg')}" if location else f"invalid field: {first.get('msg')}"


def parse_fields(raw_fields: List[Any]) -> Tuple[List[FormField], List[SkippedField]]:
    """
    Parse submitted field objects in order.

    Returns:
        (parsed fields in input order, fields that could not be parsed)
    """
    parsed: List[FormField] = []
    rejected: List[SkippedField] = []
    for raw in raw_fields:
        raw_id = raw.get("id") if isinstance(raw, dict) else None
        field_id = None if raw_id is None else str(raw_id)
        if not isinstance(raw, dict):
            rejected.append(SkippedField(field_id=None, reason="field must be an object"))
            continue
        try:
            parsed.append(FieldPayload.model_validate(raw).to_field())
        except ValidationError as exc:
            rejected.append(SkippedField(field_id=field_id, reason=_describe_validation_error(exc)))
    return parsed, rejected
