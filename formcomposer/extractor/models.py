"""Data models for detected forms and fields."""
from typing import Optional

from pydantic import BaseModel, field_validator


class FormField(BaseModel):
    """A single fillable field, as produced by the form detector."""

    selector: str
    type: str = "text"
    label: Optional[str] = None
    required: bool = False
    testId: Optional[str] = None
    alternativeSelector: Optional[str] = None
    options: Optional[list[str]] = None

    @field_validator("type", mode="before")
    @classmethod
    def _default_type(cls, value: Optional[str]) -> str:
        return (value or "text").strip() or "text"

    @field_validator("required", mode="before")
    @classmethod
    def _coerce_required(cls, value: object) -> bool:
        return bool(value)

    @property
    def display_label(self) -> str:
        return self.label or self.selector


class DetectedForm(BaseModel):
    """A form boundary and its fields as reported by LLM analysis."""

    formIndex: int
    containerSelector: str
    fields: list[FormField] = []


class FormAnalysis(BaseModel):
    """LLM form analysis result for a whole page."""

    forms: list[DetectedForm] = []


class SelectedElement(BaseModel):
    """The element picked by the user in element-selection mode."""

    selector: str
    html: str = ""


class InputContext(BaseModel):
    """A focused input as reported by the ghost writer."""

    selector: Optional[str] = None
    type: str = "text"
    label: Optional[str] = None
    placeholder: Optional[str] = None
    name: Optional[str] = None
    id: Optional[str] = None
    required: bool = False
    formContainerSelector: Optional[str] = None
    pageUrl: str = ""
    pageTitle: str = ""

    @field_validator("type", mode="before")
    @classmethod
    def _default_type(cls, value: Optional[str]) -> str:
        return (value or "text").strip().lower() or "text"

    @field_validator("required", mode="before")
    @classmethod
    def _coerce_required(cls, value: object) -> bool:
        return bool(value)
