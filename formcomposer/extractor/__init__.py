"""Form extraction: field models, HTML reduction and form detection."""
from .html import optimize_html
from .models import DetectedForm, FormAnalysis, FormField, InputContext, SelectedElement

__all__ = [
    "DetectedForm",
    "FormAnalysis",
    "FormField",
    "InputContext",
    "SelectedElement",
    "optimize_html",
]
