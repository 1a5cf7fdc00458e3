"""Prompt templates for form analysis, value generation and input hints."""
import json

from ..extractor.models import FormField, InputContext
from ..storage.settings import SYSTEM_PROMPT_PART

ANALYSIS_SYSTEM_PROMPT = (
    "You are a helpful assistant that analyzes HTML and returns structured JSON "
    "data about forms and their fields."
)

GENERATION_SYSTEM_PROMPT = (
    "You are a helpful assistant that generates realistic fake form data based "
    "on themes. Always return valid JSON only."
)

HINT_SYSTEM_PROMPT = (
    "You are a helpful assistant that generates realistic example values for form "
    "fields based on a specific theme. The theme is: {theme}. Always return only "
    "the example value, nothing else. Make it theme-specific and realistic."
)

FORM_ANALYSIS_PROMPT = """You are analyzing an HTML page to identify all forms and their input fields.

Your task is to:
1. Identify all forms on the page (even if they're not wrapped in <form> tags - look for groups of input fields that function as forms)
2. For each form, provide:
   - A CSS selector that uniquely identifies the form container (REQUIRED - prefer id, then name attribute, then class with unique path, then detailed DOM path)
   - All input fields within that form with their selectors, types, labels, and whether they're required

Return your response as a JSON object with this exact structure:
{
  "forms": [
    {
      "formIndex": 0,
      "containerSelector": "#login-form",
      "fields": [
        {"selector": "#email", "type": "email", "label": "Email Address", "required": true},
        {"selector": "#password", "type": "password", "label": "Password", "required": true}
      ]
    }
  ]
}

Important:
- containerSelector is REQUIRED and must be a valid CSS selector that uniquely identifies the form container
- Use precise CSS selectors (prefer id, then name attribute, then class with unique path, then detailed nth-child paths)
- Extract actual labels from the HTML (from <label> tags, aria-label, placeholder, or nearby text)
- Determine if fields are required by checking the "required" attribute, aria-required="true", or validation patterns
- Include all form-like structures, even if they don't use <form> tags
- Make sure containerSelector can be used with document.querySelector() to find the form element

HTML content:
"""


def build_analysis_prompt(html: str) -> str:
    """Build the form analysis prompt for (optimized) page HTML."""
    return FORM_ANALYSIS_PROMPT + html


def describe_fields(fields: list[FormField]) -> str:
    """Serialize field metadata for the generation prompt."""
    descriptions = [
        {
            "index": index,
            "selector": field.selector,
            "type": field.type,
            "label": field.label or "unnamed field",
            "required": field.required,
        }
        for index, field in enumerate(fields)
    ]
    return json.dumps(descriptions, indent=2)


def build_generation_prompt(base_prompt: str, theme: str, fields: list[FormField]) -> str:
    """Combine the user-editable prompt with the fixed theme and field part."""
    fixed = SYSTEM_PROMPT_PART.replace("{theme}", theme).replace(
        "{fields}", describe_fields(fields)
    )
    return f"{base_prompt.replace('{theme}', theme)}\n\n{fixed}"


def describe_input(context: InputContext) -> str:
    """Describe a focused input for hint generation."""
    lines = [
        f"Page: {context.pageTitle}",
        f"URL: {context.pageUrl}",
        "",
        "Current Input Field:",
        f"- Type: {context.type}",
    ]
    if context.label:
        lines.append(f"- Label: {context.label}")
    if context.placeholder:
        lines.append(f"- Placeholder: {context.placeholder}")
    if context.name:
        lines.append(f"- Name: {context.name}")
    if context.id:
        lines.append(f"- ID: {context.id}")
    lines.append(f"- Required: {'Yes' if context.required else 'No'}")

    if context.formContainerSelector:
        lines.extend(["", f"Form Container: {context.formContainerSelector}"])
    return "\n".join(lines)


def build_hint_prompt(base_prompt: str, theme: str, context: InputContext) -> str:
    return f"{base_prompt.replace('{theme}', theme)}\n\n{describe_input(context)}\n\nTheme: {theme}"
