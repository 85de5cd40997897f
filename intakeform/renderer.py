"""Server-side rendering of intake form pages.

``render_form`` turns a FormDefinition into a complete page: branded layout,
one block per section, one control per field and the client runtime script.
Field controls are produced by a dispatch table keyed by every FieldType.

All attribute and text values are escaped. Markdown output from ``content``
fields and the brand footer are inserted as markup.
"""

import html
from functools import lru_cache
from importlib import resources
from string import Template
from typing import Callable, Dict

from intakeform.brands import DEFAULT_BRAND, Brand
from intakeform.markdown import render_markdown
from intakeform.schema import FormDefinition, FormField, FormSection
from intakeform.types import FieldType

INPUT_CLASSES = (
    "w-full border border-gray-300 rounded-lg px-3 py-2 text-sm "
    "focus:ring-2 focus:ring-blue-500 focus:border-blue-500"
)
UPLOADS_MARKER = "/* uploads */"

LAYOUT_TEMPLATE = Template(
    """<!doctype html>
<html lang="en">
  <head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1">
    <title>$title</title>
    <script src="https://cdn.tailwindcss.com"></script>
    <style>
      .progress-filled { background-color: $primary_colour; }
      .progress-empty { background-color: #e5e7eb; }
      .drag-over { border-color: #3b82f6; background-color: #eff6ff; }
      body { font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; }
    </style>
  </head>
  <body class="bg-gray-50 min-h-screen">
    <header class="bg-white border-b border-gray-200 px-4 py-3">
      <div class="max-w-2xl mx-auto flex items-center justify-between">
        <div class="flex items-center gap-3">
          <div class="font-bold text-xl text-gray-900">$brand_name</div>
          <span class="text-gray-400">|</span>
          <span class="text-sm text-gray-500">$tagline</span>
        </div>
        <div class="text-xs text-green-700 bg-green-50 border border-green-200 rounded-full px-3 py-1">Encrypted</div>
      </div>
    </header>
    <main class="max-w-2xl mx-auto px-4 py-8">
$body
    </main>
    <footer class="border-t border-gray-200 mt-16 py-6 text-center text-sm text-gray-400">$footer</footer>
  </body>
</html>
"""
)


def escape(value: str) -> str:
    return html.escape(value, quote=True)


def render_layout(title: str, body: str, brand: Brand = DEFAULT_BRAND) -> str:
    """Wrap ``body`` markup in the branded page layout."""
    return LAYOUT_TEMPLATE.substitute(
        title=escape(title),
        primary_colour=escape(brand.primary_colour),
        brand_name=escape(brand.name),
        tagline=escape(brand.tagline),
        body=body,
        footer=brand.footer,
    )


@lru_cache(maxsize=None)
def _asset(name: str) -> str:
    return resources.files("intakeform").joinpath("assets", name).read_text(encoding="utf-8")


def runtime_script(with_uploads: bool) -> str:
    """The client runtime, with the upload module spliced in when needed."""
    script = _asset("form_runtime.js")
    uploads = _asset("form_uploads.js") if with_uploads else ""
    return script.replace(UPLOADS_MARKER, uploads)


# -- field controls ---------------------------------------------------------

def _required(form_field: FormField) -> str:
    return " required" if form_field.required else ""


def _render_text(form_field: FormField, token: str) -> str:
    return (
        f'<input type="text" name="{escape(form_field.name)}"{_required(form_field)} '
        f'value="{escape(form_field.value)}" placeholder="{escape(form_field.placeholder)}" '
        f'class="{INPUT_CLASSES}">'
    )


def _render_textarea(form_field: FormField, token: str) -> str:
    return (
        f'<textarea name="{escape(form_field.name)}"{_required(form_field)} rows="4" '
        f'placeholder="{escape(form_field.placeholder)}" class="{INPUT_CLASSES}">'
        f"{escape(form_field.value)}</textarea>"
    )


def _render_select(form_field: FormField, token: str) -> str:
    options = ['<option value="">Select...</option>']
    for option in form_field.options:
        selected = " selected" if option == form_field.value else ""
        options.append(f'<option value="{escape(option)}"{selected}>{escape(option)}</option>')
    return (
        f'<select name="{escape(form_field.name)}"{_required(form_field)} class="{INPUT_CLASSES}">'
        + "".join(options)
        + "</select>"
    )


def _render_checkbox(form_field: FormField, token: str) -> str:
    boxes = []
    for option in form_field.options:
        checked = " checked" if option == form_field.value else ""
        boxes.append(
            '<label class="flex items-center gap-2 text-sm">'
            f'<input type="checkbox" name="{escape(form_field.name)}" value="{escape(option)}"{checked} '
            'class="rounded border-gray-300">'
            f"{escape(option)}</label>"
        )
    return '<div class="space-y-2">' + "".join(boxes) + "</div>"


def _render_content(form_field: FormField, token: str) -> str:
    return (
        '<div class="bg-gray-50 border border-gray-200 rounded-lg p-4 prose prose-sm max-w-none">'
        f"{render_markdown(form_field.value)}</div>"
    )


def _render_file(form_field: FormField, token: str) -> str:
    name = escape(form_field.name)
    accept = escape(form_field.accept)
    return (
        '<div class="file-upload-zone border-2 border-dashed border-gray-300 rounded-lg p-6 '
        'text-center hover:border-blue-400 transition-colors cursor-pointer" '
        f'data-field-id="{name}" data-token="{escape(token)}" '
        f'data-category="{escape(form_field.category)}" data-accept="{accept}">'
        f'<input type="file" multiple accept="{accept}" class="hidden" data-upload-input="{name}">'
        '<p class="text-sm font-medium text-gray-700">Click to upload or drag files here</p>'
        '<p class="text-xs text-gray-500 mt-1">Up to 10 MB per file</p>'
        f'<div class="file-list mt-4 space-y-2" data-file-list="{name}"></div>'
        "</div>"
    )


FIELD_RENDERERS: Dict[FieldType, Callable[[FormField, str], str]] = {
    FieldType.TEXT: _render_text,
    FieldType.TEXTAREA: _render_textarea,
    FieldType.SELECT: _render_select,
    FieldType.CHECKBOX: _render_checkbox,
    FieldType.CONTENT: _render_content,
    FieldType.FILE: _render_file,
}


def render_field(form_field: FormField, token: str) -> str:
    """Label plus control for one field."""
    margin = "mb-2" if form_field.type in (FieldType.CONTENT, FieldType.FILE) else "mb-1"
    marker = ""
    if form_field.required and form_field.type is not FieldType.CONTENT:
        marker = '<span class="text-red-500 ml-0.5">*</span>'
    label = (
        f'<label class="block text-sm font-medium text-gray-700 {margin}">'
        f"{escape(form_field.label)}{marker}</label>"
    )
    return f"<div>{label}{FIELD_RENDERERS[form_field.type](form_field, token)}</div>"


def render_section(section: FormSection, index: int, token: str) -> str:
    divider = ' class="mt-10 pt-8 border-t border-gray-200"' if index > 0 else ""
    parts = [f"<div{divider}>", f'<h2 class="text-xl font-bold text-gray-900 mb-1">{escape(section.heading)}</h2>']
    if section.description:
        parts.append(f'<p class="text-gray-500 text-sm mb-6">{escape(section.description)}</p>')
    parts.append('<div class="space-y-5">')
    parts.extend(render_field(form_field, token) for form_field in section.fields)
    parts.append("</div></div>")
    return "\n".join(parts)


def render_form(definition: FormDefinition, token: str, brand: Brand = DEFAULT_BRAND) -> str:
    """Render the complete page for one intake form.

    Args:
        definition: The normalized form definition
        token: Token of the intake, embedded for the client runtime
        brand: Presentation for the request host

    Returns:
        The page as an HTML string. Rendering the same inputs twice gives
        identical output.
    """
    parts = ['<div class="mb-8">', f'<h1 class="text-2xl font-bold text-gray-900 mb-2">{escape(definition.title)}</h1>']
    if definition.description:
        parts.append(f'<p class="text-gray-600">{escape(definition.description)}</p>')
    parts.append("</div>")

    parts.append(f'<form id="dynamic-form" data-token="{escape(token)}" novalidate>')
    parts.extend(render_section(section, index, token) for index, section in enumerate(definition.sections))
    parts.append(
        '<div class="mt-10 pt-6 border-t border-gray-200">'
        '<button type="submit" id="btn-submit" '
        'class="px-6 py-2.5 text-sm font-medium text-white rounded-lg hover:opacity-90 transition-opacity" '
        f'style="background-color: {escape(brand.primary_colour)};">Submit</button>'
        "</div>"
    )
    parts.append("</form>")
    parts.append(f"<script>\n{runtime_script(definition.has_file_fields)}\n</script>")

    return render_layout(f"{definition.title} - {brand.name}", "\n".join(parts), brand)


__all__ = [
    "FIELD_RENDERERS",
    "render_field",
    "render_form",
    "render_layout",
    "runtime_script",
]
