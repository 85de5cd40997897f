"""Intake forms: schema-driven client intake with drafts and file uploads.

Agents create an intake with a JSON form definition; clients open a link,
fill in the rendered form, upload files and submit. This package provides:
- A markdown renderer for content blocks inside forms
- The form definition model with alias normalization and validation
- A server-side form renderer that embeds the browser runtime
- FormRuntime, the client lifecycle (drafts, uploads, submission) in Python
- The intake lifecycle service, its HTTP client and the client pages

Basic usage:
    >>> from intakeform.schema import FormDefinition
    >>> from intakeform.renderer import render_form
    >>> definition = FormDefinition.from_dict({
    ...     "title": "Website brief",
    ...     "sections": [{"heading": "About", "fields": [
    ...         {"name": "company", "label": "Company", "type": "text", "required": True}
    ...     ]}],
    ... })
    >>> "btn-submit" in render_form(definition, "tok_1")
    True
"""

__version__ = "0.1.0"
__author__ = "Platform21"

# Version info
VERSION = (0, 1, 0)

# Core exports
from intakeform.markdown import render_markdown
from intakeform.renderer import render_form
from intakeform.runtime import FormRuntime
from intakeform.schema import FormDefinition
from intakeform.service import IntakeService

# Package metadata
__all__ = [
    "__version__",
    "VERSION",
    "FormDefinition",
    "FormRuntime",
    "IntakeService",
    "render_form",
    "render_markdown",
]
