"""Client-facing pages: the form view, the password gate and the thank-you page.

FormPages decides which page a client sees for a token and returns it as a
PageResponse. Mounting these on routes is left to the hosting web framework.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from intakeform.brands import Brand, get_brand
from intakeform.errors import NotFoundError
from intakeform.renderer import escape, render_form, render_layout
from intakeform.schema import FormDefinition
from intakeform.service import IntakeService
from intakeform.store import IntakeRecord
from intakeform.tokens import verify_password

logger = logging.getLogger(__name__)

NOT_FOUND_TEXT = "This intake form was not found."
EXPIRED_TEXT = "This intake form has expired. Please contact us for a new link."
FALLBACK_PROJECT_NAME = "Your Project"


@dataclass(frozen=True)
class PageResponse:
    """What to send back for a page request."""
    status_code: int
    body: str = ""
    content_type: str = "text/html; charset=utf-8"
    location: Optional[str] = None

    @classmethod
    def text(cls, body: str, status_code: int) -> "PageResponse":
        return cls(status_code=status_code, body=body, content_type="text/plain; charset=utf-8")

    @classmethod
    def redirect(cls, location: str) -> "PageResponse":
        return cls(status_code=302, location=location)


def render_password_gate(token: str, brand: Brand, error: bool = False) -> str:
    notice = ""
    if error:
        notice = (
            '<div class="bg-red-50 border border-red-200 rounded-lg p-3 mb-4 text-sm text-red-700">'
            "Incorrect password. Please try again.</div>"
        )
    body = f"""<div class="max-w-sm mx-auto py-12">
  <div class="text-center mb-8">
    <h1 class="text-xl font-bold text-gray-900 mb-2">Enter the password to access this form</h1>
    <p class="text-sm text-gray-500">Check the email you received for the access password.</p>
  </div>
  {notice}
  <form method="POST" action="/{escape(token)}/verify">
    <div class="mb-4">
      <label class="block text-sm font-medium text-gray-700 mb-1">Password</label>
      <input type="password" name="password" required autofocus placeholder="Enter access password"
        class="w-full border border-gray-300 rounded-lg px-3 py-2 text-sm focus:ring-2 focus:ring-blue-500 focus:border-blue-500">
    </div>
    <button type="submit" class="w-full px-4 py-2 text-sm font-medium text-white rounded-lg"
      style="background-color: {escape(brand.primary_colour)};">Continue</button>
  </form>
</div>"""
    return render_layout(f"Access Form - {brand.name}", body, brand)


def render_thanks(project_name: str, brand: Brand) -> str:
    body = f"""<div class="text-center py-16">
  <h1 class="text-2xl font-bold text-gray-900 mb-3">Thank you for completing the intake form</h1>
  <p class="text-gray-600 mb-6 max-w-md mx-auto">
    We have received your information for the <strong>{escape(project_name)}</strong> project.
    Our team will review your submission and be in touch shortly.
  </p>
  <div class="bg-gray-100 rounded-lg p-6 max-w-md mx-auto text-left">
    <h2 class="font-semibold text-gray-900 mb-3">What happens next</h2>
    <ol class="space-y-2 text-sm text-gray-600">
      <li>1. We review your submission and uploaded assets</li>
      <li>2. We may follow up with clarifying questions</li>
      <li>3. Your project brief is compiled and work begins</li>
    </ol>
  </div>
</div>"""
    return render_layout(f"Thank You - {brand.name}", body, brand)


class FormPages:
    """Page flow for the client side of an intake."""

    def __init__(self, service: IntakeService):
        self.service = service

    def _check(self, token: str) -> Tuple[Optional[IntakeRecord], Optional[PageResponse]]:
        record = self.service.records.get_by_token(token)
        if record is None:
            return None, PageResponse.text(NOT_FOUND_TEXT, 404)
        if record.is_expired():
            return record, PageResponse.text(EXPIRED_TEXT, 410)
        return record, None

    def _form_page(self, token: str, brand: Brand) -> PageResponse:
        try:
            data = self.service.get_definition(token)
        except NotFoundError:
            logger.warning("No form definition stored for %s", token)
            body = "<p>No form definition found for this token.</p>"
            return PageResponse(status_code=200, body=f'<html lang="en"><body>{body}</body></html>')
        # Definitions are validated when the intake is created
        definition = FormDefinition.from_dict(data, validate=False)
        return PageResponse(status_code=200, body=render_form(definition, token, brand))

    def view(self, token: str, host: Optional[str] = None) -> PageResponse:
        """The page for ``GET /{token}``."""
        record, failure = self._check(token)
        if failure:
            return failure
        if record.is_complete:
            return PageResponse.redirect(f"/{token}/thanks")

        brand = get_brand(host)
        if record.password_hash:
            return PageResponse(status_code=200, body=render_password_gate(token, brand))

        self.service.mark_sent(record)
        return self._form_page(token, brand)

    def verify(self, token: str, password: Optional[str], host: Optional[str] = None) -> PageResponse:
        """The page for ``POST /{token}/verify`` with the submitted password."""
        record, failure = self._check(token)
        if failure:
            return failure

        brand = get_brand(host)
        if not password or not record.password_hash or not verify_password(password, record.password_hash):
            logger.info("Rejected password for %s", token)
            return PageResponse(status_code=200, body=render_password_gate(token, brand, error=True))

        self.service.mark_sent(record)
        return self._form_page(token, brand)

    def thanks(self, token: str, host: Optional[str] = None) -> PageResponse:
        """The page for ``GET /{token}/thanks``; shown even for unknown tokens."""
        record = self.service.records.get_by_token(token)
        project_name = record.project_name if record else FALLBACK_PROJECT_NAME
        return PageResponse(status_code=200, body=render_thanks(project_name, get_brand(host)))


__all__ = [
    "FormPages",
    "PageResponse",
    "render_password_gate",
    "render_thanks",
]
