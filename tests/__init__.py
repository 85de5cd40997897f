"""Test suite for the intakeform package.

This package contains tests for:
- Markdown rendering and form definition validation
- Form rendering and the client form runtime (drafts, uploads, submission)
- The intake lifecycle service, API client and client-facing pages
- Integration scenarios (agent creates, client submits, agent imports)
"""
