"""
Tork Governance Framework Adapters

Provides request-governance integrations for Python web frameworks:
- FastAPI / Starlette (ASGI middleware and dependency)
- Flask
- Django

Framework packages are imported lazily, so installing this package does not
pull any of them in.
"""

from .base import (
    CONTENT_KEYS,
    GOVERNED_METHODS,
    NOT_APPLICABLE,
    BodyGovernance,
    ExtractedContent,
    NotApplicable,
    ParsedBody,
    blocked_payload,
    extract_content,
    govern_body,
    parse_json_body,
    replace_content,
)
from .fastapi import TorkFastAPIMiddleware, TorkFastAPIDependency
from .django import TorkDjangoMiddleware, tork_protected
from .flask import TorkFlask, tork_required

__all__ = [
    # Shared helpers
    "CONTENT_KEYS",
    "GOVERNED_METHODS",
    "NOT_APPLICABLE",
    "BodyGovernance",
    "ExtractedContent",
    "NotApplicable",
    "ParsedBody",
    "blocked_payload",
    "extract_content",
    "govern_body",
    "parse_json_body",
    "replace_content",
    # FastAPI
    "TorkFastAPIMiddleware",
    "TorkFastAPIDependency",
    # Django
    "TorkDjangoMiddleware",
    "tork_protected",
    # Flask
    "TorkFlask",
    "tork_required",
]
