"""
Django Integration for Tork Governance

Provides middleware for Django applications.
"""

import io
from functools import wraps
from typing import Any, Callable, Optional

from ..core import Tork
from .base import (
    CONTENT_KEYS,
    blocked_payload,
    govern_body,
    method_is_governed,
    path_is_governed,
    setting_list,
)


class TorkDjangoMiddleware:
    """
    Django middleware that applies Tork governance to requests.

    Add to MIDDLEWARE in settings.py:
        MIDDLEWARE = [
            ...
            'tork_governance.adapters.django.TorkDjangoMiddleware',
        ]

    Configure in settings.py:
        TORK_API_KEY = 'your_api_key'
        TORK_POLICY_VERSION = '1.0.0'
        TORK_DEFAULT_ACTION = 'redact'
        TORK_PROTECTED_PATHS = ['/api/chat/', '/api/generate/']
        TORK_SKIP_PATHS = ['/api/health/']
        TORK_ON_BLOCK = callable(request, result) -> HttpResponse  # optional

    Example:
        >>> # views.py
        >>> def chat_view(request):
        >>>     # Access governance result; request.body is already redacted
        >>>     tork_result = getattr(request, 'tork_result', None)
        >>>     return JsonResponse({'message': 'ok'})
    """

    def __init__(self, get_response: Callable, tork: Optional[Tork] = None):
        from django.conf import settings

        self.get_response = get_response
        self.protected_paths = setting_list(
            getattr(settings, 'TORK_PROTECTED_PATHS', None), ['/api/']
        )
        self.skip_paths = setting_list(getattr(settings, 'TORK_SKIP_PATHS', None), [])
        self.content_keys = tuple(getattr(settings, 'TORK_CONTENT_KEYS', CONTENT_KEYS))
        self.on_block = getattr(settings, 'TORK_ON_BLOCK', None)
        self.tork = tork or Tork(
            api_key=getattr(settings, 'TORK_API_KEY', None),
            policy_version=getattr(settings, 'TORK_POLICY_VERSION', '1.0.0'),
            default_action=getattr(settings, 'TORK_DEFAULT_ACTION', 'redact'),
        )

    def __call__(self, request: Any) -> Any:
        # Only process POST, PUT, PATCH to protected paths
        if not method_is_governed(request.method):
            return self.get_response(request)

        if not path_is_governed(request.path, self.protected_paths, self.skip_paths):
            return self.get_response(request)

        governed = govern_body(self.tork, request.body, self.content_keys)
        if governed is None:
            return self.get_response(request)

        request.tork_result = governed.result

        if governed.blocked:
            if self.on_block is not None:
                return self.on_block(request, governed.result)
            from django.http import JsonResponse
            return JsonResponse(blocked_payload(governed.result), status=403)

        if governed.rewritten:
            body = governed.encoded_document()
            request._body = body
            request._stream = io.BytesIO(body)
            request.META['CONTENT_LENGTH'] = str(len(body))
            request.tork_redacted_content = governed.result.output

        return self.get_response(request)


def tork_protected(view_func: Callable) -> Callable:
    """
    Decorator for Django views that require Tork governance.

    Example:
        >>> from tork_governance.adapters.django import tork_protected
        >>>
        >>> @tork_protected
        >>> def my_view(request):
        >>>     # request.tork_result is available
        >>>     return JsonResponse({'message': 'ok'})
    """
    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        tork_result = getattr(request, 'tork_result', None)
        if tork_result is not None and tork_result.denied:
            from django.http import JsonResponse
            return JsonResponse(blocked_payload(tork_result), status=403)
        return view_func(request, *args, **kwargs)
    return wrapper
