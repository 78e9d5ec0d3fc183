"""
Flask Integration for Tork Governance

Provides extension and decorators for Flask applications.
"""

from functools import wraps
from typing import Any, Callable, List, Optional, Sequence

from ..core import Tork, GovernanceResult
from .base import (
    CONTENT_KEYS,
    BodyGovernance,
    OnBlock,
    blocked_payload,
    govern_body,
    method_is_governed,
    path_is_governed,
    setting_list,
)


def _apply_governance(request: Any, g: Any, governed: BodyGovernance) -> None:
    """Expose the result on ``g`` and swap in the redacted body."""
    g.tork_result = governed.result
    if governed.rewritten:
        body = governed.encoded_document()
        # get_data() and get_json() read from this cache.
        request._cached_data = body
        request._cached_json = (Ellipsis, Ellipsis)
        g.tork_redacted_content = governed.result.output
        g.tork_governed_json = governed.document


class TorkFlask:
    """
    Flask extension for Tork governance.

    Reads ``TORK_API_KEY``, ``TORK_POLICY_VERSION``, ``TORK_DEFAULT_ACTION``,
    ``TORK_PROTECTED_PATHS`` and ``TORK_SKIP_PATHS`` from ``app.config``.

    Example:
        >>> from flask import Flask, request, g
        >>> from tork_governance.adapters.flask import TorkFlask
        >>>
        >>> app = Flask(__name__)
        >>> tork = TorkFlask(app)
        >>>
        >>> @app.route('/api/chat', methods=['POST'])
        >>> def chat():
        >>>     # g.tork_result contains governance result
        >>>     return {'message': request.get_json()['content']}
    """

    def __init__(
        self,
        app: Optional[Any] = None,
        tork: Optional[Tork] = None,
        api_key: Optional[str] = None,
        policy_version: str = "1.0.0",
        protected_paths: Optional[List[str]] = None,
        skip_paths: Optional[List[str]] = None,
        content_keys: Sequence[str] = CONTENT_KEYS,
        on_block: Optional[OnBlock] = None,
    ):
        self.tork = tork or Tork(api_key=api_key, policy_version=policy_version)
        self._explicit_tork = tork is not None
        self.app = app
        self._protected_paths = protected_paths or ['/api/']
        self._skip_paths = skip_paths or []
        self.content_keys = tuple(content_keys)
        self.on_block = on_block

        if app is not None:
            self.init_app(app)

    def init_app(self, app: Any) -> None:
        """Initialize the extension with a Flask app."""
        self.app = app

        self._protected_paths = setting_list(
            app.config.get('TORK_PROTECTED_PATHS'), self._protected_paths
        )
        self._skip_paths = setting_list(app.config.get('TORK_SKIP_PATHS'), self._skip_paths)

        if not self._explicit_tork and any(
            key in app.config
            for key in ('TORK_API_KEY', 'TORK_POLICY_VERSION', 'TORK_DEFAULT_ACTION')
        ):
            self.tork = Tork(
                api_key=app.config.get('TORK_API_KEY'),
                policy_version=app.config.get('TORK_POLICY_VERSION', '1.0.0'),
                default_action=app.config.get('TORK_DEFAULT_ACTION', 'redact'),
            )

        app.extensions = getattr(app, 'extensions', {})
        app.extensions['tork'] = self

        # Register before_request handler
        app.before_request(self._before_request)

    def _before_request(self) -> Optional[Any]:
        """Before request hook to apply governance."""
        from flask import request, g, jsonify

        if not method_is_governed(request.method):
            return None

        if not path_is_governed(request.path, self._protected_paths, self._skip_paths):
            return None

        governed = govern_body(self.tork, request.get_data(cache=True), self.content_keys)
        if governed is None:
            return None

        _apply_governance(request, g, governed)

        if governed.blocked:
            if self.on_block is not None:
                return self.on_block(request, governed.result)
            return jsonify(blocked_payload(governed.result)), 403

        return None

    def govern(self, content: str) -> GovernanceResult:
        """Manually govern content."""
        return self.tork.govern(content)


def tork_required(f: Callable) -> Callable:
    """
    Decorator that requires content to pass Tork governance.

    Uses the ``TorkFlask`` extension's client when one is registered on the
    app, otherwise a client built from ``app.config``.

    Example:
        >>> from flask import Flask, request
        >>> from tork_governance.adapters.flask import tork_required
        >>>
        >>> @app.route('/chat', methods=['POST'])
        >>> @tork_required
        >>> def chat():
        >>>     # g.tork_result contains governance result
        >>>     return {'message': 'ok'}
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        from flask import request, g, jsonify, current_app

        # Already governed by the extension's before_request hook
        if getattr(g, 'tork_result', None) is not None:
            if g.tork_result.denied:
                return jsonify(blocked_payload(g.tork_result)), 403
            return f(*args, **kwargs)

        extension = current_app.extensions.get('tork')
        if extension is not None:
            tork = extension.tork
            content_keys = extension.content_keys
        else:
            tork = getattr(g, '_tork', None)
            if not tork:
                tork = Tork(
                    api_key=current_app.config.get('TORK_API_KEY'),
                    policy_version=current_app.config.get('TORK_POLICY_VERSION', '1.0.0'),
                    default_action=current_app.config.get('TORK_DEFAULT_ACTION', 'redact'),
                )
                g._tork = tork
            content_keys = CONTENT_KEYS

        governed = govern_body(tork, request.get_data(cache=True), content_keys)
        if governed is None:
            return f(*args, **kwargs)

        _apply_governance(request, g, governed)

        if governed.blocked:
            return jsonify(blocked_payload(governed.result)), 403

        return f(*args, **kwargs)

    return decorated_function
