"""
Optional process-wide default client.

Nothing in the package uses this implicitly: ``Tork`` instances are normally
constructed and owned by the caller. Applications that want one shared client
call ``configure()`` once at startup, fetch it with ``get_client()``, and drop
it with ``reset_client()`` (for example between tests).

Example:
    >>> from tork_governance import registry
    >>> registry.configure(policy_version="2.0.0", default_action="deny")
    >>> registry.govern("My SSN is 123-45-6789").action
    <GovernanceAction.DENY: 'deny'>
    >>> registry.reset_client()
"""

import logging
import threading
from typing import Any, Optional

from .config import TorkConfig
from .core import GovernanceResult, Region, Tork

logger = logging.getLogger(__name__)

_lock = threading.Lock()
_client: Optional[Tork] = None


def configure(config: Optional[TorkConfig] = None, **kwargs) -> Tork:
    """
    Install a new default client, replacing any existing one.

    Accepts a ``TorkConfig`` or the keyword arguments of ``Tork``.
    """
    global _client
    client = Tork(config=config, **kwargs)
    with _lock:
        _client = client
    logger.debug(
        "Configured default Tork client (policy_version=%s, default_action=%s)",
        client.policy_version, client.default_action.value,
    )
    return client


def get_client() -> Tork:
    """
    Return the default client, creating one from ``TORK_*`` environment
    variables on first use.
    """
    global _client
    with _lock:
        if _client is None:
            _client = Tork(config=TorkConfig.from_env())
            logger.debug("Created default Tork client from environment")
        return _client


def reset_client() -> None:
    """Forget the default client; the next ``get_client()`` builds a new one."""
    global _client
    with _lock:
        _client = None


def is_configured() -> bool:
    with _lock:
        return _client is not None


def govern(
    input_text: Any,
    region: Optional[Region] = None,
    industry: Optional[str] = None,
) -> GovernanceResult:
    """Govern text with the default client."""
    return get_client().govern(input_text, region=region, industry=industry)
