"""
Shared plumbing for the per-screen controllers.

Subclass contract:
    1. Call super().__init__(client, session, notifier)
    2. Keep cached server collections as plain lists of records
    3. Wrap every API call in _call() so failures become notifications
       and the cache keeps its last-known-good state
"""
import logging
from typing import Any, Callable, Optional, Tuple

from .api import ApiClient
from .errors import ApiError, TaskboardError
from .events import Notifier
from .session import SessionStore

logger = logging.getLogger(__name__)


def describe_error(error: Exception) -> str:
    """User-facing text for an exception from the API layer."""
    if isinstance(error, ApiError) and error.message:
        return error.message
    return str(error) or error.__class__.__name__


class ViewController:
    """Base class for all screen controllers."""

    def __init__(self, client: ApiClient, session: SessionStore, notifier: Optional[Notifier] = None):
        self.client = client
        self.session = session
        self.notifier = notifier or session.notifier
        self.loading = False
        self.error = ""

    # ──────────────────────────────────────────
    # Error reporting
    # ──────────────────────────────────────────

    def _report(self, failure: str, error: Exception) -> None:
        """Surface a failure inline and as a transient notice."""
        self.error = f"{failure}: {describe_error(error)}"
        self.notifier.error(self.error)

    def _call(self, failure: str, fn: Callable[..., Any], *args, **kwargs) -> Tuple[bool, Any]:
        """
        Run one API call.

        Returns (True, result) on success, (False, None) after reporting
        the failure. Never raises TaskboardError.
        """
        try:
            result = fn(*args, **kwargs)
        except TaskboardError as e:
            self._report(failure, e)
            return False, None
        self.error = ""
        return True, result

    def _require_admin(self, action: str) -> bool:
        """Notify and return False when the session may not perform ``action``."""
        if self.session.is_admin:
            return True
        message = f"Only administrators can {action}"
        logger.warning(f"Rejected non-admin action: {action}")
        self.error = message
        self.notifier.error(message)
        return False
