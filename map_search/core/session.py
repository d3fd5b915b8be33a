"""Session token handling for the Search Box API."""

import logging
import threading
import uuid
from typing import Optional

logger = logging.getLogger(__name__)


class SessionManager:
    """Owns the token that groups one suggest→select sequence for billing.

    The token is created on construction and only changes through
    :meth:`rotate`, which the resolver calls after every geocode attempt.
    """

    def __init__(self, token: Optional[str] = None) -> None:
        self._lock = threading.Lock()
        self._token = token or str(uuid.uuid4())

    @property
    def token(self) -> str:
        with self._lock:
            return self._token

    def rotate(self) -> str:
        with self._lock:
            self._token = str(uuid.uuid4())
            token = self._token
        logger.debug("Rotated search session token")
        return token
