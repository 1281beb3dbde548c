# -*- coding: utf-8 -*-
"""
Actor identity resolution for writes
"""
import logging
import time
from typing import Callable, Optional

from .errors import AuthenticationRequired

logger = logging.getLogger(__name__)

SYSTEM_ACTOR = 'system'


class IdentityResolver:
    """
    Resolves the acting user through an identity provider callable.

    The provider may not have an identity yet (token still being decoded,
    session still loading), so resolution retries a bounded number of times
    with exponential backoff before giving up.
    """

    def __init__(self, provider: Callable[[], Optional[str]], attempts: int = 3,
                 backoff: float = 0.2, sleep: Callable[[float], None] = time.sleep):
        self.provider = provider
        self.attempts = max(1, attempts)
        self.backoff = backoff
        self.sleep = sleep

    def resolve(self, actor: Optional[str] = None) -> str:
        if actor:
            return actor

        delay = self.backoff
        for attempt in range(1, self.attempts + 1):
            try:
                actor = self.provider()
            except Exception as e:
                logger.warning(f"Identity provider failed on attempt {attempt}: {e}")
                actor = None
            if actor:
                return str(actor)
            if attempt < self.attempts:
                self.sleep(delay)
                delay *= 2

        raise AuthenticationRequired()
