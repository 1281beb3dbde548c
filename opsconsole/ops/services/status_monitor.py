# -*- coding: utf-8 -*-
"""
Status Monitor
Drives the platform-wide status from a set of health checks
"""
import logging
from typing import Callable, Dict, List, Optional

from ..identity import SYSTEM_ACTOR
from ..scope import PLATFORM_WIDE

logger = logging.getLogger(__name__)


class StatusMonitor:
    """
    Runs health checks and writes the platform-wide status.

    Any failing check marks the platform inactive. When everything passes the
    status returns to active, unless an operator has put it in maintenance.
    Each check is a callable that raises or returns False on failure.
    """

    def __init__(self, status_service, checks: Optional[Dict[str, Callable[[], bool]]] = None):
        self.status_service = status_service
        self.checks = dict(checks or {})

    def add_check(self, name: str, check: Callable[[], bool]) -> None:
        self.checks[name] = check

    def run_checks(self) -> List[str]:
        """Names of the checks that failed."""
        failed = []
        for name, check in self.checks.items():
            try:
                ok = check()
            except Exception as e:
                logger.warning(f"Health check {name} raised: {e}")
                ok = False
            if ok is False:
                failed.append(name)
        return failed

    def perform_health_check(self):
        return self.apply_results(self.run_checks())

    def apply_results(self, failed: List[str]):
        """Write the platform-wide status for a set of failed check names."""
        if failed:
            logger.error(f"Health check failed: {', '.join(failed)}")
            return self.status_service.set_status(
                PLATFORM_WIDE, 'inactive',
                f"{len(failed)} critical service(s) are down", actor=SYSTEM_ACTOR,
            )

        current = self.status_service.get_status(PLATFORM_WIDE)
        if current['status'] == 'maintenance':
            return current
        return self.status_service.set_status(
            PLATFORM_WIDE, 'active', 'All systems operational', actor=SYSTEM_ACTOR,
        )
