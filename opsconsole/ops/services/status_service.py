# -*- coding: utf-8 -*-
"""
Agent Status Service
Per-scope operational status with audited, idempotent updates
"""
import logging
from datetime import timedelta
from typing import Optional, Dict, Any, List

from opsconsole.models import AGENT_STATES
from ..clock import SystemClock
from ..errors import OpsError, PartialDataError, ValidationError
from ..history import HistoryEntry, as_datetime, build_history
from ..identity import SYSTEM_ACTOR
from ..repositories.status_repository import STATUS_ACTION, STATUS_TABLE
from ..scope import parse_scope, scope_key

logger = logging.getLogger(__name__)

DEFAULT_STATUS = 'active'
DEFAULT_MESSAGE = 'All systems operational'

TIMEFRAMES = {
    'day': timedelta(days=1),
    'week': timedelta(days=7),
    'month': timedelta(days=30),
}


class StatusService:
    """
    Operational status, one current row per scope key.

    A scope with no row gets a default one on first read, attributed to the
    system. That includes tenants: a tenant's first read creates the tenant's
    own row rather than borrowing the platform-wide one, so each tenant's
    history is its own from then on.
    """

    def __init__(self, status_repo, audit_repo, directory_repo, identity,
                 clock=None, history_limit: int = 10):
        self.status_repo = status_repo
        self.audit_repo = audit_repo
        self.directory_repo = directory_repo
        self.identity = identity
        self.clock = clock or SystemClock()
        self.history_limit = history_limit

    def get_status(self, scope=None) -> Dict[str, Any]:
        tenant_id = parse_scope(scope)
        key = scope_key(tenant_id)

        status = self.status_repo.get(key)
        if status is not None:
            return status

        status, created = self.status_repo.ensure(
            key, tenant_id, DEFAULT_STATUS, DEFAULT_MESSAGE, SYSTEM_ACTOR, self.clock.now()
        )
        if created:
            logger.info(f"Initialised agent status for {key}")
        return status

    def set_status(self, scope, status: str, message: Optional[str] = None,
                   actor: Optional[str] = None) -> Dict[str, Any]:
        """
        Upsert the status for a scope key.

        Safe to retry: repeating an identical call leaves the row and the audit
        trail as they were.
        """
        if status not in AGENT_STATES:
            raise ValidationError(f"status must be one of {', '.join(AGENT_STATES)}")
        tenant_id = parse_scope(scope)
        key = scope_key(tenant_id)
        actor = self.identity.resolve(actor)

        row, changed = self.status_repo.upsert(key, tenant_id, status, message, actor, self.clock.now())
        if changed:
            logger.info(f"Agent status for {key} set to {status} by {actor}")
        else:
            logger.debug(f"Agent status for {key} already {status}; nothing written")
        return row

    def get_history(self, scope=None, limit: Optional[int] = None) -> List[HistoryEntry]:
        """
        Newest-first history. Element 0 is always the live row (is_current);
        the rest are up to limit - 1 audit entries.
        """
        limit = self.history_limit if limit is None else limit
        if limit < 1:
            raise ValidationError("limit must be at least 1")

        current = self.get_status(scope)
        key = current['scope_key']
        audit_rows = self.audit_repo.latest(STATUS_TABLE, key, limit - 1, action=STATUS_ACTION)

        actors = [current.get('updated_by')] + [row.get('user_id') for row in audit_rows]
        names = self._user_names(actors)
        return build_history(current, audit_rows, names)

    # ========================================
    # REPORTING
    # ========================================

    def get_status_summary(self) -> Dict[str, Any]:
        statuses = self.status_repo.list_all()
        summary = {state: 0 for state in AGENT_STATES}
        for row in statuses:
            summary[row['status']] = summary.get(row['status'], 0) + 1
        summary['total'] = len(statuses)
        summary['statuses'] = statuses
        return summary

    def bulk_set_status(self, updates: List[Dict[str, Any]],
                        actor: Optional[str] = None) -> Dict[str, List[Dict[str, Any]]]:
        """
        Apply updates one scope at a time. A failing scope is reported and
        skipped; the rest still go through.
        """
        actor = self.identity.resolve(actor)
        updated, failed = [], []
        for update in updates:
            try:
                updated.append(self.set_status(
                    update.get('scope'), update.get('status'), update.get('message'), actor
                ))
            except OpsError as e:
                logger.error(f"Bulk status update failed for {update.get('scope')}: {e.message}")
                failed.append({'scope': update.get('scope'), 'error': e.message})
        return {'updated': updated, 'failed': failed}

    def get_uptime_stats(self, scope=None, timeframe: str = 'week') -> Dict[str, Any]:
        """Minutes spent in each state over the timeframe, walked from the audit trail."""
        if timeframe not in TIMEFRAMES:
            raise ValidationError(f"timeframe must be one of {', '.join(TIMEFRAMES)}")

        current = self.get_status(scope)
        key = current['scope_key']
        now = self.clock.now()
        start = now - TIMEFRAMES[timeframe]

        entries = self.audit_repo.since(STATUS_TABLE, key, start, action=STATUS_ACTION)
        earlier = self.audit_repo.last_before(STATUS_TABLE, key, start, action=STATUS_ACTION)
        if earlier:
            state = (earlier.get('new_values') or {}).get('status', DEFAULT_STATUS)
        elif entries:
            state = (entries[0].get('old_values') or {}).get('status', DEFAULT_STATUS)
        else:
            state = current['status']

        totals = {s: timedelta(0) for s in AGENT_STATES}
        cursor = start
        for entry in entries:
            changed_at = as_datetime(entry['created_at'])
            totals[state] = totals.get(state, timedelta(0)) + (changed_at - cursor)
            state = (entry.get('new_values') or {}).get('status', state)
            cursor = changed_at
        totals[state] = totals.get(state, timedelta(0)) + (now - cursor)

        minutes = {s: int(d.total_seconds() // 60) for s, d in totals.items()}
        total = sum(minutes.values())
        return {
            'uptime': round(minutes['active'] / total * 100) if total > 0 else 100,
            'totalTime': total,
            'activeTime': minutes['active'],
            'maintenanceTime': minutes['maintenance'],
            'inactiveTime': minutes['inactive'],
        }

    def _user_names(self, user_ids) -> Dict[str, str]:
        ids = [u for u in user_ids if u and u != SYSTEM_ACTOR]
        try:
            return self.directory_repo.user_names(ids)
        except PartialDataError as e:
            logger.warning(f"Rendering history with placeholder names: {e.message}")
            return {}
