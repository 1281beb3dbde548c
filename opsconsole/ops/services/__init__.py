# -*- coding: utf-8 -*-
"""
Ops services container
Builds one set of services over one session factory, clock and identity provider
"""
from dataclasses import dataclass

from ..cache import DEFAULT_TTL_SECONDS
from ..clock import SystemClock
from ..identity import IdentityResolver
from ..repositories import (
    AuditRepository, CallLogRepository, DirectoryRepository,
    LeadRepository, MessageRepository, StatusRepository,
)
from .call_log_service import CallLogService
from .lead_service import LeadService
from .message_service import MessageService
from .status_monitor import StatusMonitor
from .status_service import StatusService


@dataclass
class OpsServices:
    call_logs: CallLogService
    leads: LeadService
    status: StatusService
    messages: MessageService
    monitor: StatusMonitor

    @classmethod
    def build(cls, session_factory, identity_provider, clock=None,
              ttl: float = DEFAULT_TTL_SECONDS, identity_attempts: int = 3,
              identity_backoff: float = 0.2, history_limit: int = 10,
              page_size: int = 5, max_page_size: int = 100, sleep=None):
        """
        Wire repositories and services. Each call returns independent caches,
        so tests and app instances never share state.
        """
        clock = clock or SystemClock()
        resolver_kwargs = {'attempts': identity_attempts, 'backoff': identity_backoff}
        if sleep is not None:
            resolver_kwargs['sleep'] = sleep
        identity = IdentityResolver(identity_provider, **resolver_kwargs)

        directory = DirectoryRepository(session_factory)
        status = StatusService(
            StatusRepository(session_factory),
            AuditRepository(session_factory),
            directory,
            identity,
            clock=clock,
            history_limit=history_limit,
        )
        return cls(
            call_logs=CallLogService(CallLogRepository(session_factory), ttl=ttl, clock=clock),
            leads=LeadService(LeadRepository(session_factory), ttl=ttl, clock=clock),
            status=status,
            messages=MessageService(
                MessageRepository(session_factory), directory, identity,
                clock=clock, ttl=ttl, default_page_size=page_size, max_page_size=max_page_size,
            ),
            monitor=StatusMonitor(status),
        )


__all__ = [
    'OpsServices',
    'CallLogService',
    'LeadService',
    'MessageService',
    'StatusMonitor',
    'StatusService',
]
