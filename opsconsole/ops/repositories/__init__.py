from .audit_repository import AuditRepository
from .call_log_repository import CallLogRepository
from .directory_repository import DirectoryRepository
from .lead_repository import LeadRepository
from .message_repository import MessageRepository
from .status_repository import StatusRepository

__all__ = [
    'AuditRepository',
    'CallLogRepository',
    'DirectoryRepository',
    'LeadRepository',
    'MessageRepository',
    'StatusRepository',
]
