import uuid
from datetime import datetime

from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, Enum, Text, JSON, Index
)

from .db import Base

# ----------------------------------
# Helpers / Enums
# ----------------------------------

AGENT_STATES = ('active', 'inactive', 'maintenance')
MESSAGE_TYPES = ('info', 'warning', 'error', 'success')
LEAD_STATUSES = ('new', 'contacted', 'qualified', 'proposal', 'closed_won', 'closed_lost')
LEAD_SOURCES = ('website', 'direct_call', 'referral', 'social_media', 'other')
CALL_TYPES = ('inbound', 'outbound', 'missed', 'voicemail')

AGENT_STATUS_ENUM = Enum(*AGENT_STATES, name='agent_status_enum')
MESSAGE_TYPE_ENUM = Enum(*MESSAGE_TYPES, name='system_message_type_enum')
LEAD_STATUS_ENUM = Enum(*LEAD_STATUSES, name='lead_status_enum')
LEAD_SOURCE_ENUM = Enum(*LEAD_SOURCES, name='lead_source_enum')


def _new_id():
    return str(uuid.uuid4())


def _iso(value):
    return value.isoformat() if value else None


# ----------------------------------
# Directory
# ----------------------------------

class User(Base):
    __tablename__ = 'users'

    id = Column(String(36), primary_key=True, default=_new_id)
    email = Column(String(255), unique=True, nullable=False, index=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    role = Column(String(50), nullable=False, default='staff')
    # NULL client_id means platform staff (administrators see every tenant)
    client_id = Column(String(36), nullable=True, index=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f'<User {self.email}>'

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def is_platform_admin(self):
        return self.role == 'admin' and self.client_id is None

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'full_name': self.full_name,
            'role': self.role,
            'client_id': self.client_id,
            'is_active': self.is_active,
        }


class Client(Base):
    __tablename__ = 'clients'

    id = Column(String(36), primary_key=True, default=_new_id)
    name = Column(String(255), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'is_active': self.is_active,
            'created_at': _iso(self.created_at),
        }


# ----------------------------------
# Scoped records
# ----------------------------------

class CallLog(Base):
    __tablename__ = 'calls'

    id = Column(String(36), primary_key=True, default=_new_id)
    client_id = Column(String(36), nullable=True, index=True)
    call_type = Column(String(50), nullable=False, default='inbound')
    is_test_call = Column(Boolean, default=False, nullable=False)
    caller_full_name = Column(String(255), nullable=True)
    caller_phone_number = Column(String(50), nullable=True)
    call_summary = Column(Text, nullable=True)
    transcript = Column(Text, nullable=False, default='')
    call_duration_seconds = Column(Integer, nullable=False, default=0)
    call_start_time = Column(DateTime, nullable=False, index=True)
    call_end_time = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'client_id': self.client_id,
            'call_type': self.call_type,
            'is_test_call': self.is_test_call,
            'caller_full_name': self.caller_full_name,
            'caller_phone_number': self.caller_phone_number,
            'call_summary': self.call_summary,
            'transcript': self.transcript,
            'call_duration_seconds': self.call_duration_seconds,
            'call_start_time': _iso(self.call_start_time),
            'call_end_time': _iso(self.call_end_time),
            'created_at': _iso(self.created_at),
        }


class Lead(Base):
    __tablename__ = 'leads'

    id = Column(String(36), primary_key=True, default=_new_id)
    client_id = Column(String(36), nullable=True, index=True)
    call_id = Column(String(36), nullable=True)
    full_name = Column(String(255), nullable=False)
    phone_number = Column(String(50), nullable=False)
    email = Column(String(255), nullable=True)
    status = Column(LEAD_STATUS_ENUM, nullable=False, default='new')
    source = Column(LEAD_SOURCE_ENUM, nullable=False, default='other')
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, index=True)

    def to_dict(self):
        return {
            'id': self.id,
            'client_id': self.client_id,
            'call_id': self.call_id,
            'full_name': self.full_name,
            'phone_number': self.phone_number,
            'email': self.email,
            'status': self.status,
            'source': self.source,
            'notes': self.notes,
            'created_at': _iso(self.created_at),
        }


class AgentStatus(Base):
    """One current row per scope key; written only through an upsert on scope_key."""
    __tablename__ = 'agent_status'

    id = Column(Integer, primary_key=True, autoincrement=True)
    scope_key = Column(String(64), unique=True, nullable=False)
    client_id = Column(String(36), nullable=True)
    status = Column(AGENT_STATUS_ENUM, nullable=False, default='active')
    message = Column(Text, nullable=True)
    last_updated = Column(DateTime, nullable=False)
    updated_by = Column(String(64), nullable=False)
    created_at = Column(DateTime, nullable=False)

    def to_dict(self):
        return {
            'id': self.id,
            'scope_key': self.scope_key,
            'client_id': self.client_id,
            'status': self.status,
            'message': self.message,
            'last_updated': _iso(self.last_updated),
            'updated_by': self.updated_by,
            'created_at': _iso(self.created_at),
        }


class SystemMessage(Base):
    __tablename__ = 'system_messages'

    id = Column(String(36), primary_key=True, default=_new_id)
    client_id = Column(String(36), nullable=True, index=True)
    type = Column(MESSAGE_TYPE_ENUM, nullable=False, default='info')
    message = Column(Text, nullable=False)
    timestamp = Column(DateTime, nullable=False, index=True)
    expires_at = Column(DateTime, nullable=True)
    created_by = Column(String(64), nullable=True)
    updated_by = Column(String(64), nullable=True)
    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=False)

    def to_dict(self):
        return {
            'id': self.id,
            'client_id': self.client_id,
            'type': self.type,
            'message': self.message,
            'timestamp': _iso(self.timestamp),
            'expires_at': _iso(self.expires_at),
            'created_by': self.created_by,
            'updated_by': self.updated_by,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at),
        }


# ----------------------------------
# Audit
# ----------------------------------

class AuditLog(Base):
    """Append-only. user_id is deliberately not a foreign key so entries outlive users."""
    __tablename__ = 'audit_logs'
    __table_args__ = (
        Index('ix_audit_logs_table_scope_created', 'table_name', 'scope_key', 'created_at'),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), nullable=True)
    client_id = Column(String(36), nullable=True)
    scope_key = Column(String(64), nullable=False)
    action = Column(String(64), nullable=False)
    table_name = Column(String(64), nullable=False)
    record_id = Column(String(64), nullable=True)
    old_values = Column(JSON, nullable=True)
    new_values = Column(JSON, nullable=True)
    created_at = Column(DateTime, nullable=False)

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'client_id': self.client_id,
            'scope_key': self.scope_key,
            'action': self.action,
            'table_name': self.table_name,
            'record_id': self.record_id,
            'old_values': self.old_values,
            'new_values': self.new_values,
            'created_at': _iso(self.created_at),
        }
