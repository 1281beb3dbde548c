# -*- coding: utf-8 -*-
"""
Ops Routes Blueprint
Defines API endpoints for the ops console
"""
from functools import wraps

from flask import Blueprint

from opsconsole.ops.controllers.ops_controller import OpsController
from opsconsole.ops.middleware.scope_middleware import require_scope, require_platform_scope
from .auth_helpers import token_required


def authenticated(f):
    """token_required followed by require_scope."""
    @wraps(f)
    @token_required
    @require_scope
    def _wrap(*args, **kwargs):
        return f(*args, **kwargs)
    return _wrap


# Create blueprint
ops_bp = Blueprint('ops', __name__, url_prefix='/api/ops')

# Initialize controller
ops_controller = OpsController()

# ========================================
# CALL LOG ROUTES
# ========================================

@ops_bp.route('/call-logs', methods=['GET'])
@authenticated
def get_call_logs():
    """
    Call logs visible to the caller

    Query Parameters:
        - call_type: all | live | test | inbound | outbound | missed | voicemail
        - start_date, end_date: ISO-8601 bounds on call_start_time
        - search: caller name, phone or summary
        - refresh: bypass the cache for the unfiltered list

    Returns:
        200: List of call logs
        400: Invalid filter
        401: Missing or invalid token
    """
    return ops_controller.get_call_logs()


@ops_bp.route('/call-logs/recent', methods=['GET'])
@authenticated
def get_recent_call_logs():
    return ops_controller.get_recent_call_logs()


@ops_bp.route('/call-logs/<call_id>', methods=['GET'])
@authenticated
def get_call_log(call_id):
    return ops_controller.get_call_log(call_id)


@ops_bp.route('/call-logs', methods=['POST'])
@authenticated
def create_call_log():
    return ops_controller.create_call_log()


@ops_bp.route('/call-logs/<call_id>', methods=['PUT'])
@authenticated
def update_call_log(call_id):
    return ops_controller.update_call_log(call_id)


@ops_bp.route('/call-logs/<call_id>', methods=['DELETE'])
@authenticated
def delete_call_log(call_id):
    return ops_controller.delete_call_log(call_id)


# ========================================
# LEAD ROUTES
# ========================================

@ops_bp.route('/leads', methods=['GET'])
@authenticated
def get_leads():
    """
    Leads visible to the caller

    Query Parameters:
        - status, source: exact match
        - start_date, end_date: ISO-8601 bounds on created_at
        - search: name, phone or email
        - refresh: bypass the cache for the unfiltered list
    """
    return ops_controller.get_leads()


@ops_bp.route('/leads/<lead_id>', methods=['GET'])
@authenticated
def get_lead(lead_id):
    return ops_controller.get_lead(lead_id)


@ops_bp.route('/leads', methods=['POST'])
@authenticated
def create_lead():
    return ops_controller.create_lead()


@ops_bp.route('/leads/<lead_id>', methods=['PUT'])
@authenticated
def update_lead(lead_id):
    return ops_controller.update_lead(lead_id)


@ops_bp.route('/leads/<lead_id>', methods=['DELETE'])
@authenticated
def delete_lead(lead_id):
    return ops_controller.delete_lead(lead_id)


@ops_bp.route('/leads/<lead_id>/status', methods=['PATCH'])
@authenticated
def update_lead_status(lead_id):
    return ops_controller.update_lead_status(lead_id)


@ops_bp.route('/leads/<lead_id>/notes', methods=['POST'])
@authenticated
def add_lead_note(lead_id):
    return ops_controller.add_lead_note(lead_id)


# ========================================
# AGENT STATUS ROUTES
# ========================================

@ops_bp.route('/status', methods=['GET'])
@authenticated
def get_status():
    """
    Current agent status; created with defaults on first read

    Query Parameters:
        - scope: client id or 'platform' (platform administrators only)
    """
    return ops_controller.get_status()


@ops_bp.route('/status', methods=['PUT'])
@authenticated
def set_status():
    return ops_controller.set_status()


@ops_bp.route('/status/history', methods=['GET'])
@authenticated
def get_status_history():
    """
    Newest-first status history; the first entry is the live status

    Query Parameters:
        - scope: client id or 'platform'
        - limit: total entries including the current one
    """
    return ops_controller.get_status_history()


@ops_bp.route('/status/uptime', methods=['GET'])
@authenticated
def get_uptime():
    return ops_controller.get_uptime()


@ops_bp.route('/status/summary', methods=['GET'])
@authenticated
@require_platform_scope
def get_status_summary():
    return ops_controller.get_status_summary()


@ops_bp.route('/status/health-check', methods=['POST'])
@authenticated
@require_platform_scope
def run_health_check():
    """
    Run every registered health check and update the platform-wide status

    Returns:
        200: Resulting status and the names of failed checks
        403: Caller is not a platform administrator
    """
    return ops_controller.run_health_check()


@ops_bp.route('/status/bulk', methods=['POST'])
@authenticated
@require_platform_scope
def bulk_set_status():
    return ops_controller.bulk_set_status()


# ========================================
# SYSTEM MESSAGE ROUTES
# ========================================

@ops_bp.route('/messages', methods=['GET'])
@authenticated
def get_messages():
    """
    One page of system messages, global ones included

    Query Parameters:
        - page, page_size
        - refresh: refetch this page only
        - type, search, client_id, include_expired: filtered (uncached) read
    """
    return ops_controller.get_messages()


@ops_bp.route('/messages/active', methods=['GET'])
@authenticated
def get_active_messages():
    return ops_controller.get_active_messages()


@ops_bp.route('/messages/stats', methods=['GET'])
@authenticated
def get_message_statistics():
    return ops_controller.get_message_statistics()


@ops_bp.route('/messages/<message_id>', methods=['GET'])
@authenticated
def get_message(message_id):
    return ops_controller.get_message(message_id)


@ops_bp.route('/messages', methods=['POST'])
@authenticated
def create_message():
    return ops_controller.create_message()


@ops_bp.route('/messages/<message_id>', methods=['PUT'])
@authenticated
def update_message(message_id):
    return ops_controller.update_message(message_id)


@ops_bp.route('/messages/<message_id>', methods=['DELETE'])
@authenticated
def delete_message(message_id):
    return ops_controller.delete_message(message_id)


@ops_bp.route('/messages/bulk', methods=['POST'])
@authenticated
@require_platform_scope
def bulk_create_messages():
    return ops_controller.bulk_create_messages()


@ops_bp.route('/messages/cleanup', methods=['POST'])
@authenticated
@require_platform_scope
def cleanup_messages():
    return ops_controller.cleanup_messages()
