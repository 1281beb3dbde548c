# -*- coding: utf-8 -*-
"""
Ops Controllers
Request handling layer for call logs, leads, agent status and system messages
"""
from flask import request, jsonify, current_app, g

from ..errors import (
    OpsError, NotFound, AuthenticationRequired, ValidationError, PersistenceError
)
from ..middleware.scope_middleware import get_caller_scope
from ..scope import PLATFORM_WIDE, parse_scope

ERROR_STATUS_CODES = {
    ValidationError: 400,
    AuthenticationRequired: 401,
    NotFound: 404,
    PersistenceError: 503,
}

CALL_LOG_FILTERS = ('call_type', 'start_date', 'end_date', 'search', 'client_id')
LEAD_FILTERS = ('status', 'source', 'start_date', 'end_date', 'search', 'client_id')
MESSAGE_FILTERS = ('type', 'search', 'client_id', 'include_expired')


def _error_response(e: Exception) -> tuple:
    if isinstance(e, OpsError):
        status_code = next(
            (code for cls, code in ERROR_STATUS_CODES.items() if isinstance(e, cls)), 500
        )
        if status_code >= 500:
            current_app.logger.error(f"Ops request failed: {e.message}")
        return jsonify({
            'success': False,
            'error': e.error,
            'message': e.message
        }), status_code

    current_app.logger.exception(f"Unhandled ops error: {e}")
    return jsonify({
        'success': False,
        'error': 'Internal server error',
        'message': str(e)
    }), 500


def _int_arg(name: str, default=None):
    value = request.args.get(name)
    if value is None or value == '':
        return default
    try:
        return int(value)
    except ValueError:
        raise ValidationError(f"{name} must be a number")


def _bool_arg(name: str) -> bool:
    return (request.args.get(name) or '').lower() in ('1', 'true', 'yes')


def _filters(names) -> dict:
    filters = {name: request.args.get(name) for name in names if request.args.get(name)}
    if 'include_expired' in filters:
        filters['include_expired'] = _bool_arg('include_expired')
    return filters


def _json_body() -> dict:
    payload = request.get_json(silent=True)
    if not payload or not isinstance(payload, dict):
        raise ValidationError('Request body is required')
    return payload


class OpsController:
    """
    Ops Controller
    Handles HTTP requests and responses; every method returns (response, status)
    """

    def __init__(self, services=None):
        self._services = services

    @property
    def services(self):
        return self._services or current_app.extensions['ops']

    @services.setter
    def services(self, value):
        self._services = value

    def _status_scope(self, requested):
        """Platform callers pick any scope; tenant callers only their own."""
        caller_scope = get_caller_scope()
        if caller_scope is PLATFORM_WIDE:
            return parse_scope(requested)
        if requested is not None and parse_scope(requested) != caller_scope:
            raise ValidationError(f"Caller scoped to {caller_scope!r} cannot access {requested!r}")
        return caller_scope

    # ========================================
    # CALL LOG / LEAD ENDPOINTS
    # ========================================

    def _list(self, service, filter_names) -> tuple:
        try:
            filters = _filters(filter_names)
            if filters:
                records = service.search(filters, get_caller_scope())
            else:
                records = service.get_all(get_caller_scope(), force_refresh=_bool_arg('refresh'))
            return jsonify({'success': True, 'data': records, 'count': len(records)}), 200
        except Exception as e:
            return _error_response(e)

    def _detail(self, service, record_id) -> tuple:
        try:
            record = service.get_by_id(record_id, get_caller_scope())
            return jsonify({'success': True, 'data': record}), 200
        except Exception as e:
            return _error_response(e)

    def _create(self, service) -> tuple:
        try:
            record = service.create(_json_body(), get_caller_scope())
            return jsonify({'success': True, 'data': record}), 201
        except Exception as e:
            return _error_response(e)

    def _update(self, service, record_id) -> tuple:
        try:
            record = service.update(record_id, _json_body(), get_caller_scope())
            return jsonify({'success': True, 'data': record}), 200
        except Exception as e:
            return _error_response(e)

    def _delete(self, service, record_id) -> tuple:
        try:
            service.delete(record_id, get_caller_scope())
            return jsonify({'success': True, 'message': 'Deleted'}), 200
        except Exception as e:
            return _error_response(e)

    def get_call_logs(self):
        return self._list(self.services.call_logs, CALL_LOG_FILTERS)

    def get_recent_call_logs(self):
        try:
            records = self.services.call_logs.get_recent(_int_arg('limit', 10), get_caller_scope())
            return jsonify({'success': True, 'data': records, 'count': len(records)}), 200
        except Exception as e:
            return _error_response(e)

    def get_call_log(self, call_id):
        return self._detail(self.services.call_logs, call_id)

    def create_call_log(self):
        return self._create(self.services.call_logs)

    def update_call_log(self, call_id):
        return self._update(self.services.call_logs, call_id)

    def delete_call_log(self, call_id):
        return self._delete(self.services.call_logs, call_id)

    def get_leads(self):
        return self._list(self.services.leads, LEAD_FILTERS)

    def get_lead(self, lead_id):
        return self._detail(self.services.leads, lead_id)

    def create_lead(self):
        return self._create(self.services.leads)

    def update_lead(self, lead_id):
        return self._update(self.services.leads, lead_id)

    def delete_lead(self, lead_id):
        return self._delete(self.services.leads, lead_id)

    def update_lead_status(self, lead_id):
        """
        PATCH /api/ops/leads/<lead_id>/status
        """
        try:
            payload = _json_body()
            if not payload.get('status'):
                raise ValidationError('status is required')
            record = self.services.leads.update_status(lead_id, payload['status'], get_caller_scope())
            return jsonify({'success': True, 'data': record}), 200
        except Exception as e:
            return _error_response(e)

    def add_lead_note(self, lead_id):
        try:
            payload = _json_body()
            record = self.services.leads.add_note(lead_id, payload.get('note'), get_caller_scope())
            return jsonify({'success': True, 'data': record}), 200
        except Exception as e:
            return _error_response(e)

    # ========================================
    # AGENT STATUS ENDPOINTS
    # ========================================

    def get_status(self):
        """
        GET /api/ops/status?scope=<client id|platform>
        """
        try:
            scope = self._status_scope(request.args.get('scope'))
            return jsonify({'success': True, 'data': self.services.status.get_status(scope)}), 200
        except Exception as e:
            return _error_response(e)

    def set_status(self):
        """
        PUT /api/ops/status
        Body: { "scope": ..., "status": "active|inactive|maintenance", "message": ... }
        """
        try:
            payload = _json_body()
            if not payload.get('status'):
                raise ValidationError('status is required')
            scope = self._status_scope(payload.get('scope'))
            status = self.services.status.set_status(
                scope, payload['status'], payload.get('message'), actor=g.actor_id
            )
            return jsonify({'success': True, 'data': status}), 200
        except Exception as e:
            return _error_response(e)

    def get_status_history(self):
        try:
            scope = self._status_scope(request.args.get('scope'))
            history = self.services.status.get_history(scope, _int_arg('limit'))
            return jsonify({
                'success': True,
                'data': [entry.to_dict() for entry in history],
                'count': len(history)
            }), 200
        except Exception as e:
            return _error_response(e)

    def get_status_summary(self):
        try:
            return jsonify({'success': True, 'data': self.services.status.get_status_summary()}), 200
        except Exception as e:
            return _error_response(e)

    def bulk_set_status(self):
        try:
            updates = _json_body().get('updates')
            if not isinstance(updates, list):
                raise ValidationError('updates must be a list')
            result = self.services.status.bulk_set_status(updates, actor=g.actor_id)
            return jsonify({'success': not result['failed'], 'data': result}), 200
        except Exception as e:
            return _error_response(e)

    def run_health_check(self):
        """
        POST /api/ops/status/health-check
        Runs the registered checks and updates the platform-wide status
        """
        try:
            monitor = self.services.monitor
            failed = monitor.run_checks()
            status = monitor.apply_results(failed)
            return jsonify({
                'success': True,
                'data': {'status': status, 'failed_checks': failed, 'checks': sorted(monitor.checks)}
            }), 200
        except Exception as e:
            return _error_response(e)

    def get_uptime(self):
        try:
            scope = self._status_scope(request.args.get('scope'))
            stats = self.services.status.get_uptime_stats(scope, request.args.get('timeframe', 'week'))
            return jsonify({'success': True, 'data': stats}), 200
        except Exception as e:
            return _error_response(e)

    # ========================================
    # SYSTEM MESSAGE ENDPOINTS
    # ========================================

    def get_messages(self):
        """
        GET /api/ops/messages?page=1&page_size=5&refresh=1
        """
        try:
            result = self.services.messages.get_page(
                page=_int_arg('page', 1),
                page_size=_int_arg('page_size'),
                scope=get_caller_scope(),
                force_refresh=_bool_arg('refresh'),
                filters=_filters(MESSAGE_FILTERS),
            )
            return jsonify({'success': True, 'data': result}), 200
        except Exception as e:
            return _error_response(e)

    def get_active_messages(self):
        """
        GET /api/ops/messages/active
        Every unexpired message the caller can see, for dashboard banners
        """
        try:
            messages = self.services.messages.get_visible(get_caller_scope())
            return jsonify({'success': True, 'data': messages, 'count': len(messages)}), 200
        except Exception as e:
            return _error_response(e)

    def get_message(self, message_id):
        try:
            message = self.services.messages.get_by_id(message_id, get_caller_scope())
            return jsonify({'success': True, 'data': message}), 200
        except Exception as e:
            return _error_response(e)

    def create_message(self):
        try:
            message = self.services.messages.create(_json_body(), get_caller_scope(), actor=g.actor_id)
            return jsonify({'success': True, 'data': message}), 201
        except Exception as e:
            return _error_response(e)

    def update_message(self, message_id):
        try:
            message = self.services.messages.update(
                message_id, _json_body(), get_caller_scope(), actor=g.actor_id
            )
            return jsonify({'success': True, 'data': message}), 200
        except Exception as e:
            return _error_response(e)

    def delete_message(self, message_id):
        try:
            self.services.messages.delete(message_id, get_caller_scope(), actor=g.actor_id)
            return jsonify({'success': True, 'message': 'Deleted'}), 200
        except Exception as e:
            return _error_response(e)

    def bulk_create_messages(self):
        try:
            payload = _json_body()
            messages = self.services.messages.bulk_create(
                payload.get('message'),
                payload.get('type', 'info'),
                payload.get('client_ids') or [],
                actor=g.actor_id,
                expires_at=payload.get('expires_at'),
            )
            return jsonify({'success': True, 'data': messages, 'count': len(messages)}), 201
        except Exception as e:
            return _error_response(e)

    def cleanup_messages(self):
        try:
            removed = self.services.messages.cleanup_expired()
            return jsonify({'success': True, 'removed': removed}), 200
        except Exception as e:
            return _error_response(e)

    def get_message_statistics(self):
        try:
            caller_scope = get_caller_scope()
            scope = request.args.get('client_id') if caller_scope is PLATFORM_WIDE else caller_scope
            stats = self.services.messages.get_statistics(scope)
            return jsonify({'success': True, 'data': stats}), 200
        except Exception as e:
            return _error_response(e)
