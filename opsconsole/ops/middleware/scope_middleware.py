# -*- coding: utf-8 -*-
"""
Scope Middleware for Multi-Tenant Isolation
Derives the caller's scope from the authenticated user
"""
from functools import wraps
from flask import request, jsonify, g, has_request_context

from ..errors import AuthenticationRequired, ValidationError
from ..scope import PLATFORM_WIDE, parse_scope


def require_scope(f):
    """
    Decorator to resolve the caller scope

    Runs after token_required. Platform administrators (role 'admin', no
    client) are platform-wide and may narrow to one client with the
    X-Client-ID header. Everyone else is pinned to their own client.

    Attaches g.caller_scope and g.actor_id for downstream code.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        user = getattr(request, 'current_user', None)
        if user is None:
            return jsonify({
                'error': 'Missing user',
                'message': 'Authentication is required'
            }), 401

        if user.is_platform_admin:
            try:
                caller_scope = parse_scope(request.headers.get('X-Client-ID'))
            except ValidationError as e:
                return jsonify({
                    'error': 'Invalid client identifier format',
                    'message': e.message
                }), 400
        elif user.client_id:
            caller_scope = user.client_id
        else:
            return jsonify({
                'error': 'No client assigned',
                'message': 'This account is not assigned to a client'
            }), 403

        g.caller_scope = caller_scope
        g.actor_id = user.id
        return f(*args, **kwargs)

    return decorated_function


def require_platform_scope(f):
    """Decorator for platform-wide administrative endpoints."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not hasattr(g, 'caller_scope') or g.caller_scope is not PLATFORM_WIDE:
            return jsonify({
                'error': 'Forbidden',
                'message': 'Platform administrator access required'
            }), 403
        return f(*args, **kwargs)

    return decorated_function


def get_caller_scope():
    """
    Helper function to get the current caller scope from Flask's g object

    Returns:
        tenant id, or None for platform-wide callers

    Raises AuthenticationRequired outside a scoped request; an unresolved
    caller is never treated as platform-wide.
    """
    if not hasattr(g, 'caller_scope'):
        raise AuthenticationRequired()
    return g.caller_scope


def current_actor_id():
    """Identity provider for the services: the authenticated user id, if any."""
    if not has_request_context():
        return None
    return getattr(g, 'actor_id', None)
