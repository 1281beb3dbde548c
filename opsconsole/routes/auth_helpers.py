from functools import wraps
from flask import request, jsonify, current_app, g
import jwt

from ..models import User


def token_required(f):
    """Decorator to require a valid JWT token.

    Verifies the HS256 signature, loads the `User` named by `user_id` in the
    payload and attaches it to `g.user` and `request.current_user`.
    """
    @wraps(f)
    def decorated(*args, **kwargs):
        # Handle OPTIONS requests
        if request.method == 'OPTIONS':
            return f(*args, **kwargs)

        token = None
        if 'Authorization' in request.headers:
            auth_header = request.headers['Authorization']
            try:
                token = auth_header.split(" ")[1]
            except IndexError:
                return jsonify({'error': 'Invalid token format'}), 401

        if not token:
            return jsonify({'error': 'Token is missing'}), 401

        try:
            payload = jwt.decode(token, current_app.config['SECRET_KEY'], algorithms=['HS256'])
        except jwt.ExpiredSignatureError:
            return jsonify({'error': 'Token expired'}), 401
        except jwt.InvalidTokenError as e:
            current_app.logger.error(f"Invalid token: {e}")
            return jsonify({'error': 'Token is invalid or expired'}), 401

        user_id = payload.get('user_id')
        if user_id is None:
            current_app.logger.warning("token missing user_id")
            return jsonify({'error': 'Invalid token payload'}), 401

        session = current_app.extensions['ops_session_factory']()
        try:
            user = session.get(User, str(user_id))
        finally:
            session.close()

        if not user:
            current_app.logger.warning(f"Auth token valid but user not found (id={user_id})")
            return jsonify({'error': 'User not found'}), 401

        if not user.is_active:
            return jsonify({'error': 'User not active'}), 401

        g.user = user
        request.current_user = user
        return f(*args, **kwargs)

    return decorated


def issue_token(user_id, secret_key, expires_in=None):
    """Signed HS256 token for a user id (used by scripts and tests)."""
    payload = {'user_id': str(user_id)}
    if expires_in is not None:
        payload['exp'] = expires_in
    return jwt.encode(payload, secret_key, algorithm='HS256')
