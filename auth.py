# auth.py

import logging
from functools import wraps

from flask import current_app, g, jsonify, request
from google.auth.transport import requests as google_requests
from google.oauth2 import id_token

logger = logging.getLogger(__name__)


def google_token_verifier(client_id):
    """Returns a callable that checks a Google-issued ID token and yields its claims.

    Without a client id the audience cannot be checked, so every token is rejected.
    """
    if not client_id: logger.warning("GOOGLE_CLIENT_ID is not set; all API requests will be rejected")
    def verify(token):
        if not client_id: raise ValueError("No client id configured to check the token audience")
        return id_token.verify_oauth2_token(token, google_requests.Request(), client_id)
    return verify


def bearer_token():
    header = request.headers.get('Authorization', '')
    scheme, _, token = header.partition(' ')
    if scheme.lower() == 'bearer' and token.strip(): return token.strip()
    # EventSource cannot set headers, so event streams pass the token in the query string.
    return request.args.get('access_token') or None


def require_user(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = bearer_token()
        if not token: return jsonify({"error": "Authentication required"}), 401
        verify = current_app.extensions['scheduler'].verify_token
        try:
            claims = verify(token)
        except ValueError as e:
            logger.warning(f"Rejected ID token on '{f.__name__}': {e}")
            return jsonify({"error": "Authentication required"}), 401
        g.user_id, g.user_email = claims['sub'], claims.get('email')
        return f(*args, **kwargs)
    return decorated_function
