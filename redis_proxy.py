# redis_proxy.py

import json
import logging
from urllib.parse import urlparse

import redis
from flask import Blueprint, current_app, jsonify, request

logger = logging.getLogger(__name__)

bp = Blueprint('redis_proxy', __name__, url_prefix='/redis')

ALL_METHODS = ['GET', 'POST', 'PUT', 'PATCH', 'DELETE', 'OPTIONS']
ALLOWED = 'POST, OPTIONS'


def open_client():
    """Opens a fresh connection for a single operation; callers close it."""
    url = current_app.config['REDIS_URL']
    if not url: raise redis.ConnectionError("REDIS_URL is not configured")
    options = {'decode_responses': True, 'socket_connect_timeout': current_app.config['REDIS_CONNECT_TIMEOUT']}
    if urlparse(url).scheme == 'rediss': options['ssl_cert_reqs'] = None
    return redis.from_url(url, **options)


def _json_body():
    payload = request.get_json(silent=True)
    return payload if isinstance(payload, dict) else {}


def _preflight_or_reject():
    if request.method == 'OPTIONS': return '', 200
    if request.method != 'POST':
        response = jsonify({"error": f"Method {request.method} Not Allowed"})
        response.headers['Allow'] = ALLOWED
        return response, 405
    return None


@bp.route('/get', methods=ALL_METHODS)
def redis_get():
    early = _preflight_or_reject()
    if early: return early
    key = _json_body().get('key')
    if not key or not isinstance(key, str): return jsonify({"error": "Key is required"}), 400
    client = None
    try:
        client = open_client()
        value = client.get(key)
        return jsonify({"value": json.loads(value) if value else None})
    except (redis.RedisError, ValueError) as e:
        logger.error(f"Redis error: {e}", exc_info=True)
        return jsonify({"error": "Redis operation failed"}), 500
    finally:
        if client is not None: client.close()


@bp.route('/set', methods=ALL_METHODS)
def redis_set():
    early = _preflight_or_reject()
    if early: return early
    payload = _json_body()
    key = payload.get('key')
    if not key or not isinstance(key, str) or 'value' not in payload: return jsonify({"error": "Key and value are required"}), 400
    client = None
    try:
        client = open_client()
        client.set(key, json.dumps(payload['value']))
        return jsonify({"success": True})
    except redis.RedisError as e:
        logger.error(f"Redis error: {e}", exc_info=True)
        return jsonify({"error": "Redis operation failed"}), 500
    finally:
        if client is not None: client.close()
