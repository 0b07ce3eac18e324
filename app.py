# app.py

import json
import logging
import os
from datetime import date, datetime
from functools import wraps
from zoneinfo import ZoneInfo

from flask import Blueprint, Flask, Response, current_app, g, jsonify, render_template, request, stream_with_context
from flask_cors import CORS
from flask_migrate import Migrate

import redis_proxy
from auth import google_token_verifier, require_user
from availability import STATUSES, AvailabilityStore, reconcile
from calendar_service import WEEKDAY_HEADERS, STATUS_COLORS, REHEARSAL_COLOR, build_month_grid, parse_month, shift_month
from date_range import day_key, expand
from documents import COLLECTIONS, Conflict, DocumentStore, NotFound
from models import ValidationError, db
from selection import SelectionLocked, SelectionRegistry

logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s:%(message)s')
logger = logging.getLogger(__name__)

migrate = Migrate()
api = Blueprint('api', __name__)


# --- Client Context ---
class SchedulerContext:
    """Per-application handles that would otherwise be module singletons: document store, live queries, drag sessions."""

    def __init__(self, app):
        self.tz = ZoneInfo(app.config['SCHEDULER_TIMEZONE'])
        self.documents = DocumentStore()
        self.selections = SelectionRegistry(commit_availability, self.tz)
        self.verify_token = app.config.get('TOKEN_VERIFIER') or google_token_verifier(app.config['GOOGLE_CLIENT_ID'])

    def close(self):
        self.documents.hub.close()
        self.selections.clear()
        logger.info("Scheduler context closed")


def scheduler():
    return current_app.extensions['scheduler']


# --- Decorator for Error Handling ---
def api_error_handler(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        try: return f(*args, **kwargs)
        except ValidationError as e: return jsonify({"error": e.message, "field": e.field}), 400
        except NotFound as e: return jsonify({"error": str(e)}), 404
        except Conflict as e: return jsonify({"error": str(e)}), 409
        except SelectionLocked as e: return jsonify({"error": str(e)}), 409
        except Exception as e:
            logging.error(f"An error occurred in endpoint '{f.__name__}': {e}", exc_info=True)
            return jsonify({"error": "An unexpected server error occurred."}), 500
    return decorated_function


# --- Helper Functions ---
def commit_availability(person_id, status, days):
    """Reconciles ``days`` for ``person_id`` against the latest snapshot of their records."""
    _check_span(len(days), 'days')
    documents = scheduler().documents
    documents.get_person(person_id)
    store = AvailabilityStore(documents.snapshot('availabilities', {'userId': person_id}))
    result = reconcile(store, documents, person_id, status, days)
    logger.info(f"Reconciled {len(days)} day(s) for {person_id} as '{status}': {len(result.created)} created, {len(result.updated)} updated, {len(result.deleted)} cleared, {len(result.failed)} failed")
    return result


def result_response(result, extra=None):
    body = {**(extra or {}), **result.to_dict()}
    if result.failed:
        body["error"] = f"Could not save availability for {', '.join(result.failed)}."
        return jsonify(body), 500
    return jsonify(body)


def _parse_day(value, field):
    try: return day_key(value, scheduler().tz)
    except (TypeError, ValueError): raise ValidationError(field, f"Invalid day '{value}'.")


def _json_body():
    payload = request.get_json(silent=True)
    return payload if isinstance(payload, dict) else {}


def _check_span(count, field):
    limit = current_app.config['MAX_RECONCILE_DAYS']
    if count > limit: raise ValidationError(field, f"Cannot mark more than {limit} days at once.")


# --- API Endpoints ---
@api.route("/api/session", methods=['GET'])
@require_user
def session_info():
    return jsonify({"uid": g.user_id, "email": g.user_email})


@api.route("/api/people", methods=['GET', 'POST'])
@require_user
@api_error_handler
def handle_people():
    documents = scheduler().documents
    if request.method == 'GET': return jsonify(documents.list_people())
    return jsonify(documents.create_person(_json_body())), 201


@api.route("/api/people/<string:person_id>", methods=['PUT', 'DELETE'])
@require_user
@api_error_handler
def handle_person(person_id):
    documents = scheduler().documents
    if request.method == 'PUT': return jsonify(documents.update_person(person_id, _json_body()))
    documents.delete_person(person_id)
    return jsonify({"message": f"Person {person_id} deleted."})


@api.route("/api/rehearsals", methods=['GET', 'POST'])
@require_user
@api_error_handler
def handle_rehearsals():
    documents = scheduler().documents
    if request.method == 'GET': return jsonify(documents.list_rehearsals())
    return jsonify(documents.create_rehearsal(_json_body())), 201


@api.route("/api/availabilities", methods=['GET'])
@require_user
@api_error_handler
def list_availabilities():
    return jsonify(scheduler().documents.list_availabilities(request.args.get('userId')))


@api.route("/api/availabilities/<string:record_id>", methods=['PUT'])
@require_user
@api_error_handler
def update_availability_notes(record_id):
    return jsonify(scheduler().documents.set_availability_notes(record_id, _json_body().get('notes')))


@api.route("/api/availabilities/reconcile", methods=['POST'])
@require_user
@api_error_handler
def reconcile_availability():
    payload = _json_body()
    person_id, status = payload.get('personId'), payload.get('status')
    if not person_id: raise ValidationError('personId', "personId is required.")
    if status not in STATUSES: raise ValidationError('status', f"Status must be one of {', '.join(STATUSES)}.")
    if 'days' in payload:
        if not isinstance(payload['days'], list) or not payload['days']: raise ValidationError('days', "days must be a non-empty list.")
        days = sorted({_parse_day(d, 'days') for d in payload['days']})
    else:
        start = _parse_day(payload.get('start'), 'start')
        end = _parse_day(payload.get('end', start), 'end')
        _check_span(abs((date.fromisoformat(end) - date.fromisoformat(start)).days) + 1, 'end')
        days = expand(start, end)
    return result_response(commit_availability(person_id, status, days), {"personId": person_id, "status": status})


@api.route("/api/selection/actor", methods=['POST'])
@require_user
@api_error_handler
def selection_actor():
    payload = _json_body()
    selection = scheduler().selections.get(g.user_id)
    if 'personId' in payload:
        person_id = payload['personId']
        if person_id: scheduler().documents.get_person(person_id)
        selection.set_acting_person(person_id or None)
    if 'mode' in payload:
        if payload['mode'] not in STATUSES: raise ValidationError('mode', f"Mode must be one of {', '.join(STATUSES)}.")
        selection.set_mode(payload['mode'])
    return jsonify(selection.to_dict())


@api.route("/api/selection/event", methods=['POST'])
@require_user
@api_error_handler
def selection_event():
    payload = _json_body()
    event = payload.get('event')
    selection = scheduler().selections.get(g.user_id)
    if event in ('press', 'enter'):
        day = _parse_day(payload.get('day'), 'day')
        changed = selection.press(day) if event == 'press' else selection.enter(day)
        return jsonify({**selection.to_dict(), "changed": changed})
    if event in ('release', 'leave'):
        result = selection.release()
        if result is None: return jsonify({**selection.to_dict(), "changed": False})
        return result_response(result, {**selection.to_dict(), "changed": True})
    raise ValidationError('event', "Event must be one of press, enter, release, leave.")


@api.route("/api/calendar", methods=['GET'])
@require_user
@api_error_handler
def month_calendar():
    month_str = request.args.get('month', datetime.now(scheduler().tz).strftime('%Y-%m'))
    try: year, month = parse_month(month_str)
    except ValueError: raise ValidationError('month', f"Invalid month '{month_str}'.")
    person_id = request.args.get('personId')
    documents = scheduler().documents
    store = AvailabilityStore(documents.list_availabilities(person_id) if person_id else [])
    weeks = build_month_grid(year, month, store, person_id, documents.list_rehearsals())
    legend = {**STATUS_COLORS, "rehearsal": REHEARSAL_COLOR}
    return jsonify({"month": month_str, "prevMonth": shift_month(month_str, -1), "nextMonth": shift_month(month_str, 1), "headers": WEEKDAY_HEADERS, "weeks": weeks, "legend": legend})


@api.route("/api/subscribe/<string:collection>", methods=['GET'])
@require_user
def subscribe(collection):
    if collection not in COLLECTIONS: return jsonify({"error": f"Unknown collection '{collection}'."}), 404
    filters = {'userId': request.args['userId']} if request.args.get('userId') else {}
    subscription = scheduler().documents.hub.subscribe(collection, filters)
    keepalive = current_app.config['STREAM_KEEPALIVE_SECONDS']
    def stream():
        try:
            for snapshot in subscription.snapshots(timeout=keepalive):
                if snapshot is None: yield ": keepalive\n\n"
                else: yield f"event: snapshot\ndata: {json.dumps(snapshot)}\n\n"
        finally:
            subscription.cancel()
    return Response(stream_with_context(stream()), mimetype='text/event-stream', headers={'Cache-Control': 'no-cache'})


# --- HTML Rendering ---
@api.route("/")
def home(): return render_template('scheduler.html', google_client_id=current_app.config['GOOGLE_CLIENT_ID'])


# --- App Initialization, Config, and Extensions ---
def create_app(test_config=None):
    app = Flask(__name__)
    app.config.from_mapping(
        SQLALCHEMY_DATABASE_URI=os.environ.get('DATABASE_URL', 'sqlite:///rehearsals.db'),
        SQLALCHEMY_TRACK_MODIFICATIONS=False,
        REDIS_URL=os.environ.get('REDIS_URL'),
        REDIS_CONNECT_TIMEOUT=int(os.environ.get('REDIS_CONNECT_TIMEOUT', 15)),
        GOOGLE_CLIENT_ID=os.environ.get('GOOGLE_CLIENT_ID'),
        SCHEDULER_TIMEZONE=os.environ.get('SCHEDULER_TIMEZONE', 'UTC'),
        STREAM_KEEPALIVE_SECONDS=15,
        MAX_RECONCILE_DAYS=int(os.environ.get('MAX_RECONCILE_DAYS', 366)),
    )
    if test_config: app.config.update(test_config)
    CORS(app)
    db.init_app(app)
    migrate.init_app(app, db)
    app.extensions['scheduler'] = SchedulerContext(app)
    app.register_blueprint(api)
    app.register_blueprint(redis_proxy.bp)
    return app


if __name__ == "__main__":
    app = create_app()
    with app.app_context(): db.create_all()
    try: app.run(host='0.0.0.0', port=5000, debug=True)
    finally: app.extensions['scheduler'].close()
