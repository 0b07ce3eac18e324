# models.py

import re
import uuid
from datetime import datetime, timezone

from flask_sqlalchemy import SQLAlchemy

from availability import STATUSES
from date_range import is_day_key

db = SQLAlchemy()

# --- Constants ---
EMAIL_REGEX = r'^[a-zA-Z0-9_.+-]+@[a-zA-Z0-9-]+\.[a-zA-Z0-9-.]+$'
TIME_REGEX = r'^([01]\d|2[0-3]):[0-5]\d$'
NAME_MAX_LENGTH = 40
NOTES_MAX_LENGTH = 500
PALETTE = ['#3b82f6', '#ef4444', '#10b981', '#f59e0b', '#8b5cf6', '#ec4899', '#14b8a6', '#f97316']


class ValidationError(Exception):
    def __init__(self, field, message):
        super().__init__(message)
        self.field = field
        self.message = message


def _new_id(): return uuid.uuid4().hex
def _now(): return datetime.now(timezone.utc)
def _stamp(value):
    # SQLite hands back naive datetimes; everything is stored in UTC.
    if value is None: return None
    if value.tzinfo is None: value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


# --- Database Models ---
class Person(db.Model):
    __tablename__ = 'users'
    id = db.Column(db.String(32), primary_key=True, default=_new_id)
    name = db.Column(db.String(NAME_MAX_LENGTH), unique=True, nullable=False)
    email = db.Column(db.String(120))
    instrument = db.Column(db.String(60))
    color = db.Column(db.String(16), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=_now, nullable=False)
    def to_dict(self):
        return { "id": self.id, "name": self.name, "email": self.email, "instrument": self.instrument, "color": self.color, "createdAt": _stamp(self.created_at) }


class Availability(db.Model):
    __tablename__ = 'availabilities'
    __table_args__ = (db.UniqueConstraint('user_id', 'date', name='uq_availability_user_date'),)
    id = db.Column(db.String(32), primary_key=True, default=_new_id)
    user_id = db.Column(db.String(32), db.ForeignKey('users.id'), nullable=False, index=True)
    date = db.Column(db.String(10), nullable=False)
    status = db.Column(db.String(12), nullable=False)
    notes = db.Column(db.Text, nullable=False, default='')
    created_at = db.Column(db.DateTime(timezone=True), default=_now, nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), default=_now, onupdate=_now, nullable=False)
    def to_dict(self):
        return { "id": self.id, "userId": self.user_id, "date": self.date, "status": self.status, "notes": self.notes or '', "createdAt": _stamp(self.created_at), "updatedAt": _stamp(self.updated_at) }


class Rehearsal(db.Model):
    __tablename__ = 'rehearsals'
    id = db.Column(db.String(32), primary_key=True, default=_new_id)
    date = db.Column(db.String(10), nullable=False, index=True)
    time = db.Column(db.String(5), nullable=False)
    duration = db.Column(db.String(40), nullable=False, default='')
    location = db.Column(db.String(120), nullable=False)
    description = db.Column(db.Text, nullable=False, default='')
    participants = db.Column(db.JSON, default=lambda: [])
    created_at = db.Column(db.DateTime(timezone=True), default=_now, nullable=False)
    def to_dict(self):
        return { "id": self.id, "date": self.date, "time": self.time, "duration": self.duration, "location": self.location, "description": self.description, "participants": list(self.participants or []), "createdAt": _stamp(self.created_at) }


# --- Boundary Validation ---
def _text(payload, key):
    value = payload.get(key)
    if value is None: return ''
    if not isinstance(value, str): raise ValidationError(key, f"'{key}' must be a string.")
    return value.strip()


def validate_person(payload, partial=False):
    """Returns the cleaned person fields, raising ValidationError on the first bad one."""
    fields = {}
    if not partial or 'name' in payload:
        name = _text(payload, 'name')
        if not name: raise ValidationError('name', "Name is required.")
        if len(name) > NAME_MAX_LENGTH: raise ValidationError('name', f"Name cannot exceed {NAME_MAX_LENGTH} characters.")
        fields['name'] = name
    for key in ('email', 'instrument', 'color'):
        if key in payload: fields[key] = _text(payload, key) or None
    if fields.get('email') and not re.match(EMAIL_REGEX, fields['email']): raise ValidationError('email', "Invalid email format.")
    return fields


def validate_rehearsal(payload):
    date, time, location = _text(payload, 'date'), _text(payload, 'time'), _text(payload, 'location')
    if not is_day_key(date): raise ValidationError('date', "A valid date (YYYY-MM-DD) is required.")
    if not re.match(TIME_REGEX, time): raise ValidationError('time', "A valid time (HH:MM) is required.")
    if not location: raise ValidationError('location', "Location is required.")
    participants = payload.get('participants')
    if participants is not None and (not isinstance(participants, list) or not all(isinstance(p, str) for p in participants)):
        raise ValidationError('participants', "Participants must be a list of person ids.")
    return { "date": date, "time": time, "location": location, "duration": _text(payload, 'duration'), "description": _text(payload, 'description'), "participants": participants }


def validate_availability(day, status):
    if not is_day_key(day): raise ValidationError('date', f"Invalid day '{day}'.")
    if status not in STATUSES: raise ValidationError('status', f"Status must be one of {', '.join(STATUSES)}.")


def validate_notes(notes):
    if notes is None: return ''
    if not isinstance(notes, str): raise ValidationError('notes', "Notes must be a string.")
    if len(notes) > NOTES_MAX_LENGTH: raise ValidationError('notes', f"Notes cannot exceed {NOTES_MAX_LENGTH} characters.")
    return notes.strip()
