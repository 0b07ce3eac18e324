# documents.py

import logging

from sqlalchemy.orm.attributes import flag_modified

from models import db, Person, Availability, Rehearsal, PALETTE, ValidationError, validate_person, validate_rehearsal, validate_availability, validate_notes
from subscriptions import SubscriptionHub

logger = logging.getLogger(__name__)

COLLECTIONS = ('users', 'availabilities', 'rehearsals')


class NotFound(Exception):
    pass


class Conflict(Exception):
    pass


class DocumentStore:
    """The three document collections. Every committed write publishes a fresh snapshot to subscribers."""

    def __init__(self):
        self.hub = SubscriptionHub(self.snapshot)

    def _commit(self, *collections):
        try:
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        for collection in collections: self.hub.publish(collection)

    # --- Snapshots ---
    def snapshot(self, collection, filters=None):
        filters = filters or {}
        if collection == 'users': return self.list_people()
        if collection == 'rehearsals': return self.list_rehearsals()
        if collection == 'availabilities': return self.list_availabilities(filters.get('userId'))
        raise NotFound(f"Unknown collection '{collection}'.")

    # --- People ---
    def list_people(self):
        return [p.to_dict() for p in Person.query.order_by(Person.name).all()]

    def get_person(self, person_id):
        person = db.session.get(Person, person_id)
        if person is None: raise NotFound(f"Person '{person_id}' not found.")
        return person

    def _check_unique_name(self, name, exclude_id=None):
        clash = Person.query.filter(db.func.lower(Person.name) == name.lower()).first()
        if clash and clash.id != exclude_id: raise Conflict(f"A team member named '{name}' already exists (case-insensitive).")

    def create_person(self, payload):
        fields = validate_person(payload)
        self._check_unique_name(fields['name'])
        if not fields.get('color'): fields['color'] = PALETTE[Person.query.count() % len(PALETTE)]
        person = Person(**fields)
        db.session.add(person)
        self._commit('users')
        logger.info(f"Created person {person.id} ({person.name})")
        return person.to_dict()

    def update_person(self, person_id, payload):
        person = self.get_person(person_id)
        fields = validate_person(payload, partial=True)
        if 'name' in fields: self._check_unique_name(fields['name'], exclude_id=person.id)
        if 'color' in fields and not fields['color']: del fields['color']
        for key, value in fields.items(): setattr(person, key, value)
        self._commit('users')
        return person.to_dict()

    def delete_person(self, person_id):
        """Deletes a person with their availability records and strikes them from every rehearsal."""
        person = self.get_person(person_id)
        removed = Availability.query.filter_by(user_id=person.id).delete()
        for rehearsal in Rehearsal.query.all():
            if person.id in (rehearsal.participants or []):
                rehearsal.participants = [p for p in rehearsal.participants if p != person.id]
                flag_modified(rehearsal, "participants")
        db.session.delete(person)
        self._commit('users', 'availabilities', 'rehearsals')
        logger.info(f"Deleted person {person_id} and {removed} availability records")

    # --- Rehearsals ---
    def list_rehearsals(self):
        return [r.to_dict() for r in Rehearsal.query.order_by(Rehearsal.date, Rehearsal.time).all()]

    def create_rehearsal(self, payload):
        fields = validate_rehearsal(payload)
        roster = [p.id for p in Person.query.order_by(Person.name).all()]
        if fields['participants'] is None:
            fields['participants'] = roster
        else:
            unknown = [p for p in fields['participants'] if p not in roster]
            if unknown: raise ValidationError('participants', f"Unknown participants: {', '.join(unknown)}.")
        rehearsal = Rehearsal(**fields)
        db.session.add(rehearsal)
        self._commit('rehearsals')
        logger.info(f"Scheduled rehearsal {rehearsal.id} on {rehearsal.date} at {rehearsal.time}")
        return rehearsal.to_dict()

    # --- Availabilities ---
    def list_availabilities(self, user_id=None):
        query = Availability.query
        if user_id: query = query.filter_by(user_id=user_id)
        return [a.to_dict() for a in query.order_by(Availability.date).all()]

    def create_availability(self, user_id, day, status):
        validate_availability(day, status)
        self.get_person(user_id)
        record = Availability(user_id=user_id, date=day, status=status)
        db.session.add(record)
        self._commit('availabilities')
        return record.to_dict()

    def update_availability(self, record_id, status):
        record = db.session.get(Availability, record_id)
        if record is None: raise NotFound(f"Availability '{record_id}' not found.")
        validate_availability(record.date, status)
        record.status = status
        self._commit('availabilities')
        return record.to_dict()

    def set_availability_notes(self, record_id, notes):
        record = db.session.get(Availability, record_id)
        if record is None: raise NotFound(f"Availability '{record_id}' not found.")
        record.notes = validate_notes(notes)
        self._commit('availabilities')
        return record.to_dict()

    def delete_availability(self, record_id):
        record = db.session.get(Availability, record_id)
        if record is None: raise NotFound(f"Availability '{record_id}' not found.")
        db.session.delete(record)
        self._commit('availabilities')
