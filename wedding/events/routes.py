import logging

from flask import jsonify, Blueprint
from flask_jwt_extended import jwt_required, current_user

from wedding import db
from wedding.errors import Forbidden, ValidationError, invalid_form
from wedding.events.forms import (
    EventForm, EventUpdateForm, GuestForm, RsvpForm, TimelineItemForm, TimelineItemUpdateForm,
)
from wedding.models import Event, Guest, TimelineItem

bp = Blueprint('events', __name__)
logger = logging.getLogger(__name__)


def _owned_event(event_id):
    event = db.get_or_404(Event, event_id, description="Event not found")
    if event.user_id != current_user.user_id:
        raise Forbidden("Unauthorized")
    return event


@bp.route('/events', methods=['POST'])
@jwt_required()
def create_event():
    form = EventForm()
    if not form.validate():
        raise invalid_form(form)

    event = Event(
        user_id=current_user.user_id,
        title=form.title.data,
        event_date=form.event_date.data,
        description=form.description.data or None,
        venue=form.venue.data or None,
        address=form.address.data or None,
        max_guests=form.max_guests.data,
        status=form.status.data or 'planning',
    )
    db.session.add(event)
    db.session.commit()
    logger.info("Event %s created by user %s", event.id, current_user.user_id)
    return jsonify(event.to_dict()), 201


@bp.route('/events', methods=['GET'])
@jwt_required()
def list_events():
    events = Event.query \
        .filter_by(user_id=current_user.user_id) \
        .order_by(Event.created_at.desc(), Event.id.desc()) \
        .all()
    return jsonify([event.to_dict() for event in events]), 200


@bp.route('/events/<int:event_id>', methods=['GET'])
@jwt_required()
def get_event(event_id):
    event = db.get_or_404(Event, event_id, description="Event not found")
    return jsonify(event.to_dict()), 200


@bp.route('/events/<int:event_id>', methods=['PATCH'])
@jwt_required()
def update_event(event_id):
    event = _owned_event(event_id)
    form = EventUpdateForm()
    if not form.validate():
        raise invalid_form(form)

    for name, value in form.provided().items():
        setattr(event, name, value)
    db.session.commit()
    return jsonify(event.to_dict()), 200


# Guests

@bp.route('/events/<int:event_id>/guests', methods=['POST'])
@jwt_required()
def add_guest(event_id):
    event = _owned_event(event_id)
    form = GuestForm()
    if not form.validate():
        raise invalid_form(form)

    if event.max_guests and Guest.query.filter_by(event_id=event.id).count() >= event.max_guests:
        raise ValidationError("Guest list is full")

    guest = Guest(
        event_id=event.id,
        email=form.email.data.lower(),
        first_name=form.first_name.data or None,
        last_name=form.last_name.data or None,
        plus_one_allowed=form.plus_one_allowed.data,
        dietary_restrictions=form.dietary_restrictions.data or None,
    )
    db.session.add(guest)
    db.session.commit()
    return jsonify(guest.to_dict()), 201


@bp.route('/events/<int:event_id>/guests', methods=['GET'])
@jwt_required()
def list_guests(event_id):
    event = _owned_event(event_id)
    guests = Guest.query \
        .filter_by(event_id=event.id) \
        .order_by(Guest.first_name, Guest.last_name, Guest.id) \
        .all()
    return jsonify([guest.to_dict() for guest in guests]), 200


@bp.route('/guests/<int:guest_id>/rsvp', methods=['PATCH'])
def update_rsvp(guest_id):
    guest = db.get_or_404(Guest, guest_id, description="Guest not found")
    form = RsvpForm()
    if not form.validate():
        raise ValidationError("Invalid RSVP status", errors=form.errors)

    fields = form.provided()
    if 'plus_one_rsvp' in fields and not guest.plus_one_allowed:
        raise ValidationError("This invitation does not include a plus one")

    guest.rsvp_status = form.status.data
    if 'plus_one_rsvp' in fields:
        guest.plus_one_rsvp = fields['plus_one_rsvp']
    if 'dietary_restrictions' in fields:
        guest.dietary_restrictions = fields['dietary_restrictions'] or None
    db.session.commit()
    logger.info("Guest %s answered %s", guest.id, guest.rsvp_status)
    return jsonify(guest.to_dict()), 200


# Timeline

@bp.route('/events/<int:event_id>/timeline', methods=['POST'])
@jwt_required()
def create_timeline_item(event_id):
    event = _owned_event(event_id)
    form = TimelineItemForm()
    if not form.validate():
        raise invalid_form(form)

    item = TimelineItem(
        event_id=event.id,
        title=form.title.data,
        start_time=form.start_time.data,
        description=form.description.data or None,
        duration=form.duration.data,
        category=form.category.data or None,
        display_order=form.display_order.data or 0,
    )
    db.session.add(item)
    db.session.commit()
    return jsonify(item.to_dict()), 201


@bp.route('/events/<int:event_id>/timeline', methods=['GET'])
def get_timeline(event_id):
    db.get_or_404(Event, event_id, description="Event not found")
    items = TimelineItem.query \
        .filter_by(event_id=event_id) \
        .order_by(TimelineItem.start_time, TimelineItem.display_order) \
        .all()
    return jsonify([item.to_dict() for item in items]), 200


@bp.route('/timeline/<int:item_id>', methods=['PATCH'])
@jwt_required()
def update_timeline_item(item_id):
    item = db.get_or_404(TimelineItem, item_id, description="Timeline item not found")
    if item.event.user_id != current_user.user_id:
        raise Forbidden("Unauthorized")
    form = TimelineItemUpdateForm()
    if not form.validate():
        raise invalid_form(form)

    for name, value in form.provided().items():
        setattr(item, name, value)
    db.session.commit()
    return jsonify(item.to_dict()), 200
