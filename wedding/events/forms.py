from wtforms import BooleanField, DateTimeField, StringField, TextAreaField
from wtforms.validators import DataRequired, Email, Length, NumberRange, Optional

from wedding.forms import DATETIME_FORMATS, JSONForm, StrictIntegerField, one_of
from wedding.models import EVENT_STATUSES

RSVP_ANSWERS = ('confirmed', 'declined')


class EventForm(JSONForm):
    title = StringField('Title', validators=[DataRequired(), Length(max=200)])
    event_date = DateTimeField('Event date', format=DATETIME_FORMATS, validators=[DataRequired()])
    description = TextAreaField('Description', validators=[Optional()])
    venue = StringField('Venue', validators=[Optional(), Length(max=200)])
    address = TextAreaField('Address', validators=[Optional()])
    max_guests = StrictIntegerField('Max guests', validators=[Optional(), NumberRange(min=1)])
    status = StringField('Status', validators=[Optional(), one_of(EVENT_STATUSES)])


class EventUpdateForm(EventForm):
    title = StringField('Title', validators=[Optional(), Length(max=200)])
    event_date = DateTimeField('Event date', format=DATETIME_FORMATS, validators=[Optional()])


class GuestForm(JSONForm):
    email = StringField('Email', validators=[DataRequired(), Email()])
    first_name = StringField('First name', validators=[Optional(), Length(max=150)])
    last_name = StringField('Last name', validators=[Optional(), Length(max=150)])
    plus_one_allowed = BooleanField('Plus one allowed')
    dietary_restrictions = TextAreaField('Dietary restrictions', validators=[Optional()])


class RsvpForm(JSONForm):
    status = StringField('Status', validators=[one_of(RSVP_ANSWERS)])
    plus_one_rsvp = StringField('Plus one', validators=[Optional(), one_of(RSVP_ANSWERS)])
    dietary_restrictions = TextAreaField('Dietary restrictions', validators=[Optional()])


class TimelineItemForm(JSONForm):
    title = StringField('Title', validators=[DataRequired(), Length(max=200)])
    start_time = DateTimeField('Start time', format=DATETIME_FORMATS, validators=[DataRequired()])
    description = TextAreaField('Description', validators=[Optional()])
    duration = StrictIntegerField('Duration', validators=[Optional(), NumberRange(min=1)])
    category = StringField('Category', validators=[Optional(), Length(max=120)])
    display_order = StrictIntegerField('Display order', validators=[Optional(), NumberRange(min=0)])


class TimelineItemUpdateForm(TimelineItemForm):
    title = StringField('Title', validators=[Optional(), Length(max=200)])
    start_time = DateTimeField('Start time', format=DATETIME_FORMATS, validators=[Optional()])
    is_completed = BooleanField('Completed')
