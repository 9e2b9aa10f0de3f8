from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP

from flask_login import UserMixin
from sqlalchemy.ext.hybrid import hybrid_property

from wedding import db

USER_ROLES = ('celebrant', 'guest', 'vendor')
EVENT_STATUSES = ('planning', 'active', 'completed', 'cancelled')
PRIORITIES = ('high', 'medium', 'low')
PRIORITY_ORDER = {'high': 0, 'medium': 1, 'low': 2}
RSVP_STATUSES = ('pending', 'confirmed', 'declined')
CONTRIBUTION_STATUSES = ('pending', 'completed', 'failed', 'refunded')
VENDOR_CATEGORIES = ('photographer', 'venue', 'caterer', 'planner', 'dj', 'florist',
                     'baker', 'musician', 'videographer', 'decorator')
BOOKING_STATUSES = ('inquiry', 'quoted', 'booked', 'confirmed', 'completed', 'cancelled')

CENTS = Decimal('0.01')


def utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_money(value):
    """Quantize a numeric value to two decimal places."""
    if value is None:
        return None
    return Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)


def _iso(value):
    return value.isoformat() if value else None


class TimestampMixin:
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow, nullable=False)


class User(db.Model, UserMixin, TimestampMixin):
    user_id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(150), unique=True, nullable=False)
    password_hash = db.Column(db.String(256), nullable=False)
    first_name = db.Column(db.String(150))
    last_name = db.Column(db.String(150))
    profile_image_url = db.Column(db.String(300))
    role = db.Column(db.String(20), nullable=False, default='guest')
    events = db.relationship('Event', backref='owner', lazy=True)
    vendors = db.relationship('Vendor', backref='owner', lazy=True)

    def get_id(self):
        return str(self.user_id)

    def to_dict(self):
        return {
            'id': self.user_id,
            'email': self.email,
            'first_name': self.first_name,
            'last_name': self.last_name,
            'profile_image_url': self.profile_image_url,
            'role': self.role,
            'created_at': _iso(self.created_at),
        }


class Event(db.Model, TimestampMixin):
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.user_id'), nullable=False, index=True)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)
    event_date = db.Column(db.DateTime, nullable=False)
    venue = db.Column(db.String(200))
    address = db.Column(db.Text)
    max_guests = db.Column(db.Integer)
    status = db.Column(db.String(20), nullable=False, default='planning')
    registry_items = db.relationship('RegistryItem', backref='event', lazy=True)
    guests = db.relationship('Guest', backref='event', lazy=True)
    timeline_items = db.relationship('TimelineItem', backref='event', lazy=True)

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'title': self.title,
            'description': self.description,
            'event_date': _iso(self.event_date),
            'venue': self.venue,
            'address': self.address,
            'max_guests': self.max_guests,
            'status': self.status,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at),
        }


class Category(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    description = db.Column(db.Text)
    image_url = db.Column(db.String(300))
    parent_id = db.Column(db.Integer, db.ForeignKey('category.id'))
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    children = db.relationship('Category', backref=db.backref('parent', remote_side=[id]), lazy=True)
    products = db.relationship('Product', backref='category', lazy=True)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'image_url': self.image_url,
            'parent_id': self.parent_id,
        }


class Product(db.Model, TimestampMixin):
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)
    price = db.Column(db.Numeric(10, 2), nullable=False)
    image_url = db.Column(db.String(300))
    brand = db.Column(db.String(120))
    category_id = db.Column(db.Integer, db.ForeignKey('category.id'))
    is_available = db.Column(db.Boolean, nullable=False, default=True)
    stock_quantity = db.Column(db.Integer, nullable=False, default=0)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'price': self.price,
            'image_url': self.image_url,
            'brand': self.brand,
            'category_id': self.category_id,
            'is_available': self.is_available,
            'stock_quantity': self.stock_quantity,
        }


class RegistryItem(db.Model, TimestampMixin):
    id = db.Column(db.Integer, primary_key=True)
    event_id = db.Column(db.Integer, db.ForeignKey('event.id'), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey('product.id'), nullable=False)
    target_amount = db.Column(db.Numeric(10, 2), nullable=False)
    current_amount = db.Column(db.Numeric(10, 2), nullable=False, default=Decimal('0.00'))
    priority = db.Column(db.String(10), nullable=False, default='medium')
    is_public = db.Column(db.Boolean, nullable=False, default=True)
    is_purchased = db.Column(db.Boolean, nullable=False, default=False)
    product = db.relationship('Product', lazy='joined')
    contributions = db.relationship('Contribution', backref='registry_item', lazy=True)

    __table_args__ = (
        db.CheckConstraint('target_amount > 0', name='check_registry_target_positive'),
    )

    @hybrid_property
    def is_completed(self):
        return (self.current_amount or 0) >= self.target_amount

    @is_completed.expression
    def is_completed(cls):
        return cls.current_amount >= cls.target_amount

    def to_dict(self):
        return {
            'id': self.id,
            'event_id': self.event_id,
            'product_id': self.product_id,
            'product': self.product.to_dict() if self.product else None,
            'target_amount': self.target_amount,
            'current_amount': self.current_amount,
            'priority': self.priority,
            'is_public': self.is_public,
            'is_purchased': self.is_purchased,
            'is_completed': self.is_completed,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at),
        }


class Contribution(db.Model, TimestampMixin):
    id = db.Column(db.Integer, primary_key=True)
    registry_item_id = db.Column(db.Integer, db.ForeignKey('registry_item.id'), nullable=False, index=True)
    contributor_email = db.Column(db.String(150), nullable=False)
    contributor_name = db.Column(db.String(150))
    amount = db.Column(db.Numeric(10, 2), nullable=False)
    message = db.Column(db.Text)
    is_anonymous = db.Column(db.Boolean, nullable=False, default=False)
    payment_intent_id = db.Column(db.String(255), unique=True, index=True)
    idempotency_key = db.Column(db.String(255), unique=True)
    status = db.Column(db.String(20), nullable=False, default='pending')

    __table_args__ = (
        db.CheckConstraint('amount > 0', name='check_contribution_amount_positive'),
    )

    def to_dict(self, public=False):
        hidden = public and self.is_anonymous
        data = {
            'id': self.id,
            'registry_item_id': self.registry_item_id,
            'contributor_email': None if hidden else self.contributor_email,
            'contributor_name': 'Anonymous' if hidden else self.contributor_name,
            'amount': self.amount,
            'message': self.message,
            'is_anonymous': self.is_anonymous,
            'status': self.status,
            'created_at': _iso(self.created_at),
        }
        if not public:
            data['payment_intent_id'] = self.payment_intent_id
        return data


class PaymentEvent(db.Model):
    """Provider callbacks already applied, keyed by the provider's event id."""
    id = db.Column(db.Integer, primary_key=True)
    provider_event_id = db.Column(db.String(255), unique=True, nullable=False)
    event_type = db.Column(db.String(100), nullable=False)
    payment_intent_id = db.Column(db.String(255))
    received_at = db.Column(db.DateTime, default=utcnow, nullable=False)


class Vendor(db.Model, TimestampMixin):
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.user_id'), nullable=False, index=True)
    business_name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)
    category = db.Column(db.String(30), nullable=False)
    location = db.Column(db.String(200))
    website = db.Column(db.String(300))
    phone = db.Column(db.String(20))
    starting_price = db.Column(db.Numeric(10, 2))
    is_verified = db.Column(db.Boolean, nullable=False, default=False)
    is_featured = db.Column(db.Boolean, nullable=False, default=False)
    rating = db.Column(db.Numeric(3, 2), nullable=False, default=Decimal('0.00'))
    review_count = db.Column(db.Integer, nullable=False, default=0)
    portfolio = db.relationship('PortfolioImage', backref='vendor', lazy=True)
    reviews = db.relationship('VendorReview', backref='vendor', lazy=True)
    bookings = db.relationship('Booking', backref='vendor', lazy=True)

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'business_name': self.business_name,
            'description': self.description,
            'category': self.category,
            'location': self.location,
            'website': self.website,
            'phone': self.phone,
            'starting_price': self.starting_price,
            'is_verified': self.is_verified,
            'is_featured': self.is_featured,
            'rating': self.rating,
            'review_count': self.review_count,
            'created_at': _iso(self.created_at),
        }


class PortfolioImage(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    vendor_id = db.Column(db.Integer, db.ForeignKey('vendor.id'), nullable=False, index=True)
    image_url = db.Column(db.String(300), nullable=False)
    caption = db.Column(db.Text)
    display_order = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    def to_dict(self):
        return {
            'id': self.id,
            'vendor_id': self.vendor_id,
            'image_url': self.image_url,
            'caption': self.caption,
            'display_order': self.display_order,
            'created_at': _iso(self.created_at),
        }


class VendorReview(db.Model, TimestampMixin):
    id = db.Column(db.Integer, primary_key=True)
    vendor_id = db.Column(db.Integer, db.ForeignKey('vendor.id'), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.user_id'), nullable=False)
    event_id = db.Column(db.Integer, db.ForeignKey('event.id'))
    rating = db.Column(db.Integer, nullable=False)
    title = db.Column(db.String(200))
    comment = db.Column(db.Text)
    is_verified = db.Column(db.Boolean, nullable=False, default=False)

    __table_args__ = (
        db.CheckConstraint('rating BETWEEN 1 AND 5', name='check_review_rating_range'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'vendor_id': self.vendor_id,
            'user_id': self.user_id,
            'event_id': self.event_id,
            'rating': self.rating,
            'title': self.title,
            'comment': self.comment,
            'is_verified': self.is_verified,
            'created_at': _iso(self.created_at),
        }


class Guest(db.Model, TimestampMixin):
    id = db.Column(db.Integer, primary_key=True)
    event_id = db.Column(db.Integer, db.ForeignKey('event.id'), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.user_id'))
    email = db.Column(db.String(150), nullable=False)
    first_name = db.Column(db.String(150))
    last_name = db.Column(db.String(150))
    rsvp_status = db.Column(db.String(20), nullable=False, default='pending')
    invitation_sent = db.Column(db.Boolean, nullable=False, default=False)
    plus_one_allowed = db.Column(db.Boolean, nullable=False, default=False)
    plus_one_rsvp = db.Column(db.String(20))
    dietary_restrictions = db.Column(db.Text)

    def to_dict(self):
        return {
            'id': self.id,
            'event_id': self.event_id,
            'email': self.email,
            'first_name': self.first_name,
            'last_name': self.last_name,
            'rsvp_status': self.rsvp_status,
            'invitation_sent': self.invitation_sent,
            'plus_one_allowed': self.plus_one_allowed,
            'plus_one_rsvp': self.plus_one_rsvp,
            'dietary_restrictions': self.dietary_restrictions,
        }


class TimelineItem(db.Model, TimestampMixin):
    id = db.Column(db.Integer, primary_key=True)
    event_id = db.Column(db.Integer, db.ForeignKey('event.id'), nullable=False, index=True)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)
    start_time = db.Column(db.DateTime, nullable=False)
    duration = db.Column(db.Integer)  # minutes
    category = db.Column(db.String(120))
    is_completed = db.Column(db.Boolean, nullable=False, default=False)
    display_order = db.Column(db.Integer, nullable=False, default=0)

    def to_dict(self):
        return {
            'id': self.id,
            'event_id': self.event_id,
            'title': self.title,
            'description': self.description,
            'start_time': _iso(self.start_time),
            'duration': self.duration,
            'category': self.category,
            'is_completed': self.is_completed,
            'display_order': self.display_order,
        }


class Booking(db.Model, TimestampMixin):
    id = db.Column(db.Integer, primary_key=True)
    vendor_id = db.Column(db.Integer, db.ForeignKey('vendor.id'), nullable=False, index=True)
    event_id = db.Column(db.Integer, db.ForeignKey('event.id'), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey('user.user_id'), nullable=False)
    service_date = db.Column(db.DateTime, nullable=False)
    duration = db.Column(db.Integer)  # hours
    price = db.Column(db.Numeric(10, 2))
    status = db.Column(db.String(20), nullable=False, default='inquiry')
    notes = db.Column(db.Text)

    def to_dict(self):
        return {
            'id': self.id,
            'vendor_id': self.vendor_id,
            'event_id': self.event_id,
            'user_id': self.user_id,
            'service_date': _iso(self.service_date),
            'duration': self.duration,
            'price': self.price,
            'status': self.status,
            'notes': self.notes,
            'created_at': _iso(self.created_at),
        }
