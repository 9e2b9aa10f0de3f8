import logging

from flask import jsonify, request, Blueprint
from sqlalchemy.exc import IntegrityError

from wedding import db
from wedding.errors import APIError, ValidationError
from wedding.forms import JSONForm, MoneyField, positive
from wedding.models import PaymentEvent
from wedding.payments.gateway import get_gateway
from wedding.registry import ledger

bp = Blueprint('payments', __name__)
logger = logging.getLogger(__name__)

INTENT_STATUS = {
    'payment_intent.succeeded': 'completed',
    'payment_intent.payment_failed': 'failed',
    'charge.refunded': 'refunded',
}


class PaymentIntentForm(JSONForm):
    amount = MoneyField('Amount', validators=[positive])


@bp.route('/create-payment-intent', methods=['POST'])
def create_payment_intent():
    form = PaymentIntentForm()
    if not form.validate():
        raise ValidationError("Invalid amount", errors=form.errors)
    metadata = (request.get_json(silent=True) or {}).get('metadata') or {}
    if not isinstance(metadata, dict):
        raise ValidationError("Metadata must be an object")
    intent = get_gateway().create_payment_intent(form.amount.data, metadata={k: str(v) for k, v in metadata.items()})
    return jsonify(client_secret=intent.client_secret), 200


def _payment_reference(event_type, obj):
    if event_type == 'charge.refunded':
        return obj.get('payment_intent')
    return obj.get('id')


@bp.route('/webhooks/stripe', methods=['POST'])
def stripe_webhook():
    event = get_gateway().construct_event(request.get_data(), request.headers.get('Stripe-Signature'))
    event_id = event['id']
    event_type = event['type']

    status = INTENT_STATUS.get(event_type)
    if status is None:
        return jsonify(received=True), 200

    if PaymentEvent.query.filter_by(provider_event_id=event_id).first() is not None:
        logger.info("Ignoring redelivered payment event %s", event_id)
        return jsonify(received=True, duplicate=True), 200

    reference = _payment_reference(event_type, event['data']['object'])
    db.session.add(PaymentEvent(provider_event_id=event_id, event_type=event_type, payment_intent_id=reference))

    try:
        if reference is None:
            raise ValidationError("Event has no payment reference")
        contribution = ledger.transition_by_payment_reference(reference, status)
    except APIError as e:
        # Acknowledged anyway so the provider stops redelivering
        logger.warning("Payment event %s (%s) not applied: %s", event_id, event_type, e.msg)
        if not _commit_event(event_id):
            return jsonify(received=True, duplicate=True), 200
        return jsonify(received=True, applied=False), 200

    if not _commit_event(event_id):
        return jsonify(received=True, duplicate=True), 200
    logger.info("Payment event %s applied to contribution %s", event_id, contribution.id)
    return jsonify(received=True, applied=True), 200


def _commit_event(event_id):
    """Commit, unless a concurrent delivery of the same event got there first."""
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        logger.info("Payment event %s was applied by a concurrent delivery", event_id)
        return False
    return True
