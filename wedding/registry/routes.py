import logging

from flask import jsonify, request, Blueprint
from flask_jwt_extended import jwt_required, current_user

from wedding import db
from wedding.errors import Forbidden, NotFound, invalid_form
from wedding.models import Contribution, Event, Product, RegistryItem, to_money
from wedding.payments.gateway import get_gateway
from wedding.registry import ledger
from wedding.registry.forms import ContributionForm, RegistryItemForm, RegistryItemUpdateForm

bp = Blueprint('registry', __name__)
logger = logging.getLogger(__name__)


def _owned_item(item_id):
    item = db.get_or_404(RegistryItem, item_id, description="Registry item not found")
    if item.event.user_id != current_user.user_id:
        raise Forbidden("Only the event owner can change its registry")
    return item


@bp.route('/registry-items', methods=['POST'])
@jwt_required()
def create_registry_item():
    form = RegistryItemForm()
    if not form.validate():
        raise invalid_form(form)

    event = db.session.get(Event, form.event_id.data)
    if event is None:
        raise NotFound("Event not found")
    if event.user_id != current_user.user_id:
        raise Forbidden("Only the event owner can add registry items")
    if db.session.get(Product, form.product_id.data) is None:
        raise NotFound("Product not found")

    fields = form.provided()
    item = RegistryItem(
        event_id=event.id,
        product_id=form.product_id.data,
        target_amount=to_money(form.target_amount.data),
        priority=fields.get('priority', 'medium'),
        is_public=fields.get('is_public', True),
        is_purchased=fields.get('is_purchased', False),
    )
    db.session.add(item)
    db.session.commit()
    return jsonify(item.to_dict()), 201


@bp.route('/events/<int:event_id>/registry', methods=['GET'])
def list_registry(event_id):
    db.get_or_404(Event, event_id, description="Event not found")
    items = ledger.public_registry_items(event_id)
    return jsonify([item.to_dict() for item in items]), 200


@bp.route('/registry-items/<int:item_id>', methods=['GET'])
def get_registry_item(item_id):
    item = db.get_or_404(RegistryItem, item_id, description="Registry item not found")
    return jsonify(item.to_dict()), 200


@bp.route('/registry-items/<int:item_id>', methods=['PATCH'])
@jwt_required()
def update_registry_item(item_id):
    item = _owned_item(item_id)
    form = RegistryItemUpdateForm()
    if not form.validate():
        raise invalid_form(form)

    for name, value in form.provided().items():
        if name == 'target_amount':
            value = to_money(value)
        setattr(item, name, value)
    db.session.commit()
    return jsonify(item.to_dict()), 200


@bp.route('/contributions', methods=['POST'])
def create_contribution():
    form = ContributionForm()
    if not form.validate():
        raise invalid_form(form)

    idempotency_key = request.headers.get('Idempotency-Key')
    contribution, created = ledger.record_contribution(
        registry_item_id=form.registry_item_id.data,
        amount=form.amount.data,
        contributor_email=form.contributor_email.data,
        contributor_name=form.contributor_name.data or None,
        message=form.message.data or None,
        is_anonymous=form.is_anonymous.data,
        idempotency_key=idempotency_key,
    )
    if not created and contribution.payment_intent_id:
        # Replays get the original intent's secret so the client can still pay
        intent = get_gateway().retrieve_payment_intent(contribution.payment_intent_id)
        return jsonify(contribution=contribution.to_dict(), client_secret=intent.client_secret), 200

    intent = get_gateway().create_payment_intent(
        contribution.amount,
        metadata={
            'contribution_id': str(contribution.id),
            'registry_item_id': str(contribution.registry_item_id),
        },
        idempotency_key=f"contribution-{idempotency_key}" if idempotency_key else None,
    )
    contribution.payment_intent_id = intent.id
    db.session.commit()
    return jsonify(contribution=contribution.to_dict(), client_secret=intent.client_secret), \
        201 if created else 200


@bp.route('/registry-items/<int:item_id>/contributions', methods=['GET'])
def list_contributions(item_id):
    db.get_or_404(RegistryItem, item_id, description="Registry item not found")
    contributions = Contribution.query \
        .filter_by(registry_item_id=item_id) \
        .order_by(Contribution.created_at.desc(), Contribution.id.desc()) \
        .all()
    return jsonify([c.to_dict(public=True) for c in contributions]), 200
