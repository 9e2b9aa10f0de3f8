"""Contribution ledger and registry progress.

Contributions are append-only. A registry item's ``current_amount`` is a
running total over its contributions, and which statuses it counts depends
on the accounting policy:

* ``on_confirm``: only ``completed`` contributions count. Creating a
  contribution changes nothing; confirmation adds the amount; a refund
  takes it back.
* ``on_create``: ``pending`` and ``completed`` contributions count. Creating a
  contribution adds the amount; a failure or a refund takes it back, and a
  later success after a failure adds it again.

Every change to the total is a single ``current = current + delta`` UPDATE
issued in the same transaction as the ledger write that caused it. Callers
own the transaction and commit it.
"""
import logging

from flask import current_app
from sqlalchemy import case, update
from sqlalchemy.exc import IntegrityError

from wedding import db
from wedding.errors import Conflict, NotFound, ValidationError
from wedding.models import CONTRIBUTION_STATUSES, PRIORITY_ORDER, Contribution, RegistryItem, to_money, utcnow

logger = logging.getLogger(__name__)

ON_CONFIRM = 'on_confirm'
ON_CREATE = 'on_create'
POLICIES = (ON_CONFIRM, ON_CREATE)

TRANSITIONS = {
    'pending': {'completed', 'failed'},
    'completed': {'refunded'},
    # a failed attempt can still be retried and captured on the same payment
    'failed': {'completed'},
    'refunded': set(),
}

COUNTED = {
    ON_CONFIRM: {'completed'},
    ON_CREATE: {'pending', 'completed'},
}


def accounting_policy():
    policy = current_app.config.get('CONTRIBUTION_ACCOUNTING', ON_CONFIRM)
    if policy not in POLICIES:
        raise RuntimeError(f"Unknown CONTRIBUTION_ACCOUNTING policy: {policy}")
    return policy


def counts_toward_total(status, policy=None):
    return status in COUNTED[policy or accounting_policy()]


def _adjust_total(registry_item_id, delta):
    if not delta:
        return
    db.session.execute(
        update(RegistryItem)
        .where(RegistryItem.id == registry_item_id)
        .values(current_amount=RegistryItem.current_amount + delta, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    # Loaded copies still hold the old total
    key = db.session.identity_key(RegistryItem, registry_item_id)
    item = db.session.identity_map.get(key)
    if item is not None:
        db.session.expire(item, ['current_amount', 'updated_at'])


def find_by_idempotency_key(idempotency_key):
    return Contribution.query.filter_by(idempotency_key=idempotency_key).first()


def _replayed(existing, registry_item_id, amount):
    if existing.registry_item_id != registry_item_id or existing.amount != to_money(amount):
        raise Conflict("Idempotency key was already used for a different contribution")
    return existing


def record_contribution(registry_item_id, amount, contributor_email, contributor_name=None,
                        message=None, is_anonymous=False, idempotency_key=None):
    """Append a pending contribution and apply it to the running total.

    Returns ``(contribution, created)``. A repeated ``idempotency_key`` returns
    the contribution first recorded under it with ``created`` False.
    """
    if idempotency_key:
        existing = find_by_idempotency_key(idempotency_key)
        if existing is not None:
            return _replayed(existing, registry_item_id, amount), False

    amount = to_money(amount)
    if amount is None or amount <= 0:
        raise ValidationError("Contribution amount must be greater than zero")
    if not contributor_email:
        raise ValidationError("Contributor email is required")
    if db.session.get(RegistryItem, registry_item_id) is None:
        raise NotFound("Registry item not found")

    contribution = Contribution(
        registry_item_id=registry_item_id,
        contributor_email=contributor_email,
        contributor_name=contributor_name,
        amount=amount,
        message=message,
        is_anonymous=bool(is_anonymous),
        idempotency_key=idempotency_key,
        status='pending',
    )
    db.session.add(contribution)
    try:
        db.session.flush()
    except IntegrityError:
        if not idempotency_key:
            raise
        # A concurrent request recorded the same key between lookup and insert
        db.session.rollback()
        existing = find_by_idempotency_key(idempotency_key)
        if existing is None:
            raise
        logger.info("Idempotency key %s was recorded by a concurrent request", idempotency_key)
        return _replayed(existing, registry_item_id, amount), False

    if counts_toward_total('pending'):
        _adjust_total(registry_item_id, amount)

    logger.info("Recorded contribution %s of %s to registry item %s",
                contribution.id, amount, registry_item_id)
    return contribution, True


def transition_contribution(contribution, status):
    """Move a contribution to ``status`` and correct the running total.

    Re-applying the current status is a no-op, so duplicate callbacks are
    harmless. Returns True when the status changed.
    """
    if status not in CONTRIBUTION_STATUSES:
        raise ValidationError(f"Unknown contribution status: {status}")
    previous = contribution.status
    if status == previous:
        return False
    if status not in TRANSITIONS[previous]:
        raise Conflict(f"Cannot move contribution from {previous} to {status}")

    policy = accounting_policy()
    before = counts_toward_total(previous, policy)
    after = counts_toward_total(status, policy)

    contribution.status = status
    contribution.updated_at = utcnow()
    db.session.flush()

    if before != after:
        delta = contribution.amount if after else -contribution.amount
        _adjust_total(contribution.registry_item_id, delta)

    logger.info("Contribution %s moved from %s to %s", contribution.id, previous, status)
    return True


def transition_by_payment_reference(payment_intent_id, status):
    contribution = Contribution.query.filter_by(payment_intent_id=payment_intent_id).first()
    if contribution is None:
        raise NotFound(f"No contribution for payment {payment_intent_id}")
    transition_contribution(contribution, status)
    return contribution


def ledger_total(registry_item_id, policy=None):
    """Sum of the contributions the running total should reflect."""
    statuses = COUNTED[policy or accounting_policy()]
    total = db.session.query(db.func.coalesce(db.func.sum(Contribution.amount), 0)) \
        .filter(Contribution.registry_item_id == registry_item_id,
                Contribution.status.in_(statuses)) \
        .scalar()
    return to_money(total)


def priority_ordinal():
    return case(PRIORITY_ORDER, value=RegistryItem.priority, else_=len(PRIORITY_ORDER))


def public_registry_items(event_id):
    """Public items of an event, most urgent first, then oldest first."""
    return RegistryItem.query \
        .filter(RegistryItem.event_id == event_id, RegistryItem.is_public.is_(True)) \
        .order_by(priority_ordinal(), RegistryItem.created_at, RegistryItem.id) \
        .all()
