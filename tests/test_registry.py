"""
Tests for the registry and contribution endpoints.
"""

import json
from decimal import Decimal

from wedding import db
from wedding.models import Contribution, RegistryItem


def _contribute(client, item_id, amount, headers=None, **fields):
    payload = dict(registry_item_id=item_id, amount=amount,
                   contributor_email='guest@example.com', contributor_name='Guest')
    payload.update(fields)
    return client.post('/api/contributions', json=payload, headers=headers)


def _webhook(client, event_id, event_type, obj):
    body = json.dumps({'id': event_id, 'type': event_type, 'data': {'object': obj}})
    return client.post('/api/webhooks/stripe', data=body, content_type='application/json',
                       headers={'Stripe-Signature': 'valid'})


class TestRegistryItems:
    def test_owner_adds_item_with_defaults(self, client, auth, couple, event, product):
        resp = client.post('/api/registry-items', headers=auth(couple),
                           json={'event_id': event.id, 'product_id': product.id, 'target_amount': '349.99'})
        assert resp.status_code == 201
        data = resp.get_json()
        assert data['target_amount'] == '349.99'
        assert data['current_amount'] == '0.00'
        assert data['priority'] == 'medium'
        assert data['is_public'] is True
        assert data['is_completed'] is False
        assert data['product']['name'] == 'Stand Mixer'

    def test_requires_authentication(self, client, event, product):
        resp = client.post('/api/registry-items',
                           json={'event_id': event.id, 'product_id': product.id, 'target_amount': 10})
        assert resp.status_code == 401

    def test_other_users_cannot_add_items(self, client, auth, guest_user, event, product):
        resp = client.post('/api/registry-items', headers=auth(guest_user),
                           json={'event_id': event.id, 'product_id': product.id, 'target_amount': 10})
        assert resp.status_code == 403
        assert RegistryItem.query.count() == 0

    def test_rejects_non_positive_target(self, client, auth, couple, event, product):
        resp = client.post('/api/registry-items', headers=auth(couple),
                           json={'event_id': event.id, 'product_id': product.id, 'target_amount': 0})
        assert resp.status_code == 400
        assert 'target_amount' in resp.get_json()['errors']

    def test_unknown_event_or_product(self, client, auth, couple, event, product):
        resp = client.post('/api/registry-items', headers=auth(couple),
                           json={'event_id': 999, 'product_id': product.id, 'target_amount': 10})
        assert resp.status_code == 404
        resp = client.post('/api/registry-items', headers=auth(couple),
                           json={'event_id': event.id, 'product_id': 999, 'target_amount': 10})
        assert resp.status_code == 404

    def test_private_items_are_not_listed(self, client, make_item, event):
        public = make_item(priority='low')
        make_item(priority='high', is_public=False)

        resp = client.get(f'/api/events/{event.id}/registry')
        assert resp.status_code == 200
        assert [i['id'] for i in resp.get_json()] == [public.id]

    def test_listing_sorts_high_medium_low(self, client, make_item, event):
        ids = {p: make_item(priority=p).id for p in ('low', 'medium', 'high')}
        resp = client.get(f'/api/events/{event.id}/registry')
        assert [i['priority'] for i in resp.get_json()] == ['high', 'medium', 'low']
        assert [i['id'] for i in resp.get_json()] == [ids['high'], ids['medium'], ids['low']]

    def test_listing_unknown_event(self, client):
        assert client.get('/api/events/999/registry').status_code == 404

    def test_update_cannot_touch_current_amount(self, client, auth, couple, make_item):
        item = make_item()
        resp = client.patch(f'/api/registry-items/{item.id}', headers=auth(couple),
                            json={'priority': 'high', 'is_public': False, 'current_amount': '500.00'})
        assert resp.status_code == 200
        data = resp.get_json()
        assert data['priority'] == 'high'
        assert data['is_public'] is False
        assert data['current_amount'] == '0.00'

    def test_update_by_stranger_is_forbidden(self, client, auth, guest_user, make_item):
        item = make_item()
        resp = client.patch(f'/api/registry-items/{item.id}', headers=auth(guest_user), json={'priority': 'high'})
        assert resp.status_code == 403


class TestContributions:
    def test_creates_pending_contribution_with_client_secret(self, client, gateway, make_item):
        item = make_item()
        resp = _contribute(client, item.id, '25.00', message='Congrats!')

        assert resp.status_code == 201
        data = resp.get_json()
        assert data['client_secret'] == 'pi_test_1_secret_abc'
        assert data['contribution']['status'] == 'pending'
        assert data['contribution']['payment_intent_id'] == 'pi_test_1'
        assert gateway.intents[0]['amount'] == Decimal('25.00')
        assert gateway.intents[0]['metadata']['contribution_id'] == str(data['contribution']['id'])

    def test_validation_errors_write_nothing(self, client, gateway, make_item):
        item = make_item()
        for payload in ({'amount': 0}, {'amount': -3}, {'contributor_email': 'not-an-email'}):
            resp = _contribute(client, item.id, payload.pop('amount', '10.00'), **payload)
            assert resp.status_code == 400
        assert Contribution.query.count() == 0
        assert gateway.intents == []

    def test_unknown_registry_item(self, client, gateway):
        resp = _contribute(client, 999, '10.00')
        assert resp.status_code == 404

    def test_provider_failure_rolls_back(self, client, gateway, make_item, app):
        app.config['CONTRIBUTION_ACCOUNTING'] = 'on_create'
        gateway.fail = True
        item = make_item()

        resp = _contribute(client, item.id, '25.00')
        assert resp.status_code == 502
        assert Contribution.query.count() == 0
        assert db.session.get(RegistryItem, item.id).current_amount == Decimal('0.00')

    def test_idempotency_key_header(self, client, gateway, make_item):
        item = make_item()
        headers = {'Idempotency-Key': 'checkout-42'}
        first = _contribute(client, item.id, '25.00', headers=headers)
        second = _contribute(client, item.id, '25.00', headers=headers)

        assert first.status_code == 201
        assert second.status_code == 200
        assert second.get_json()['contribution']['id'] == first.get_json()['contribution']['id']
        assert second.get_json()['client_secret'] == first.get_json()['client_secret']
        assert Contribution.query.count() == 1
        assert len(gateway.intents) == 1
        assert gateway.intents[0]['idempotency_key'] == 'contribution-checkout-42'
        assert gateway.retrieved == ['pi_test_1']

    def test_replay_with_other_amount_is_a_conflict(self, client, gateway, make_item):
        item = make_item()
        headers = {'Idempotency-Key': 'checkout-42'}
        _contribute(client, item.id, '25.00', headers=headers)
        resp = _contribute(client, item.id, '30.00', headers=headers)

        assert resp.status_code == 409
        assert Contribution.query.count() == 1

    def test_null_or_malformed_amount_is_rejected(self, client, gateway, make_item):
        item = make_item()
        for amount in (None, True, {'value': 10}, 'ten'):
            resp = _contribute(client, item.id, amount)
            assert resp.status_code == 400
            assert 'amount' in resp.get_json()['errors']
        resp = _contribute(client, None, '10.00')
        assert resp.status_code == 400
        assert 'registry_item_id' in resp.get_json()['errors']

        assert Contribution.query.count() == 0
        assert gateway.intents == []

    def test_public_listing_hides_anonymous_contributors(self, client, gateway, make_item):
        item = make_item()
        _contribute(client, item.id, '10.00', contributor_name='Aunt May', is_anonymous=True)
        _contribute(client, item.id, '15.00', contributor_name='Uncle Bob')

        resp = client.get(f'/api/registry-items/{item.id}/contributions')
        data = resp.get_json()
        assert [c['contributor_name'] for c in data] == ['Uncle Bob', 'Anonymous']
        assert data[1]['contributor_email'] is None
        assert 'payment_intent_id' not in data[0]

    def test_each_contribution_adds_to_total_when_created(self, client, gateway, make_item, app):
        # Interleaved writers: test_ledger.py::test_increment_does_not_use_stale_total
        app.config['CONTRIBUTION_ACCOUNTING'] = 'on_create'
        item = make_item()
        _contribute(client, item.id, '25.00')
        _contribute(client, item.id, '50.00')

        resp = client.get(f'/api/registry-items/{item.id}')
        assert resp.get_json()['current_amount'] == '75.00'


class TestEndToEnd:
    def test_registry_item_fills_up(self, client, gateway, auth, couple, product):
        headers = auth(couple)
        resp = client.post('/api/events', headers=headers,
                           json={'title': 'Ana & Ben', 'event_date': '2027-06-12T15:00:00'})
        assert resp.status_code == 201
        event_id = resp.get_json()['id']

        resp = client.post('/api/registry-items', headers=headers,
                           json={'event_id': event_id, 'product_id': product.id, 'target_amount': '100.00'})
        item_id = resp.get_json()['id']

        for n, amount in enumerate(['25.00', '75.00'], start=1):
            resp = _contribute(client, item_id, amount)
            assert resp.status_code == 201
            intent_id = resp.get_json()['contribution']['payment_intent_id']
            resp = _webhook(client, f'evt_{n}', 'payment_intent.succeeded', {'id': intent_id})
            assert resp.get_json()['applied'] is True

        item = client.get(f'/api/registry-items/{item_id}').get_json()
        assert item['current_amount'] == '100.00'
        assert item['is_completed'] is True

    def test_registry_item_fills_up_on_creation(self, client, gateway, auth, app, make_item):
        app.config['CONTRIBUTION_ACCOUNTING'] = 'on_create'
        item = make_item(target='100.00')
        _contribute(client, item.id, '25.00')
        _contribute(client, item.id, '75.00')

        data = client.get(f'/api/registry-items/{item.id}').get_json()
        assert data['current_amount'] == '100.00'
        assert data['is_completed'] is True
