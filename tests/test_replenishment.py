"""
Tests for the replenishment lifecycle: submit, fulfill, stock, sign, aggregate.
"""

from schemas_store import OrganizationUpdate, ReplenishmentStatus, SignatureType


def _submit(replenishment, item='Water Cases', quantity=30, org_id='CH-9921'):
    result = replenishment.submit(org_id, item, quantity)
    assert result.success, result.message
    return result.data


# =============================================================================
# Submit
# =============================================================================

def test_submit_creates_pending_request(replenishment):
    request = _submit(replenishment)

    assert request.id.startswith('RR-')
    assert request.status == ReplenishmentStatus.PENDING
    assert request.provider == 'Diocese HQ'
    assert request.org_name == 'Grace Community Church'
    assert request.synced is True
    assert replenishment.list_all()[0].id == request.id


def test_submit_rejects_unknown_item(replenishment):
    result = replenishment.submit('CH-9921', 'Garbage', 10)
    assert result.error == 'INVALID_ITEM'
    assert isinstance(result.exception, Exception)


def test_submit_rejects_bad_quantities(replenishment):
    for quantity in (0, -3, 2.5, 'ten', None, True):
        assert replenishment.submit('CH-9921', 'Blankets', quantity).error == 'INVALID_INPUT'


def test_submit_accepts_digit_string(replenishment):
    assert _submit(replenishment, quantity='12').quantity == 12


def test_submit_unknown_org(replenishment):
    assert replenishment.submit('ORG-0000', 'Blankets', 5).error == 'UNKNOWN_ORG'


def test_provider_falls_back_to_unknown(replenishment, orgs):
    orgs.update('NGO-5500', OrganizationUpdate(replenishment_provider=''))
    assert _submit(replenishment, org_id='NGO-5500').provider == 'Unknown'


def test_offline_submit_is_unsynced(replenishment, connectivity):
    connectivity.set_online(False)
    assert _submit(replenishment).synced is False


# =============================================================================
# Fulfill
# =============================================================================

def test_fulfill_without_confirmation_leaves_inventory(replenishment, inventory):
    request = _submit(replenishment)
    result = replenishment.fulfill(request.id, {'water': 30})

    assert result.success
    assert result.data.status == ReplenishmentStatus.FULFILLED
    assert result.data.fulfilled_at
    assert result.data.org_confirmed is False
    assert inventory.get('CH-9921').water == 120


def test_fulfill_confirmed_adds_inventory(replenishment, inventory):
    request = _submit(replenishment)
    result = replenishment.fulfill(request.id, {'water': 30}, org_confirmed=True)

    assert result.success
    assert result.data.org_confirmed_at
    assert inventory.get('CH-9921').water == 150


def test_fulfill_confirmed_twice_adds_twice(replenishment, inventory):
    request = _submit(replenishment)
    replenishment.fulfill(request.id, {'water': 30}, org_confirmed=True)
    replenishment.fulfill(request.id, {'water': 30}, org_confirmed=True)

    assert inventory.get('CH-9921').water == 180


def test_fulfill_approved_status(replenishment):
    request = _submit(replenishment)
    result = replenishment.fulfill(request.id, {}, status='APPROVED')
    assert result.data.status == ReplenishmentStatus.APPROVED


def test_fulfill_rejects_other_statuses(replenishment):
    request = _submit(replenishment)
    assert replenishment.fulfill(request.id, {}, status='STOCKED').error == 'INVALID_INPUT'
    assert replenishment.fulfill(request.id, {}, status='BOGUS').error == 'INVALID_INPUT'


def test_fulfill_rejects_unknown_delivery_keys(replenishment):
    request = _submit(replenishment)
    assert replenishment.fulfill(request.id, {'diesel': 4}, org_confirmed=True).error == 'INVALID_INPUT'


def test_fulfill_unknown_request(replenishment):
    assert replenishment.fulfill('RR-404', {'water': 1}).error == 'NOT_FOUND'


# =============================================================================
# Stock
# =============================================================================

def test_stock_from_any_status(replenishment, inventory):
    result = replenishment.stock('req-2', {'medicalKits': 200})

    assert result.success
    request = result.data
    assert request.status == ReplenishmentStatus.STOCKED
    assert request.stocked is True
    assert request.stocked_at
    assert request.stocked_quantity == 200
    assert inventory.get('NGO-5500').medical_kits == 700


def test_propose_stock_then_stock(replenishment, inventory):
    proposal = replenishment.propose_stock('req-1').data

    assert proposal.inventory_key == 'water'
    assert proposal.before.water == 120
    assert proposal.after.water == 170
    assert inventory.get('CH-9921').water == 120

    replenishment.stock('req-1', proposal.delivered)
    assert inventory.get('CH-9921').water == 170


def test_propose_stock_custom_quantity(replenishment):
    proposal = replenishment.propose_stock('req-1', 12).data
    assert proposal.delivered.water == 12


def test_propose_stock_rejects_negative(replenishment):
    assert replenishment.propose_stock('req-1', -1).error == 'INVALID_INPUT'


# =============================================================================
# Status / signatures
# =============================================================================

def test_set_status_has_no_side_effects(replenishment, inventory):
    result = replenishment.set_status('req-1', 'STOCKED')
    assert result.data.status == ReplenishmentStatus.STOCKED
    assert result.data.stocked is None
    assert inventory.get('CH-9921').water == 120


def test_set_status_unknown_value(replenishment):
    assert replenishment.set_status('req-1', 'LOST').error == 'INVALID_INPUT'


def test_sign_release_and_receipt(replenishment):
    replenishment.sign('req-1', 'data:image/png;base64,AAA', SignatureType.RELEASE)
    result = replenishment.sign('req-1', 'data:image/png;base64,BBB', 'RECEIVE')

    request = result.data
    assert request.signature == 'data:image/png;base64,AAA'
    assert request.signed_at
    assert request.received_signature == 'data:image/png;base64,BBB'
    assert request.received_at
    assert request.status == ReplenishmentStatus.PENDING


def test_sign_requires_signature(replenishment):
    assert replenishment.sign('req-1', '').error == 'INVALID_INPUT'


# =============================================================================
# Queries
# =============================================================================

def test_aggregate_sorted_by_pending_quantity(replenishment):
    _submit(replenishment, item='Blankets', quantity=80)
    approved = _submit(replenishment, item='Water Cases', quantity=25)
    replenishment.fulfill(approved.id, {}, status='APPROVED')

    aggregates = replenishment.aggregate()
    assert [a.item for a in aggregates] == ['Blankets', 'Water Cases', 'Medical Kits']

    water = replenishment.aggregate_item('Water Cases')
    assert water.pending == 1
    assert water.approved == 1
    assert water.total_requested == 75
    assert water.pending_quantity == 75

    kits = replenishment.aggregate_item('Medical Kits')
    assert kits.fulfilled == 1
    assert kits.pending_quantity == 0


def test_list_for_org_newest_first(replenishment):
    newer = _submit(replenishment)
    ids = [r.id for r in replenishment.list_for_org('CH-9921')]
    assert ids == [newer.id, 'req-1']
    assert replenishment.get('req-2').org_id == 'NGO-5500'
