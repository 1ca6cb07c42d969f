"""
Tests for the user repository: session, login, profiles, activation, pings.
"""

import pytest
from pydantic import ValidationError

from schemas_store import HouseholdMember, UserProfile, UserProfileUpdate, UserRole


def test_no_session_returns_guest_profile(users):
    assert users.has_session() is False
    profile = users.current_profile()
    assert profile.id == 'guest'
    assert profile.notifications.push is True
    assert profile.notifications.sms is True


def test_login_by_phone(users):
    result = users.login('555-1001')
    assert result.success
    assert result.data.id == 'u1'
    assert users.has_session()
    assert users.current_profile().full_name == 'Alice Johnson'


def test_login_by_email_is_case_insensitive(users):
    result = users.login('ADMIN@aera.example.org')
    assert result.success
    assert result.data.id == 'u0'


def test_login_blank_identifier(users):
    result = users.login('   ')
    assert not result.success
    assert result.error == 'INVALID_INPUT'


def test_login_unknown_user(users):
    result = users.login('555-0000-0000')
    assert not result.success
    assert result.error == 'NOT_FOUND'
    assert users.has_session() is False


def test_login_deactivated_account(users):
    users.set_active('u2', False)
    result = users.login('555-1002')
    assert not result.success
    assert result.error == 'ACCOUNT_DEACTIVATED'
    assert result.message == 'Account deactivated. Contact Admin.'


def test_logout_clears_session(users):
    users.login('555-1001')
    assert users.logout().success
    assert users.current_profile().id == 'guest'


def test_upsert_new_profile_generates_id_and_session(users):
    profile = UserProfile(
        id='guest',
        full_name='Erin Lee',
        phone='555-3003',
        household=[HouseholdMember(id='h9', name='Kim Lee', age='6')],
    )
    result = users.upsert(profile)

    assert result.success
    saved = result.data
    assert saved.id.startswith('u_')
    assert saved.household_members == 2
    assert saved.active is True
    assert users.current_profile().id == saved.id


def test_upsert_replaces_existing_profile(users):
    existing = users.get('u2')
    existing.address = '303 Elm St'
    assert users.upsert(existing).success

    assert users.get('u2').address == '303 Elm St'
    assert len(users.list_all()) == 5


def test_update_applies_only_set_fields(users):
    update = UserProfileUpdate(medical_needs='Oxygen', household=[])
    result = users.update('u1', update)

    assert result.success
    user = users.get('u1')
    assert user.medical_needs == 'Oxygen'
    assert user.household_members == 1
    assert user.full_name == 'Alice Johnson'


def test_update_struct_rejects_unknown_keys():
    with pytest.raises(ValidationError):
        UserProfileUpdate.model_validate({'fullName': 'X', 'isAdmin': True})


def test_update_struct_accepts_camel_case_keys():
    update = UserProfileUpdate.model_validate({'fullName': 'Alice J.'})
    assert update.full_name == 'Alice J.'


def test_update_cannot_clear_required_field(users):
    result = users.update('u1', UserProfileUpdate(full_name=None))
    assert not result.success
    assert result.error == 'INVALID_INPUT'


def test_update_unknown_user(users):
    result = users.update('nope', UserProfileUpdate(address='x'))
    assert result.error == 'NOT_FOUND'


def test_self_deactivation_blocked(users):
    users.login('555-0000')
    result = users.set_active('u0', False)

    assert not result.success
    assert result.error == 'SELF_DEACTIVATION_BLOCKED'
    assert users.get('u0').active is True


def test_admin_deactivates_other_user(users):
    users.login('555-0000')
    assert users.set_active('u4', False).success
    assert users.get('u4').active is False
    assert users.set_active('u4', True).success


def test_set_active_unknown_user(users):
    assert users.set_active('missing', False).error == 'NOT_FOUND'


def test_send_ping_requires_session(users):
    assert users.send_ping('u1').error == 'NOT_FOUND'


def test_send_ping_marks_target(users):
    users.login('555-0101')
    result = users.send_ping('u1')

    assert result.success
    pending = users.get('u1').pending_status_request
    assert pending.requester_name == 'Pastor John'
    assert pending.timestamp.endswith('Z')


def test_seed_roles(users):
    assert users.get('u3').role == UserRole.INSTITUTION_ADMIN
    assert users.get('u1').role == UserRole.GENERAL_USER
