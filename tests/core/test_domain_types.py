"""Domain Types: verifies enum values and the Principal value object.

Tests:
    - NewType wrappers compare equal to the wrapped UUID
    - Operation is the closed four-member set with PascalCase wire values
    - Legacy integer codes map 0..3 onto Add..Divide in order
    - Principal.is_admin follows role
"""

from uuid import uuid4

import pytest

from calcsync.core.domain_types import (
    LEGACY_OPERATION_CODES, ConsistencyStrategy, Operation, Principal,
    PrincipalId, RecordEvent, RecordId, Role, SortKey, ViewStatus,
)


def test_identity_types_wrap_uuid():
    uid = uuid4()
    assert RecordId(uid) == uid
    assert PrincipalId(uid) == uid


def test_operation_has_exactly_four_members():
    assert [op.value for op in Operation] == ["Add", "Subtract", "Multiply", "Divide"]


def test_operation_value_parses_wire_name():
    assert Operation("Divide") is Operation.DIVIDE


def test_legacy_codes_follow_declaration_order():
    assert [LEGACY_OPERATION_CODES[i] for i in range(4)] == list(Operation)


def test_record_event_names():
    assert RecordEvent.CREATED.value == "RecordCreated"
    assert RecordEvent.DEACTIVATED.value == "RecordDeactivated"
    assert len(RecordEvent) == 2


def test_sort_keys_match_query_values():
    assert SortKey("createdAt") is SortKey.CREATED_AT
    assert SortKey("result") is SortKey.RESULT


def test_view_status_and_strategy_members():
    assert set(ViewStatus) == {
        ViewStatus.IDLE, ViewStatus.LOADING, ViewStatus.LOADED, ViewStatus.ERROR,
    }
    assert set(ConsistencyStrategy) == {
        ConsistencyStrategy.PESSIMISTIC, ConsistencyStrategy.OPTIMISTIC,
    }


def test_principal_defaults_to_user_role():
    p = Principal(id=PrincipalId(uuid4()), username="ada")
    assert p.role is Role.USER
    assert not p.is_admin


def test_admin_principal():
    p = Principal(id=PrincipalId(uuid4()), username="root", role=Role.ADMIN)
    assert p.is_admin


def test_principal_is_immutable():
    p = Principal(id=PrincipalId(uuid4()), username="ada")
    with pytest.raises(AttributeError):
        p.username = "eve"
