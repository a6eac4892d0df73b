import uuid

import pytest

from receipt_split.assignments import AssignmentStore
from receipt_split.errors import InvariantViolation
from receipt_split.models import Participant, SplitAssignment, SplitRecord
from receipt_split.participants import ParticipantRegistry
from receipt_split.sync.adapter import apply_record, build_request, index_map, resolve_participants


@pytest.fixture
def local_state():
    store = AssignmentStore(["local-item-0", "item-milk", "local-item-2"])
    registry = ParticipantRegistry(store)
    me = registry.initialize()
    bob = registry.add("Bob")
    cleo = registry.add("Cleo")
    store.assign("local-item-0", [me.key])
    store.assign("item-milk", [cleo.key.upper(), me.key])
    return registry, store, (me, bob, cleo)


def test_index_map_follows_registry_order(local_state):
    registry, _, (me, bob, cleo) = local_state
    assert index_map(registry.participants) == {me.key: 0, bob.key: 1, cleo.key: 2}


def test_request_replaces_ids_with_positions(local_state):
    registry, store, _ = local_state
    request = build_request("rcpt-1", registry, store)

    assert [p.name for p in request.participants] == ["Me", "Bob", "Cleo"]
    assert [p.is_self for p in request.participants] == [True, False, False]
    assert [(a.item_key, a.participant_indices) for a in request.assignments] == [
        ("local-item-0", [0]),
        ("item-milk", [0, 2]),
    ]


def test_request_drops_ids_of_departed_participants(local_state):
    registry, store, (me, _, _) = local_state
    store.toggle("local-item-2", "11111111-1111-1111-1111-111111111111")
    request = build_request("rcpt-1", registry, store)
    assert "local-item-2" not in [a.item_key for a in request.assignments]


def _record(participants, assignments):
    return SplitRecord(id="split-1", receipt_id="rcpt-1", participants=participants, assignments=assignments)


def test_apply_record_replaces_local_state_wholesale(local_state):
    registry, store, _ = local_state
    server_me = Participant(id=uuid.uuid4(), name="Me", color_token="#3B82F6", display_order=0, is_self=True)
    server_bob = Participant(id=uuid.uuid4(), name="Bob", color_token="#4ECDC4", display_order=1)
    record = _record(
        [server_bob, server_me],
        [SplitAssignment(transaction_id="item-milk", participant_ids=[str(server_bob.id).upper()])],
    )

    apply_record(record, registry, store)

    assert [p.key for p in registry.participants] == [server_me.key, server_bob.key]
    assert store.snapshot() == {
        "local-item-0": frozenset(),
        "item-milk": frozenset({server_bob.key}),
        "local-item-2": frozenset(),
    }


def test_self_is_recovered_by_name_when_flag_missing():
    record = _record(
        [
            Participant(name="Bob", color_token="#4ECDC4", display_order=0),
            Participant(name="me", color_token="#3B82F6", display_order=1),
        ],
        [],
    )
    resolved = resolve_participants(record)
    assert [p.is_self for p in resolved] == [False, True]


def test_extra_self_flags_are_cleared():
    record = _record(
        [
            Participant(name="Me", color_token="#3B82F6", display_order=0, is_self=True),
            Participant(name="Also me", color_token="#3B82F6", display_order=1, is_self=True),
        ],
        [],
    )
    assert [p.is_self for p in resolve_participants(record)] == [True, False]


def test_empty_record_is_rejected_without_touching_state(local_state):
    registry, store, _ = local_state
    before = (registry.participants, store.snapshot())
    with pytest.raises(InvariantViolation):
        apply_record(_record([], []), registry, store)
    assert (registry.participants, store.snapshot()) == before
