import pytest

from receipt_split.assignments import AssignmentStore
from receipt_split.errors import InvariantViolation
from receipt_split.models import FriendColor, Participant, RecentFriend
from receipt_split.participants import ParticipantRegistry


@pytest.fixture
def store():
    return AssignmentStore(["local-item-0", "local-item-1"])


@pytest.fixture
def registry(store):
    registry = ParticipantRegistry(store)
    registry.initialize()
    return registry


def test_initialize_creates_self_first(store):
    registry = ParticipantRegistry(store, self_name="Moi")
    me = registry.initialize()
    assert me.is_self and me.display_order == 0 and me.name == "Moi"
    assert registry.self_participant == me


def test_initialize_twice_is_rejected(registry):
    with pytest.raises(InvariantViolation):
        registry.initialize()


def test_add_uses_next_order_and_palette_slot(registry):
    bob = registry.add("Bob")
    cleo = registry.add("Cleo")
    assert (bob.display_order, cleo.display_order) == (1, 2)
    assert bob.color_token == FriendColor.from_index(1).value
    assert cleo.color_token == FriendColor.from_index(2).value


def test_new_participant_is_not_assigned_anywhere(registry, store):
    store.assign_all([registry.self_participant.key])
    bob = registry.add("Bob")
    assert all(bob.key not in members for members in store.snapshot().values())


def test_add_recent_friend_keeps_colour(registry):
    friend = RecentFriend(id="f1", name="Dana", color="#00CED1", use_count=4)
    dana = registry.add_recent(friend)
    assert dana.color_token == "#00CED1"
    assert dana.display_order == 1
    assert dana.key != "f1"


def test_remove_purges_and_renumbers(registry, store):
    bob = registry.add("Bob")
    cleo = registry.add("Cleo")
    store.assign_all(registry.keys)

    assert registry.remove(str(bob.id).upper()) is True

    assert [p.name for p in registry.participants] == ["Me", "Cleo"]
    assert [p.display_order for p in registry.participants] == [0, 1]
    assert all(bob.key not in members for members in store.snapshot().values())
    assert all(cleo.key in members for members in store.snapshot().values())


def test_self_cannot_be_removed(registry, store):
    me = registry.self_participant
    store.assign_all([me.key])
    assert registry.remove(me.id) is False
    assert len(registry) == 1
    assert store.is_fully_assigned()


def test_removing_unknown_participant_is_a_no_op(registry):
    assert registry.remove("00000000-0000-0000-0000-000000000000") is False
    assert len(registry) == 1


def test_participants_are_copies(registry):
    registry.participants[0].name = "Changed"
    assert registry.self_participant.name == "Me"


def test_replace_requires_exactly_one_self(registry):
    others = [Participant(name="A", color_token="#FFFFFF"), Participant(name="B", color_token="#FFFFFF")]
    with pytest.raises(InvariantViolation):
        registry.replace(others)
    assert registry.self_participant.name == "Me"


def test_replace_puts_self_first_and_renumbers(registry):
    server = [
        Participant(name="Bob", color_token="#FF6B6B", display_order=3),
        Participant(name="Me", color_token="#3B82F6", display_order=5, is_self=True),
    ]
    registry.replace(server)
    assert [(p.name, p.display_order) for p in registry.participants] == [("Me", 0), ("Bob", 1)]
