"""Tests for the in-memory entity runtime: repositories, pointers, relationships, codec."""

from __future__ import annotations

import pytest

from entity_sync.core.errors import (
    DeserializationError,
    DuplicateEntityError,
    EntityError,
    EntityNotFoundError,
)
from entity_sync.graph import EntityRegistry, InMemoryRepository, OneToOneRelationship

from conftest import (
    BEST_FRIENDSHIP,
    FRIENDSHIP,
    TRIP_ATTENDANCE,
    TRIP_ORGANIZATION,
    ManyPeople,
    OnePerson,
    Person,
    RecordingListener,
)


# ===========================================================================
# Repository
# ===========================================================================


class TestRepository:
    def test_create_generates_object_id_hex(self, graph):
        giorgio = graph.people.create_entity(name="giorgio")

        assert len(giorgio.id) == 24
        assert graph.people.get_entity_by_id(giorgio.id) is giorgio
        assert giorgio.id in graph.people

    def test_create_with_id(self, graph):
        giorgio = graph.people.create_entity_with_id("custom", name="giorgio")

        assert giorgio.id == "custom"
        assert graph.people.get_all_entities() == [giorgio]

    def test_duplicate_id_rejected(self, graph):
        graph.people.create_entity_with_id("custom", name="giorgio")

        with pytest.raises(DuplicateEntityError):
            graph.people.create_entity_with_id("custom", name="bubu")

    def test_update_validates(self, graph):
        giorgio = graph.people.create_entity(name="giorgio")

        giorgio.update(age=30, favourite_color="red")
        assert giorgio.data.age == 30

        with pytest.raises(ValueError):
            giorgio.update(favourite_color="purple")
        assert giorgio.data.favourite_color == "red"

    def test_id_cannot_change(self, graph):
        giorgio = graph.people.create_entity(name="giorgio")

        with pytest.raises(EntityError, match="cannot be changed"):
            giorgio.update(id="other")

    def test_delete_unknown_raises(self, graph):
        with pytest.raises(EntityNotFoundError):
            graph.people.delete_entity("missing")

    def test_add_entity_registers_validated_data(self, graph):
        data = Person(id="custom", name="giorgio", best_friend=OnePerson("bubu"))

        giorgio = graph.people.add_entity(data, notify=False)

        assert giorgio.data is data
        assert data.best_friend.is_bound
        with pytest.raises(DuplicateEntityError):
            graph.people.add_entity(Person(id="custom", name="bubu"))

    def test_add_entity_rejects_foreign_model(self, graph):
        krk = graph.trip_serializer.deserialize({"id": "krk", "location": "krk"})

        with pytest.raises(EntityError, match="expected Person"):
            graph.people.add_entity(krk)

    def test_repository_names_are_unique_per_registry(self, graph):
        with pytest.raises(EntityError, match="already registered"):
            InMemoryRepository("people", Person, registry=graph.registry)

    def test_standalone_repository_gets_private_registry(self):
        people = InMemoryRepository("people", Person)

        assert people.registry.get("people") is people


class TestLifecycleEvents:
    def test_event_sequence(self, graph):
        listener = RecordingListener()
        graph.people.register_listener(listener)

        giorgio = graph.people.create_entity(name="giorgio")
        giorgio.update(name="Giorgio")
        giorgio.delete()

        assert listener.events == [
            (giorgio.id, "created"),
            (giorgio.id, "post_update"),
            (giorgio.id, "pre_delete"),
        ]

    def test_pre_delete_fires_while_registered(self, graph):
        seen = []

        class Probe:
            def notify_entity_event(self, entity, event):
                seen.append(entity.id in entity.repository)

        graph.people.register_listener(Probe())
        giorgio = graph.people.create_entity(name="giorgio")
        giorgio.delete()

        assert seen == [True, True]
        assert giorgio.id not in graph.people

    def test_unregister_listener(self, graph):
        listener = RecordingListener()
        graph.people.register_listener(listener)
        graph.people.unregister_listener(listener)

        graph.people.create_entity(name="giorgio")

        assert listener.events == []

    def test_create_with_id_can_be_silent(self, graph):
        listener = RecordingListener()
        graph.people.register_listener(listener)

        graph.people.create_entity_with_id("quiet", notify=False, name="giorgio")

        assert listener.events == []


# ===========================================================================
# Pointers
# ===========================================================================


class TestPointers:
    def test_to_one_resolves_lazily(self, graph):
        giorgio = graph.people.create_entity(name="giorgio", best_friend=OnePerson("later"))

        assert giorgio.data.best_friend.get_entity() is None

        bubu = graph.people.create_entity_with_id("later", name="bubu")
        assert giorgio.data.best_friend.get_entity() is bubu

    def test_to_many_keeps_insertion_order_without_duplicates(self):
        pointer = ManyPeople(["b", "a", "b"])

        assert pointer.get_all_ids() == ["b", "a"]
        assert pointer.add("a") is False
        assert pointer.add("c") is True
        assert pointer.remove("b") is True
        assert pointer.remove("b") is False
        assert list(pointer) == ["a", "c"]

    def test_unbound_pointer_resolves_to_none(self):
        assert OnePerson("x").get_entity() is None
        assert ManyPeople(["x"]).get_all_entities() == [None]

    def test_pointers_bound_to_registry_on_insert(self, graph):
        giorgio = graph.people.create_entity(name="giorgio")

        assert giorgio.data.best_friend.is_bound
        assert giorgio.data.friends.is_bound

    def test_pointers_resolve_in_their_own_registry(self):
        registry = EntityRegistry()
        people = registry.create_repository("people", Person)
        bubu = people.create_entity_with_id("bubu", name="bubu")
        giorgio = people.create_entity(name="giorgio", friends=ManyPeople(["bubu"]))

        assert giorgio.data.friends.get_all_entities() == [bubu]


# ===========================================================================
# Relationships
# ===========================================================================


class TestRelationships:
    def test_one_to_one_is_symmetric(self, graph):
        giorgio = graph.people.create_entity(name="giorgio")
        bubu = graph.people.create_entity(name="bubu")

        BEST_FRIENDSHIP.set(giorgio, bubu)

        assert giorgio.data.best_friend.get_id() == bubu.id
        assert bubu.data.best_friend.get_id() == giorgio.id

    def test_one_to_one_detaches_previous_partner(self, graph):
        giorgio = graph.people.create_entity(name="giorgio")
        bubu = graph.people.create_entity(name="bubu")
        boezio = graph.people.create_entity(name="boezio")
        BEST_FRIENDSHIP.set(giorgio, bubu)

        listener = RecordingListener()
        graph.people.register_listener(listener)
        BEST_FRIENDSHIP.set(giorgio, boezio)

        assert bubu.data.best_friend.get_id() is None
        assert boezio.data.best_friend.get_id() == giorgio.id
        assert sorted(listener.events) == sorted(
            [(bubu.id, "post_update"), (giorgio.id, "post_update"), (boezio.id, "post_update")]
        )

    def test_one_to_one_unset(self, graph):
        giorgio = graph.people.create_entity(name="giorgio")
        bubu = graph.people.create_entity(name="bubu")
        BEST_FRIENDSHIP.set(giorgio, bubu)

        BEST_FRIENDSHIP.unset(giorgio)

        assert giorgio.data.best_friend.get_id() is None
        assert bubu.data.best_friend.get_id() is None

    def test_many_to_many_add_and_remove(self, graph):
        giorgio = graph.people.create_entity(name="giorgio")
        bubu = graph.people.create_entity(name="bubu")

        FRIENDSHIP.add(giorgio, bubu)
        assert giorgio.data.friends.get_all_ids() == [bubu.id]
        assert bubu.data.friends.get_all_ids() == [giorgio.id]

        FRIENDSHIP.remove(bubu, giorgio)
        assert giorgio.data.friends.get_all_ids() == []
        assert bubu.data.friends.get_all_ids() == []

    def test_many_to_many_across_repositories(self, graph):
        giorgio = graph.people.create_entity(name="giorgio")
        krk = graph.trips.create_entity(location="krk")

        TRIP_ATTENDANCE.add(giorgio, krk)

        assert giorgio.data.attended_trips.get_all_entities() == [krk]
        assert krk.data.participants.get_all_entities() == [giorgio]

    def test_one_to_many_moves_child_between_owners(self, graph):
        giorgio = graph.people.create_entity(name="giorgio")
        bubu = graph.people.create_entity(name="bubu")
        krk = graph.trips.create_entity(location="krk")

        TRIP_ORGANIZATION.add(giorgio, krk)
        TRIP_ORGANIZATION.add(bubu, krk)

        assert giorgio.data.organized_trips.get_all_ids() == []
        assert bubu.data.organized_trips.get_all_ids() == [krk.id]
        assert krk.data.organizer.get_entity() is bubu

    def test_no_change_fires_no_events(self, graph):
        giorgio = graph.people.create_entity(name="giorgio")
        bubu = graph.people.create_entity(name="bubu")
        FRIENDSHIP.add(giorgio, bubu)

        listener = RecordingListener()
        graph.people.register_listener(listener)
        FRIENDSHIP.add(giorgio, bubu)

        assert listener.events == []

    def test_wrong_field_kind_rejected(self, graph):
        giorgio = graph.people.create_entity(name="giorgio")
        bubu = graph.people.create_entity(name="bubu")

        with pytest.raises(EntityError, match="not a to-one pointer"):
            OneToOneRelationship("friends", "friends").set(giorgio, bubu)


# ===========================================================================
# Serializer
# ===========================================================================


class TestSerializer:
    def test_serialize_reduces_pointers_to_ids(self, graph):
        giorgio = graph.people.create_entity(name="giorgio")
        bubu = graph.people.create_entity(name="bubu")
        BEST_FRIENDSHIP.set(giorgio, bubu)
        FRIENDSHIP.add(giorgio, bubu)

        raw = graph.person_serializer.serialize(giorgio)

        assert raw["id"] == giorgio.id
        assert raw["best_friend"] == bubu.id
        assert raw["friends"] == [bubu.id]

    def test_serialized_lists_are_copies(self, graph):
        giorgio = graph.people.create_entity(name="giorgio")

        raw = graph.person_serializer.serialize(giorgio)
        raw["friends"].append("intruder")

        assert giorgio.data.friends.get_all_ids() == []

    def test_deserialize_validates(self, graph):
        data = graph.person_serializer.deserialize({
            "id": "x", "name": "giorgio", "best_friend": "y", "friends": ["z"],
        })

        assert data.best_friend.get_id() == "y"
        assert data.friends.get_all_ids() == ["z"]
        assert data.attended_trips.get_all_ids() == []

    @pytest.mark.parametrize(
        "raw",
        [
            {"id": "x", "name": 1},
            {"id": "x", "name": "giorgio", "best_friend": 7},
            {"id": "x", "name": "giorgio", "friends": [1, 2]},
            {"name": "giorgio"},
        ],
    )
    def test_deserialize_rejects_bad_shapes(self, graph, raw):
        with pytest.raises(DeserializationError):
            graph.person_serializer.deserialize(raw)
