"""Shared fixtures for the entity-sync test suite."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

import pytest
from pydantic import Field

from entity_sync.graph import (
    EntityModel,
    EntityRegistry,
    EntitySerializer,
    InMemoryRepository,
    ManyToManyRelationship,
    OneToManyRelationship,
    OneToOneRelationship,
    ToManyEntities,
    ToOneEntity,
)
from entity_sync.storage.collection import MemoryDatabase
from entity_sync.sync.queue import TaskQueue


# ---------------------------------------------------------------------------
# People & trips model
# ---------------------------------------------------------------------------

class OnePerson(ToOneEntity):
    target = "people"


class ManyPeople(ToManyEntities):
    target = "people"


class OneTrip(ToOneEntity):
    target = "trips"


class ManyTrips(ToManyEntities):
    target = "trips"


class Person(EntityModel):
    name: str
    age: int | None = None
    favourite_color: Literal["red", "blue", "green"] | None = None
    best_friend: OnePerson = Field(default_factory=OnePerson)
    friends: ManyPeople = Field(default_factory=ManyPeople)
    attended_trips: ManyTrips = Field(default_factory=ManyTrips)
    organized_trips: ManyTrips = Field(default_factory=ManyTrips)


class Trip(EntityModel):
    location: str
    participants: ManyPeople = Field(default_factory=ManyPeople)
    organizer: OnePerson = Field(default_factory=OnePerson)


BEST_FRIENDSHIP = OneToOneRelationship(e1_to_e2="best_friend", e2_to_e1="best_friend")
FRIENDSHIP = ManyToManyRelationship(e1_to_e2s="friends", e2_to_e1s="friends")
TRIP_ORGANIZATION = OneToManyRelationship(e1_to_e2s="organized_trips", e2_to_e1="organizer")
TRIP_ATTENDANCE = ManyToManyRelationship(e1_to_e2s="attended_trips", e2_to_e1s="participants")


@dataclass
class Graph:
    """A fresh registry with ``people`` and ``trips`` repositories."""

    registry: EntityRegistry
    people: InMemoryRepository[Person]
    trips: InMemoryRepository[Trip]
    person_serializer: EntitySerializer[Person]
    trip_serializer: EntitySerializer[Trip]


def make_graph() -> Graph:
    registry = EntityRegistry()
    return Graph(
        registry=registry,
        people=registry.create_repository("people", Person),
        trips=registry.create_repository("trips", Trip),
        person_serializer=EntitySerializer(Person),
        trip_serializer=EntitySerializer(Trip),
    )


class RecordingListener:
    """Collects ``(entity_id, event)`` pairs for assertions."""

    def __init__(self) -> None:
        self.events: list[tuple[str, str]] = []

    def notify_entity_event(self, entity, event) -> None:
        self.events.append((entity.id, event.value))


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def graph() -> Graph:
    return make_graph()


@pytest.fixture
def database() -> MemoryDatabase:
    return MemoryDatabase()


@pytest.fixture
def queue() -> TaskQueue:
    return TaskQueue()
