"""Symmetric relationship helpers.

Each relationship names the pointer field on either side and keeps both
sides consistent.  After mutating pointers in place, every entity whose
pointers changed gets exactly one ``POST_UPDATE`` notification, in the
order the entities were first touched.
"""

from __future__ import annotations

from entity_sync.core.errors import EntityError

from .pointers import ToManyEntities, ToOneEntity
from .repository import Entity


def _to_one(entity: Entity, field: str) -> ToOneEntity:
    pointer = getattr(entity.data, field, None)
    if not isinstance(pointer, ToOneEntity):
        raise EntityError(f"{entity!r}.{field} is not a to-one pointer")
    return pointer


def _to_many(entity: Entity, field: str) -> ToManyEntities:
    pointer = getattr(entity.data, field, None)
    if not isinstance(pointer, ToManyEntities):
        raise EntityError(f"{entity!r}.{field} is not a to-many pointer")
    return pointer


class _Touched:
    """Ordered set of entities to notify once mutations are done."""

    def __init__(self) -> None:
        self._entities: dict[int, Entity] = {}

    def add(self, entity: Entity) -> None:
        self._entities.setdefault(id(entity), entity)

    def notify(self) -> None:
        for entity in self._entities.values():
            entity.touch()


class OneToOneRelationship:
    def __init__(self, e1_to_e2: str, e2_to_e1: str) -> None:
        self.e1_to_e2 = e1_to_e2
        self.e2_to_e1 = e2_to_e1

    def set(self, e1: Entity, e2: Entity) -> None:
        """Link *e1* and *e2*, detaching any previous partners first."""
        touched = _Touched()
        self._detach(e1, self.e1_to_e2, self.e2_to_e1, touched)
        self._detach(e2, self.e2_to_e1, self.e1_to_e2, touched)
        _to_one(e1, self.e1_to_e2).set_id(e2.id)
        _to_one(e2, self.e2_to_e1).set_id(e1.id)
        touched.add(e1)
        touched.add(e2)
        touched.notify()

    def unset(self, e1: Entity) -> None:
        touched = _Touched()
        self._detach(e1, self.e1_to_e2, self.e2_to_e1, touched)
        touched.notify()

    @staticmethod
    def _detach(entity: Entity, own: str, back: str, touched: _Touched) -> None:
        pointer = _to_one(entity, own)
        if pointer.get_id() is None:
            return
        partner = pointer.get_entity()
        if partner is not None and _to_one(partner, back).get_id() == entity.id:
            _to_one(partner, back).set_id(None)
            touched.add(partner)
        pointer.set_id(None)
        touched.add(entity)


class OneToManyRelationship:
    """*e1* owns many *e2*; each *e2* points back to a single *e1*."""

    def __init__(self, e1_to_e2s: str, e2_to_e1: str) -> None:
        self.e1_to_e2s = e1_to_e2s
        self.e2_to_e1 = e2_to_e1

    def add(self, e1: Entity, e2: Entity) -> None:
        touched = _Touched()
        back = _to_one(e2, self.e2_to_e1)
        previous = back.get_entity()
        if previous is not None and previous is not e1:
            if _to_many(previous, self.e1_to_e2s).remove(e2.id):
                touched.add(previous)
        if _to_many(e1, self.e1_to_e2s).add(e2.id):
            touched.add(e1)
        if back.get_id() != e1.id:
            back.set_id(e1.id)
            touched.add(e2)
        touched.notify()

    def remove(self, e1: Entity, e2: Entity) -> None:
        touched = _Touched()
        if _to_many(e1, self.e1_to_e2s).remove(e2.id):
            touched.add(e1)
        back = _to_one(e2, self.e2_to_e1)
        if back.get_id() == e1.id:
            back.set_id(None)
            touched.add(e2)
        touched.notify()


class ManyToManyRelationship:
    def __init__(self, e1_to_e2s: str, e2_to_e1s: str) -> None:
        self.e1_to_e2s = e1_to_e2s
        self.e2_to_e1s = e2_to_e1s

    def add(self, e1: Entity, e2: Entity) -> None:
        touched = _Touched()
        if _to_many(e1, self.e1_to_e2s).add(e2.id):
            touched.add(e1)
        if _to_many(e2, self.e2_to_e1s).add(e1.id):
            touched.add(e2)
        touched.notify()

    def remove(self, e1: Entity, e2: Entity) -> None:
        touched = _Touched()
        if _to_many(e1, self.e1_to_e2s).remove(e2.id):
            touched.add(e1)
        if _to_many(e2, self.e2_to_e1s).remove(e1.id):
            touched.add(e2)
        touched.notify()
