"""Enumerations used across the synchronization engine."""

from enum import Enum


class EntityEvent(str, Enum):
    """Lifecycle notifications emitted by a repository."""

    CREATED = "created"
    POST_UPDATE = "post_update"
    PRE_DELETE = "pre_delete"


class TaskKind(str, Enum):
    INSERT = "insert"
    REPLACE = "replace"
    DELETE = "delete"


class FailurePolicy(str, Enum):
    """What the task queue does after a task raises."""

    HALT = "halt"          # stop draining, keep remaining tasks queued
    CONTINUE = "continue"  # record the failure and move on


class KeyMode(str, Enum):
    """How an entity id becomes a document primary key."""

    OBJECT_ID = "object_id"  # ObjectId(hex id)
    STRING = "string"        # raw id string
