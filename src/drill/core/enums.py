"""Enumerations shared across drill."""

from enum import Enum


class CommandStatus(str, Enum):
    FAILED = "COMMAND_FAILED"
    SUCCEEDED = "EXECUTION_SUCCEEDED"


class IdType(str, Enum):
    """How a service keys its history.  Informational only."""

    AGGREGATE = "aggregateId"
    INDEX = "indexId"


class ResourceKind(str, Enum):
    EVENTS = "events"
    COMMANDS = "commands"
