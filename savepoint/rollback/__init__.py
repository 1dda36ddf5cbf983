"""savepoint rollback — the controller state machine and its mutation queue."""

from savepoint.rollback.controller import RollbackController
from savepoint.rollback.serializer import MutationSerializer

__all__ = [
    "RollbackController",
    "MutationSerializer",
]
