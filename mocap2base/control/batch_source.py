"""Inbound batch source interface."""

from __future__ import annotations

from .rigid_body import RigidBodyBatch


class BatchSource:
    """Base interface for inbound rigid body batch streams.

    Implementations own the transport (UDP bridge, replay file, ...).
    """

    def recv_batches(self, topic: str) -> list[RigidBodyBatch]:
        """Return every batch received on `topic` since the last call, in arrival order."""
        raise NotImplementedError

    def close(self) -> None:
        pass
