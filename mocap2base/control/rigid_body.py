"""Rigid body data structures streamed by the motion-capture system."""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np


@dataclass(frozen=True, slots=True)
class Header:
    """Opaque stamp carried through unchanged."""

    sec: int = 0
    nanosec: int = 0
    frame_id: str = ""


@dataclass(slots=True)
class Pose:
    """Rigid body pose.

    position:
      3D translation [x, y, z], meters.
    orientation:
      Orientation quaternion [x, y, z, w], expected unit length (not enforced).
    """

    position: np.ndarray
    orientation: np.ndarray
    header: Header = field(default_factory=Header)


@dataclass(slots=True)
class RigidBodyObservation:
    id: int
    pose: Pose


RigidBodyBatch = list[RigidBodyObservation]


def make_observation(
    body_id: int,
    position,
    orientation=(0.0, 0.0, 0.0, 1.0),
    header: Header | None = None,
) -> RigidBodyObservation:
    return RigidBodyObservation(
        id=int(body_id),
        pose=Pose(
            position=np.asarray(position, dtype=np.float64).reshape(3),
            orientation=np.asarray(orientation, dtype=np.float64).reshape(4),
            header=Header() if header is None else header,
        ),
    )
