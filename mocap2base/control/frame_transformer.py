"""World frame -> robot base frame re-expression of rigid body poses.

Frame contract:
  T_world_base: rotation from the calibration quaternion only, translation
                = calibration offset + observed base marker position.
  T_base_world: rigid inverse of T_world_base.
  T_base_body = T_base_world @ T_world_body, where the rotation block of
                T_world_body is transposed first because the capture system
                reports the body -> initial frame rotation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

import numpy as np

from ..math3d.quaternion import quat_to_rotmat, rotmat_to_q
from ..math3d.transform import (
    format_transform,
    invert_rigid,
    make_transform,
    pose_to_transform,
    rotation,
    translation,
)
from .rigid_body import Pose, RigidBodyBatch, RigidBodyObservation

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BaseCalibration:
    """Static world -> base calibration.

    quaternion:
      Base frame rotation in world coordinates [x, y, z, w].
    offset:
      Translation from the base marker to the robot base, world coordinates.
    base_id:
      Capture-system id of the rigid body mounted on the base.
    """

    quaternion: np.ndarray = field(
        default_factory=lambda: np.array([-0.7071068, 0.0, 0.0, 0.7071068], dtype=np.float64)
    )
    offset: np.ndarray = field(
        default_factory=lambda: np.array([0.0, -0.19, 0.0], dtype=np.float64)
    )
    base_id: int = 0


@dataclass(frozen=True, slots=True)
class BaseLookup:
    """Outcome of the base marker search in one batch.

    index is None when no observation carries the configured id; message then
    describes the condition.
    """

    base_id: int
    index: Optional[int] = None
    message: str = ""

    @property
    def found(self) -> bool:
        return self.index is not None


@dataclass(slots=True)
class TransformResult:
    batch: RigidBodyBatch
    world_to_base: np.ndarray
    lookup: BaseLookup

    @property
    def missing_base(self) -> bool:
        # An empty batch has nothing to re-express, so absence is not reported.
        return not self.lookup.found and len(self.batch) > 0


def locate_base(batch: RigidBodyBatch, base_id: int) -> BaseLookup:
    """First observation with the base id wins."""
    for i, obs in enumerate(batch):
        if obs.id == base_id:
            return BaseLookup(base_id=base_id, index=i)
    return BaseLookup(
        base_id=base_id,
        message=f"rigid body of the base (id={base_id}) not found in batch of {len(batch)}",
    )


def compute_world_to_base(
    calibration: BaseCalibration,
    base_observation: Optional[RigidBodyObservation],
) -> np.ndarray:
    """T_world_base from the calibration and the observed base marker.

    Only the observed position contributes; the observed base orientation is
    ignored and the rotation comes from the calibration quaternion alone.
    A missing base contributes a zero translation.
    """
    qx, qy, qz, qw = np.asarray(calibration.quaternion, dtype=np.float64).reshape(4)
    t = np.asarray(calibration.offset, dtype=np.float64).reshape(3).copy()
    if base_observation is not None:
        t += np.asarray(base_observation.pose.position, dtype=np.float64).reshape(3)
    return make_transform(quat_to_rotmat(qx, qy, qz, qw), t)


def transform_observation(
    base_from_world: np.ndarray,
    observation: RigidBodyObservation,
) -> RigidBodyObservation:
    pose = observation.pose
    world_from_body = pose_to_transform(pose.position, pose.orientation)
    world_from_body[:3, :3] = world_from_body[:3, :3].T.copy()

    base_from_body = base_from_world @ world_from_body
    R_bw = rotation(base_from_world)
    orientation = rotmat_to_q(R_bw @ rotation(world_from_body) @ R_bw.T)

    if logger.isEnabledFor(logging.DEBUG):
        logger.debug(
            "[BASE] body id=%d stamp=%d.%09d T_base_body=\n%s",
            observation.id,
            pose.header.sec,
            pose.header.nanosec,
            format_transform(base_from_body),
        )

    return RigidBodyObservation(
        id=observation.id,
        pose=Pose(
            position=translation(base_from_body).copy(),
            orientation=orientation,
            header=pose.header,
        ),
    )


class FrameTransformer:
    """Re-expresses every rigid body of a batch in the robot base frame.

    Stateless: the calibration is passed on every call and nothing is kept
    between batches.
    """

    def transform_batch(
        self,
        batch: RigidBodyBatch,
        calibration: BaseCalibration,
    ) -> TransformResult:
        lookup = locate_base(batch, calibration.base_id)
        base_observation = batch[lookup.index] if lookup.found else None
        if not lookup.found and batch:
            logger.error("[BASE] %s; using calibration only", lookup.message)

        world_from_base = compute_world_to_base(calibration, base_observation)
        base_from_world = invert_rigid(world_from_base)
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("[BASE] base id=%d", calibration.base_id)
            logger.debug("[BASE] T_world_base=\n%s", format_transform(world_from_base))
            logger.debug("[BASE] T_base_world=\n%s", format_transform(base_from_world))

        out = [transform_observation(base_from_world, obs) for obs in batch]
        return TransformResult(batch=out, world_to_base=world_from_base, lookup=lookup)
