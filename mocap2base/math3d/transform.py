"""Homogeneous 4x4 rigid transforms."""

from __future__ import annotations

import numpy as np

from .quaternion import quat_to_rotmat


def make_transform(R: np.ndarray, t: np.ndarray) -> np.ndarray:
    T = np.eye(4, dtype=np.float64)
    T[:3, :3] = np.asarray(R, dtype=np.float64).reshape(3, 3)
    T[:3, 3] = np.asarray(t, dtype=np.float64).reshape(3)
    return T


def pose_to_transform(position: np.ndarray, orientation: np.ndarray) -> np.ndarray:
    """Transform from a position and an [x, y, z, w] quaternion."""
    qx, qy, qz, qw = np.asarray(orientation, dtype=np.float64).reshape(4)
    return make_transform(quat_to_rotmat(qx, qy, qz, qw), position)


def invert_rigid(T: np.ndarray) -> np.ndarray:
    """Inverse of a rigid transform: [R^T, -R^T t].

    Only valid when the rotation block is orthonormal; this is not checked.
    """
    T = np.asarray(T, dtype=np.float64)
    R_t = T[:3, :3].T
    return make_transform(R_t, -R_t @ T[:3, 3])


def rotation(T: np.ndarray) -> np.ndarray:
    return np.asarray(T, dtype=np.float64)[:3, :3]


def translation(T: np.ndarray) -> np.ndarray:
    return np.asarray(T, dtype=np.float64)[:3, 3]


def format_transform(T: np.ndarray) -> str:
    return np.array2string(np.asarray(T, dtype=np.float64), precision=6, suppress_small=True)
