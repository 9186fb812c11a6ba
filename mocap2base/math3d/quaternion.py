"""Quaternion utilities for right-handed coordinates.

Quaternions are stored in message order [x, y, z, w], the order the capture
system streams them in.
"""

from __future__ import annotations

import math

import numpy as np


def quat_to_rotmat(qx: float, qy: float, qz: float, qw: float) -> np.ndarray:
    """Rotation matrix of the unit quaternion [qx, qy, qz, qw].

    The input is not normalized; a non-unit quaternion gives a matrix that is
    not orthonormal.
    """
    qx, qy, qz, qw = float(qx), float(qy), float(qz), float(qw)
    return np.array(
        [
            [2.0 * (qw * qw + qx * qx) - 1.0, 2.0 * (qx * qy - qw * qz), 2.0 * (qx * qz + qw * qy)],
            [2.0 * (qx * qy + qw * qz), 2.0 * (qw * qw + qy * qy) - 1.0, 2.0 * (qy * qz - qw * qx)],
            [2.0 * (qx * qz - qw * qy), 2.0 * (qy * qz + qw * qx), 2.0 * (qw * qw + qz * qz) - 1.0],
        ],
        dtype=np.float64,
    )


def _signed_half_sqrt(radicand: float, sign_source: float) -> float:
    if radicand <= 0.0:
        return 0.0
    sign = 1.0 if sign_source >= 0.0 else -1.0
    return 0.5 * sign * math.sqrt(radicand)


def rotmat_to_q(R: np.ndarray) -> np.ndarray:
    """Convert 3x3 rotation matrix to quaternion [x, y, z, w].

    Each component comes from its own diagonal radicand; x, y, z take the sign
    of the matching off-diagonal difference (zero counts as positive) and w is
    never negative. A non-positive radicand gives exactly 0 for that component.

    The result is not renormalized. Near a half turn the vector components can
    lose their relative sign when the rotation axis is not a coordinate axis.
    """
    R = np.asarray(R, dtype=np.float64)
    if R.shape != (3, 3):
        raise ValueError(f"Expected 3x3 rotation matrix, got {R.shape}")

    r00, r11, r22 = float(R[0, 0]), float(R[1, 1]), float(R[2, 2])
    qx = _signed_half_sqrt(r00 - r11 - r22 + 1.0, float(R[2, 1] - R[1, 2]))
    qy = _signed_half_sqrt(r11 - r22 - r00 + 1.0, float(R[0, 2] - R[2, 0]))
    qz = _signed_half_sqrt(r22 - r11 - r00 + 1.0, float(R[1, 0] - R[0, 1]))
    qw = _signed_half_sqrt(r00 + r11 + r22 + 1.0, 1.0)
    return np.array([qx, qy, qz, qw], dtype=np.float64)
