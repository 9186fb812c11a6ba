"""Rigid body batches over localhost UDP JSON.

One datagram carries one batch:
{
  "topic": "rigid_body_topic",
  "rigid_bodies": [
    {
      "id": 3,
      "header": {"sec": 12, "nanosec": 500, "frame_id": "world"},
      "position": [x, y, z],
      "orientation": [qx, qy, qz, qw]
    }
  ]
}

Parsers return None for anything that does not match the schema; callers
drop such packets.
"""

from __future__ import annotations

import json
import logging
import socket
from typing import Optional, Tuple

import numpy as np

from ..control.batch_source import BatchSource
from ..control.rigid_body import Header, Pose, RigidBodyBatch, RigidBodyObservation

logger = logging.getLogger(__name__)

MAX_DATAGRAM = 65535
# IPv4 UDP payload limit.
MAX_PAYLOAD = 65507


def _parse_header(payload) -> Optional[Header]:
    if payload is None:
        return Header()
    if not isinstance(payload, dict):
        return None
    sec = payload.get("sec", 0)
    nanosec = payload.get("nanosec", 0)
    frame_id = payload.get("frame_id", "")
    if isinstance(sec, bool) or not isinstance(sec, int):
        return None
    if isinstance(nanosec, bool) or not isinstance(nanosec, int):
        return None
    if not isinstance(frame_id, str):
        return None
    return Header(sec=sec, nanosec=nanosec, frame_id=frame_id)


def _parse_rigid_body(payload) -> Optional[RigidBodyObservation]:
    if not isinstance(payload, dict):
        return None
    body_id = payload.get("id")
    if isinstance(body_id, bool) or not isinstance(body_id, int):
        return None
    header = _parse_header(payload.get("header"))
    if header is None:
        return None

    position = payload.get("position")
    orientation = payload.get("orientation")
    if position is None or orientation is None:
        return None
    try:
        p = np.asarray(position, dtype=np.float64).reshape(-1)
        q = np.asarray(orientation, dtype=np.float64).reshape(-1)
    except (TypeError, ValueError):
        return None
    if p.size != 3 or q.size != 4:
        return None
    if not np.isfinite(p).all() or not np.isfinite(q).all():
        return None

    return RigidBodyObservation(id=body_id, pose=Pose(position=p, orientation=q, header=header))


def parse_batch_payload(payload) -> Optional[Tuple[str, RigidBodyBatch]]:
    if not isinstance(payload, dict):
        return None
    topic = payload.get("topic")
    bodies = payload.get("rigid_bodies")
    if not isinstance(topic, str) or not isinstance(bodies, list):
        return None

    batch: RigidBodyBatch = []
    for item in bodies:
        obs = _parse_rigid_body(item)
        if obs is None:
            return None
        batch.append(obs)
    return topic, batch


def parse_batch_packet(data: bytes) -> Optional[Tuple[str, RigidBodyBatch]]:
    try:
        payload = json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError):
        return None
    return parse_batch_payload(payload)


def batch_to_payload(batch: RigidBodyBatch, topic: str) -> dict:
    return {
        "topic": topic,
        "rigid_bodies": [
            {
                "id": int(obs.id),
                "header": {
                    "sec": obs.pose.header.sec,
                    "nanosec": obs.pose.header.nanosec,
                    "frame_id": obs.pose.header.frame_id,
                },
                "position": [float(v) for v in obs.pose.position],
                "orientation": [float(v) for v in obs.pose.orientation],
            }
            for obs in batch
        ],
    }


def encode_batch(batch: RigidBodyBatch, topic: str) -> bytes:
    return json.dumps(batch_to_payload(batch, topic), separators=(",", ":")).encode("utf-8")


class UdpJsonSubscriber(BatchSource):
    def __init__(self, host: str, port: int):
        self.sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        self.sock.bind((host, int(port)))
        self.sock.setblocking(False)
        self.dropped = 0

    @property
    def address(self) -> Tuple[str, int]:
        return self.sock.getsockname()

    def recv_batches(self, topic: str) -> list[RigidBodyBatch]:
        """Drain pending datagrams; batches of `topic` in arrival order."""
        batches: list[RigidBodyBatch] = []
        while True:
            try:
                data, _ = self.sock.recvfrom(MAX_DATAGRAM)
            except BlockingIOError:
                break
            except OSError:
                logger.exception("[BUS] receive failed")
                break
            parsed = parse_batch_packet(data)
            if parsed is None:
                self.dropped += 1
                logger.warning("[BUS] dropped malformed packet (%d bytes)", len(data))
                continue
            packet_topic, batch = parsed
            if packet_topic != topic:
                logger.debug("[BUS] ignoring batch on topic %r", packet_topic)
                continue
            batches.append(batch)
        return batches

    def close(self) -> None:
        self.sock.close()


class UdpJsonPublisher:
    def __init__(self, host: str, port: int):
        self.sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        self.target = (host, int(port))

    def publish(self, batch: RigidBodyBatch, topic: str) -> bool:
        """Send one batch; False when it does not fit in a single datagram."""
        data = encode_batch(batch, topic)
        if len(data) > MAX_PAYLOAD:
            logger.warning(
                "[BUS] batch of %d bodies is %d bytes, over the datagram limit; not sent",
                len(batch),
                len(data),
            )
            return False
        self.sock.sendto(data, self.target)
        return True

    def close(self) -> None:
        self.sock.close()
