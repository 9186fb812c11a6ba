import json
import socket
import time

import numpy as np

from mocap2base.bus.udp_json import (
    UdpJsonPublisher,
    UdpJsonSubscriber,
    encode_batch,
    parse_batch_packet,
    parse_batch_payload,
)
from mocap2base.control.rigid_body import Header, make_observation


def _body(body_id=3, position=(0.1, -0.2, 1.5), orientation=(0.0, 0.0, 0.0, 1.0), header=None):
    item = {"id": body_id, "position": list(position), "orientation": list(orientation)}
    if header is not None:
        item["header"] = header
    return item


def test_parse_batch_payload_accepts_valid_schema():
    parsed = parse_batch_payload(
        {
            "topic": "rigid_body_topic",
            "rigid_bodies": [
                _body(header={"sec": 12, "nanosec": 500, "frame_id": "world"}),
                _body(body_id=0, position=(1.0, 2.0, 3.0)),
            ],
        }
    )
    assert parsed is not None
    topic, batch = parsed
    assert topic == "rigid_body_topic"
    assert [obs.id for obs in batch] == [3, 0]
    np.testing.assert_allclose(batch[0].pose.position, np.array([0.1, -0.2, 1.5]))
    np.testing.assert_allclose(batch[0].pose.orientation, np.array([0.0, 0.0, 0.0, 1.0]))
    assert batch[0].pose.header == Header(sec=12, nanosec=500, frame_id="world")
    assert batch[1].pose.header == Header()


def test_parse_batch_payload_keeps_non_unit_orientation():
    parsed = parse_batch_payload({"topic": "t", "rigid_bodies": [_body(orientation=(0.0, 0.0, 0.0, 2.0))]})
    assert parsed is not None
    np.testing.assert_allclose(parsed[1][0].pose.orientation, np.array([0.0, 0.0, 0.0, 2.0]))


def test_parse_batch_payload_accepts_empty_batch():
    assert parse_batch_payload({"topic": "t", "rigid_bodies": []}) == ("t", [])


def test_parse_batch_packet_rejects_invalid_json():
    assert parse_batch_packet(b"{not-json") is None


def test_parse_batch_payload_rejects_bad_vector_lengths():
    assert parse_batch_payload({"topic": "t", "rigid_bodies": [_body(position=(0.0, 1.0))]}) is None
    assert parse_batch_payload({"topic": "t", "rigid_bodies": [_body(orientation=(0.0, 0.0, 1.0))]}) is None


def test_parse_batch_payload_rejects_bad_fields():
    assert parse_batch_payload({"rigid_bodies": []}) is None
    assert parse_batch_payload({"topic": "t", "rigid_bodies": {}}) is None
    assert parse_batch_payload({"topic": "t", "rigid_bodies": [_body(body_id="3")]}) is None
    assert parse_batch_payload({"topic": "t", "rigid_bodies": [_body(body_id=True)]}) is None
    assert parse_batch_payload({"topic": "t", "rigid_bodies": [_body(header={"sec": 1.5})]}) is None
    assert (
        parse_batch_payload({"topic": "t", "rigid_bodies": [_body(position=(0.0, float("nan"), 1.0))]})
        is None
    )


def test_encode_batch_matches_schema():
    header = Header(sec=1, nanosec=2, frame_id="world")
    data = encode_batch([make_observation(5, [1.0, 2.0, 3.0], header=header)], "out")
    payload = json.loads(data.decode("utf-8"))
    assert payload == {
        "topic": "out",
        "rigid_bodies": [
            {
                "id": 5,
                "header": {"sec": 1, "nanosec": 2, "frame_id": "world"},
                "position": [1.0, 2.0, 3.0],
                "orientation": [0.0, 0.0, 0.0, 1.0],
            }
        ],
    }


def _recv_until(sub: UdpJsonSubscriber, topic: str, count: int, timeout_s: float = 2.0):
    out = []
    deadline = time.monotonic() + timeout_s
    while len(out) < count and time.monotonic() < deadline:
        out.extend(sub.recv_batches(topic))
        time.sleep(0.005)
    return out


def test_subscriber_filters_topic_and_drops_malformed_packets():
    sub = UdpJsonSubscriber("127.0.0.1", 0)
    pub = UdpJsonPublisher(*sub.address)
    raw = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    try:
        pub.publish([make_observation(1, [0.0, 0.0, 0.0])], "other")
        raw.sendto(b"garbage", sub.address)
        pub.publish([make_observation(2, [1.0, 0.0, 0.0])], "rigid_body_topic")
        pub.publish([make_observation(3, [2.0, 0.0, 0.0])], "rigid_body_topic")

        batches = _recv_until(sub, "rigid_body_topic", 2)
        assert [[obs.id for obs in b] for b in batches] == [[2], [3]]
        assert sub.dropped == 1
    finally:
        raw.close()
        pub.close()
        sub.close()


def test_publisher_reports_oversized_batch():
    sub = UdpJsonSubscriber("127.0.0.1", 0)
    pub = UdpJsonPublisher(*sub.address)
    try:
        small = [make_observation(1, [0.0, 0.0, 0.0])]
        large = [make_observation(i, [0.123456789, 0.123456789, 0.123456789]) for i in range(2000)]
        assert pub.publish(small, "t") is True
        assert pub.publish(large, "t") is False
        batches = _recv_until(sub, "t", 1)
        assert [[obs.id for obs in b] for b in batches] == [[1]]
    finally:
        pub.close()
        sub.close()
