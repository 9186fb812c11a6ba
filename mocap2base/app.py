"""
World -> base frame node for motion-capture rigid bodies:
- Inbound: rigid body batches in the capture (world) frame, UDP JSON on sub_topic
- Base marker (base_id) position + calibration quaternion/offset -> T_world_base
- Every body re-expressed in the robot base frame, published on pub_topic
- Calibration and topics are re-read for every batch; editing the --config
  file takes effect on the next batch

Deps:
  uv add numpy pyyaml
"""

from __future__ import annotations

import logging

from .bus.udp_json import UdpJsonPublisher, UdpJsonSubscriber
from .config import parse_args
from .control.node import WorldToBaseNode
from .control.parameter_store import ParameterStore

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main(argv=None):
    cfg = parse_args(argv)
    configure_logging(cfg.log_level)

    parameters = ParameterStore(cfg, watch_path=cfg.config)
    calibration = parameters.base_calibration()
    logger.info(
        "[PARAMS] base_id=%d q=[%.7f, %.7f, %.7f, %.7f] offset=[%.3f, %.3f, %.3f]",
        calibration.base_id,
        *calibration.quaternion,
        *calibration.offset,
    )

    subscriber = UdpJsonSubscriber(cfg.sub_host, cfg.sub_port)
    try:
        publisher = UdpJsonPublisher(cfg.pub_host, cfg.pub_port)
        try:
            node = WorldToBaseNode(parameters=parameters, publish=publisher.publish)
            logger.info(
                "[NODE] created world to base node (listen=%s:%d, publish=%s:%d)",
                cfg.sub_host,
                cfg.sub_port,
                cfg.pub_host,
                cfg.pub_port,
            )
            try:
                node.run(subscriber, poll_s=cfg.poll_ms / 1000.0)
            except KeyboardInterrupt:
                logger.info("[NODE] interrupted")
        finally:
            publisher.close()
    finally:
        subscriber.close()


if __name__ == "__main__":
    main()
