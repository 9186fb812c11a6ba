"""World -> base node: one transform + publish per inbound batch."""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from .batch_source import BatchSource
from .frame_transformer import FrameTransformer, TransformResult
from .parameter_store import ParameterStore
from .rigid_body import RigidBodyBatch

logger = logging.getLogger(__name__)


# A publisher returning False reports that the batch was not delivered.
PublishFn = Callable[[RigidBodyBatch, str], Optional[bool]]


class WorldToBaseNode:
    def __init__(
        self,
        parameters: ParameterStore,
        publish: PublishFn,
        transformer: FrameTransformer | None = None,
    ):
        self.parameters = parameters
        self.publish = publish
        self.transformer = transformer or FrameTransformer()
        self.batches = 0
        self.missing_base = 0
        self.unpublished = 0

    def on_batch(self, batch: RigidBodyBatch) -> TransformResult:
        calibration = self.parameters.base_calibration()
        result = self.transformer.transform_batch(batch, calibration)
        if self.publish(result.batch, self.parameters.get("pub_topic")) is False:
            self.unpublished += 1
        self.batches += 1
        if result.missing_base:
            self.missing_base += 1
        return result

    def spin_once(self, source: BatchSource) -> int:
        self.parameters.reload_if_changed()
        batches = source.recv_batches(self.parameters.get("sub_topic"))
        for batch in batches:
            self.on_batch(batch)
        return len(batches)

    def run(
        self,
        source: BatchSource,
        poll_s: float,
        should_stop: Optional[Callable[[], bool]] = None,
    ) -> None:
        logger.info(
            "[NODE] spinning: sub_topic=%s pub_topic=%s",
            self.parameters.get("sub_topic"),
            self.parameters.get("pub_topic"),
        )
        while should_stop is None or not should_stop():
            if self.spin_once(source) == 0:
                time.sleep(poll_s)
        logger.info(
            "[NODE] stopped after %d batches (%d without base, %d not published)",
            self.batches,
            self.missing_base,
            self.unpublished,
        )
