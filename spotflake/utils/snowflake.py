"""
Snowflake Node Module

A thread-safe generator of time-ordered, 63-bit identifiers. Each node owns a
node ID that must be unique across the deployment; assigning those IDs
(config, orchestration, static allocation) is up to the caller.

Algorithm Overview:
    Every call to ``generate()`` reads the clock under the node's lock:

    - same millisecond as the previous ID: the sequence is incremented. When
      it wraps to 0 the node spins on the clock until the next millisecond.
    - a later millisecond: the sequence restarts at 0.
    - an earlier millisecond (clock regression): handled by the node's
      ``ClockRegressionPolicy``.

    The identifier is then packed by the node's ``FlakeLayout``:
    ``(now - epoch) << (node_bits + step_bits) | node_id << step_bits | sequence``

Throughput:
    - ``2 ** step_bits`` IDs per millisecond per node without blocking
      (4096 with the default layout).
    - Beyond that, callers spin until the clock ticks. The spin has no sleep
      and burns CPU for the remainder of the millisecond.
    - If the clock never advances the spin never ends.

Thread Safety:
    - ``threading.Lock`` serializes the clock read and the
      ``(last_timestamp, sequence)`` update.
    - Nodes share no mutable state, so nodes with different IDs run fully in
      parallel.
    - The lock protects a single process only. Separate processes need
      separate node IDs.
"""

import threading
from enum import Enum
from typing import Optional

from spotflake.core.exceptions import (
    ClockMovedBackwardsError,
    ConstructionError,
    TimestampOverflowError,
)
from spotflake.services.logger import setup_logger
from spotflake.utils.clock import ClockSource, system_clock
from spotflake.utils.layout import (
    DEFAULT_EPOCH,
    DEFAULT_NODE_BITS,
    DEFAULT_STEP_BITS,
    FlakeLayout,
    FlakeParts,
)

logger = setup_logger()


class ClockRegressionPolicy(str, Enum):
    """What a node does when the clock reports an earlier time than before.

    - WAIT: spin until the clock catches up with the last timestamp, then
      carry on counting the sequence for that millisecond.
    - REJECT: raise ``ClockMovedBackwardsError`` and leave the state alone.
    """

    WAIT = "wait"
    REJECT = "reject"


class SnowflakeNode:
    """A thread-safe Snowflake ID generator for one node.

    Attributes:
        node_id: The unique ID for this generator instance.
        layout: The epoch and field widths identifiers are packed with.
    """

    def __init__(
        self,
        node_id: int,
        epoch: int = DEFAULT_EPOCH,
        node_bits: int = DEFAULT_NODE_BITS,
        step_bits: int = DEFAULT_STEP_BITS,
        clock: ClockSource = system_clock,
        regression_policy: ClockRegressionPolicy = ClockRegressionPolicy.WAIT,
        layout: Optional[FlakeLayout] = None,
    ):
        """Initializes a new node.

        Args:
            node_id: A unique identifier for this node, ``0 <= node_id < 2 ** node_bits``.
            epoch: The custom epoch in Unix milliseconds.
            node_bits: Width of the node field.
            step_bits: Width of the sequence field.
            clock: Source of the current Unix time in milliseconds.
            regression_policy: How to react to the clock moving backwards.
            layout: A prepared layout. Overrides ``epoch``, ``node_bits`` and
                ``step_bits`` when given.

        Raises:
            ConstructionError: If the layout or regression policy is invalid,
                or the node_id is outside its range.
        """
        if layout is None:
            layout = FlakeLayout(epoch=epoch, node_bits=node_bits, step_bits=step_bits)

        if isinstance(node_id, bool) or not isinstance(node_id, int):
            logger.warning("Rejected snowflake node ID %r: not an integer", node_id)
            raise ConstructionError(f"Node ID must be an integer, got {node_id!r}")
        if not 0 <= node_id <= layout.max_node_id:
            logger.warning(
                "Rejected snowflake node ID %d: outside 0..%d", node_id, layout.max_node_id
            )
            raise ConstructionError(f"Node ID must be between 0 and {layout.max_node_id}")

        try:
            policy = ClockRegressionPolicy(regression_policy)
        except ValueError as e:
            logger.warning("Rejected clock regression policy %r", regression_policy)
            raise ConstructionError(
                f"Unknown clock regression policy: {regression_policy!r}"
            ) from e

        self._node_id = node_id
        self._layout = layout
        self._clock = clock
        self._regression_policy = policy

        self._lock = threading.Lock()
        self._last_timestamp = 0
        self._sequence = 0

        logger.info(
            "Snowflake node %d ready (epoch=%d, node_bits=%d, step_bits=%d, policy=%s)",
            node_id,
            layout.epoch,
            layout.node_bits,
            layout.step_bits,
            self._regression_policy.value,
        )

    @property
    def node_id(self) -> int:
        return self._node_id

    @property
    def layout(self) -> FlakeLayout:
        return self._layout

    @property
    def epoch(self) -> int:
        return self._layout.epoch

    @property
    def node_bits(self) -> int:
        return self._layout.node_bits

    @property
    def step_bits(self) -> int:
        return self._layout.step_bits

    @property
    def regression_policy(self) -> ClockRegressionPolicy:
        return self._regression_policy

    def _wait_until(self, target: int) -> int:
        """Spins on the clock until it reports a value of at least ``target``."""
        timestamp = self._clock.now()
        while timestamp < target:
            timestamp = self._clock.now()
        return timestamp

    def generate(self) -> int:
        """Generates a new unique identifier.

        Returns:
            A 63-bit identifier.

        Raises:
            ClockMovedBackwardsError: If the clock regressed and the policy is
                ``REJECT``.
            TimestampOverflowError: If the clock is before the epoch or too far
                past it for the timestamp field.
        """
        with self._lock:
            timestamp = self._clock.now()
            last_timestamp = self._last_timestamp
            sequence = self._sequence

            if timestamp < last_timestamp:
                drift = last_timestamp - timestamp
                if self._regression_policy is ClockRegressionPolicy.REJECT:
                    logger.error(
                        "Clock moved backwards by %d ms on node %d", drift, self._node_id
                    )
                    raise ClockMovedBackwardsError(
                        f"Clock moved backwards. Refusing to generate ID for {drift} milliseconds",
                        drift_ms=drift,
                    )
                logger.warning(
                    "Clock moved backwards by %d ms on node %d, waiting for it to catch up",
                    drift,
                    self._node_id,
                )
                timestamp = self._wait_until(last_timestamp)

            if timestamp == last_timestamp:
                sequence = (sequence + 1) & self._layout.max_sequence
                if sequence == 0:
                    logger.debug(
                        "Sequence exhausted at %d on node %d, waiting for next millisecond",
                        last_timestamp,
                        self._node_id,
                    )
                    timestamp = self._wait_until(last_timestamp + 1)
            else:
                sequence = 0

            # Compose before committing so an overflow leaves the state untouched
            try:
                identifier = self._layout.compose(timestamp, self._node_id, sequence)
            except TimestampOverflowError as e:
                logger.error("Cannot generate ID on node %d: %s", self._node_id, e)
                raise

            self._last_timestamp = timestamp
            self._sequence = sequence
            return identifier

    def generate_many(self, count: int) -> list[int]:
        """Generates ``count`` identifiers in order."""
        if count < 0:
            raise ValueError(f"count must not be negative, got {count}")
        return [self.generate() for _ in range(count)]

    def timestamp_of(self, identifier: int) -> int:
        """Returns the Unix millisecond timestamp of an identifier."""
        return self._layout.timestamp_of(identifier)

    def node_of(self, identifier: int) -> int:
        return self._layout.node_of(identifier)

    def sequence_of(self, identifier: int) -> int:
        return self._layout.sequence_of(identifier)

    def decompose(self, identifier: int) -> FlakeParts:
        return self._layout.decompose(identifier)

    def __repr__(self) -> str:
        return (
            f"SnowflakeNode(node_id={self._node_id}, epoch={self.epoch},"
            f" node_bits={self.node_bits}, step_bits={self.step_bits})"
        )
