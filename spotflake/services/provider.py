import threading
from typing import Optional

from spotflake.core.config import Settings, settings
from spotflake.services.logger import setup_logger
from spotflake.utils.layout import FlakeLayout
from spotflake.utils.snowflake import ClockRegressionPolicy, SnowflakeNode

logger = setup_logger()

_node: Optional[SnowflakeNode] = None
_node_lock = threading.Lock()


def build_node(config: Settings = settings) -> SnowflakeNode:
    """Creates a node from the NODE_ID, EPOCH, NODE_BITS and STEP_BITS settings."""
    layout = FlakeLayout(
        epoch=config.EPOCH,
        node_bits=config.NODE_BITS,
        step_bits=config.STEP_BITS,
    )
    return SnowflakeNode(
        config.NODE_ID,
        layout=layout,
        regression_policy=ClockRegressionPolicy(config.CLOCK_REGRESSION_POLICY),
    )


def get_node() -> SnowflakeNode:
    """Returns the process-wide node, creating it on first use.

    Keep one node per process for its whole lifetime: a node thrown away after
    one ID loses its sequence state and gains nothing over a fresh timestamp.
    """
    global _node
    with _node_lock:
        if _node is None:
            logger.info("Creating process-wide snowflake node from settings")
            _node = build_node()
        return _node


def reset_node() -> None:
    """Forgets the process-wide node so the next get_node() rebuilds it."""
    global _node
    with _node_lock:
        _node = None
