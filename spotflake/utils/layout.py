"""
Bit layout shared by a generator and everything that reads its identifiers.

    | 1 bit |  timestamp_bits  | node_bits | step_bits |
    |   0   | ms since epoch   |  node id  | sequence  |

With the defaults (10 node bits, 12 step bits) the timestamp gets 41 bits,
which is about 69 years of milliseconds after the epoch, 1024 nodes and 4096
IDs per millisecond per node.

A layout is immutable. Identifiers produced under one layout can only be
compared with, or decoded into fields by, the same layout.
"""

from typing import NamedTuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from spotflake.core.exceptions import ConstructionError, TimestampOverflowError
from spotflake.services.logger import setup_logger

logger = setup_logger()

IDENTIFIER_BITS = 63
MAX_IDENTIFIER = (1 << IDENTIFIER_BITS) - 1

# 2018-01-01T00:00:00Z
DEFAULT_EPOCH = 1514764800000
DEFAULT_NODE_BITS = 10
DEFAULT_STEP_BITS = 12


class FlakeParts(NamedTuple):
    """The three fields of an identifier. ``timestamp`` is Unix milliseconds."""

    timestamp: int
    node_id: int
    sequence: int


class FlakeLayout(BaseModel):
    """Field widths and epoch of a deployment.

    Args:
        epoch (int): Custom epoch in Unix milliseconds.
        node_bits (int): Width of the node field.
        step_bits (int): Width of the sequence field.

    Raises:
        ConstructionError: If a value is negative or the node and step fields
            leave no room for the timestamp.
    """

    model_config = ConfigDict(frozen=True)

    epoch: int = Field(DEFAULT_EPOCH, ge=0, description="Custom epoch in Unix ms")
    node_bits: int = Field(DEFAULT_NODE_BITS, ge=0, description="Node field width")
    step_bits: int = Field(DEFAULT_STEP_BITS, ge=0, description="Sequence field width")

    def __init__(self, **data):
        try:
            super().__init__(**data)
        except ValidationError as e:
            logger.warning("Rejected flake layout %s: %s", data, e)
            raise ConstructionError(f"Invalid flake layout: {e}") from e

    @model_validator(mode="after")
    def validate_widths(self):
        if self.node_bits + self.step_bits >= IDENTIFIER_BITS:
            raise ValueError(
                f"node_bits + step_bits must be below {IDENTIFIER_BITS},"
                f" got {self.node_bits + self.step_bits}"
            )
        return self

    @property
    def timestamp_bits(self) -> int:
        return IDENTIFIER_BITS - self.node_bits - self.step_bits

    @property
    def max_node_id(self) -> int:
        return (1 << self.node_bits) - 1

    @property
    def max_sequence(self) -> int:
        return (1 << self.step_bits) - 1

    @property
    def max_timestamp_delta(self) -> int:
        return (1 << self.timestamp_bits) - 1

    @property
    def node_shift(self) -> int:
        return self.step_bits

    @property
    def timestamp_shift(self) -> int:
        return self.node_bits + self.step_bits

    def compose(self, timestamp: int, node_id: int, sequence: int) -> int:
        """Packs the three fields into an identifier.

        Args:
            timestamp: Unix milliseconds, at or after the epoch.
            node_id: Node identifier that fits ``node_bits``.
            sequence: Sequence number that fits ``step_bits``.

        Raises:
            TimestampOverflowError: If ``timestamp - epoch`` is negative or
                wider than the timestamp field.
            ValueError: If the node or sequence does not fit its field.
        """
        delta = timestamp - self.epoch
        if delta < 0:
            raise TimestampOverflowError(
                f"Timestamp {timestamp} is before the epoch {self.epoch}"
            )
        if delta > self.max_timestamp_delta:
            raise TimestampOverflowError(
                f"Timestamp {timestamp} is {delta} ms past the epoch, beyond the"
                f" {self.timestamp_bits}-bit limit of {self.max_timestamp_delta} ms"
            )
        if not 0 <= node_id <= self.max_node_id:
            raise ValueError(f"Node ID must be between 0 and {self.max_node_id}")
        if not 0 <= sequence <= self.max_sequence:
            raise ValueError(f"Sequence must be between 0 and {self.max_sequence}")

        return (
            (delta << self.timestamp_shift)
            | (node_id << self.node_shift)
            | sequence
        )

    def timestamp_of(self, identifier: int) -> int:
        """Returns the Unix millisecond timestamp stored in an identifier."""
        return (identifier >> self.timestamp_shift) + self.epoch

    def node_of(self, identifier: int) -> int:
        return (identifier >> self.node_shift) & self.max_node_id

    def sequence_of(self, identifier: int) -> int:
        return identifier & self.max_sequence

    def decompose(self, identifier: int) -> FlakeParts:
        return FlakeParts(
            self.timestamp_of(identifier),
            self.node_of(identifier),
            self.sequence_of(identifier),
        )
