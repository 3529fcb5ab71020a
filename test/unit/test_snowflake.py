import logging
import threading

import pytest

from spotflake.core.exceptions import (
    ClockMovedBackwardsError,
    ConstructionError,
    TimestampOverflowError,
)
from spotflake.utils.layout import DEFAULT_EPOCH, FlakeLayout
from spotflake.utils.snowflake import ClockRegressionPolicy, SnowflakeNode

# default start of the fake clocks from conftest (2024-01-01T00:00:00Z)
START_MS = 1704067200000


def test_generate_1010_unique_ids_with_system_clock():
    node = SnowflakeNode(1)
    ids = {node.generate() for _ in range(1010)}
    assert len(ids) == 1010


def test_ids_are_strictly_increasing_on_one_node():
    node = SnowflakeNode(7)
    ids = node.generate_many(5000)
    assert ids == sorted(ids)
    assert len(set(ids)) == len(ids)


@pytest.mark.parametrize("node_id", [0, 1, 512, 1023])
def test_construction_accepts_every_in_range_node(node_id):
    node = SnowflakeNode(node_id)
    assert node.node_id == node_id


@pytest.mark.parametrize("node_id", [-1, 1024, 5000])
def test_construction_rejects_out_of_range_node(node_id):
    with pytest.raises(ConstructionError):
        SnowflakeNode(node_id)


def test_construction_rejects_non_integer_node():
    with pytest.raises(ConstructionError):
        SnowflakeNode("3")
    with pytest.raises(ConstructionError):
        SnowflakeNode(True)


def test_node_range_follows_node_bits():
    assert SnowflakeNode(15, node_bits=4, step_bits=4).node_id == 15
    with pytest.raises(ConstructionError):
        SnowflakeNode(16, node_bits=4, step_bits=4)


def test_construction_rejects_invalid_layout():
    with pytest.raises(ConstructionError):
        SnowflakeNode(0, node_bits=40, step_bits=23)


def test_layout_argument_overrides_widths():
    layout = FlakeLayout(epoch=0, node_bits=5, step_bits=5)
    node = SnowflakeNode(31, node_bits=1, layout=layout)
    assert node.layout is layout
    assert (node.epoch, node.node_bits, node.step_bits) == (0, 5, 5)


def test_first_id_of_a_millisecond_has_sequence_zero(make_node, frozen_clock):
    node = make_node(3, clock=frozen_clock)
    identifier = node.generate()

    assert node.timestamp_of(identifier) == START_MS
    assert node.node_of(identifier) == 3
    assert node.sequence_of(identifier) == 0


def test_identifier_bit_composition(make_node, frozen_clock):
    node = make_node(5, clock=frozen_clock)
    identifier = node.generate()
    expected = ((START_MS - DEFAULT_EPOCH) << 22) | (5 << 12)
    assert identifier == expected


def test_full_millisecond_then_next_call_rolls_over(clock_factory):
    # Reads 1..4096 return START_MS, read 4097 sees the next millisecond
    clock = clock_factory(auto_advance_after=4096)
    node = SnowflakeNode(1, clock=clock)

    ids = [node.generate() for _ in range(4096)]
    assert {node.timestamp_of(i) for i in ids} == {START_MS}
    assert [node.sequence_of(i) for i in ids] == list(range(4096))

    rolled = node.generate()
    assert node.timestamp_of(rolled) > START_MS
    assert node.sequence_of(rolled) == 0


def test_sequence_exhaustion_spins_until_clock_advances(make_node, frozen_clock):
    node = make_node(2, clock=frozen_clock, step_bits=2)
    frozen_clock.script([START_MS] * 5 + [START_MS, START_MS, START_MS + 1])

    ids = [node.generate() for _ in range(5)]

    assert [node.sequence_of(i) for i in ids[:4]] == [0, 1, 2, 3]
    assert node.timestamp_of(ids[4]) == START_MS + 1
    assert node.sequence_of(ids[4]) == 0
    # one read per call plus three reads while spinning
    assert frozen_clock.reads == 8


def test_new_millisecond_resets_sequence(make_node, frozen_clock):
    node = make_node(clock=frozen_clock)
    node.generate()
    node.generate()
    frozen_clock.advance(3)
    identifier = node.generate()
    assert node.sequence_of(identifier) == 0
    assert node.timestamp_of(identifier) == START_MS + 3


def test_nodes_with_different_ids_never_collide_on_same_clock(frozen_clock):
    left = SnowflakeNode(1, clock=frozen_clock)
    right = SnowflakeNode(2, clock=frozen_clock)

    left_ids = {left.generate() for _ in range(100)}
    right_ids = {right.generate() for _ in range(100)}

    assert left_ids.isdisjoint(right_ids)


def test_concurrent_callers_get_unique_ids():
    node = SnowflakeNode(9)
    results = []
    results_lock = threading.Lock()

    def worker():
        local = [node.generate() for _ in range(2000)]
        with results_lock:
            results.extend(local)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(results) == 16000
    assert len(set(results)) == 16000


def test_wait_policy_stalls_until_clock_catches_up(make_node, frozen_clock, caplog):
    caplog.set_level(logging.WARNING, logger="spotflake")
    node = make_node(clock=frozen_clock)
    first = node.generate()

    frozen_clock.script([START_MS - 5, START_MS - 2, START_MS])
    second = node.generate()

    assert second > first
    assert node.timestamp_of(second) == START_MS
    assert node.sequence_of(second) == 1
    assert "Clock moved backwards by 5 ms" in caplog.text


def test_reject_policy_raises_and_keeps_state(make_node, frozen_clock):
    node = make_node(clock=frozen_clock, regression_policy=ClockRegressionPolicy.REJECT)
    first = node.generate()

    frozen_clock.set(START_MS - 10)
    with pytest.raises(ClockMovedBackwardsError) as exc_info:
        node.generate()
    assert exc_info.value.drift_ms == 10

    frozen_clock.set(START_MS)
    second = node.generate()
    assert second == first + 1


def test_regression_policy_accepts_string_value(make_node):
    node = make_node(regression_policy="reject")
    assert node.regression_policy is ClockRegressionPolicy.REJECT


def test_clock_before_epoch_is_an_overflow(make_node, frozen_clock):
    frozen_clock.set(DEFAULT_EPOCH - 1)
    node = make_node(clock=frozen_clock)
    with pytest.raises(TimestampOverflowError):
        node.generate()


def test_timestamp_overflow_is_raised_instead_of_wrapping(frozen_clock):
    # 63 - 30 - 30 leaves 3 timestamp bits, so 8 ms past the epoch overflows
    node = SnowflakeNode(0, epoch=START_MS, node_bits=30, step_bits=30, clock=frozen_clock)
    frozen_clock.set(START_MS + 7)
    last_good = node.generate()
    assert node.timestamp_of(last_good) == START_MS + 7

    frozen_clock.set(START_MS + 8)
    with pytest.raises(TimestampOverflowError):
        node.generate()

    # state was not advanced by the failed call
    frozen_clock.set(START_MS + 7)
    assert node.generate() == last_good + 1


def test_generate_many(make_node):
    node = make_node()
    assert node.generate_many(0) == []
    ids = node.generate_many(10)
    assert len(set(ids)) == 10
    with pytest.raises(ValueError):
        node.generate_many(-1)


def test_decompose_matches_individual_extractors(make_node, frozen_clock):
    node = make_node(42, clock=frozen_clock)
    node.generate()
    identifier = node.generate()
    parts = node.decompose(identifier)
    assert parts == (START_MS, 42, 1)
    assert parts.timestamp == node.timestamp_of(identifier)
    assert parts.node_id == node.node_of(identifier)
    assert parts.sequence == node.sequence_of(identifier)


def test_node_creation_is_logged(caplog):
    caplog.set_level(logging.INFO, logger="spotflake")
    SnowflakeNode(11)
    assert "Snowflake node 11 ready" in caplog.text


def test_unknown_regression_policy_is_a_construction_error(caplog):
    caplog.set_level(logging.WARNING, logger="spotflake")
    with pytest.raises(ConstructionError):
        SnowflakeNode(1, regression_policy="rewind")
    assert "Rejected clock regression policy 'rewind'" in caplog.text


def test_rejected_node_id_is_logged(caplog):
    caplog.set_level(logging.WARNING, logger="spotflake")
    with pytest.raises(ConstructionError):
        SnowflakeNode(1024)
    assert "Rejected snowflake node ID 1024" in caplog.text
