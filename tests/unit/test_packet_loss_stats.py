# pylint: disable=missing-module-docstring,missing-function-docstring

import math

import pytest

from protocol.stats import (
    FlatLoss,
    MissingLoss,
    TotalLoss,
    is_well_formed_loss,
    parse_packet_loss,
)


def test_flat_number_is_flat_loss():
    loss = parse_packet_loss({"packetLoss": 3.5})

    assert loss == FlatLoss(loss=3.5)
    assert loss.value == 3.5


def test_integer_loss_is_accepted():
    assert parse_packet_loss({"packetLoss": 0}).value == 0.0


def test_structured_total_is_total_loss():
    loss = parse_packet_loss({"packetLoss": {"total": 7, "upload": 1, "download": 12}})

    assert isinstance(loss, TotalLoss)
    assert loss.value == 7.0


@pytest.mark.parametrize(
    "stats, reason",
    [
        (None, "stats_not_object"),
        ("12", "stats_not_object"),
        ({}, "packet_loss_absent"),
        ({"packetLoss": None}, "packet_loss_absent"),
        ({"packetLoss": "12"}, "packet_loss_invalid"),
        ({"packetLoss": True}, "packet_loss_invalid"),
        ({"packetLoss": [1, 2]}, "packet_loss_invalid"),
        ({"packetLoss": {}}, "packet_loss_total_invalid"),
        ({"packetLoss": {"total": "5"}}, "packet_loss_total_invalid"),
        ({"packetLoss": {"upload": 5}}, "packet_loss_total_invalid"),
    ],
)
def test_malformed_shapes_are_missing(stats, reason):
    loss = parse_packet_loss(stats)

    assert loss == MissingLoss(reason=reason)
    assert loss.value is None


@pytest.mark.parametrize("raw", [math.nan, math.inf, -1, -0.5, False])
def test_non_usable_numbers_are_rejected(raw):
    assert not is_well_formed_loss(raw)
    assert parse_packet_loss({"packetLoss": raw}).value is None


def test_kind_tags_are_distinct():
    assert FlatLoss(loss=1).kind == "flat"
    assert TotalLoss(total=1).kind == "total"
    assert MissingLoss(reason="x").kind == "missing"
