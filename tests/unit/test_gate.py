# pylint: disable=missing-module-docstring,missing-function-docstring

from orchestrator.gate import (
    GateContext,
    GateDropReason,
    drop_reason,
    is_screenshare_active,
    should_evaluate,
)
from orchestrator.runtime import build_gate_context
from orchestrator.runtime_context import AppStateSnapshot
from protocol.stats import FlatLoss, MissingLoss, TotalLoss


def ctx(**overrides) -> GateContext:
    base = {"packet_loss": FlatLoss(loss=10)}
    base.update(overrides)
    return GateContext(**base)


def test_accepts_plain_server_routed_sample():
    assert should_evaluate(ctx())
    assert drop_reason(ctx()) is None


def test_accepts_structured_total():
    assert should_evaluate(ctx(packet_loss=TotalLoss(total=4)))


def test_each_rule_drops():
    assert drop_reason(ctx(adaptive_enabled=False)) is GateDropReason.ADAPTIVE_DISABLED
    assert drop_reason(ctx(p2p=True)) is GateDropReason.PEER_TO_PEER
    assert drop_reason(ctx(packet_loss=MissingLoss(reason="x"))) is GateDropReason.NO_LOSS_DATA
    assert drop_reason(ctx(start_audio_only=True)) is GateDropReason.USER_AUDIO_ONLY
    assert (
        drop_reason(ctx(preferred_video_quality=180))
        is GateDropReason.USER_PINNED_LOW_DEFINITION
    )
    assert drop_reason(ctx(screenshare_active=True)) is GateDropReason.SCREENSHARE_ACTIVE


def test_other_pinned_heights_are_not_overrides():
    assert should_evaluate(ctx(preferred_video_quality=360))
    assert should_evaluate(ctx(preferred_video_quality=720))


def test_rules_apply_in_declared_order():
    everything = ctx(
        adaptive_enabled=False,
        p2p=True,
        packet_loss=MissingLoss(reason="x"),
        start_audio_only=True,
        screenshare_active=True,
    )
    assert drop_reason(everything) is GateDropReason.ADAPTIVE_DISABLED

    assert drop_reason(ctx(p2p=True, screenshare_active=True)) is GateDropReason.PEER_TO_PEER


def test_screenshare_detection():
    assert not is_screenshare_active(None)
    assert not is_screenshare_active([])
    assert not is_screenshare_active([{"video_type": "camera"}])
    assert is_screenshare_active([{"video_type": "camera"}, {"video_type": "desktop"}])
    assert not is_screenshare_active(["desktop"])


def test_gate_context_from_snapshot():
    snapshot = AppStateSnapshot(
        disable_adaptive_quality=True,
        p2p=True,
        start_audio_only=True,
        preferred_video_quality=180,
        tracks=({"video_type": "desktop"},),
    )

    gate = build_gate_context(snapshot, FlatLoss(loss=1))

    assert gate == GateContext(
        packet_loss=FlatLoss(loss=1),
        adaptive_enabled=False,
        p2p=True,
        start_audio_only=True,
        preferred_video_quality=180,
        screenshare_active=True,
    )
