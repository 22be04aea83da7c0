"""
Gateway routing and conference lifecycle.

- Each joined conference gets its own controller
- Leaving unsubscribes, cancels timers and discards the controller
- Bad input is logged and dropped
"""
# pylint: disable=missing-function-docstring

import asyncio
import json
from typing import Any

import pytest

import session.gateway as gateway_mod
from config import AppConfig
from constants import CONNECTION_QUALITY_CHANGED, DEFAULT_LEVELS, with_durations
from orchestrator.enums.level import QualityLevel
from session.gateway import QualityGateway


FAST_CONFIG = AppConfig(
    levels=with_durations(
        DEFAULT_LEVELS,
        {
            QualityLevel.NORMAL: 40,
            QualityLevel.STANDARD: 20,
            QualityLevel.LOW: 30,
            QualityLevel.CRITICAL: 30,
        },
    )
)


@pytest.fixture
def gateway_logs(monkeypatch: pytest.MonkeyPatch) -> list[dict[str, Any]]:
    emitted: list[dict[str, Any]] = []
    monkeypatch.setattr(gateway_mod, "log_event", emitted.append)
    return emitted


def msg(payload: dict[str, Any]) -> str:
    return json.dumps(payload)


async def connected(config: AppConfig = FAST_CONFIG) -> QualityGateway:
    gw = QualityGateway(config=config)
    await gw.on_ws_connect()
    return gw


@pytest.mark.asyncio
async def test_connect_sends_session_init_with_levels(gateway_logs):
    gw = QualityGateway(config=AppConfig())

    result = await gw.on_ws_connect()

    init = result.outbound_json[0]
    assert init["type"] == "SESSION_INIT"
    assert init["session_id"].startswith("sess_")
    assert init["levels"]["CRITICAL"] == {
        "loss_threshold": 15,
        "duration_ms": 10_000,
        "max_height": 0,
    }
    assert any(e["event_type"] == "WS_CONNECTED" for e in gateway_logs)


@pytest.mark.asyncio
async def test_join_subscribes_and_quality_reaches_controller(gateway_logs):
    gw = await connected()

    await gw.on_json_message(msg({"type": "CONFERENCE_JOINED", "conference_id": "conf_a"}))

    session = gw.session
    assert session is not None and session.conference is not None
    assert session.conference.listener_count(CONNECTION_QUALITY_CHANGED) == 1

    await gw.on_json_message(
        msg({"type": "CONNECTION_QUALITY_CHANGED", "quality": 70, "stats": {"packetLoss": 3}})
    )
    await asyncio.sleep(0.2)

    assert session.runtime is not None
    assert session.runtime.state.current_level is QualityLevel.STANDARD

    result = await gw.next_control()
    assert result.outbound_json == (
        {
            "type": "SET_RECEIVER_CONSTRAINTS",
            "conference_id": "conf_a",
            "constraints": {"defaultConstraints": {"maxHeight": 360}},
        },
    )


@pytest.mark.asyncio
async def test_critical_commit_sends_audio_only_and_notification(gateway_logs):
    gw = await connected()
    await gw.on_json_message(msg({"type": "CONFERENCE_JOINED"}))

    await gw.on_json_message(
        msg({"type": "CONNECTION_QUALITY_CHANGED", "quality": 5, "stats": {"packetLoss": {"total": 30}}})
    )
    await asyncio.sleep(0.2)

    result = await gw.next_control()
    types = [m["type"] for m in result.outbound_json]
    assert types == ["SET_AUDIO_ONLY", "SHOW_NOTIFICATION"]
    assert result.outbound_json[0]["enabled"] is True
    assert result.outbound_json[1]["uid"] == "net_critical"

    assert gw.session is not None
    assert gw.session.app_state.snapshot().audio_only_enabled is True


@pytest.mark.asyncio
async def test_state_update_gates_samples(gateway_logs):
    gw = await connected()
    await gw.on_json_message(msg({"type": "CONFERENCE_JOINED"}))
    await gw.on_json_message(msg({"type": "STATE_UPDATE", "state": {"p2p": True}}))

    await gw.on_json_message(
        msg({"type": "CONNECTION_QUALITY_CHANGED", "quality": 0, "stats": {"packetLoss": 99}})
    )
    await asyncio.sleep(0.2)

    assert gw.session is not None and gw.session.runtime is not None
    assert gw.session.runtime.state.current_level is QualityLevel.NORMAL
    assert gw.session.drain_control() == ()


@pytest.mark.asyncio
async def test_leave_mid_debounce_unsubscribes_and_cancels(gateway_logs):
    gw = await connected()
    await gw.on_json_message(msg({"type": "CONFERENCE_JOINED"}))
    session = gw.session
    assert session is not None
    conference = session.conference
    runtime = session.runtime
    assert conference is not None and runtime is not None

    await gw.on_json_message(
        msg({"type": "CONNECTION_QUALITY_CHANGED", "quality": 5, "stats": {"packetLoss": 40}})
    )
    assert runtime.pending_timers == frozenset({QualityLevel.CRITICAL})

    await gw.on_json_message(msg({"type": "CONFERENCE_LEFT"}))
    await asyncio.sleep(0.2)

    assert conference.listener_count(CONNECTION_QUALITY_CHANGED) == 0
    assert runtime.pending_timers == frozenset()
    assert runtime.state.current_level is QualityLevel.NORMAL
    assert session.runtime is None
    assert session.conference is None
    assert session.drain_control() == ()


@pytest.mark.asyncio
async def test_rejoin_starts_fresh_controller(gateway_logs):
    gw = await connected()
    await gw.on_json_message(msg({"type": "CONFERENCE_JOINED", "conference_id": "conf_a"}))
    assert gw.session is not None
    first = gw.session.runtime

    await gw.on_json_message(msg({"type": "CONFERENCE_JOINED", "conference_id": "conf_b"}))

    second = gw.session.runtime
    assert second is not None and second is not first
    assert gw.session.conference is not None
    assert gw.session.conference.conference_id == "conf_b"


@pytest.mark.asyncio
async def test_quality_without_conference_is_dropped(gateway_logs):
    gw = await connected()

    result = await gw.on_json_message(
        msg({"type": "CONNECTION_QUALITY_CHANGED", "quality": 5, "stats": {"packetLoss": 40}})
    )

    assert result.outbound_json == ()
    assert any(e["event_type"] == "QUALITY_WITHOUT_CONFERENCE" for e in gateway_logs)


@pytest.mark.asyncio
async def test_bad_messages_are_logged(gateway_logs):
    gw = await connected()

    await gw.on_json_message("{not json")
    await gw.on_json_message(msg({"type": "DANCE"}))
    await gw.on_json_message("[1, 2]")
    await gw.on_json_message(msg({"type": "STATE_UPDATE", "state": {"colour": "red"}}))

    kinds = [e["event_type"] for e in gateway_logs]
    assert "JSON_DECODE_ERROR" in kinds
    assert "UNKNOWN_MESSAGE_TYPE" in kinds
    assert "MESSAGE_NOT_OBJECT" in kinds
    assert "STATE_UPDATE_FIELDS_REJECTED" in kinds


@pytest.mark.asyncio
async def test_message_before_connect_is_dropped(gateway_logs):
    gw = QualityGateway(config=FAST_CONFIG)

    result = await gw.on_json_message(msg({"type": "CONFERENCE_JOINED"}))

    assert result.outbound_json == ()
    assert gateway_logs[0]["event_type"] == "MESSAGE_WITHOUT_SESSION"


@pytest.mark.asyncio
async def test_disconnect_tears_down_conference(gateway_logs):
    gw = await connected()
    await gw.on_json_message(msg({"type": "CONFERENCE_JOINED"}))
    assert gw.session is not None
    conference = gw.session.conference
    assert conference is not None

    await gw.on_ws_disconnect(reason="client_disconnect")

    assert gw.session.runtime is None
    assert conference.listener_count(CONNECTION_QUALITY_CHANGED) == 0


@pytest.mark.asyncio
async def test_state_update_rejects_values_of_the_wrong_type(gateway_logs):
    gw = await connected()
    await gw.on_json_message(msg({"type": "CONFERENCE_JOINED", "conference_id": "conf_t"}))

    await gw.on_json_message(
        msg({
            "type": "STATE_UPDATE",
            "state": {
                "p2p": "false",
                "start_audio_only": "0",
                "disable_adaptive_quality": 1,
                "preferred_video_quality": 180.9,
            },
        })
    )

    assert gw.session is not None
    snapshot = gw.session.app_state.snapshot()
    assert snapshot.p2p is False
    assert snapshot.start_audio_only is False
    assert snapshot.disable_adaptive_quality is False
    assert snapshot.preferred_video_quality is None

    rejected = [e for e in gateway_logs if e["event_type"] == "STATE_UPDATE_FIELDS_REJECTED"]
    assert len(rejected) == 1
    assert sorted(rejected[0]["fields"]) == [
        "disable_adaptive_quality",
        "p2p",
        "preferred_video_quality",
        "start_audio_only",
    ]
    assert rejected[0]["conference_id"] == "conf_t"

    # Nothing was silently turned into a gate override
    await gw.on_json_message(
        msg({"type": "CONNECTION_QUALITY_CHANGED", "quality": 70, "stats": {"packetLoss": 3}})
    )
    await asyncio.sleep(0.2)

    assert gw.session.runtime is not None
    assert gw.session.runtime.state.current_level is QualityLevel.STANDARD


@pytest.mark.asyncio
async def test_state_update_accepts_whole_float_height(gateway_logs):
    gw = await connected()

    await gw.on_json_message(
        msg({"type": "STATE_UPDATE", "state": {"preferred_video_quality": 180.0}})
    )

    assert gw.session is not None
    assert gw.session.app_state.snapshot().preferred_video_quality == 180
    assert not any(e["event_type"] == "STATE_UPDATE_FIELDS_REJECTED" for e in gateway_logs)


@pytest.mark.asyncio
async def test_app_will_unmount_mid_debounce_tears_down(gateway_logs):
    gw = await connected()
    await gw.on_json_message(msg({"type": "CONFERENCE_JOINED"}))
    session = gw.session
    assert session is not None
    conference = session.conference
    runtime = session.runtime
    assert conference is not None and runtime is not None

    await gw.on_json_message(
        msg({"type": "CONNECTION_QUALITY_CHANGED", "quality": 30, "stats": {"packetLoss": 8}})
    )
    assert runtime.pending_timers == frozenset({QualityLevel.LOW})

    result = await gw.on_json_message(msg({"type": "APP_WILL_UNMOUNT"}))
    await asyncio.sleep(0.2)

    assert result.outbound_json == ()
    assert conference.listener_count(CONNECTION_QUALITY_CHANGED) == 0
    assert runtime.pending_timers == frozenset()
    assert runtime.state.current_level is QualityLevel.NORMAL
    assert session.runtime is None
    assert session.drain_control() == ()
