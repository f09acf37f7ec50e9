"""Tests for disconnect classification and reconnect delays."""

from __future__ import annotations

import json

import pytest

from afkbot.models.disconnect import DisconnectKind, DisconnectReason, KickKind
from afkbot.models.policy import SupervisorPolicy
from afkbot.supervisor.backoff import counts_as_failure, reconnect_delay
from afkbot.supervisor.reasons import (
    classify_end,
    classify_error,
    classify_kick,
    flatten_reason,
    is_benign_error,
)


def test_flatten_plain_and_json_reasons() -> None:
    assert flatten_reason("Server closed") == "Server closed"
    component = {"translate": "multiplayer.disconnect.banned", "with": [{"text": "griefing"}]}
    assert flatten_reason(component) == "multiplayer.disconnect.banned griefing"
    assert flatten_reason(json.dumps(component)) == "multiplayer.disconnect.banned griefing"
    assert flatten_reason({"text": "", "extra": [{"text": "You were "}, {"text": "kicked"}]}) == "You were  kicked"
    assert flatten_reason(None) == ""


@pytest.mark.parametrize(
    "payload, kick",
    [
        ({"translate": "multiplayer.disconnect.banned"}, KickKind.BANNED),
        ('{"translate":"multiplayer.disconnect.banned.reason"}', KickKind.BANNED),
        ("You are banned from this server", KickKind.BANNED),
        ({"translate": "multiplayer.disconnect.duplicate_login"}, KickKind.DUPLICATE_LOGIN),
        ("You logged in from another location", KickKind.DUPLICATE_LOGIN),
        ({"text": "Server is restarting"}, KickKind.OTHER),
        ("", KickKind.OTHER),
    ],
)
def test_classify_kick(payload, kick) -> None:
    reason = classify_kick(payload)
    assert reason.kind is DisconnectKind.KICKED
    assert reason.kick is kick
    assert reason.payload == payload


def test_classify_end() -> None:
    assert classify_end("socketClosed").kind is DisconnectKind.SOCKET_CLOSED
    assert classify_end("disconnect.quitting").kind is DisconnectKind.NORMAL
    assert classify_end(None).kind is DisconnectKind.NORMAL


def test_benign_errors() -> None:
    assert is_benign_error({"name": "PartialReadError", "message": "PartialReadError: Read error for player_info"})
    assert is_benign_error(ValueError("Chunk size is 120 but only 80 was read ; partial packet : declare_recipes"))
    assert not is_benign_error({"message": "PartialReadError: Read error for login"})
    assert not is_benign_error({"message": "connect ECONNREFUSED 127.0.0.1:25565"})
    assert classify_error(ConnectionResetError("reset")).text == "ConnectionResetError: reset"


def test_benign_error_matched_on_error_name() -> None:
    assert is_benign_error({"name": "PartialReadError", "message": "Read error for undefined : player_info"})
    assert not is_benign_error({"name": "PartialReadError", "message": "Read error for undefined : login"})
    assert classify_error({"name": "Error", "message": "read ECONNRESET"}).text == "Error: read ECONNRESET"
    assert classify_error({"message": "PartialReadError: x"}).text == "PartialReadError: x"


def test_banned_halts() -> None:
    policy = SupervisorPolicy()
    banned = classify_kick({"translate": "multiplayer.disconnect.banned"})
    assert reconnect_delay(banned, 1, policy) is None


def test_delay_classes_ordered() -> None:
    policy = SupervisorPolicy()
    duplicate = classify_kick("multiplayer.disconnect.duplicate_login")
    socket_closed = DisconnectReason.socket_closed("socketClosed")
    other_kick = classify_kick("Server is restarting")

    for failures in range(1, 6):
        dup_delay = reconnect_delay(duplicate, failures, policy)
        socket_delay = reconnect_delay(socket_closed, failures, policy)
        kick_delay = reconnect_delay(other_kick, failures, policy)
        assert dup_delay >= socket_delay >= kick_delay


def test_delay_is_deterministic_and_capped() -> None:
    policy = SupervisorPolicy()
    error = DisconnectReason.error({}, "boom")

    assert reconnect_delay(error, 1, policy) == reconnect_delay(error, 1, policy) == policy.error_retry_delay
    assert reconnect_delay(error, 2, policy) == policy.error_retry_delay * 2
    assert reconnect_delay(error, 10, policy) == policy.error_retry_delay * policy.max_backoff_multiplier
    assert reconnect_delay(DisconnectReason.normal(), 1, policy) == policy.end_retry_delay


def test_duplicate_login_fixed_delay() -> None:
    policy = SupervisorPolicy()
    duplicate = classify_kick("multiplayer.disconnect.duplicate_login")

    assert not counts_as_failure(duplicate)
    assert reconnect_delay(duplicate, 1, policy) == reconnect_delay(duplicate, 7, policy) == policy.duplicate_login_delay
