"""Unit tests for the notification status state machine."""

from __future__ import annotations

import pytest

from notify_service.features.notifications.enums import (
    VALID_TRANSITIONS,
    NotificationChannel,
    NotificationStatus,
    is_valid_transition,
)

S = NotificationStatus


class TestTransitions:
    @pytest.mark.parametrize(
        ("from_status", "to_status"),
        [
            (S.PENDING, S.SENT),
            (S.PENDING, S.FAILED),
            (S.FAILED, S.RETRIED),
            (S.FAILED, S.SENT),
            (S.FAILED, S.FAILED),
            (S.RETRIED, S.SENT),
            (S.RETRIED, S.FAILED),
            (S.SENT, S.DELIVERED),
        ],
    )
    def test_allowed(self, from_status: NotificationStatus, to_status: NotificationStatus) -> None:
        assert is_valid_transition(from_status, to_status) is True

    @pytest.mark.parametrize(
        ("from_status", "to_status"),
        [
            (S.PENDING, S.RETRIED),
            (S.PENDING, S.DELIVERED),
            (S.SENT, S.FAILED),
            (S.SENT, S.RETRIED),
            (S.SENT, S.PENDING),
            (S.RETRIED, S.RETRIED),
            (S.DELIVERED, S.SENT),
            (S.DELIVERED, S.FAILED),
        ],
    )
    def test_forbidden(self, from_status: NotificationStatus, to_status: NotificationStatus) -> None:
        assert is_valid_transition(from_status, to_status) is False

    def test_nothing_returns_to_pending(self) -> None:
        for targets in VALID_TRANSITIONS.values():
            assert S.PENDING not in targets

    def test_delivered_is_terminal(self) -> None:
        assert VALID_TRANSITIONS[S.DELIVERED] == set()

    def test_only_failed_reaches_retried(self) -> None:
        sources = {source for source, targets in VALID_TRANSITIONS.items() if S.RETRIED in targets}

        assert sources == {S.FAILED}


class TestStatusHelpers:
    def test_delivered_states(self) -> None:
        assert S.SENT.is_delivered()
        assert S.DELIVERED.is_delivered()
        assert not S.FAILED.is_delivered()

    def test_awaiting_delivery_states(self) -> None:
        assert NotificationStatus.awaiting_delivery_states() == {S.PENDING, S.RETRIED}


class TestChannelParse:
    def test_known_channels(self) -> None:
        assert NotificationChannel.parse("email") is NotificationChannel.EMAIL
        assert NotificationChannel.parse("in_app") is NotificationChannel.IN_APP

    def test_unknown_channel(self) -> None:
        assert NotificationChannel.parse("push") is None
        assert NotificationChannel.parse("EMAIL") is None
