from unittest.mock import MagicMock, patch

import pytest

from match_alerts.exceptions import DeliveryError
from match_alerts.notifications.dispatcher import NotificationDispatcher
from match_alerts.notifications.record import NotificationRecord

RECORD = NotificationRecord(title="t", body="b", tag="match-started-abc")


def _sender(channel, result=True):
    sender = MagicMock()
    sender.channel = channel
    if isinstance(result, Exception):
        sender.deliver.side_effect = result
    else:
        sender.deliver.return_value = result
    return sender


class TestNotificationDispatcher:
    def test_delivers_to_every_channel(self):
        telegram, discord = _sender("telegram"), _sender("discord")
        dispatcher = NotificationDispatcher([telegram, discord])

        assert dispatcher.deliver(RECORD) == ["telegram", "discord"]
        telegram.deliver.assert_called_once_with(RECORD)
        discord.deliver.assert_called_once_with(RECORD)

    def test_partial_failure_counts_as_delivered(self):
        dispatcher = NotificationDispatcher([_sender("telegram", False), _sender("discord")])
        assert dispatcher.deliver(RECORD) == ["discord"]

    def test_all_channels_fail(self):
        dispatcher = NotificationDispatcher([_sender("telegram", False), _sender("discord", False)])
        with pytest.raises(DeliveryError):
            dispatcher.deliver(RECORD)

    def test_sender_exception_is_a_failure(self):
        dispatcher = NotificationDispatcher(
            [_sender("webhook", RuntimeError("boom")), _sender("telegram")]
        )
        assert dispatcher.deliver(RECORD) == ["telegram"]

    def test_no_channels_configured(self):
        with pytest.raises(DeliveryError):
            NotificationDispatcher([]).deliver(RECORD)

    def test_default_senders_from_configuration(self):
        configured, unconfigured = MagicMock(), MagicMock()
        configured.is_configured.return_value = True
        configured.return_value = _sender("telegram")
        unconfigured.is_configured.return_value = False

        with patch(
            "match_alerts.notifications.dispatcher.SENDER_CLASSES", [configured, unconfigured]
        ):
            dispatcher = NotificationDispatcher()

        assert dispatcher.channels == ["telegram"]
        unconfigured.assert_not_called()
