from unittest.mock import MagicMock, patch

import httpx

from match_alerts.notifications.record import NotificationAction, NotificationRecord
from match_alerts.notifications.webhook import WebhookSender

HOOK = "https://push.example.com/notify"

RECORD = NotificationRecord(
    title="🔴 LIVE NOW!",
    body="India vs Pakistan has started! Watch now!",
    tag="match-started-abc",
    url="/#live",
    icon="/icon-192.png",
    badge="/icon-192.png",
    require_interaction=True,
    actions=[NotificationAction("watch", "Watch Now")],
    data={"eventId": "abc", "milestone": "started"},
)


@patch("match_alerts.notifications.webhook.get_settings")
def test_is_configured(mock_settings):
    mock_settings.return_value = MagicMock(webhook_url=HOOK)
    assert WebhookSender.is_configured() is True
    mock_settings.return_value = MagicMock(webhook_url="")
    assert WebhookSender.is_configured() is False


@patch("match_alerts.notifications.webhook.get_settings")
def test_deliver_posts_full_record(mock_settings):
    mock_settings.return_value = MagicMock(webhook_url=HOOK)
    sender = WebhookSender()

    with patch("httpx.Client") as mock_client_cls:
        mock_client = MagicMock()
        mock_client.__enter__ = MagicMock(return_value=mock_client)
        mock_client.__exit__ = MagicMock(return_value=False)
        mock_client.post.return_value = MagicMock(status_code=200)
        mock_client_cls.return_value = mock_client

        assert sender.deliver(RECORD) is True

    payload = mock_client.post.call_args.kwargs["json"]
    assert payload["tag"] == "match-started-abc"
    assert payload["requireInteraction"] is True
    assert payload["actions"] == [{"action": "watch", "title": "Watch Now"}]
    assert payload["data"] == {"eventId": "abc", "milestone": "started"}


@patch("match_alerts.notifications.webhook.get_settings")
def test_deliver_request_error(mock_settings):
    mock_settings.return_value = MagicMock(webhook_url=HOOK)
    sender = WebhookSender()

    with patch("httpx.Client") as mock_client_cls:
        mock_client = MagicMock()
        mock_client.__enter__ = MagicMock(return_value=mock_client)
        mock_client.__exit__ = MagicMock(return_value=False)
        mock_client.post.side_effect = httpx.ConnectError("refused")
        mock_client_cls.return_value = mock_client

        assert sender.deliver(RECORD) is False
