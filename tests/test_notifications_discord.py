from unittest.mock import MagicMock, patch

import httpx

from match_alerts.notifications.discord import DiscordSender
from match_alerts.notifications.record import NotificationRecord

WEBHOOK = "https://discord.com/api/webhooks/123/abc"


def _mock_client(mock_client_cls):
    mock_client = MagicMock()
    mock_client.__enter__ = MagicMock(return_value=mock_client)
    mock_client.__exit__ = MagicMock(return_value=False)
    mock_client_cls.return_value = mock_client
    return mock_client


class TestDiscordSender:
    @patch("match_alerts.notifications.discord.get_settings")
    def test_is_configured_true(self, mock_settings):
        mock_settings.return_value = MagicMock(discord_webhook_url=WEBHOOK)
        assert DiscordSender.is_configured() is True

    @patch("match_alerts.notifications.discord.get_settings")
    def test_is_configured_false(self, mock_settings):
        mock_settings.return_value = MagicMock(discord_webhook_url="")
        assert DiscordSender.is_configured() is False

    @patch("match_alerts.notifications.discord.get_settings")
    def test_deliver_posts_embed(self, mock_settings):
        mock_settings.return_value = MagicMock(discord_webhook_url=WEBHOOK)
        sender = DiscordSender()
        record = NotificationRecord(
            title="🏁 Match Finished",
            body="India vs Pakistan has ended",
            tag="match-ended-abc",
            data={"milestone": "ended"},
        )

        with patch("httpx.Client") as mock_client_cls:
            mock_client = _mock_client(mock_client_cls)
            mock_client.post.return_value = MagicMock(status_code=204)

            assert sender.deliver(record) is True

        call_args = mock_client.post.call_args
        assert call_args.args[0] == WEBHOOK
        payload = call_args.kwargs["json"]
        assert "content" not in payload
        assert payload["embeds"][0]["title"] == "🏁 Match Finished"
        assert payload["embeds"][0]["footer"] == {"text": "match-ended-abc"}

    @patch("match_alerts.notifications.discord.get_settings")
    def test_send_empty_payload(self, mock_settings):
        mock_settings.return_value = MagicMock(discord_webhook_url=WEBHOOK)
        assert DiscordSender().send("") is False

    @patch("match_alerts.notifications.discord.get_settings")
    def test_send_http_error(self, mock_settings):
        mock_settings.return_value = MagicMock(discord_webhook_url=WEBHOOK)
        sender = DiscordSender()

        with patch("httpx.Client") as mock_client_cls:
            mock_client = _mock_client(mock_client_cls)
            mock_response = MagicMock()
            mock_response.status_code = 429
            mock_response.text = "rate limited"
            mock_response.raise_for_status.side_effect = httpx.HTTPStatusError(
                "Too Many Requests", request=MagicMock(), response=mock_response
            )
            mock_client.post.return_value = mock_response

            assert sender.send("hi") is False

    @patch("match_alerts.notifications.discord.get_settings")
    def test_send_request_error(self, mock_settings):
        mock_settings.return_value = MagicMock(discord_webhook_url=WEBHOOK)
        sender = DiscordSender()

        with patch("httpx.Client") as mock_client_cls:
            mock_client = _mock_client(mock_client_cls)
            mock_client.post.side_effect = httpx.RequestError("Connection failed")

            assert sender.send("hi") is False
