from unittest.mock import MagicMock, patch

import httpx

from src.notifications.telegram import TelegramSender, escape_markdown_v2


class TestEscapeMarkdownV2:
    def test_escape_special_chars(self):
        text = "Hello_World! Price: $100.00 (50% off)"
        escaped = escape_markdown_v2(text)
        assert escaped == r"Hello\_World\! Price: $100\.00 \(50% off\)"

    def test_escape_url(self):
        text = "https://store.epicgames.com/it/p/cool-game"
        escaped = escape_markdown_v2(text)
        assert escaped == r"https://store\.epicgames\.com/it/p/cool\-game"

    def test_no_escape_needed(self):
        text = "Hello World"
        escaped = escape_markdown_v2(text)
        assert escaped == "Hello World"


def _mock_client():
    mock_client = MagicMock()
    mock_client.__enter__ = MagicMock(return_value=mock_client)
    mock_client.__exit__ = MagicMock(return_value=False)
    return mock_client


class TestTelegramSender:
    def test_is_configured_true(self):
        assert TelegramSender("123:ABC").is_configured is True

    @patch("src.notifications.telegram.get_settings")
    def test_is_configured_false_no_token(self, mock_settings):
        mock_settings.return_value = MagicMock(telegram_bot_token="")
        assert TelegramSender().is_configured is False

    @patch("src.notifications.telegram.get_settings")
    def test_token_from_settings(self, mock_settings):
        mock_settings.return_value = MagicMock(telegram_bot_token="123:ABC")
        assert TelegramSender().bot_token == "123:ABC"

    def test_send_success(self):
        sender = TelegramSender("123:ABC")

        mock_response = MagicMock()
        mock_response.status_code = 200
        mock_response.raise_for_status = MagicMock()

        with patch("httpx.Client") as mock_client_cls:
            mock_client = _mock_client()
            mock_client.post.return_value = mock_response
            mock_client_cls.return_value = mock_client

            result = sender.send(456, "Hello")

        assert result is True
        mock_client.post.assert_called_once()
        call_args = mock_client.post.call_args
        assert call_args.args[0] == "https://api.telegram.org/bot123:ABC/sendMessage"
        assert call_args.kwargs["json"]["chat_id"] == 456
        assert call_args.kwargs["json"]["text"] == "Hello"
        assert call_args.kwargs["json"]["parse_mode"] == "MarkdownV2"

    def test_send_http_error(self):
        sender = TelegramSender("123:ABC")

        with patch("httpx.Client") as mock_client_cls:
            mock_client = _mock_client()

            mock_request = MagicMock()
            mock_response = MagicMock()
            mock_response.status_code = 403
            mock_response.text = "Forbidden: bot was blocked by the user"
            mock_client.post.return_value = mock_response
            mock_response.raise_for_status.side_effect = httpx.HTTPStatusError(
                "Forbidden", request=mock_request, response=mock_response
            )
            mock_client_cls.return_value = mock_client

            result = sender.send(456, "Hello")

        assert result is False

    def test_send_request_error(self):
        sender = TelegramSender("123:ABC")

        with patch("httpx.Client") as mock_client_cls:
            mock_client = _mock_client()
            mock_client.post.side_effect = httpx.RequestError("Connection failed")
            mock_client_cls.return_value = mock_client

            result = sender.send(456, "Hello")

        assert result is False
