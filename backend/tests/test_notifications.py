# Overview: Pytest coverage for message templates, the Telegram channel, and the dispatcher.

import json
from decimal import Decimal
from types import SimpleNamespace

import httpx
import pytest

from expenseflow.enums import ExpenseStatus
from expenseflow.services import messages
from expenseflow.services.notification_service import (
    LoggingChannel,
    NotificationChannelError,
    NotificationDispatcher,
    TelegramChannel,
    build_dispatcher,
)

from fakes import FakeUser


REQUESTER = FakeUser(1, "user", 10, telegram_id=101, full_name="Иван Петров")
DIRECTOR = FakeUser(2, "director", 10, telegram_id=102, full_name="Директор")
CASHIER = FakeUser(3, "cashier", 10, telegram_id=103, login="kassa")


def _request(**overrides):
    fields = dict(
        id=42,
        amount=Decimal("1234567.50"),
        issued_amount=None,
        currency="UZS",
        description="Ноутбук",
    )
    fields.update(overrides)
    return SimpleNamespace(**fields)


class RecordingChannel:
    def __init__(self):
        self.sent = []
        self.edited = []

    def send_message(self, chat_id, text, reply_markup=None):
        self.sent.append((chat_id, text, reply_markup))
        return {"message_id": len(self.sent)}

    def edit_message_text(self, chat_id, message_id, text):
        self.edited.append((chat_id, message_id, text))
        return {}


class DownChannel:
    def send_message(self, chat_id, text, reply_markup=None):
        raise NotificationChannelError("sendMessage failed: connection refused")

    def edit_message_text(self, chat_id, message_id, text):
        raise NotificationChannelError("editMessageText failed: connection refused")


class TestMessages:
    def test_format_amount(self):
        assert messages.format_amount(Decimal("1234567.5")) == "1 234 567.50"
        assert messages.format_amount(80) == "80.00"

    def test_new_request(self):
        text = messages.new_request(_request(), REQUESTER)

        assert "Новая заявка #42" in text
        assert "Иван Петров (ID: 1)" in text
        assert "1 234 567.50 UZS" in text
        assert "Комментарий: Ноутбук" in text

    def test_declined_shows_amount_and_description(self):
        text = messages.status_changed(_request(), ExpenseStatus.declined, "нет бюджета")

        assert "отклонена" in text
        assert "Сумма: 1 234 567.50 UZS" in text
        assert "Описание: Ноутбук" in text
        assert text.endswith("Комментарий: нет бюджета")

    def test_issued_shows_different_amount(self):
        text = messages.status_changed(_request(issued_amount=Decimal("1000")), ExpenseStatus.issued)
        assert "Выдана сумма: 1 000.00 UZS" in text

    def test_dash_comment_is_hidden(self):
        text = messages.status_changed(_request(), ExpenseStatus.approved, "-")
        assert "Комментарий" not in text

    def test_cashier_approved(self):
        text = messages.cashier_approved(_request(), REQUESTER, "срочно")
        assert "подтверждена директором" in text
        assert "Комментарий директора: срочно" in text

    def test_direct_issue_texts(self):
        report = messages.direct_issue_report(_request(), CASHIER, REQUESTER, "по звонку")
        receipt = messages.direct_issue_receipt(_request(), CASHIER)

        assert "Кассир kassa выдал средства без подтверждения" in report
        assert "Получатель: Иван Петров (ID: 1)" in report
        assert "Комментарий: по звонку" in report
        assert "Кассир: kassa" in receipt

    def test_keyboards(self):
        approval = messages.approval_keyboard(42)["inline_keyboard"]
        issue = messages.issue_keyboard(42)["inline_keyboard"]

        callbacks = [button["callback_data"] for row in approval for button in row]
        assert callbacks == [
            "expense:confirm:42",
            "expense:decline:42",
            "expense:confirm_with_comment:42",
        ]
        assert [row[0]["callback_data"] for row in issue] == [
            "expense:issued_full:42",
            "expense:issued_different:42",
        ]


class TestTelegramChannel:
    def _channel(self, handler):
        client = httpx.Client(
            base_url="https://telegram.test/botTOKEN",
            transport=httpx.MockTransport(handler),
        )
        return TelegramChannel("TOKEN", client=client)

    def test_send_message(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"ok": True, "result": {"message_id": 7}})

        keyboard = messages.issue_keyboard(42)
        result = self._channel(handler).send_message(101, "привет", reply_markup=keyboard)

        assert result == {"message_id": 7}
        assert seen[0].url.path == "/botTOKEN/sendMessage"
        body = json.loads(seen[0].content)
        assert body["chat_id"] == "101"
        assert body["text"] == "привет"
        assert body["reply_markup"] == keyboard

    def test_edit_message_text(self):
        seen = []

        def handler(request):
            seen.append(json.loads(request.content))
            return httpx.Response(200, json={"ok": True, "result": True})

        self._channel(handler).edit_message_text(101, 7, "обновлено")

        assert seen == [{"chat_id": "101", "message_id": 7, "text": "обновлено"}]

    def test_api_error_raises(self):
        def handler(request):
            return httpx.Response(200, json={"ok": False, "description": "chat not found"})

        with pytest.raises(NotificationChannelError, match="chat not found"):
            self._channel(handler).send_message(101, "привет")

    def test_http_error_raises(self):
        def handler(request):
            return httpx.Response(502, text="Bad Gateway")

        with pytest.raises(NotificationChannelError):
            self._channel(handler).send_message(101, "привет")

    def test_transport_error_raises(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(NotificationChannelError):
            self._channel(handler).send_message(101, "привет")


class TestDispatcher:
    def test_new_request_goes_to_director_with_keyboard(self):
        channel = RecordingChannel()
        sent = NotificationDispatcher(channel).notify_director_new_request(DIRECTOR, _request(), REQUESTER)

        assert sent is True
        chat_id, text, keyboard = channel.sent[0]
        assert chat_id == DIRECTOR.telegram_id
        assert "Новая заявка #42" in text
        assert keyboard == messages.approval_keyboard(42)

    def test_missing_recipient(self):
        channel = RecordingChannel()
        assert NotificationDispatcher(channel).notify_status(None, _request(), ExpenseStatus.approved) is False
        assert channel.sent == []

    def test_recipient_without_address(self, caplog):
        channel = RecordingChannel()
        silent = FakeUser(9, "user", 10, telegram_id=None)

        assert NotificationDispatcher(channel).notify_status(silent, _request(), ExpenseStatus.issued) is False
        assert channel.sent == []
        assert "without telegram_id user_id=9 request_id=42" in caplog.text

    def test_channel_failure_is_logged_not_raised(self, caplog):
        dispatcher = NotificationDispatcher(DownChannel())

        assert dispatcher.notify_status(REQUESTER, _request(), ExpenseStatus.approved) is False
        assert dispatcher.update(101, 7, "обновлено", request_id=42) is False
        assert "Failed to send notification request_id=42 recipient_id=1" in caplog.text
        assert "Failed to update message request_id=42" in caplog.text

    def test_render_failure_is_logged_not_raised(self, caplog):
        channel = RecordingChannel()
        broken = _request(amount="not a number")

        assert NotificationDispatcher(channel).notify_cashier_approved(CASHIER, broken, REQUESTER) is False
        assert channel.sent == []
        assert "Failed to render approval message request_id=42" in caplog.text

    def test_update(self):
        channel = RecordingChannel()
        assert NotificationDispatcher(channel).update(101, 7, "обновлено") is True
        assert channel.edited == [(101, 7, "обновлено")]


class TestBuildDispatcher:
    def test_without_token_logs_only(self):
        dispatcher = build_dispatcher({"TELEGRAM_BOT_TOKEN": ""})
        assert isinstance(dispatcher.channel, LoggingChannel)
        assert dispatcher.notify(101, "привет") is True

    def test_with_token_uses_telegram(self):
        dispatcher = build_dispatcher({
            "TELEGRAM_BOT_TOKEN": "TOKEN",
            "TELEGRAM_API_BASE": "https://telegram.test",
            "TELEGRAM_TIMEOUT": 3,
        })
        assert isinstance(dispatcher.channel, TelegramChannel)
        dispatcher.channel.close()
