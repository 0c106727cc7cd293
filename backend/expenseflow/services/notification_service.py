# Overview: Outbound chat notifications for expense lifecycle events.

"""
Notification dispatch.

Delivery is at-least-once and best effort. Every public method catches
its own failure, logs it with the request id and the recipient, and
returns False: a failed send never aborts the caller's flow and is never
retried here. Message wording lives in ``messages``.
"""

from __future__ import annotations

import logging

import httpx

from ..enums import ExpenseStatus
from . import messages

logger = logging.getLogger(__name__)


class NotificationChannelError(Exception):
    """The channel refused or failed to deliver a message."""


class TelegramChannel:
    """Minimal Telegram Bot API client (sendMessage / editMessageText)."""

    def __init__(
        self,
        token: str,
        *,
        api_base: str = "https://api.telegram.org",
        timeout: float = 10.0,
        client: httpx.Client | None = None,
    ):
        self._client = client or httpx.Client(
            base_url=f"{api_base.rstrip('/')}/bot{token}",
            timeout=timeout,
        )

    def _call(self, method: str, payload: dict) -> dict:
        try:
            response = self._client.post(f"/{method}", json=payload)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise NotificationChannelError(f"{method} failed: {exc}") from exc

        if not data.get("ok"):
            raise NotificationChannelError(
                f"{method} rejected: {data.get('description', 'unknown error')}"
            )
        return data.get("result") or {}

    def send_message(self, chat_id, text: str, reply_markup: dict | None = None) -> dict:
        payload = {"chat_id": str(chat_id), "text": text}
        if reply_markup:
            payload["reply_markup"] = reply_markup
        return self._call("sendMessage", payload)

    def edit_message_text(self, chat_id, message_id: int, text: str) -> dict:
        return self._call("editMessageText", {
            "chat_id": str(chat_id),
            "message_id": message_id,
            "text": text,
        })

    def close(self) -> None:
        self._client.close()


class LoggingChannel:
    """Used when no bot token is configured: messages go to the log only."""

    def send_message(self, chat_id, text: str, reply_markup: dict | None = None) -> dict:
        logger.info("Notification (not delivered, no bot token) chat_id=%s text=%r", chat_id, text)
        return {}

    def edit_message_text(self, chat_id, message_id: int, text: str) -> dict:
        logger.info(
            "Message update (not delivered, no bot token) chat_id=%s message_id=%s text=%r",
            chat_id, message_id, text,
        )
        return {}


class NotificationDispatcher:
    def __init__(self, channel):
        self.channel = channel

    # ------------------------------------------------------------------
    # Low-level
    # ------------------------------------------------------------------

    def notify(
        self,
        chat_id,
        text: str,
        keyboard: dict | None = None,
        *,
        request_id: int | None = None,
        recipient_id: int | None = None,
    ) -> bool:
        try:
            self.channel.send_message(chat_id, text, reply_markup=keyboard)
        except Exception:
            logger.exception(
                "Failed to send notification request_id=%s recipient_id=%s chat_id=%s",
                request_id, recipient_id, chat_id,
            )
            return False
        return True

    def update(self, chat_id, message_id: int, text: str, *, request_id: int | None = None) -> bool:
        """Replace the text of an already delivered message (drops its keyboard)."""
        try:
            self.channel.edit_message_text(chat_id, message_id, text)
        except Exception:
            logger.exception(
                "Failed to update message request_id=%s chat_id=%s message_id=%s",
                request_id, chat_id, message_id,
            )
            return False
        return True

    def _send_to_user(self, user, text: str, keyboard: dict | None, request_id: int) -> bool:
        if user is None:
            return False
        if not getattr(user, "telegram_id", None):
            logger.warning(
                "Cannot notify user without telegram_id user_id=%s request_id=%s",
                user.id, request_id,
            )
            return False
        return self.notify(
            user.telegram_id, text, keyboard,
            request_id=request_id, recipient_id=user.id,
        )

    # ------------------------------------------------------------------
    # Lifecycle notifications
    # ------------------------------------------------------------------

    def notify_director_new_request(self, director, request, requester) -> bool:
        try:
            text = messages.new_request(request, requester)
            keyboard = messages.approval_keyboard(request.id)
        except Exception:
            logger.exception("Failed to render new request message request_id=%s", request.id)
            return False
        return self._send_to_user(director, text, keyboard, request.id)

    def notify_status(self, user, request, status: ExpenseStatus, comment: str | None = None) -> bool:
        try:
            text = messages.status_changed(request, status, comment)
        except Exception:
            logger.exception("Failed to render status message request_id=%s", request.id)
            return False
        return self._send_to_user(user, text, None, request.id)

    def notify_cashier_approved(self, cashier, request, requester, director_comment: str | None = None) -> bool:
        try:
            text = messages.cashier_approved(request, requester, director_comment)
            keyboard = messages.issue_keyboard(request.id)
        except Exception:
            logger.exception("Failed to render approval message request_id=%s", request.id)
            return False
        return self._send_to_user(cashier, text, keyboard, request.id)

    def notify_director_direct_issue(self, director, request, cashier, recipient, comment: str | None = None) -> bool:
        try:
            text = messages.direct_issue_report(request, cashier, recipient, comment)
        except Exception:
            logger.exception("Failed to render direct issue report request_id=%s", request.id)
            return False
        return self._send_to_user(director, text, None, request.id)

    def notify_recipient_direct_issue(self, recipient, request, cashier) -> bool:
        try:
            text = messages.direct_issue_receipt(request, cashier)
        except Exception:
            logger.exception("Failed to render direct issue receipt request_id=%s", request.id)
            return False
        return self._send_to_user(recipient, text, None, request.id)


def build_dispatcher(config) -> NotificationDispatcher:
    """Telegram when a bot token is configured, log-only otherwise."""
    token = config.get("TELEGRAM_BOT_TOKEN")
    if not token:
        logger.warning("TELEGRAM_BOT_TOKEN is not set; notifications will only be logged")
        return NotificationDispatcher(LoggingChannel())

    channel = TelegramChannel(
        token,
        api_base=config.get("TELEGRAM_API_BASE", "https://api.telegram.org"),
        timeout=float(config.get("TELEGRAM_TIMEOUT", 10)),
    )
    return NotificationDispatcher(channel)
