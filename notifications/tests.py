"""Tests for lifecycle notification dispatch."""
from __future__ import annotations

import uuid
from unittest import mock

from django.test import TestCase, override_settings

from .dispatch import build_message, notify
from .tasks import deliver_notification

WEBHOOK = "http://hooks.example.com/itsm"


class NotifyTests(TestCase):
    def test_disabled_without_webhook(self) -> None:
        with mock.patch("notifications.dispatch.deliver_notification.delay") as delay:
            with self.captureOnCommitCallbacks(execute=True) as callbacks:
                notify("ticket.created", ticket_id="abc")
        self.assertEqual(callbacks, [])
        delay.assert_not_called()

    @override_settings(NOTIFICATION_WEBHOOK_URL=WEBHOOK)
    def test_queued_only_after_commit(self) -> None:
        with mock.patch("notifications.dispatch.deliver_notification.delay") as delay:
            with self.captureOnCommitCallbacks(execute=False) as callbacks:
                notify("ticket.created", ticket_id="abc")
            delay.assert_not_called()
            self.assertEqual(len(callbacks), 1)

            callbacks[0]()
        message = delay.call_args.args[0]
        self.assertEqual(message["event"], "ticket.created")
        self.assertEqual(message["payload"], {"ticket_id": "abc"})

    def test_message_is_json_safe(self) -> None:
        identifier = uuid.uuid4()
        message = build_message("problem.resolved", {"problem_id": identifier})
        self.assertEqual(message["payload"]["problem_id"], str(identifier))
        self.assertIsInstance(message["occurred_at"], str)


class DeliverNotificationTests(TestCase):
    @override_settings(NOTIFICATION_WEBHOOK_URL=WEBHOOK, NOTIFICATION_TIMEOUT=2)
    @mock.patch("notifications.tasks.requests.post")
    def test_posts_message(self, mock_post: mock.Mock) -> None:
        mock_post.return_value.raise_for_status.return_value = None
        message = {"event": "ticket.created", "payload": {}}

        result = deliver_notification.apply(args=[message])

        self.assertTrue(result.get())
        mock_post.assert_called_once_with(WEBHOOK, json=message, timeout=2)

    @mock.patch("notifications.tasks.requests.post")
    def test_drops_without_endpoint(self, mock_post: mock.Mock) -> None:
        result = deliver_notification.apply(args=[{"event": "ticket.created"}])
        self.assertFalse(result.get())
        mock_post.assert_not_called()
