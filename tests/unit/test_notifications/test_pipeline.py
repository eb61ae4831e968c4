"""Unit tests for the event dispatch pipeline."""

from __future__ import annotations

import logging
from unittest.mock import AsyncMock

import pytest

from notify_service.features.notifications.enums import NotificationStatus
from notify_service.features.notifications.models import EventNotificationMapping
from notify_service.features.notifications.pipeline import (
    DispatchPipeline,
    extract_correlation_id,
)
from notify_service.features.notifications.repository import (
    NotificationFilters,
    UserPreferenceRepository,
    get_notification_repository,
)
from tests.conftest import RecordingQueue

ORDER_PAYLOAD = {
    "userId": "user-1",
    "orderId": "ORD-42",
    "userName": "Ana",
    "email": "ana@example.com",
    "totalAmount": 99.5,
}


async def stored_for(session_factory, user_id: str = "user-1"):
    async with session_factory() as session:
        items = await get_notification_repository().query(
            session, NotificationFilters(user_id=user_id), limit=100
        )
    return {item.channel: item for item in items}


@pytest.fixture
def pipeline(session_factory, recording_queue) -> DispatchPipeline:
    return DispatchPipeline(recording_queue, session_factory)


class TestDispatch:
    async def test_creates_one_record_per_channel(self, pipeline, seeded, recording_queue, session_factory) -> None:
        result = await pipeline.dispatch("order.created", ORDER_PAYLOAD)

        stored = await stored_for(session_factory)
        assert set(stored) == {"email", "in_app"}
        assert len(result.created) == 2
        assert set(recording_queue.ids()) == set(result.created)

        email = stored["email"]
        assert email.status is NotificationStatus.PENDING
        assert email.recipient == "ana@example.com"
        assert email.subject == "Your Order ORD-42 is Confirmed!"
        assert email.body == (
            "Hi Ana, your order ORD-42 has been successfully placed. Total: $99.5."
        )
        assert email.correlation_id == "ORD-42"
        assert email.retries_count == 0

        in_app = stored["in_app"]
        assert in_app.recipient == "user-1"
        assert in_app.subject is None
        assert in_app.body == "Your order ORD-42 for $99.5 is confirmed."

    async def test_jobs_carry_rendered_content(self, pipeline, seeded, recording_queue) -> None:
        await pipeline.dispatch("order.created", ORDER_PAYLOAD)

        email_job = next(job for job in recording_queue.jobs if job.channel == "email")
        assert email_job.recipient == "ana@example.com"
        assert email_job.subject == "Your Order ORD-42 is Confirmed!"
        assert email_job.retries == 0

    async def test_sms_uses_phone_number_and_invoice_correlation(
        self, pipeline, seeded, session_factory
    ) -> None:
        await pipeline.dispatch(
            "invoice.paid",
            {"userId": "user-1", "invoiceId": "INV-7", "amount": 12, "phoneNumber": "+15550001111"},
        )

        stored = await stored_for(session_factory)
        assert stored["sms"].recipient == "+15550001111"
        assert stored["sms"].body == "Invoice INV-7 for $12 paid. Thanks!"
        assert stored["sms"].correlation_id == "INV-7"

    async def test_event_without_user_is_dropped(self, pipeline, seeded, recording_queue, session_factory) -> None:
        payload = {key: value for key, value in ORDER_PAYLOAD.items() if key != "userId"}

        result = await pipeline.dispatch("order.created", payload)

        assert result.created == []
        assert recording_queue.jobs == []

    async def test_unmapped_event_is_dropped(self, pipeline, seeded, recording_queue, session_factory) -> None:
        result = await pipeline.dispatch("order.shipped", ORDER_PAYLOAD)

        assert result.created == []
        assert await stored_for(session_factory) == {}

    async def test_global_opt_out_skips_channel(self, pipeline, seeded, recording_queue, session_factory) -> None:
        await UserPreferenceRepository().save_document(
            seeded, "user-1", {"global": {"email": False}, "notificationTypes": {}}
        )
        await seeded.commit()

        result = await pipeline.dispatch("order.created", ORDER_PAYLOAD)

        assert set(await stored_for(session_factory)) == {"in_app"}
        assert result.skipped == {"email": "opted_out"}

    async def test_event_type_opt_out_skips_channel(self, pipeline, seeded, session_factory) -> None:
        await UserPreferenceRepository().save_document(
            seeded,
            "user-1",
            {"global": {}, "notificationTypes": {"order.created": {"in_app": False}}},
        )
        await seeded.commit()

        await pipeline.dispatch("order.created", ORDER_PAYLOAD)

        assert set(await stored_for(session_factory)) == {"email"}

    async def test_missing_recipient_skips_only_that_channel(
        self, pipeline, seeded, session_factory
    ) -> None:
        payload = {key: value for key, value in ORDER_PAYLOAD.items() if key != "email"}

        result = await pipeline.dispatch("order.created", payload)

        assert set(await stored_for(session_factory)) == {"in_app"}
        assert result.skipped["email"] == "no_recipient"

    async def test_blank_recipient_counts_as_missing(self, pipeline, seeded, session_factory) -> None:
        result = await pipeline.dispatch("order.created", {**ORDER_PAYLOAD, "email": "   "})

        assert result.skipped["email"] == "no_recipient"

    async def test_channel_without_template_or_route_is_skipped(
        self, pipeline, db_session, session_factory
    ) -> None:
        db_session.add(
            EventNotificationMapping(
                event_type="custom.event",
                default_channels=["push", "sms"],
                template_refs={},
                rules={},
            )
        )
        await db_session.commit()

        result = await pipeline.dispatch("custom.event", {"userId": "user-1", "phoneNumber": "+1"})

        assert result.created == []
        assert result.skipped == {"push": "unknown_channel", "sms": "no_template"}

    async def test_enqueue_failure_leaves_record_pending(self, seeded, session_factory) -> None:
        queue = RecordingQueue(fail_for={"email"})
        pipeline = DispatchPipeline(queue, session_factory)

        result = await pipeline.dispatch("order.created", ORDER_PAYLOAD)

        stored = await stored_for(session_factory)
        assert stored["email"].status is NotificationStatus.PENDING
        assert result.orphaned == [stored["email"].id]
        assert queue.ids() == [stored["in_app"].id]

    async def test_lookup_failure_is_logged_not_raised(
        self, session_factory, recording_queue, caplog
    ) -> None:
        mappings = AsyncMock()
        mappings.resolve.side_effect = ConnectionError("database unavailable")
        pipeline = DispatchPipeline(recording_queue, session_factory, mappings=mappings)

        with caplog.at_level(logging.ERROR):
            result = await pipeline.dispatch("order.created", ORDER_PAYLOAD)

        assert result.created == []
        assert recording_queue.jobs == []
        assert "database unavailable" in caplog.text

    async def test_records_are_never_shared_between_channels(
        self, pipeline, seeded, recording_queue
    ) -> None:
        await pipeline.dispatch("order.created", ORDER_PAYLOAD)
        await pipeline.dispatch("order.created", ORDER_PAYLOAD)

        assert len(recording_queue.jobs) == 4
        assert len(set(recording_queue.ids())) == 4


class TestExtractCorrelationId:
    def test_prefers_correlation_id(self) -> None:
        payload = {"correlationId": "c-1", "orderId": "o-1", "invoiceId": "i-1"}

        assert extract_correlation_id(payload) == "c-1"

    def test_falls_back_to_order_then_invoice(self) -> None:
        assert extract_correlation_id({"orderId": 5, "invoiceId": "i-1"}) == "5"
        assert extract_correlation_id({"invoiceId": "i-1"}) == "i-1"

    def test_none_when_absent(self) -> None:
        assert extract_correlation_id({"userId": "u"}) is None
        assert extract_correlation_id({"orderId": ""}) is None
