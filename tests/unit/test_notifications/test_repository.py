"""Unit tests for the notification store and lookup repositories (SQLite)."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from uuid import uuid4

import pytest

from notify_service.features.notifications.enums import NotificationStatus
from notify_service.features.notifications.exceptions import (
    InvalidStatusTransitionError,
    NotificationNotFoundError,
)
from notify_service.features.notifications.models import EventNotificationMapping
from notify_service.features.notifications.repository import (
    EventMappingRepository,
    NotificationFilters,
    NotificationRepository,
    UserPreferenceRepository,
    get_notification_repository,
)


@pytest.fixture
def repository() -> NotificationRepository:
    return NotificationRepository()


class TestCreateNotification:
    async def test_creates_pending_record(self, repository, db_session) -> None:
        notification = await repository.create_notification(
            db_session,
            user_id="user-1",
            event_type="invoice.paid",
            channel="sms",
            recipient="+15550001111",
            body="Invoice INV-1 paid",
            correlation_id="INV-1",
        )
        await db_session.commit()

        assert notification.id is not None
        assert notification.status is NotificationStatus.PENDING
        assert notification.retries_count == 0
        assert notification.subject is None
        assert notification.sent_at is None
        assert notification.failed_at is None
        assert notification.created_at is not None

    async def test_rejects_unknown_channel(self, repository, db_session) -> None:
        with pytest.raises(ValueError):
            await repository.create_notification(
                db_session,
                user_id="user-1",
                event_type="x",
                channel="push",
                recipient="user-1",
                body="b",
            )


class TestUpdateStatus:
    async def test_pending_to_sent_sets_sent_at(self, repository, db_session, make_notification) -> None:
        created = await make_notification()

        updated = await repository.update_status(db_session, created.id, NotificationStatus.SENT)

        assert updated.status is NotificationStatus.SENT
        assert updated.sent_at is not None
        assert updated.error_details is None
        assert updated.retries_count == 0

    async def test_failure_increments_retries_by_one(self, repository, db_session, make_notification) -> None:
        created = await make_notification()

        first = await repository.update_status(db_session, created.id, NotificationStatus.FAILED, "boom")
        assert first.retries_count == 1
        assert first.failed_at is not None
        assert first.error_details == "boom"

        second = await repository.update_status(db_session, created.id, NotificationStatus.FAILED, "again")
        assert second.retries_count == 2
        assert second.error_details == "again"

    async def test_sent_after_failure_clears_error(self, repository, db_session, make_notification) -> None:
        created = await make_notification(status=NotificationStatus.FAILED, error_details="x")

        updated = await repository.update_status(db_session, created.id, NotificationStatus.SENT)

        assert updated.status is NotificationStatus.SENT
        assert updated.error_details is None
        assert updated.failed_at is None

    async def test_retried_records_note(self, repository, db_session, make_notification) -> None:
        created = await make_notification(status=NotificationStatus.FAILED)

        updated = await repository.update_status(
            db_session, created.id, NotificationStatus.RETRIED, "Retrying by admin request"
        )

        assert updated.status is NotificationStatus.RETRIED
        assert updated.error_details == "Retrying by admin request"

    async def test_forbidden_transition_raises(self, repository, db_session, make_notification) -> None:
        created = await make_notification(status=NotificationStatus.SENT)

        with pytest.raises(InvalidStatusTransitionError) as exc_info:
            await repository.update_status(db_session, created.id, NotificationStatus.FAILED)

        assert exc_info.value.from_status is NotificationStatus.SENT
        assert exc_info.value.to_status is NotificationStatus.FAILED

    async def test_pending_cannot_be_retried(self, repository, db_session, make_notification) -> None:
        created = await make_notification()

        with pytest.raises(InvalidStatusTransitionError):
            await repository.update_status(db_session, created.id, NotificationStatus.RETRIED)

    async def test_missing_record_raises(self, repository, db_session) -> None:
        with pytest.raises(NotificationNotFoundError):
            await repository.update_status(db_session, uuid4(), NotificationStatus.SENT)


class TestClaim:
    async def test_second_claim_is_refused_until_lease_expires(
        self, repository, db_session, make_notification
    ) -> None:
        created = await make_notification()
        now = datetime.now(UTC)

        assert await repository.claim(db_session, created.id, lease_seconds=30, now=now)
        assert not await repository.claim(db_session, created.id, lease_seconds=30, now=now)
        assert await repository.claim(
            db_session, created.id, lease_seconds=30, now=now + timedelta(seconds=31)
        )

    async def test_delivered_record_cannot_be_claimed(
        self, repository, db_session, make_notification
    ) -> None:
        created = await make_notification(status=NotificationStatus.SENT)

        assert not await repository.claim(db_session, created.id, lease_seconds=30)

    async def test_missing_record_cannot_be_claimed(self, repository, db_session) -> None:
        assert not await repository.claim(db_session, uuid4(), lease_seconds=30)

    async def test_status_update_releases_claim(
        self, repository, db_session, make_notification
    ) -> None:
        created = await make_notification()
        await repository.claim(db_session, created.id, lease_seconds=30)

        updated = await repository.update_status(db_session, created.id, NotificationStatus.FAILED)

        assert updated.claimed_until is None
        assert await repository.claim(db_session, created.id, lease_seconds=30)


class TestQuery:
    async def test_filters_and_orders_newest_first(self, repository, db_session, make_notification) -> None:
        first = await make_notification(user_id="u1", event_type="order.created")
        second = await make_notification(user_id="u1", event_type="invoice.paid", channel="sms", recipient="+1")
        await make_notification(user_id="u2", event_type="order.created")

        items = await repository.query(db_session, NotificationFilters(user_id="u1"))

        assert [item.id for item in items] == [second.id, first.id]

    async def test_filter_by_status_and_event(self, repository, db_session, make_notification) -> None:
        failed = await make_notification(status=NotificationStatus.FAILED)
        await make_notification()

        items = await repository.query(
            db_session,
            NotificationFilters(status=NotificationStatus.FAILED, event_type="order.created"),
        )

        assert [item.id for item in items] == [failed.id]

    async def test_limit_and_offset(self, repository, db_session, make_notification) -> None:
        for _ in range(3):
            await make_notification()

        page = await repository.query(db_session, limit=2, offset=2)

        assert len(page) == 1

    async def test_filter_by_correlation_id(self, repository, db_session, make_notification) -> None:
        match = await make_notification(correlation_id="ORD-9")
        await make_notification(correlation_id="ORD-10")

        items = await repository.query(db_session, NotificationFilters(correlation_id="ORD-9"))

        assert [item.id for item in items] == [match.id]


class TestListStale:
    async def test_returns_old_pending_and_retried(self, repository, db_session, make_notification) -> None:
        pending = await make_notification()
        retried = await make_notification(status=NotificationStatus.RETRIED)
        await make_notification(status=NotificationStatus.SENT)
        await make_notification(status=NotificationStatus.FAILED)

        future = datetime.now(UTC) + timedelta(minutes=10)
        items = await repository.list_stale(db_session, older_than=future)

        assert {item.id for item in items} == {pending.id, retried.id}

    async def test_ignores_recent_records(self, repository, db_session, make_notification) -> None:
        await make_notification()

        past = datetime.now(UTC) - timedelta(minutes=10)

        assert await repository.list_stale(db_session, older_than=past) == []


class TestListInApp:
    async def test_only_sent_in_app_for_user(self, repository, db_session, make_notification) -> None:
        sent = await make_notification(
            status=NotificationStatus.SENT, channel="in_app", recipient="user-1"
        )
        await make_notification(channel="in_app", recipient="user-1")
        await make_notification(status=NotificationStatus.SENT)
        await make_notification(
            status=NotificationStatus.SENT, channel="in_app", user_id="user-2", recipient="user-2"
        )

        items = await repository.list_in_app_for_user(db_session, "user-1")

        assert [item.id for item in items] == [sent.id]


class TestEventMappingRepository:
    async def test_resolves_seeded_mapping(self, seeded) -> None:
        mapping = await EventMappingRepository().resolve(seeded, "order.created")

        assert mapping is not None
        assert mapping.default_channels == ["email", "in_app"]
        assert mapping.template_for("email").subject_template == "Your Order {{ orderId }} is Confirmed!"
        assert mapping.template_for("in_app") is not None
        assert mapping.template_for("sms") is None

    async def test_unmapped_event(self, seeded) -> None:
        assert await EventMappingRepository().resolve(seeded, "order.shipped") is None

    async def test_event_type_match_is_exact(self, seeded) -> None:
        assert await EventMappingRepository().resolve(seeded, "Order.Created") is None

    async def test_malformed_template_reference_is_skipped(self, db_session) -> None:
        db_session.add(
            EventNotificationMapping(
                event_type="custom.event",
                default_channels=["email"],
                template_refs={"email": "not-a-uuid"},
                rules={},
            )
        )
        await db_session.commit()

        mapping = await EventMappingRepository().resolve(db_session, "custom.event")

        assert mapping is not None
        assert mapping.templates == {}


class TestUserPreferenceRepository:
    async def test_missing_document_is_none(self, db_session) -> None:
        assert await UserPreferenceRepository().get_document(db_session, "nobody") is None

    async def test_save_then_replace(self, db_session) -> None:
        repo = UserPreferenceRepository()

        await repo.save_document(db_session, "u1", {"global": {"email": False}, "notificationTypes": {}})
        await db_session.commit()
        await repo.save_document(db_session, "u1", {"global": {}, "notificationTypes": {}})
        await db_session.commit()

        assert await repo.get_document(db_session, "u1") == {"global": {}, "notificationTypes": {}}


def test_get_notification_repository_singleton() -> None:
    assert get_notification_repository() is get_notification_repository()
