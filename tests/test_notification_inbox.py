from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from servicehub.notifications import NotificationInbox, NotificationNotFoundError, NotificationRepository
from servicehub.tickets.errors import PersistenceError


@pytest.mark.asyncio
async def test_notify_and_list_for_user(session_factory):
    inbox = NotificationInbox(NotificationRepository(session_factory))

    first = await inbox.notify("tech-1", title="New Ticket Assigned", message="first", ticket_id="t-1")
    second = await inbox.notify("tech-1", title="New Ticket Assigned", message="second", ticket_id="t-2")
    await inbox.notify("tech-2", title="New Ticket Assigned", message="other")

    listed = await inbox.list_for("tech-1")
    assert {notification.id for notification in listed} == {first.id, second.id}
    assert listed[0].created_at >= listed[1].created_at
    assert all(not notification.is_read for notification in listed)


@pytest.mark.asyncio
async def test_mark_read_is_scoped_to_owner(session_factory):
    inbox = NotificationInbox(NotificationRepository(session_factory))
    notification = await inbox.notify("admin-1", title="New Ticket Generated", message="check it")

    with pytest.raises(NotificationNotFoundError):
        await inbox.mark_read("admin-2", notification.id)

    updated = await inbox.mark_read("admin-1", notification.id)
    assert updated.is_read is True
    assert await inbox.list_for("admin-1", unread_only=True) == []
    assert len(await inbox.list_for("admin-1")) == 1


@pytest.mark.asyncio
async def test_notify_many_deduplicates(session_factory):
    inbox = NotificationInbox(NotificationRepository(session_factory))

    sent = await inbox.notify_many(["admin-1", "admin-2", "admin-1"], title="t", message="m", ticket_id="t-9")

    assert sorted(notification.user_id for notification in sent) == ["admin-1", "admin-2"]


@pytest.mark.asyncio
async def test_notify_many_skips_failed_inserts(caplog):
    repository = AsyncMock()

    async def add(notification):
        if notification.user_id == "admin-2":
            raise PersistenceError("insert failed")
        return notification

    repository.add.side_effect = add
    inbox = NotificationInbox(repository)

    with caplog.at_level("ERROR"):
        sent = await inbox.notify_many(["admin-1", "admin-2"], title="t", message="m")

    assert [notification.user_id for notification in sent] == ["admin-1"]
    assert "Failed to notify admin-2" in caplog.text
