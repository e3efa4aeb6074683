"""
Content service tests against an in-memory database.

Tests for:
- Create: type fallback, field allow-list, media, feed checks, auto-approval
- Update: moderation reset, feed removal, atomicity on failure
- Read paths: get/list/display/act/preview and their authorization
"""

from unittest.mock import MagicMock

import pytest
from sqlalchemy import func, select

from feedboard.content_types import Graphic, RssFeed, Ticker, build_registry
from feedboard.core.config import ContentDefaults
from feedboard.core.exceptions import (
    ActionDispatchError,
    AuthorizationError,
    ContentNotFoundError,
    ContentTypeConfigurationError,
    ContentValidationError,
    UnrecognizedContentTypeError,
)
from feedboard.core.permissions import default_gate
from feedboard.models import Content, Media, ModerationState, Submission
from feedboard.services.content_service import (
    CREATED_NOTICE,
    CREATED_WITHOUT_FEEDS_NOTICE,
    ContentService,
)
from feedboard.services.notifications import ContentNotifier
from feedboard.services.rendering import NotModified, RenderedOutput

TICKER = {"name": "Lunch", "duration": 12, "data": "Soup of the day"}


async def _count(db, model) -> int:
    return (await db.execute(select(func.count(model.id)))).scalar_one()


def _states(content) -> dict[int, ModerationState]:
    return {s.feed_id: s.moderation_state for s in content.submissions}


# ================================
# Create
# ================================

@pytest.mark.asyncio
class TestCreate:
    async def test_create_without_feeds(self, service, db_session, test_user):
        content, notice = await service.create(test_user, "Ticker", TICKER)

        assert isinstance(content, Ticker)
        assert content.id is not None
        assert content.user_id == test_user.id
        assert content.duration == 12
        assert content.submissions == []
        assert notice == CREATED_WITHOUT_FEEDS_NOTICE
        assert await _count(db_session, Content) == 1

    async def test_create_auto_approves_moderated_feeds(
        self, service, test_user, own_feed, open_feed
    ):
        """Feeds [open, own] where the author moderates only their own."""
        content, notice = await service.create(
            test_user, "Ticker", TICKER, [open_feed.id, own_feed.id]
        )

        assert notice == CREATED_NOTICE
        by_feed = {s.feed_id: s for s in content.submissions}
        assert by_feed[open_feed.id].moderation_state == ModerationState.PENDING
        assert by_feed[open_feed.id].moderator_id is None
        assert by_feed[own_feed.id].moderation_state == ModerationState.APPROVED
        assert by_feed[own_feed.id].moderator_id == test_user.id
        assert all(s.duration == 12 for s in content.submissions)

    async def test_type_name_is_normalized(self, service, test_user):
        content, _ = await service.create(
            test_user, "rss-feed", {"name": "News", "config": {"url": "http://example.com/rss"}}
        )
        assert isinstance(content, RssFeed)
        assert content.type_name == "RssFeed"

    async def test_unknown_type_uses_default(self, service, test_user, png_base64):
        content, _ = await service.create(
            test_user,
            "bogus",
            {"name": "Logo", "media": [{"file_name": "logo.png", "file_type": "image/png",
                                        "file_data": png_base64}]},
        )
        assert isinstance(content, Graphic)

    async def test_media_is_decoded_and_placeholders_stripped(
        self, service, db_session, test_user, png_base64, png_bytes
    ):
        content, _ = await service.create(
            test_user,
            "Graphic",
            {
                "name": "Logo",
                "media": [
                    {"file_name": None, "file_type": None, "file_size": None, "file_data": None},
                    {"file_name": "logo.png", "file_type": "image/png", "file_data": png_base64},
                ],
            },
        )

        assert len(content.media) == 1
        assert content.media[0].file_data == png_bytes
        assert content.media[0].file_size == len(png_bytes)
        assert content.media[0].key == "original"
        assert await _count(db_session, Media) == 1

    async def test_bad_base64_is_field_error(self, service, test_user):
        with pytest.raises(ContentValidationError) as exc_info:
            await service.create(
                test_user, "Graphic",
                {"name": "Logo", "media": [{"file_name": "x.png", "file_data": "not base64!"}]},
            )
        assert "media" in exc_info.value.errors

    async def test_unknown_field_is_rejected(self, service, db_session, test_user):
        with pytest.raises(ContentValidationError) as exc_info:
            await service.create(test_user, "Ticker", {**TICKER, "user_id": 999})

        assert exc_info.value.errors["user_id"] == ["is not a permitted field"]
        assert await _count(db_session, Content) == 0

    async def test_field_types_are_checked(self, service, test_user):
        with pytest.raises(ContentValidationError) as exc_info:
            await service.create(test_user, "Ticker", {**TICKER, "duration": "forever"})
        assert "duration" in exc_info.value.errors

    async def test_invalid_content_is_not_persisted(
        self, service, db_session, test_user, open_feed
    ):
        with pytest.raises(ContentValidationError) as exc_info:
            await service.create(test_user, "Ticker", {"name": "", "data": ""}, [open_feed.id])

        error = exc_info.value
        assert set(error.errors) == {"name", "data"}
        assert isinstance(error.content, Ticker)
        assert error.content.id is None
        assert open_feed.id in [f.id for f in error.feeds]
        assert await _count(db_session, Content) == 0
        assert await _count(db_session, Submission) == 0

    async def test_missing_feed_is_field_error(self, service, db_session, test_user):
        with pytest.raises(ContentValidationError) as exc_info:
            await service.create(test_user, "Ticker", TICKER, [12345])

        assert exc_info.value.errors["feed_ids"] == ["feed 12345 does not exist"]
        assert await _count(db_session, Content) == 0

    async def test_closed_feed_is_field_error(self, service, test_user, closed_feed):
        with pytest.raises(ContentValidationError) as exc_info:
            await service.create(test_user, "Ticker", TICKER, [closed_feed.id])
        assert "feed_ids" in exc_info.value.errors

    async def test_inactive_user_cannot_create(self, service, db_session, inactive_user):
        with pytest.raises(AuthorizationError):
            await service.create(inactive_user, "Ticker", TICKER)
        assert await _count(db_session, Content) == 0

    async def test_notifier_is_called(self, db_session, registry, defaults, test_user, open_feed):
        notifier = MagicMock(spec=ContentNotifier)
        service = ContentService(db_session, registry, default_gate, defaults, notifier=notifier)

        content, _ = await service.create(test_user, "Ticker", TICKER, [open_feed.id])

        notifier.content_changed.assert_called_once_with(content, "create", test_user)


# ================================
# New Form
# ================================

@pytest.mark.asyncio
class TestNewContent:
    async def test_blank_content_with_default_duration(self, db_session, test_user, open_feed, closed_feed):
        service = ContentService(
            db_session, build_registry(ContentDefaults("Graphic", 15)), default_gate,
            ContentDefaults("Graphic", 15),
        )
        content, feeds = await service.new_content(test_user, "ticker")

        assert isinstance(content, Ticker)
        assert content.duration == 15
        assert content.id is None
        assert [f.id for f in feeds] == [open_feed.id]

    async def test_falls_back_to_default_type(self, service, test_user):
        content, _ = await service.new_content(test_user, None)
        assert isinstance(content, Graphic)

    async def test_bogus_type_without_default_is_configuration_error(self, db_session, test_user):
        defaults = ContentDefaults(None, 8)
        service = ContentService(db_session, build_registry(defaults), default_gate, defaults)

        with pytest.raises(ContentTypeConfigurationError):
            await service.new_content(test_user, "bogus")

    async def test_unknown_default_is_unrecognized(self, db_session, test_user):
        defaults = ContentDefaults("Hologram", 8)
        service = ContentService(db_session, build_registry(defaults), default_gate, defaults)

        with pytest.raises(UnrecognizedContentTypeError):
            await service.new_content(test_user, "bogus")


# ================================
# Update / Delete
# ================================

@pytest.mark.asyncio
class TestUpdate:
    async def test_kept_feed_resets_and_new_feed_added(
        self, service, test_user, own_feed, open_feed
    ):
        """{own: approved} → [own, open]: own back to pending, open created, nothing removed."""
        content, _ = await service.create(test_user, "Ticker", TICKER, [own_feed.id])
        assert _states(content) == {own_feed.id: ModerationState.APPROVED}
        kept_id = content.submissions[0].id

        content = await service.update(test_user, content.id, {"name": "Dinner"}, [own_feed.id, open_feed.id])

        assert content.name == "Dinner"
        assert _states(content) == {
            own_feed.id: ModerationState.PENDING,
            open_feed.id: ModerationState.PENDING,
        }
        kept = next(s for s in content.submissions if s.feed_id == own_feed.id)
        assert kept.id == kept_id
        assert kept.moderator_id is None

    async def test_dropped_feed_is_deleted(
        self, service, db_session, test_user, own_feed, open_feed
    ):
        """[own, open] → [open]: own's submission row is deleted."""
        content, _ = await service.create(test_user, "Ticker", TICKER, [own_feed.id, open_feed.id])

        content = await service.update(test_user, content.id, {}, [open_feed.id])

        assert list(_states(content)) == [open_feed.id]
        rows = (await db_session.execute(select(Submission.feed_id))).scalars().all()
        assert rows == [open_feed.id]

    async def test_repeated_update_is_stable(self, service, test_user, own_feed, open_feed):
        content, _ = await service.create(test_user, "Ticker", TICKER, [open_feed.id])
        first = await service.update(test_user, content.id, {}, [open_feed.id, own_feed.id])
        first_ids = sorted(s.feed_id for s in first.submissions)
        second = await service.update(test_user, content.id, {}, [open_feed.id, own_feed.id])

        assert sorted(s.feed_id for s in second.submissions) == first_ids
        assert set(_states(second).values()) == {ModerationState.PENDING}

    async def test_new_duration_applies_to_new_submissions(self, service, test_user, open_feed):
        content, _ = await service.create(test_user, "Ticker", TICKER)
        content = await service.update(test_user, content.id, {"duration": 30}, [open_feed.id])
        assert content.submissions[0].duration == 30

    async def test_update_touches_updated_at(self, service, test_user):
        content, _ = await service.create(test_user, "Ticker", TICKER)
        before = content.updated_at
        content = await service.update(test_user, content.id, {}, [])
        assert content.updated_at >= before

    async def test_type_fields_are_not_updatable(self, service, db_session, test_user):
        content, _ = await service.create(test_user, "Ticker", TICKER)

        with pytest.raises(ContentValidationError) as exc_info:
            await service.update(test_user, content.id, {"data": "Changed"}, [])

        assert "data" in exc_info.value.errors
        stored = await db_session.get(Content, content.id)
        assert stored.data == "Soup of the day"

    async def test_rss_config_is_not_updatable(self, service, db_session, test_user):
        items = [{"title": "Headline", "link": "http://example.com/1", "summary": ""}]
        content, _ = await service.create(
            test_user, "RssFeed",
            {"name": "News", "config": {"url": "http://example.com/rss", "items": items}},
        )

        with pytest.raises(ContentValidationError) as exc_info:
            await service.update(
                test_user, content.id, {"config": {"url": "https://other.example/rss"}}, []
            )

        assert "config" in exc_info.value.errors
        stored = (
            await db_session.execute(select(Content.config).where(Content.id == content.id))
        ).scalar_one()
        assert stored["url"] == "http://example.com/rss"
        assert stored["items"] == items

    async def test_feed_closed_after_submission_can_be_kept(
        self, service, db_session, test_user, open_feed
    ):
        content, _ = await service.create(test_user, "Ticker", TICKER, [open_feed.id])
        open_feed.is_submittable = False
        await db_session.commit()

        content = await service.update(test_user, content.id, {"name": "Dinner"}, [open_feed.id])

        assert content.name == "Dinner"
        assert _states(content) == {open_feed.id: ModerationState.PENDING}

    async def test_newly_added_closed_feed_is_rejected(
        self, service, test_user, open_feed, closed_feed
    ):
        content, _ = await service.create(test_user, "Ticker", TICKER, [open_feed.id])

        with pytest.raises(ContentValidationError) as exc_info:
            await service.update(test_user, content.id, {}, [open_feed.id, closed_feed.id])

        assert exc_info.value.errors["feed_ids"] == [f"you may not submit to feed {closed_feed.id}"]

    async def test_invalid_update_leaves_content_untouched(
        self, service, db_session, test_user, own_feed
    ):
        content, _ = await service.create(test_user, "Ticker", TICKER, [own_feed.id])
        content_id = content.id

        with pytest.raises(ContentValidationError) as exc_info:
            await service.update(test_user, content_id, {"name": ""}, [])

        assert exc_info.value.content.name == ""
        stored = (await db_session.execute(select(Content).where(Content.id == content_id))).scalar_one()
        assert stored.name == "Lunch"
        assert _states(stored) == {own_feed.id: ModerationState.APPROVED}

    async def test_only_owner_updates(self, service, db_session, test_user, moderator):
        content, _ = await service.create(test_user, "Ticker", TICKER)

        with pytest.raises(AuthorizationError):
            await service.update(moderator, content.id, {"name": "Hijacked"}, [])

        stored = await db_session.get(Content, content.id)
        assert stored.name == "Lunch"

    async def test_update_missing_content(self, service, test_user):
        with pytest.raises(ContentNotFoundError):
            await service.update(test_user, 404, {}, [])

    async def test_edit_returns_submittable_feeds(self, service, test_user, own_feed, closed_feed):
        content, _ = await service.create(test_user, "Ticker", TICKER)
        loaded, feeds = await service.edit(test_user, content.id)
        assert loaded.id == content.id
        assert [f.id for f in feeds] == [own_feed.id]

    async def test_delete_removes_submissions(self, service, db_session, test_user, open_feed):
        content, _ = await service.create(test_user, "Ticker", TICKER, [open_feed.id])

        await service.delete(test_user, content.id)

        assert await _count(db_session, Content) == 0
        assert await _count(db_session, Submission) == 0

    async def test_only_owner_deletes(self, service, test_user, moderator):
        content, _ = await service.create(test_user, "Ticker", TICKER)
        with pytest.raises(AuthorizationError):
            await service.delete(moderator, content.id)


# ================================
# Read / Display / Act / Preview
# ================================

@pytest.mark.asyncio
class TestReadPaths:
    async def test_get_missing_is_not_found(self, service, test_user):
        with pytest.raises(ContentNotFoundError) as exc_info:
            await service.get(test_user, 999)
        assert exc_info.value.content_id == 999

    async def test_pending_content_visibility(self, service, test_user, moderator, open_feed):
        content, _ = await service.create(test_user, "Ticker", TICKER, [open_feed.id])

        assert (await service.get(test_user, content.id)).id == content.id
        assert (await service.get(moderator, content.id)).id == content.id
        with pytest.raises(AuthorizationError):
            await service.get(None, content.id)

    async def test_approved_content_is_public(self, service, test_user, own_feed):
        content, _ = await service.create(test_user, "Ticker", TICKER, [own_feed.id])
        assert (await service.get(None, content.id)).id == content.id

    async def test_list_filters(self, service, test_user, own_feed, open_feed):
        ticker, _ = await service.create(test_user, "Ticker", TICKER, [own_feed.id])
        html, _ = await service.create(test_user, "HtmlText", {"name": "Note", "data": "<b>x</b>"}, [open_feed.id])

        items, total = await service.list_contents(test_user)
        assert total == 2
        assert [c.id for c in items] == [html.id, ticker.id]

        items, _ = await service.list_contents(test_user, type_name="html_text")
        assert [c.id for c in items] == [html.id]

        items, _ = await service.list_contents(test_user, feed_id=own_feed.id)
        assert [c.id for c in items] == [ticker.id]

        # Anonymous readers only see approved content
        items, total = await service.list_contents(None)
        assert [c.id for c in items] == [ticker.id]

        items, total = await service.list_contents(test_user, offset=1, limit=1)
        assert total == 2 and [c.id for c in items] == [ticker.id]

    async def test_list_unknown_type(self, service, test_user):
        with pytest.raises(UnrecognizedContentTypeError):
            await service.list_contents(test_user, type_name="bogus")

    async def test_display_and_not_modified(self, service, test_user):
        content, _ = await service.create(test_user, "Ticker", TICKER)

        result = await service.display(test_user, content.id, {})
        assert isinstance(result, RenderedOutput)
        assert result.data == b"Soup of the day"

        again = await service.display(test_user, content.id, {}, if_none_match=result.etag)
        assert isinstance(again, NotModified)

    async def test_display_requires_read(self, service, test_user, open_feed):
        content, _ = await service.create(test_user, "Ticker", TICKER, [open_feed.id])
        with pytest.raises(AuthorizationError):
            await service.display(None, content.id, {})

    async def test_act_persists_changes(self, service, db_session, test_user):
        content, _ = await service.create(
            test_user, "RssFeed", {"name": "News", "config": {"url": "http://example.com/rss"}}
        )

        result = await service.act(test_user, content.id, "set_format", {"display_format": "detailed"})

        assert result == {"display_format": "detailed"}
        stored = (await db_session.execute(select(Content.config).where(Content.id == content.id))).scalar_one()
        assert stored["display_format"] == "detailed"

    async def test_act_unknown_action(self, service, test_user):
        content, _ = await service.create(test_user, "Ticker", TICKER)
        with pytest.raises(ActionDispatchError):
            await service.act(test_user, content.id, "explode", {})

    async def test_preview(self, service, test_user):
        content, _ = await service.create(test_user, "Ticker", TICKER)

        assert await service.preview("Ticker", data="<hi>") == '<p class="ticker">&lt;hi&gt;</p>'
        assert await service.preview("ticker", content_id=content.id) == (
            '<p class="ticker">Soup of the day</p>'
        )
        assert await service.preview("bogus", data="x") == "Unrecognized content type"
        assert await service.preview("Ticker", content_id=999) == '<p class="ticker"></p>'
