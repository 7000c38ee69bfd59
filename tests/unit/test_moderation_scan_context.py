"""
Тесты сборки текста для проверки (ответы, цитаты, внешние источники).

Покрывает:
- Порядок и формат меток [ReplyTo]/[Quote]/[ExternalSource]
- Имя источника ответа (канал, sender_chat, пользователь)
- Выбор картинки: фото сообщения, иначе фото внешнего источника
"""

from datetime import datetime, timezone

from antiad_bot.services.moderation.scan_context import ScanContext, ScanContextBuilder

CHANNEL_ORIGIN = {
    "type": "channel",
    "date": 1700000000,
    "chat": {"id": -100500, "type": "channel", "title": "Crypto Ads"},
    "message_id": 7,
}


def _reply(**fields):
    payload = {
        "message_id": 50,
        "date": datetime.now(timezone.utc),
        "chat": {"id": -1000, "type": "supergroup", "title": "Test chat"},
    }
    payload.update(fields)
    return payload


def build(message):
    return ScanContextBuilder().build(message)


class TestOwnContent:
    def test_plain_text(self, message_factory):
        context = build(message_factory(text="hello world"))
        assert context == ScanContext(text="hello world", image_file_id=None)

    def test_caption_when_no_text(self, message_factory, photo_factory):
        context = build(message_factory(text=None, caption="look", photo=photo_factory()))
        assert context.text == "look"
        assert context.image_file_id == "photo_large"

    def test_empty_message(self, message_factory):
        context = build(message_factory(text=None))
        assert context.text == ""
        assert context.has_judgeable_text is False


class TestReplyTo:
    def test_reply_to_user_text(self, message_factory):
        message = message_factory(
            text="what?",
            reply_to_message=_reply(**{"from": {"id": 7, "is_bot": False, "first_name": "Alice"}, "text": "buy usdt"}),
        )
        assert build(message).text == "what?\n[ReplyTo Alice]: buy usdt"

    def test_reply_to_forwarded_channel_post(self, message_factory):
        message = message_factory(
            text="ok",
            reply_to_message=_reply(
                **{"from": {"id": 7, "is_bot": False, "first_name": "Alice"}},
                forward_origin=CHANNEL_ORIGIN,
                text="promo",
            ),
        )
        assert build(message).text == "ok\n[ReplyTo Crypto Ads]: promo"

    def test_reply_to_sender_chat(self, message_factory):
        message = message_factory(
            text="ok",
            reply_to_message=_reply(
                sender_chat={"id": -100777, "type": "channel", "title": "Linked Channel"},
                caption="caption text",
            ),
        )
        assert build(message).text == "ok\n[ReplyTo Linked Channel]: caption text"

    def test_reply_to_photo_without_caption(self, message_factory, photo_factory):
        message = message_factory(
            text="nice",
            reply_to_message=_reply(**{"from": {"id": 7, "is_bot": False, "first_name": "Bob"}}, photo=photo_factory()),
        )
        context = build(message)
        assert context.text == "nice\n[ReplyTo Bob]: [Photo]"
        # Фото из ответа не проверяется как картинка сообщения
        assert context.image_file_id is None

    def test_reply_without_sender(self, message_factory):
        message = message_factory(text="x", reply_to_message=_reply(text="t"))
        assert build(message).text == "x\n[ReplyTo Unknown]: t"


class TestQuoteAndExternal:
    def test_quote(self, message_factory):
        message = message_factory(text="this", quote={"text": "联系我代付", "position": 0})
        assert build(message).text == "this\n[Quote]: 联系我代付"

    def test_external_source_with_photo(self, message_factory, photo_factory):
        message = message_factory(
            text="see",
            external_reply={"origin": CHANNEL_ORIGIN, "photo": photo_factory("ext")},
        )
        context = build(message)
        assert context.text == "see\n[ExternalSource]: Crypto Ads - [Photo]"
        assert context.image_file_id == "ext_large"

    def test_message_photo_wins_over_external(self, message_factory, photo_factory):
        message = message_factory(
            text=None,
            caption="mine",
            photo=photo_factory("own"),
            external_reply={"origin": CHANNEL_ORIGIN, "photo": photo_factory("ext")},
        )
        assert build(message).image_file_id == "own_large"

    def test_external_source_uses_chat_title_fallback(self, message_factory):
        message = message_factory(
            text="see",
            external_reply={
                "origin": {
                    "type": "user",
                    "date": 1700000000,
                    "sender_user": {"id": 9, "is_bot": False, "first_name": "Eve"},
                },
                "chat": {"id": -100900, "type": "supergroup", "title": "Other Group"},
            },
        )
        assert build(message).text == "see\n[ExternalSource]: Other Group - "

    def test_segment_order(self, message_factory, photo_factory):
        message = message_factory(
            text="own",
            reply_to_message=_reply(**{"from": {"id": 7, "is_bot": False, "first_name": "Alice"}}, text="r"),
            quote={"text": "q", "position": 0},
            external_reply={"origin": CHANNEL_ORIGIN, "photo": photo_factory("ext")},
        )
        assert build(message).text.split("\n") == [
            "own",
            "[ReplyTo Alice]: r",
            "[Quote]: q",
            "[ExternalSource]: Crypto Ads - [Photo]",
        ]


class TestScanContextValue:
    def test_judgeable_text_needs_more_than_two_chars(self):
        assert ScanContext(text="ok").has_judgeable_text is False
        assert ScanContext(text="  a  ").has_judgeable_text is False
        assert ScanContext(text="hey").has_judgeable_text is True

    def test_with_appendix_returns_new_context(self):
        context = ScanContext(text="t.me/somechannel", image_file_id="f")
        enriched = context.with_appendix("\n\n[LinkedChat]\nTitle: X\nDesc: Y")
        assert enriched.text == "t.me/somechannel\n\n[LinkedChat]\nTitle: X\nDesc: Y"
        assert enriched.image_file_id == "f"
        assert context.text == "t.me/somechannel"
