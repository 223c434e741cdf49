"""
Tests for the Telegram transport using httpx.MockTransport.
"""

import json

import httpx

from balancedesk.telegram_bot.admin import AdminCommandHandler
from balancedesk.telegram_bot.telegram_api import InboundUpdate, TelegramTransport

from conftest import make_update


def _transport(handler) -> TelegramTransport:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return TelegramTransport("https://tg.test", client=client)


class TestSendMessage:

    async def test_delivered(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"ok": True, "result": {"message_id": 77}})

        result = await _transport(handler).send_message("tok", "-100", "hello")

        assert result.delivered
        assert result.message_id == 77
        assert seen["url"] == "https://tg.test/bottok/sendMessage"
        assert seen["body"] == {"chat_id": "-100", "text": "hello"}

    async def test_api_error(self):
        def handler(request):
            return httpx.Response(400, json={"ok": False, "description": "chat not found"})

        result = await _transport(handler).send_message("tok", "-100", "hello")
        assert not result.delivered
        assert result.error == "chat not found"

    async def test_network_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        result = await _transport(handler).send_message("tok", "-100", "hello")
        assert not result.delivered
        assert "refused" in result.error

    async def test_missing_config(self):
        def handler(request):
            raise AssertionError("no request expected")

        result = await _transport(handler).send_message("", "-100", "hello")
        assert result.error == "telegram_config_missing"

    async def test_non_object_body(self):
        def handler(request):
            return httpx.Response(200, json=["ok"])

        result = await _transport(handler).send_message("tok", "-100", "hello")
        assert not result.delivered
        assert result.error == "invalid_response"

    async def test_null_body(self):
        def handler(request):
            return httpx.Response(200, content=b"null", headers={"content-type": "application/json"})

        result = await _transport(handler).send_message("tok", "-100", "hello")
        assert result.error == "invalid_response"


class TestGetUpdates:

    async def test_offset_and_parsing(self):
        seen = {}

        def handler(request):
            seen["params"] = dict(request.url.params)
            return httpx.Response(200, json={"ok": True, "result": [
                {"update_id": 12, "message": {"message_id": 5, "text": "تم", "chat": {"id": -100},
                                              "reply_to_message": {"message_id": 77}}},
                {"update_id": 11, "message": {"message_id": 4, "text": "hi"}},
                {"update_id": 13, "edited_message": {"message_id": 4}},
            ]})

        updates = await _transport(handler).get_updates("tok", after=10, long_poll=0)

        assert seen["params"] == {"offset": "11", "timeout": "0"}
        assert [u.sequence_id for u in updates] == [11, 12, 13]
        assert updates[1].reply_to_message_id == 77
        assert updates[1].text == "تم"
        assert updates[1].chat_id == -100
        assert updates[2].has_message is False

    async def test_failure_returns_none(self):
        def handler(request):
            return httpx.Response(502, text="bad gateway")

        assert await _transport(handler).get_updates("tok", after=0) is None

    async def test_non_object_body_returns_none(self):
        def handler(request):
            return httpx.Response(200, json=[{"update_id": 1}])

        assert await _transport(handler).get_updates("tok", after=0) is None

    def test_from_telegram_without_reply(self):
        update = InboundUpdate.from_telegram({"update_id": 1, "message": {"text": "x"}})
        assert update.reply_to_message_id is None
        assert update.has_message


class TestAdminCommands:

    async def test_block_and_unblock(self, store):
        admin = AdminCommandHandler(store)

        await admin.handle(make_update(1, "حظر الرقم الشخصي: 4000001"))
        await admin.handle(make_update(2, "حظر الرقم الشخصي: 4000001"))
        assert store.doc.blocked == ["4000001"]

        await admin.handle(make_update(3, "إلغاء الحظر الرقم الشخصي: 4000001"))
        assert store.doc.blocked == []

    async def test_ignores_other_text(self, store):
        await AdminCommandHandler(store).handle(make_update(1, "مرحبا الرقم الشخصي: 4000001"))
        assert store.doc.blocked == []
