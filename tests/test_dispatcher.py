"""
回应调度测试

1. 延迟计算
2. 开关 / 自身消息 / 状态去重
3. 发送失败回滚
"""

import asyncio
import random
from unittest.mock import AsyncMock, Mock

import pytest

from matdev.config import DelayMode, ReactionsConfig
from matdev.platforms.whatsapp import STATUS_JID, InboundEvent
from matdev.reactions import DeliveryLedger, ReactionDispatcher, schedule_delay, split_emojis


def make_event(text="I love this!", event_id="ABC123", author="111@s.whatsapp.net",
               is_status=False, from_me=False) -> InboundEvent:
    chat = STATUS_JID if is_status else author
    key = {"remoteJid": chat, "id": event_id, "fromMe": from_me}
    if is_status:
        key["participant"] = author
    return InboundEvent(
        chat_jid=chat,
        author=author,
        event_id=event_id,
        from_me=from_me,
        is_status=is_status,
        text=text,
        key=key,
    )


def make_dispatcher(transport=None, **settings):
    config = ReactionsConfig(**{"message_enabled": True, "status_enabled": True, **settings})
    transport = transport or Mock(react=AsyncMock(return_value=True))
    sleep = AsyncMock()
    dispatcher = ReactionDispatcher(config, transport, rng=random.Random(7), sleep=sleep)
    return dispatcher, transport, sleep


class TestScheduleDelay:
    """测试延迟计算"""

    @pytest.mark.parametrize("kind", ["message", "status"])
    def test_immediate_is_zero(self, kind):
        assert schedule_delay(DelayMode.IMMEDIATE, kind) == 0

    def test_randomized_message_bounds(self):
        rng = random.Random(1)
        values = [schedule_delay(DelayMode.RANDOMIZED, "message", rng) for _ in range(500)]
        assert all(500 <= v <= 2500 for v in values)
        assert len(set(values)) > 1

    def test_randomized_status_bounds(self):
        rng = random.Random(2)
        values = [schedule_delay(DelayMode.RANDOMIZED, "status", rng) for _ in range(500)]
        assert all(30000 <= v <= 300000 for v in values)

    def test_injected_random_source(self):
        rng = Mock()
        rng.uniform.return_value = 2500.0
        assert schedule_delay(DelayMode.RANDOMIZED, "message", rng) == 2500
        rng.uniform.assert_called_once_with(500, 2500)

    def test_legacy_mode_strings(self):
        assert schedule_delay("nodelay", "status") == 0
        rng = Mock(uniform=Mock(return_value=45000.7))
        assert schedule_delay("delay", "status", rng) == 45000

    def test_unknown_kind(self):
        with pytest.raises(ValueError):
            schedule_delay(DelayMode.IMMEDIATE, "story")


class TestSplitEmojis:
    """测试表情池拆分"""

    def test_keeps_variation_selector(self):
        assert split_emojis("❤️🔥👍") == ["❤️", "🔥", "👍"]

    def test_separators_ignored(self):
        assert split_emojis("😍, 🔥 ✨") == ["😍", "🔥", "✨"]

    def test_skin_tone_and_zwj(self):
        assert split_emojis("👍🏽👨‍💻") == ["👍🏽", "👨‍💻"]

    def test_empty(self):
        assert split_emojis("") == []

    def test_flags_stay_paired(self):
        nigeria = "\U0001F1F3\U0001F1EC"
        usa = "\U0001F1FA\U0001F1F8"
        assert split_emojis(nigeria) == [nigeria]
        assert split_emojis(nigeria + usa) == [nigeria, usa]
        assert split_emojis(f"{nigeria} 🔥") == [nigeria, "🔥"]

    def test_keycaps(self):
        one = "1\ufe0f\u20e3"
        two = "2\ufe0f\u20e3"
        assert split_emojis(one + two) == [one, two]

    def test_subdivision_flag(self):
        scotland = "\U0001F3F4\U000E0067\U000E0062\U000E0073\U000E0063\U000E0074\U000E007F"
        assert split_emojis(scotland + "👍") == [scotland, "👍"]

    def test_flag_pool_reaction(self):
        nigeria = "\U0001F1F3\U0001F1EC"
        dispatcher, _, _ = make_dispatcher(status_emojis=nigeria)
        assert dispatcher.choose_glyph(make_event(is_status=True)) == nigeria


class TestShouldReact:
    """测试是否回应的判断"""

    def test_message_disabled(self):
        dispatcher, _, _ = make_dispatcher(message_enabled=False)
        assert dispatcher.should_react(make_event()) is False

    def test_status_disabled_does_not_touch_ledger(self):
        dispatcher, _, _ = make_dispatcher(status_enabled=False)
        event = make_event(is_status=True)
        assert dispatcher.should_react(event) is False
        assert event.dedup_key not in dispatcher.ledger

    def test_own_message_skipped(self):
        dispatcher, _, _ = make_dispatcher()
        assert dispatcher.should_react(make_event(from_me=True)) is False

    def test_status_claims_key_eagerly(self):
        dispatcher, _, _ = make_dispatcher()
        event = make_event(is_status=True)
        assert dispatcher.should_react(event) is True
        assert event.dedup_key in dispatcher.ledger
        assert dispatcher.should_react(event) is False

    def test_messages_not_deduplicated(self):
        dispatcher, _, _ = make_dispatcher()
        event = make_event()
        assert dispatcher.should_react(event) is True
        assert dispatcher.should_react(event) is True
        assert len(dispatcher.ledger) == 0


class TestDelivery:
    """测试发送流程"""

    @pytest.mark.asyncio
    async def test_message_reaction_sent(self):
        dispatcher, transport, sleep = make_dispatcher()
        event = make_event(text="HAHA this is hilarious lol")

        task = dispatcher.handle_event(event)
        assert task is not None
        await dispatcher.join()

        transport.react.assert_awaited_once_with(event.chat_jid, "😂", event.key)
        sleep.assert_not_awaited()
        assert dispatcher.get_stats()["delivered"] == 1

    @pytest.mark.asyncio
    async def test_empty_text_skipped(self):
        dispatcher, transport, _ = make_dispatcher()
        assert dispatcher.handle_event(make_event(text=None)) is None
        assert dispatcher.handle_event(make_event(text="")) is None
        transport.react.assert_not_awaited()
        assert dispatcher.get_stats()["skipped_no_text"] == 2

    @pytest.mark.asyncio
    async def test_randomized_message_delay_waits(self):
        dispatcher, transport, sleep = make_dispatcher(message_delay_mode="randomized")
        dispatcher.handle_event(make_event())
        await dispatcher.join()

        sleep.assert_awaited_once()
        seconds = sleep.await_args.args[0]
        assert 0.5 <= seconds <= 2.5
        transport.react.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_status_delay_window(self):
        dispatcher, _, sleep = make_dispatcher(status_delay_mode="delay")
        dispatcher.handle_event(make_event(is_status=True))
        await dispatcher.join()
        assert 30 <= sleep.await_args.args[0] <= 300

    @pytest.mark.asyncio
    async def test_duplicate_status_delivered_once(self):
        dispatcher, transport, _ = make_dispatcher()
        first = make_event(is_status=True)
        second = make_event(is_status=True)

        assert dispatcher.handle_event(first) is not None
        assert dispatcher.handle_event(second) is None
        await dispatcher.join()

        assert transport.react.await_count == 1
        assert dispatcher.get_stats()["skipped_duplicate"] == 1

    @pytest.mark.asyncio
    async def test_duplicate_during_delay_window(self):
        release = asyncio.Event()

        async def slow_sleep(_seconds):
            await release.wait()

        config = ReactionsConfig(status_enabled=True, status_delay_mode="randomized")
        transport = Mock(react=AsyncMock(return_value=True))
        dispatcher = ReactionDispatcher(config, transport, sleep=slow_sleep)

        dispatcher.handle_event(make_event(is_status=True))
        await asyncio.sleep(0)
        assert dispatcher.pending == 1
        assert dispatcher.handle_event(make_event(is_status=True)) is None

        release.set()
        await dispatcher.join()
        assert transport.react.await_count == 1

    @pytest.mark.asyncio
    async def test_status_failure_rolls_back(self):
        transport = Mock(react=AsyncMock(return_value=False))
        dispatcher, _, _ = make_dispatcher(transport)
        event = make_event(is_status=True)

        dispatcher.handle_event(event)
        await dispatcher.join()

        assert event.dedup_key not in dispatcher.ledger
        assert dispatcher.handle_event(make_event(is_status=True)) is not None
        await dispatcher.join()
        assert transport.react.await_count == 2
        assert dispatcher.get_stats()["failed"] == 2

    @pytest.mark.asyncio
    async def test_transport_exception_is_contained(self):
        transport = Mock(react=AsyncMock(side_effect=ConnectionError("socket closed")))
        dispatcher, _, _ = make_dispatcher(transport)
        event = make_event(is_status=True)

        task = dispatcher.handle_event(event)
        await dispatcher.join()

        assert task.result() is False
        assert event.dedup_key not in dispatcher.ledger

    @pytest.mark.asyncio
    async def test_message_failure_leaves_no_state(self):
        transport = Mock(react=AsyncMock(return_value=False))
        dispatcher, _, _ = make_dispatcher(transport)
        dispatcher.handle_event(make_event())
        await dispatcher.join()
        assert len(dispatcher.ledger) == 0
        assert dispatcher.get_stats()["failed"] == 1

    @pytest.mark.asyncio
    async def test_disable_mid_flight_still_fires(self):
        release = asyncio.Event()

        async def slow_sleep(_seconds):
            await release.wait()

        config = ReactionsConfig(message_enabled=True, message_delay_mode="randomized")
        transport = Mock(react=AsyncMock(return_value=True))
        dispatcher = ReactionDispatcher(config, transport, sleep=slow_sleep)

        dispatcher.handle_event(make_event())
        config.message_enabled = False
        release.set()
        await dispatcher.join()

        transport.react.assert_awaited_once()
        assert dispatcher.handle_event(make_event(event_id="NEXT")) is None

    @pytest.mark.asyncio
    async def test_status_uses_emoji_pool(self):
        dispatcher, transport, _ = make_dispatcher(status_emojis="🔥")
        dispatcher.handle_event(make_event(text=None, is_status=True))
        await dispatcher.join()
        assert transport.react.await_args.args[1] == "🔥"

    @pytest.mark.asyncio
    async def test_status_without_pool_uses_sentiment(self):
        dispatcher, transport, _ = make_dispatcher()
        dispatcher.handle_event(make_event(text="😭", is_status=True))
        await dispatcher.join()
        assert transport.react.await_args.args[1] == "😢"

    @pytest.mark.asyncio
    async def test_scheduled_job_copies_key(self):
        dispatcher, transport, _ = make_dispatcher()
        event = make_event()
        dispatcher.handle_event(event)
        event.key["id"] = "MUTATED"
        await dispatcher.join()
        assert transport.react.await_args.args[2]["id"] == "ABC123"

    def test_schedule_error_releases_status_key(self):
        # no running loop, so spawning the delivery task fails
        dispatcher, transport, _ = make_dispatcher()
        event = make_event(is_status=True)

        assert dispatcher.handle_event(event) is None
        assert event.dedup_key not in dispatcher.ledger
        assert dispatcher.get_stats()["failed"] == 1
        transport.react.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_delay_error_releases_status_key(self):
        rng = Mock(uniform=Mock(side_effect=RuntimeError("bad rng")))
        config = ReactionsConfig(status_enabled=True, status_delay_mode="randomized")
        transport = Mock(react=AsyncMock(return_value=True))
        dispatcher = ReactionDispatcher(config, transport, rng=rng, sleep=AsyncMock())
        event = make_event(is_status=True)

        assert dispatcher.handle_event(event) is None
        assert event.dedup_key not in dispatcher.ledger

        dispatcher.rng = random.Random(3)
        assert dispatcher.handle_event(make_event(is_status=True)) is not None
        await dispatcher.join()
        transport.react.assert_awaited_once()

    def test_empty_injected_ledger_is_used(self):
        ledger = DeliveryLedger()
        rng = random.Random(5)
        dispatcher = ReactionDispatcher(ReactionsConfig(), Mock(), ledger=ledger, rng=rng)
        assert dispatcher.ledger is ledger
        assert dispatcher.rng is rng

    @pytest.mark.asyncio
    async def test_shared_ledger(self):
        ledger = DeliveryLedger()
        config = ReactionsConfig(status_enabled=True)
        transport = Mock(react=AsyncMock(return_value=True))
        dispatcher = ReactionDispatcher(config, transport, ledger=ledger)

        dispatcher.handle_event(make_event(is_status=True))
        await dispatcher.join()
        assert len(ledger) == 1
        assert dispatcher.get_stats()["ledger_size"] == 1
