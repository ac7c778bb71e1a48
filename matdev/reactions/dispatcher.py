"""
Reaction delivery pipeline

classify -> should_react -> schedule_delay -> deliver
"""

import asyncio
import random
from collections import Counter
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Hashable, List, Optional, Set

from loguru import logger

from ..config import DelayMode, ReactionsConfig
from ..platforms.whatsapp import InboundEvent
from .ledger import DeliveryLedger
from .sentiment import SentimentReactionEngine

MESSAGE = "message"
STATUS = "status"

# kind -> (min_ms, max_ms) for randomized delays
DELAY_WINDOWS_MS = {
    MESSAGE: (500, 2500),
    STATUS: (30000, 300000),
}

_JOINERS = ("\ufe0f", "\u200d")
_KEYCAP = "\u20e3"


def schedule_delay(mode: DelayMode, kind: str, rng: Optional[random.Random] = None) -> int:
    """
    Delay before a reaction is sent

    Args:
        mode: immediate or randomized
        kind: "message" or "status"
        rng: random source with ``uniform`` (defaults to the random module)

    Returns:
        Delay in milliseconds
    """
    if kind not in DELAY_WINDOWS_MS:
        raise ValueError(f"Unknown event kind: {kind}")

    if DelayMode.parse(mode) is DelayMode.IMMEDIATE:
        return 0

    low, high = DELAY_WINDOWS_MS[kind]
    value = (rng or random).uniform(low, high)
    return min(high, max(low, int(value)))


def _is_modifier(ch: str) -> bool:
    """Characters that always extend the previous glyph"""
    return (
        ch in _JOINERS
        or ch == _KEYCAP
        or "\U0001F3FB" <= ch <= "\U0001F3FF"  # skin tones
        or "\U000E0020" <= ch <= "\U000E007F"  # tag sequences (subdivision flags)
    )


def split_emojis(text: str) -> List[str]:
    """Split an emoji string into glyphs, keeping variation selectors, ZWJ
    sequences, skin tones, keycaps and flags attached"""
    glyphs: List[str] = []
    joined = False
    open_flag = False
    for ch in text or "":
        if ch.isspace() or ch == ",":
            joined = open_flag = False
            continue

        regional = "\U0001F1E6" <= ch <= "\U0001F1FF"
        if glyphs and (joined or _is_modifier(ch) or (regional and open_flag)):
            glyphs[-1] += ch
            open_flag = False
        else:
            glyphs.append(ch)
            # a flag is exactly two regional indicators
            open_flag = regional
        joined = ch == "\u200d"
    return glyphs


@dataclass(frozen=True)
class ScheduledReaction:
    """Everything a delivery task needs, copied out of the event"""
    jid: str
    glyph: str
    key: Dict[str, Any]
    kind: str
    delay_ms: int
    dedup_key: Optional[Hashable] = None


class ReactionDispatcher:
    """
    Decides whether and when to react, then hands the glyph to the transport

    The ReactionsConfig is shared by reference, so admin toggles take effect
    for the next event. Deliveries already scheduled are never cancelled.
    """

    def __init__(
        self,
        config: ReactionsConfig,
        transport,
        engine: Optional[SentimentReactionEngine] = None,
        ledger: Optional[DeliveryLedger] = None,
        rng: Optional[random.Random] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        """
        Args:
            config: shared reaction settings
            transport: object with ``async react(jid, emoji, key) -> bool``
            engine: sentiment classifier
            ledger: status de-duplication ledger
            rng: random source for delays and the status emoji pool
            sleep: coroutine used to wait out delays
        """
        self.config = config
        self.transport = transport
        self.engine = engine if engine is not None else SentimentReactionEngine()
        self.ledger = ledger if ledger is not None else DeliveryLedger(config.ledger_sweep_hours)
        self.rng = rng if rng is not None else random.Random()
        self._sleep = sleep
        self._pending: Set[asyncio.Task] = set()
        self._stats: Counter = Counter()
        self._glyph_counts: Counter = Counter()

    def start(self):
        self.ledger.start()

    def stop(self):
        self.ledger.stop()

    @property
    def pending(self) -> int:
        return len(self._pending)

    def choose_glyph(self, event: InboundEvent) -> Optional[str]:
        """Glyph for an event; statuses use the emoji pool when one is set"""
        if event.is_status:
            pool = split_emojis(self.config.status_emojis)
            if pool:
                return self.rng.choice(pool)
        return self.engine.classify(event.text or "")

    def should_react(self, event: InboundEvent) -> bool:
        """
        Gate an event

        For statuses the de-duplication key is claimed here, before any delay,
        so a second copy seen during the wait is dropped.
        """
        enabled = self.config.status_enabled if event.is_status else self.config.message_enabled
        if not enabled:
            self._skip("disabled", event)
            return False

        if event.from_me:
            self._skip("own", event)
            return False

        if event.is_status and not self.ledger.claim(event.dedup_key):
            self._skip("duplicate", event)
            return False

        return True

    def handle_event(self, event: InboundEvent) -> Optional[asyncio.Task]:
        """
        Schedule a reaction for an inbound event

        Returns:
            The delivery task, or None when the event was skipped
        """
        try:
            glyph = self.choose_glyph(event)
            if not glyph:
                self._skip("no_text", event)
                return None

            if not self.should_react(event):
                return None
        except Exception as e:
            logger.error(f"Error in handle_event: {e}")
            return None

        kind = STATUS if event.is_status else MESSAGE
        mode = self.config.status_delay_mode if event.is_status else self.config.message_delay_mode
        try:
            job = ScheduledReaction(
                jid=event.chat_jid,
                glyph=glyph,
                key=dict(event.key),
                kind=kind,
                delay_ms=schedule_delay(mode, kind, self.rng),
                dedup_key=event.dedup_key if event.is_status else None,
            )
            return self._spawn(job)
        except Exception as e:
            logger.error(f"Error scheduling {kind} reaction: {e}")
            if event.is_status:
                # the key was claimed in should_react, give it back
                self.ledger.release(event.dedup_key)
            self._stats["failed"] += 1
            return None

    def _spawn(self, job: ScheduledReaction) -> asyncio.Task:
        coro = self._deliver(job)
        try:
            task = asyncio.create_task(coro)
        except RuntimeError:
            coro.close()
            raise
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        self._stats["scheduled"] += 1
        logger.debug(f"Scheduled {job.glyph} for {job.kind} in {job.jid} after {job.delay_ms}ms")
        return task

    async def _deliver(self, job: ScheduledReaction) -> bool:
        if job.delay_ms:
            await self._sleep(job.delay_ms / 1000)

        try:
            ok = await self.transport.react(job.jid, job.glyph, job.key)
        except Exception as e:
            logger.error(f"Error sending {job.kind} reaction: {e}")
            ok = False

        if not ok:
            self._stats["failed"] += 1
            if job.dedup_key is not None:
                # allow a later copy of this status to retry
                self.ledger.release(job.dedup_key)
            logger.warning(f"Reaction {job.glyph} to {job.jid} failed")
            return False

        self._stats["delivered"] += 1
        self._glyph_counts[job.glyph] += 1
        return True

    async def join(self):
        """Wait for every in-flight delivery"""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def _skip(self, reason: str, event: InboundEvent):
        self._stats[f"skipped_{reason}"] += 1
        logger.debug(f"Skip {event.chat_jid}/{event.event_id}: {reason}")

    def get_stats(self) -> Dict:
        """获取使用统计"""
        return {
            **dict(self._stats),
            "pending": self.pending,
            "ledger_size": len(self.ledger),
            "glyphs": dict(self._glyph_counts),
        }
