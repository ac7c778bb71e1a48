"""
Sentiment reaction engine

Keyword-weighted heuristic that maps chat text to one of five reaction glyphs.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Tuple


class Mood(Enum):
    """Sentiment bucket"""
    LOVE = "love"
    SAD = "sad"
    ANGRY = "angry"
    LAUGH = "laugh"
    NEUTRAL = "neutral"


GLYPHS: Dict[Mood, str] = {
    Mood.LOVE: "❤️",      # love, appreciation, positive emotions
    Mood.SAD: "😢",       # sadness, disappointment, sympathy
    Mood.ANGRY: "😠",     # anger, frustration, annoyance
    Mood.LAUGH: "😂",     # humor, jokes
    Mood.NEUTRAL: "👍",   # general approval
}

# Tie-break order
RANKED_MOODS: Tuple[Mood, ...] = (Mood.LOVE, Mood.SAD, Mood.ANGRY, Mood.LAUGH)


LOVE_WORDS: Tuple[str, ...] = (
    "love", "adore", "amazing", "awesome", "fantastic", "incredible", "wonderful",
    "perfect", "beautiful", "gorgeous", "stunning", "brilliant", "excellent",
    "outstanding", "magnificent", "spectacular", "marvelous", "fabulous",
    "thank", "thanks", "grateful", "appreciate", "bless", "heart", "sweet",
    "cute", "adorable", "precious", "dear", "honey", "baby", "darling",
    "celebration", "celebrate", "victory", "win", "success", "achievement",
    "proud", "congratulations", "congrats", "birthday", "anniversary",
    "wedding", "graduation", "party", "excited", "thrilled", "joy", "happy",
)

SAD_WORDS: Tuple[str, ...] = (
    "sad", "cry", "crying", "tears", "hurt", "pain", "heartbroken", "broken",
    "depressed", "down", "blue", "upset", "disappointed", "devastated",
    "tragic", "tragedy", "loss", "lost", "miss", "missing", "gone", "died",
    "death", "funeral", "goodbye", "farewell", "leaving", "alone", "lonely",
    "sorry", "apologize", "regret", "mistake", "failed", "failure", "lose",
    "disaster", "terrible", "awful", "horrible", "worst", "bad news",
    "sick", "ill", "hospital", "disease", "cancer", "emergency", "accident",
)

ANGRY_WORDS: Tuple[str, ...] = (
    "angry", "mad", "furious", "rage", "hate", "stupid", "idiot", "moron",
    "annoying", "annoyed", "frustrated", "irritated", "pissed", "damn",
    "hell", "shit", "fuck", "wtf", "bullshit", "nonsense", "ridiculous",
    "outrageous", "unacceptable", "disgusting", "pathetic", "useless",
    "worthless", "trash", "garbage", "scam", "fake", "lie", "liar",
    "cheat", "steal", "thief", "criminal", "wrong", "unfair", "injustice",
    "discrimination", "racist", "sexist", "abuse", "violence", "fight",
    "war", "conflict", "argue", "argument", "disagree", "oppose",
)

# "comedy" appears twice on purpose: each entry scores on its own
LAUGH_WORDS: Tuple[str, ...] = (
    "haha", "lol", "lmao", "rofl", "lmfao", "funny", "hilarious", "joke",
    "comedy", "humor", "laugh", "giggle", "chuckle", "smile", "grin",
    "amusing", "entertaining", "witty", "clever", "silly", "crazy",
    "weird", "strange", "odd", "bizarre", "ridiculous", "absurd",
    "meme", "viral", "trending", "epic", "legendary", "iconic",
    "classic", "gold", "comedy", "clown", "joking", "kidding",
    "sarcasm", "sarcastic", "ironic", "irony", "troll", "trolling",
)

# bucket -> (keywords, length above which a match weighs 2)
KEYWORDS: Dict[Mood, Tuple[Tuple[str, ...], int]] = {
    Mood.LOVE: (LOVE_WORDS, 6),
    Mood.SAD: (SAD_WORDS, 6),
    Mood.ANGRY: (ANGRY_WORDS, 4),
    Mood.LAUGH: (LAUGH_WORDS, 4),
}

EMOJI_MARKERS: Dict[Mood, Tuple[str, ...]] = {
    Mood.SAD: (":(", "😢", "😭"),
    Mood.LAUGH: (":)", "😂", "🤣", "😄"),
    Mood.LOVE: ("<3", "❤️", "💕", "🥰"),
    Mood.ANGRY: (">:(", "😡", "😠", "🤬"),
}
EMOJI_BOOST = 3

# runs of two or more capitals, not whole tokens: "HELLO123WORLD" is two runs
_CAPS_RUN = re.compile(r"[A-Z]{2,}")


@dataclass
class SentimentScore:
    """Per-call accumulators; every field only grows while scoring"""
    love: int = 0
    sad: int = 0
    angry: int = 0
    laugh: int = 0

    exclamations: int = 0
    caps_words: int = 0
    has_question: bool = False
    emoji_hits: Dict[str, bool] = field(default_factory=dict)

    def add(self, mood: Mood, amount: int):
        if amount < 0:
            raise ValueError("score increments must be non-negative")
        setattr(self, mood.value, getattr(self, mood.value) + amount)

    def get(self, mood: Mood) -> int:
        return getattr(self, mood.value)

    @property
    def max_score(self) -> int:
        return max(self.love, self.sad, self.angry, self.laugh)

    def dominant(self) -> Mood:
        """Bucket chosen for this score"""
        top = self.max_score
        if top >= 2:
            for mood in RANKED_MOODS:
                if self.get(mood) == top:
                    return mood

        # 问句通常只给中性回应
        if self.has_question and top < 3:
            return Mood.NEUTRAL

        return Mood.NEUTRAL

    def to_dict(self) -> Dict:
        return {
            "love": self.love,
            "sad": self.sad,
            "angry": self.angry,
            "laugh": self.laugh,
            "exclamations": self.exclamations,
            "caps_words": self.caps_words,
            "has_question": self.has_question,
            "emoji_hits": dict(self.emoji_hits),
        }


class SentimentReactionEngine:
    """
    Five-bucket sentiment classifier

    Keywords are matched by substring containment, not word boundaries,
    so "mad" also hits inside "nomad".
    """

    def __init__(self, glyphs: Optional[Dict[Mood, str]] = None):
        self.glyphs = dict(GLYPHS)
        if glyphs:
            self.glyphs.update(glyphs)

    def score(self, text: str) -> SentimentScore:
        """Compute the bucket accumulators for a message"""
        result = SentimentScore()
        if not text:
            return result

        lowered = text.lower()

        for mood, (words, long_word) in KEYWORDS.items():
            for word in words:
                if word in lowered:
                    result.add(mood, 2 if len(word) > long_word else 1)

        result.exclamations = text.count("!")
        result.has_question = "?" in text
        # caps runs are counted on the original casing
        result.caps_words = len(_CAPS_RUN.findall(text))

        if result.exclamations:
            for mood in (Mood.LOVE, Mood.ANGRY, Mood.LAUGH):
                result.add(mood, result.exclamations)

        if result.caps_words:
            result.add(Mood.ANGRY, result.caps_words * 2)
            result.add(Mood.LOVE, result.caps_words)

        for mood, markers in EMOJI_MARKERS.items():
            hit = any(marker in lowered for marker in markers)
            result.emoji_hits[mood.value] = hit
            if hit:
                result.add(mood, EMOJI_BOOST)

        return result

    def analyze(self, text: str) -> Optional[Mood]:
        """Classify text into a mood; None when there is nothing to read"""
        if not text:
            return None
        return self.score(text).dominant()

    def classify(self, text: str) -> Optional[str]:
        """
        Pick the reaction glyph for a message

        Args:
            text: plain-text body

        Returns:
            One of the five glyphs, or None for empty text
        """
        mood = self.analyze(text)
        if mood is None:
            return None
        return self.glyphs[mood]
