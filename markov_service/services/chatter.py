"""
Chat orchestration around the Markov model.

Owns the model, its snapshot store and the message preprocessing. One
instance is created at startup and handed to the HTTP layer through
app.state; nothing here is module-global.
"""
from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional, Tuple

from .markov import MarkovModel, build_model
from .persistence import ModelPersistence
from .text_cleaning import TextPreprocessor, looks_like_ascii_art

logger = logging.getLogger(__name__)


@dataclass
class ChatMessage:
    """Inbound channel message as forwarded by the bot."""
    content: str
    channel_id: str
    author_id: str = ""
    author_name: str = ""
    author_is_bot: bool = False
    mentions_bot: bool = False


@dataclass
class GenerationResult:
    text: str
    prompt_found: bool
    word_count: int


class ChatterService:
    """
    Trains on channel chatter and occasionally talks back.

    train()/generate() are synchronous and never touch the disk; snapshotting
    happens in start()/stop() and the autosave task.
    """

    def __init__(
        self,
        model: MarkovModel,
        persistence: ModelPersistence,
        preprocessor: Optional[TextPreprocessor] = None,
        channel_ids: Iterable[str] = (),
        bot_prefix: str = "!",
        reply_probability: float = 0.0033,
        reply_min_length: int = 25,
        reply_max_length: int = 75,
        min_reply_chars: int = 15,
        rng: Optional[random.Random] = None,
    ):
        self.model = model
        self.persistence = persistence
        self.preprocessor = preprocessor or TextPreprocessor()
        self.channel_ids = {str(c) for c in channel_ids}
        self.bot_prefix = bot_prefix
        self.reply_probability = reply_probability
        self.reply_min_length = reply_min_length
        self.reply_max_length = max(reply_min_length, reply_max_length)
        self.min_reply_chars = min_reply_chars
        self.rng = rng or model.rng
        self._autosave_task: Optional[asyncio.Task] = None

    @classmethod
    def from_settings(cls, settings) -> "ChatterService":
        model = build_model(settings)
        persistence = ModelPersistence(
            settings.MARKOV_SNAPSHOT_PATH,
            growth_threshold=settings.MARKOV_SAVE_GROWTH_THRESHOLD,
            cooldown_seconds=settings.MARKOV_SAVE_COOLDOWN_SECONDS,
        )
        return cls(
            model,
            persistence,
            channel_ids=settings.MARKOV_CHANNEL_IDS,
            bot_prefix=settings.BOT_PREFIX,
            reply_probability=settings.MARKOV_REPLY_PROBABILITY,
            reply_min_length=settings.MARKOV_REPLY_MIN_LENGTH,
            reply_max_length=settings.MARKOV_REPLY_MAX_LENGTH,
            min_reply_chars=settings.MARKOV_MIN_REPLY_CHARS,
        )

    # --- training / generation ---
    def train(self, text: str) -> bool:
        """Clean and train on one message. Returns False if nothing was trainable."""
        cleaned = self.preprocessor.clean(text)
        if not cleaned:
            return False
        self.model.train(cleaned)
        self.persistence.mark_dirty()
        return True

    def should_train(self, message: ChatMessage) -> bool:
        content = message.content
        return (
            len(content) > 10
            and not (self.bot_prefix and content.startswith(self.bot_prefix))
            and not message.mentions_bot
        )

    def observe(self, message: ChatMessage) -> Tuple[bool, Optional[str]]:
        """
        Handle one inbound message.

        Returns:
            (trained, reply) where reply is text to post back, or None
        """
        if message.author_is_bot:
            return False, None

        if message.author_id and not self.preprocessor.knows(message.author_id):
            self.preprocessor.set_user(message.author_id, message.author_name)

        trained = False
        if self.should_train(message):
            try:
                trained = self.train(message.content)
            except (TypeError, ValueError) as e:
                logger.error(f"[Markov] Training error: {e}")

        if str(message.channel_id) not in self.channel_ids:
            return trained, None
        if looks_like_ascii_art(message.content):
            return trained, None
        if self.rng.random() >= self.reply_probability:
            return trained, None

        target = self.rng.randint(self.reply_min_length, self.reply_max_length)
        text = self.preprocessor.strip_mentions(self.model.generate(None, target))
        if len(text.strip()) <= self.min_reply_chars:
            return trained, None

        logger.info(f"[Markov] Replying in channel {message.channel_id} ({len(text.split())} words)")
        return trained, text

    def generate(self, prompt: Optional[str] = None, length: int = 50) -> GenerationResult:
        """Generate text, starting from the first key that contains prompt if any."""
        seed = self.model.find_key(prompt) if prompt else None
        text = self.preprocessor.strip_mentions(self.model.generate(seed, length))
        return GenerationResult(
            text=text,
            prompt_found=seed is not None,
            word_count=len(text.split()),
        )

    def set_user_mappings(self, users: Iterable[Tuple[str, str]]) -> int:
        return self.preprocessor.set_users(users)

    def stats(self) -> Dict[str, Any]:
        stats = self.model.get_stats()
        return {
            "chain_size": stats.chain_size,
            "unique_words": stats.unique_words,
            "total_words": stats.total_words,
            "sentence_starters": stats.sentence_starters,
            "sentence_enders": stats.sentence_enders,
            "order": stats.order,
            "top_words": [{"word": w, "count": c} for w, c in stats.top_words],
            "known_users": len(self.preprocessor.user_mappings),
            "markov_channels": len(self.channel_ids),
            "dirty": self.persistence.is_dirty,
        }

    async def snapshot_stats(self) -> Optional[Dict[str, Any]]:
        return await self.persistence.read_stats()

    # --- lifecycle ---
    async def save(self, force: bool = False) -> bool:
        return await self.persistence.save(self.model, force=force)

    async def start(self, autosave_interval: Optional[float] = None) -> bool:
        """Load the snapshot and optionally start the autosave loop."""
        loaded = await self.persistence.load(self.model)
        if autosave_interval:
            self._autosave_task = asyncio.create_task(self.run_autosave(autosave_interval))
        return loaded

    async def run_autosave(self, interval: float):
        while True:
            await asyncio.sleep(interval)
            try:
                ok = await self.save()
            except Exception as e:
                logger.error(f"[Markov] Auto-save error, will retry next cycle: {e}", exc_info=True)
                continue
            if not ok:
                logger.warning("[Markov] Auto-save failed, will retry next cycle")

    async def stop(self) -> bool:
        """Cancel autosave and write a final snapshot."""
        if self._autosave_task is not None:
            self._autosave_task.cancel()
            try:
                await self._autosave_task
            except asyncio.CancelledError:
                pass
            self._autosave_task = None

        logger.info("[Markov] Saving markov chain before shutdown...")
        return await self.save(force=True)
