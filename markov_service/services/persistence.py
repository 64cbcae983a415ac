"""
JSON snapshot store for the Markov chatter model.

Saves are debounced (growth threshold or cooldown + dirty flag) and atomic:
the payload goes to a temporary file in the same directory which is then
renamed over the snapshot, so the snapshot path never holds a partial file.
File I/O runs in a worker thread so the event loop keeps handling messages.
"""
from __future__ import annotations

import asyncio
import json
import logging
import os
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Union

from .markov import SNAPSHOT_VERSION, MarkovModel

logger = logging.getLogger(__name__)


class ModelPersistence:
    """Debounced, atomic snapshot writer/reader for a MarkovModel."""

    def __init__(
        self,
        file_path: Union[str, Path],
        growth_threshold: int = 50,
        cooldown_seconds: float = 300.0,
    ):
        """
        Args:
            file_path: Snapshot location
            growth_threshold: New keys since last save that force a write
            cooldown_seconds: Minimum time between writes of a dirty model
        """
        self.file_path = Path(file_path)
        self.growth_threshold = growth_threshold
        self.cooldown_seconds = cooldown_seconds

        self.last_save_size = 0
        self.last_save_time: Optional[float] = None
        self._dirty = False
        self._changes = 0
        self._saving = False

    @property
    def temp_path(self) -> Path:
        return self.file_path.with_name(self.file_path.name + ".tmp")

    @property
    def is_dirty(self) -> bool:
        return self._dirty

    @property
    def is_saving(self) -> bool:
        return self._saving

    def mark_dirty(self):
        self._dirty = True
        self._changes += 1

    def should_save(self, model: MarkovModel, force: bool = False) -> bool:
        if force:
            return True
        if len(model.chain) - self.last_save_size >= self.growth_threshold:
            return True
        if not self._dirty:
            return False
        if self.last_save_time is None:
            return True
        return time.monotonic() - self.last_save_time >= self.cooldown_seconds

    async def save(self, model: MarkovModel, force: bool = False) -> bool:
        """
        Snapshot the model if a save is due.

        Returns:
            False only when a write was attempted and failed; skipped saves return True
        """
        if not self.should_save(model, force):
            return True
        if self._saving:
            logger.info("[Snapshot] Save already in progress, skipping")
            return True

        self._saving = True
        try:
            # Serialize on the caller's thread so the snapshot is consistent
            size = len(model.chain)
            changes = self._changes
            payload = model.to_dict()
            payload["lastSaved"] = datetime.now(timezone.utc).isoformat()
            payload["version"] = SNAPSHOT_VERSION
            data = json.dumps(payload, indent=2)

            await asyncio.to_thread(self._write_atomic, data)
        except OSError as e:
            logger.error(f"[Snapshot] Failed to save markov chain to {self.file_path}: {e}")
            return False
        finally:
            self._saving = False

        growth = size - self.last_save_size
        self.last_save_size = size
        self.last_save_time = time.monotonic()
        # Training during the write keeps the store dirty
        if self._changes == changes:
            self._dirty = False
        logger.info(f"[Snapshot] Markov chain saved with {size} keys (growth: {growth})")
        return True

    def _write_atomic(self, data: str):
        self.file_path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.temp_path
        tmp.write_text(data, encoding="utf-8")
        self._commit(tmp)

    def _commit(self, tmp: Path):
        os.replace(tmp, self.file_path)

    async def load(self, model: MarkovModel) -> bool:
        """
        Populate model from the snapshot.

        Returns:
            True if a valid snapshot was loaded; False for cold start
        """
        try:
            raw = await asyncio.to_thread(self.file_path.read_text, encoding="utf-8")
        except FileNotFoundError:
            logger.info(f"[Snapshot] No markov chain file at {self.file_path}, starting fresh")
            return False
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"[Snapshot] Could not read {self.file_path}: {e}")
            return False

        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning(f"[Snapshot] Corrupt markov chain file {self.file_path}: {e}")
            return False

        if not isinstance(parsed, dict) or not parsed.get("order") or parsed.get("chain") is None:
            logger.warning("[Snapshot] Invalid markov chain data structure, starting fresh")
            return False

        try:
            model.load_dict(parsed)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logger.warning(f"[Snapshot] Invalid markov chain data: {e}")
            return False

        self.last_save_size = len(model.chain)
        logger.info(
            f"[Snapshot] Markov chain loaded with {len(model.chain)} keys "
            f"from {parsed.get('lastSaved', 'unknown')}"
        )
        return True

    async def read_stats(self) -> Optional[Dict[str, Any]]:
        """Summary of the on-disk snapshot, or None if missing/unreadable."""
        try:
            raw = await asyncio.to_thread(self.file_path.read_text, encoding="utf-8")
            parsed = json.loads(raw)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError):
            return None
        if not isinstance(parsed, dict):
            return None

        return {
            "chain_size": len(parsed.get("chain") or {}),
            "sentence_starters": len(parsed.get("sentenceStarters") or []),
            "sentence_enders": len(parsed.get("sentenceEnders") or []),
            "unique_words": len(parsed.get("wordFrequency") or {}),
            "last_saved": parsed.get("lastSaved"),
            "version": parsed.get("version"),
        }
