"""
Markov chain chatter model (CPU-only).

Sliding-window n-gram model trained incrementally on chat messages.
Generation blends global and transition frequency when choosing the next
token, suppresses short-range repetition, and breaks output into sentences
using starters/enders observed during training.
State is JSON-friendly: see to_dict() / load_dict().
"""
from __future__ import annotations

import random
from collections import Counter, deque
from dataclasses import dataclass, field
from typing import Any, Deque, Dict, List, Optional, Set, Tuple

from .segmentation import SentenceSegmentationPolicy, split_sentences, tokenize
from .selector import CandidateSelector

SNAPSHOT_VERSION = "2.1"


@dataclass
class MarkovStats:
    """Summary of the trained model."""
    chain_size: int = 0
    unique_words: int = 0
    total_words: int = 0
    sentence_starters: int = 0
    sentence_enders: int = 0
    order: int = 0
    top_words: List[Tuple[str, int]] = field(default_factory=list)


class MarkovModel:
    """
    N-gram Markov model.

    Keys are N tokens joined by a single space; each key maps to the list of
    successors observed after it, duplicates included (duplicates are the
    frequency signal).
    """

    def __init__(
        self,
        order: int = 4,
        rng: Optional[random.Random] = None,
        max_iteration_factor: int = 10,
        frequency_weight: float = 0.3,
        context_weight: float = 0.7,
        top_k: int = 3,
        recent_ngram_window: int = 10,
        recent_word_window: int = 3,
        repeat_ngram_pass_rate: float = 0.1,
        repeat_word_pass_rate: float = 0.3,
        near_target_ratio: float = 0.8,
        near_target_probability: float = 0.3,
        ender_probability: float = 0.6,
        long_sentence_ratio: float = 0.4,
        long_sentence_probability: float = 0.1,
    ):
        if order < 1:
            raise ValueError("order must be >= 1")
        self.order = order
        self.rng = rng or random.Random()
        self.max_iteration_factor = max(1, max_iteration_factor)
        self.recent_ngram_window = recent_ngram_window
        self.recent_word_window = recent_word_window
        self.repeat_ngram_pass_rate = repeat_ngram_pass_rate
        self.repeat_word_pass_rate = repeat_word_pass_rate

        self.chain: Dict[str, List[str]] = {}
        self.sentence_starters: Set[str] = set()
        self.sentence_enders: Set[str] = set()
        self.word_frequency: Dict[str, int] = {}
        self.context_weights: Dict[str, int] = {}
        self._starter_cache: Optional[List[str]] = None

        self.selector = CandidateSelector(
            self.word_frequency,
            self.context_weights,
            rng=self.rng,
            frequency_weight=frequency_weight,
            context_weight=context_weight,
            top_k=top_k,
        )
        self.segmentation = SentenceSegmentationPolicy(
            self.sentence_enders,
            rng=self.rng,
            near_target_ratio=near_target_ratio,
            near_target_probability=near_target_probability,
            ender_probability=ender_probability,
            long_sentence_ratio=long_sentence_ratio,
            long_sentence_probability=long_sentence_probability,
        )

    @property
    def is_empty(self) -> bool:
        return not self.chain

    # --- training ---
    def train(self, text: str) -> None:
        if not isinstance(text, str):
            raise TypeError(f"text must be str, got {type(text).__name__}")
        if not text.strip():
            return

        for sentence in split_sentences(text):
            self._train_tokens(tokenize(sentence))

    def _train_tokens(self, tokens: List[str]) -> None:
        n = self.order
        if len(tokens) < n:
            return

        self.sentence_starters.add(" ".join(tokens[:n]))
        self.sentence_enders.add(" ".join(tokens[-n:]))

        for i in range(len(tokens) - n + 1):
            key = " ".join(tokens[i : i + n])
            successors = self.chain.setdefault(key, [])
            if i + n < len(tokens):
                nxt = tokens[i + n]
                successors.append(nxt)
                self.word_frequency[nxt] = self.word_frequency.get(nxt, 0) + 1
                transition = f"{key}|{nxt}"
                self.context_weights[transition] = self.context_weights.get(transition, 0) + 1

    # --- generation ---
    def generate(
        self,
        seed: Optional[str] = None,
        target_length: int = 50,
        max_iterations: Optional[int] = None,
    ) -> str:
        """
        Generate text from the trained chain.

        Args:
            seed: Existing key to start from; ignored if not a key
            target_length: Desired number of tokens (a target, not a guarantee)
            max_iterations: Hard loop cap; defaults to max_iteration_factor * target_length

        Returns:
            Sentences joined by ". " with a trailing period, or "" for an empty model
        """
        if seed is not None and not isinstance(seed, str):
            raise TypeError(f"seed must be str or None, got {type(seed).__name__}")
        if not isinstance(target_length, int) or target_length < 1:
            raise ValueError("target_length must be a positive integer")
        if self.is_empty:
            return ""

        cap = max_iterations if max_iterations is not None else target_length * self.max_iteration_factor

        key = self._start_key(seed)
        used_starters = {key}
        sentences: List[List[str]] = []
        current = key.split(" ")
        produced = len(current)
        recent_keys: Deque[str] = deque([key], maxlen=max(1, self.recent_ngram_window))

        iterations = 0
        while produced < target_length and iterations < cap:
            iterations += 1

            candidates = self._filter_candidates(self.chain.get(key) or [], current, recent_keys)
            if not candidates:
                # Dead end: close the sentence and restart from a fresh starter
                sentences.append(current)
                key = self._fresh_starter(used_starters)
                current = key.split(" ")
                produced += len(current)
                recent_keys.append(key)
                continue

            word = self.selector.select(candidates, key)
            current.append(word)
            produced += 1
            key = " ".join(current[-self.order :])
            recent_keys.append(key)

            if produced < target_length and self.segmentation.should_end_sentence(
                key, produced, len(current), target_length
            ):
                sentences.append(current)
                key = self._fresh_starter(used_starters)
                current = key.split(" ")
                produced += len(current)
                recent_keys.append(key)

        sentences.append(current)
        return ". ".join(" ".join(words) for words in sentences if words) + "."

    def _starters(self) -> List[str]:
        # Starters only grow between loads, so a length check detects staleness
        if self._starter_cache is None or len(self._starter_cache) != len(self.sentence_starters):
            self._starter_cache = sorted(self.sentence_starters)
        return self._starter_cache

    def _start_key(self, seed: Optional[str]) -> str:
        if seed:
            normalized = " ".join(seed.split())
            if normalized in self.chain:
                return normalized
        starters = self._starters()
        if starters:
            return self.rng.choice(starters)
        return self.rng.choice(list(self.chain))

    def _fresh_starter(self, used: Set[str]) -> str:
        """Random starter, preferring ones not used in this generation."""
        starters = self._starters()
        if not starters:
            key = self.rng.choice(list(self.chain))
        else:
            key = self.rng.choice(starters)
            if key in used:
                unused = [s for s in starters if s not in used]
                if unused:
                    key = self.rng.choice(unused)
        used.add(key)
        return key

    def _filter_candidates(
        self,
        successors: List[str],
        sentence: List[str],
        recent_keys: Deque[str],
    ) -> List[str]:
        if not successors:
            return []

        tail = self.order - 1
        prefix = sentence[-tail:] if tail > 0 else []
        recent_words = set(sentence[-self.recent_word_window :]) if self.recent_word_window > 0 else set()

        kept = []
        for word in successors:
            next_key = " ".join(prefix + [word])
            if next_key in recent_keys and self.rng.random() >= self.repeat_ngram_pass_rate:
                continue
            if word in recent_words and self.rng.random() >= self.repeat_word_pass_rate:
                continue
            kept.append(word)
        return kept

    # --- lookup / stats ---
    def find_key(self, prompt: str) -> Optional[str]:
        """First key containing prompt, case-insensitive."""
        needle = " ".join(prompt.split()).lower()
        if not needle:
            return None
        for key in self.chain:
            if needle in key.lower():
                return key
        return None

    def get_stats(self, top_n: int = 5) -> MarkovStats:
        common = Counter({w: c for w, c in self.word_frequency.items() if len(w) > 2})
        return MarkovStats(
            chain_size=len(self.chain),
            unique_words=len(self.word_frequency),
            total_words=sum(self.word_frequency.values()),
            sentence_starters=len(self.sentence_starters),
            sentence_enders=len(self.sentence_enders),
            order=self.order,
            top_words=common.most_common(top_n),
        )

    # --- persistence ---
    def to_dict(self) -> Dict[str, Any]:
        """Snapshot payload without the lastSaved/version envelope."""
        return {
            "order": self.order,
            "chain": {key: list(successors) for key, successors in self.chain.items()},
            "sentenceStarters": sorted(self.sentence_starters),
            "sentenceEnders": sorted(self.sentence_enders),
            "wordFrequency": dict(self.word_frequency),
            "contextWeights": dict(self.context_weights),
        }

    def load_dict(self, data: Dict[str, Any]) -> None:
        """
        Replace model state from a snapshot payload.

        Raises ValueError/TypeError on malformed payloads; the model is only
        modified once the whole payload converted cleanly.
        """
        order = data["order"]
        if isinstance(order, bool) or not isinstance(order, int) or order < 1:
            raise ValueError(f"invalid order: {order!r}")

        raw_chain = data["chain"]
        if not isinstance(raw_chain, dict):
            raise TypeError("chain must be an object")
        chain = {}
        for key, successors in raw_chain.items():
            if not isinstance(successors, list):
                raise TypeError(f"successors for {key!r} must be a list")
            chain[str(key)] = [str(s) for s in successors]

        starters = {str(s) for s in data.get("sentenceStarters") or []}
        enders = {str(s) for s in data.get("sentenceEnders") or []}
        frequency = {str(k): int(v) for k, v in (data.get("wordFrequency") or {}).items()}
        weights = {str(k): int(v) for k, v in (data.get("contextWeights") or {}).items()}

        # In-place so selector/segmentation keep pointing at live tables
        self.order = order
        self.chain.clear()
        self.chain.update(chain)
        self.sentence_starters.clear()
        self.sentence_starters.update(starters)
        self._starter_cache = None
        self.sentence_enders.clear()
        self.sentence_enders.update(enders)
        self.word_frequency.clear()
        self.word_frequency.update(frequency)
        self.context_weights.clear()
        self.context_weights.update(weights)


def build_model(settings, rng: Optional[random.Random] = None) -> MarkovModel:
    """Construct a MarkovModel from service settings."""
    if rng is None and settings.MARKOV_RANDOM_SEED is not None:
        rng = random.Random(settings.MARKOV_RANDOM_SEED)
    return MarkovModel(
        order=settings.MARKOV_ORDER,
        rng=rng,
        max_iteration_factor=settings.MARKOV_MAX_ITERATION_FACTOR,
        frequency_weight=settings.MARKOV_FREQUENCY_WEIGHT,
        context_weight=settings.MARKOV_CONTEXT_WEIGHT,
        top_k=settings.MARKOV_TOP_K,
        recent_ngram_window=settings.MARKOV_RECENT_NGRAM_WINDOW,
        recent_word_window=settings.MARKOV_RECENT_WORD_WINDOW,
        repeat_ngram_pass_rate=settings.MARKOV_REPEAT_NGRAM_PASS_RATE,
        repeat_word_pass_rate=settings.MARKOV_REPEAT_WORD_PASS_RATE,
        near_target_ratio=settings.MARKOV_END_NEAR_TARGET_RATIO,
        near_target_probability=settings.MARKOV_END_NEAR_TARGET_PROBABILITY,
        ender_probability=settings.MARKOV_END_AT_ENDER_PROBABILITY,
        long_sentence_ratio=settings.MARKOV_LONG_SENTENCE_RATIO,
        long_sentence_probability=settings.MARKOV_LONG_SENTENCE_PROBABILITY,
    )
