"""
Sentence segmentation for the Markov chatter model.

Training side: split raw chat text into sentence-like units and tokenize them.
Generation side: decide when a generated sentence should be closed so the
model can restart from a fresh sentence starter.
"""
from __future__ import annotations

import random
import re
from typing import List, Optional, Set

_SENTENCE_BREAK = re.compile(r"[.!?]+")
# Keep word characters, whitespace, apostrophes, hyphens and the @ of rendered mentions
_STRIP_PUNCTUATION = re.compile(r"[^\w\s'@-]")
_WHITESPACE = re.compile(r"\s+")


def split_sentences(text: str) -> List[str]:
    """
    Split text on sentence-terminating punctuation.

    Each fragment is stripped of punctuation (apostrophes and hyphens survive),
    whitespace-normalized, and dropped if empty.
    """
    sentences = []
    for fragment in _SENTENCE_BREAK.split(text):
        cleaned = _STRIP_PUNCTUATION.sub(" ", fragment)
        cleaned = _WHITESPACE.sub(" ", cleaned).strip()
        if cleaned:
            sentences.append(cleaned)
    return sentences


def tokenize(sentence: str) -> List[str]:
    return sentence.split()


class SentenceSegmentationPolicy:
    """
    Heuristic sentence breaker used during generation.

    Rules, first match wins:
    1. accumulated output is near the overall target: end at a known ender,
       or with a flat probability otherwise
    2. current key is a known sentence ender: end with high probability
    3. current sentence is getting long: end with low probability
    4. keep going
    """

    def __init__(
        self,
        sentence_enders: Set[str],
        rng: Optional[random.Random] = None,
        near_target_ratio: float = 0.8,
        near_target_probability: float = 0.3,
        ender_probability: float = 0.6,
        long_sentence_ratio: float = 0.4,
        long_sentence_probability: float = 0.1,
    ):
        self.sentence_enders = sentence_enders
        self.rng = rng or random.Random()
        self.near_target_ratio = near_target_ratio
        self.near_target_probability = near_target_probability
        self.ender_probability = ender_probability
        self.long_sentence_ratio = long_sentence_ratio
        self.long_sentence_probability = long_sentence_probability

    def should_end_sentence(
        self,
        current_key: str,
        accumulated_length: int,
        sentence_length: int,
        target_length: int,
    ) -> bool:
        """
        Args:
            current_key: The N-gram the generator will continue from
            accumulated_length: Tokens produced so far across all sentences
            sentence_length: Tokens in the sentence currently being built
            target_length: Overall target length of the generation
        """
        is_ender = current_key in self.sentence_enders

        if accumulated_length >= target_length * self.near_target_ratio:
            return is_ender or self.rng.random() < self.near_target_probability

        if is_ender:
            return self.rng.random() < self.ender_probability

        if sentence_length > target_length * self.long_sentence_ratio:
            return self.rng.random() < self.long_sentence_probability

        return False
