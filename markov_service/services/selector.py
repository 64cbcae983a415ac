"""
Weighted next-token selection for the Markov chatter model.

Blends global word frequency with the frequency of the specific transition,
keeps the best few candidates and samples among them proportionally to score.
Sampling instead of arg-max keeps the output from looping deterministically.
"""
from __future__ import annotations

import math
import random
from typing import Dict, List, Optional, Tuple


class CandidateSelector:
    """Pick one successor token out of a candidate list."""

    def __init__(
        self,
        word_frequency: Dict[str, int],
        context_weights: Dict[str, int],
        rng: Optional[random.Random] = None,
        frequency_weight: float = 0.3,
        context_weight: float = 0.7,
        top_k: int = 3,
    ):
        """
        Args:
            word_frequency: token -> count table owned by the model
            context_weights: "<key>|<token>" -> count table owned by the model
            rng: Random source (shared with the model)
            frequency_weight: Weight of log global frequency in the score
            context_weight: Weight of log transition frequency in the score
            top_k: Number of best-scored candidates kept for sampling
        """
        self.word_frequency = word_frequency
        self.context_weights = context_weights
        self.rng = rng or random.Random()
        self.frequency_weight = frequency_weight
        self.context_weight = context_weight
        self.top_k = max(1, top_k)

    def score(self, word: str, key: str) -> float:
        frequency = self.word_frequency.get(word, 0)
        transitions = self.context_weights.get(f"{key}|{word}", 0)
        return (
            self.frequency_weight * math.log(frequency + 1)
            + self.context_weight * math.log(transitions + 1)
        )

    def rank(self, candidates: List[str], key: str) -> List[Tuple[str, float]]:
        """Unique candidates with scores, best first (ties keep first-seen order)."""
        unique = list(dict.fromkeys(candidates))
        scored = [(word, self.score(word, key)) for word in unique]
        scored.sort(key=lambda item: item[1], reverse=True)
        return scored

    def select(self, candidates: List[str], key: str) -> str:
        if not candidates:
            raise ValueError("candidates must not be empty")
        if len(candidates) == 1:
            return candidates[0]

        top = self.rank(candidates, key)[: self.top_k]
        total = sum(weight for _, weight in top)
        if total <= 0:
            return self.rng.choice(top)[0]

        r = self.rng.random() * total
        cum = 0.0
        for word, weight in top:
            cum += weight
            if r <= cum:
                return word
        return top[-1][0]
