"""
Shared pytest fixtures for Markov chatter tests.
"""
import random
from pathlib import Path
from typing import List

import pytest

from markov_service.services.chatter import ChatterService
from markov_service.services.markov import MarkovModel
from markov_service.services.persistence import ModelPersistence


# Chat lines as they would arrive from a busy channel
SAMPLE_MESSAGES = [
    "The quick brown fox jumps over the lazy dog. The quick brown fox runs away!",
    "Did anyone see the patch notes for the new season? The patch notes look huge.",
    "I think the new map is way better than the old one, the old one was too open.",
    "Anyone up for a few games tonight? I can play after dinner tonight.",
    "The lazy dog sleeps all day and the quick brown fox keeps jumping over it.",
    "Steam sale starts tomorrow and I already know what I'm going to buy.",
    "That update broke my settings again, I had to redo all my keybinds.",
    "We should queue up after the update finishes downloading.",
]


class FixedRandom(random.Random):
    """Random whose random() always returns the same value."""

    def __init__(self, value: float):
        super().__init__(0)
        self.value = value

    def random(self):
        return self.value

    # Keeps choice()/randint() on the seeded bit generator
    def getrandbits(self, k):
        return super().getrandbits(k)


@pytest.fixture
def sample_messages() -> List[str]:
    """Sample chat messages for training."""
    return list(SAMPLE_MESSAGES)


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def trained_model(sample_messages, rng) -> MarkovModel:
    """Order-2 model trained on the sample messages."""
    model = MarkovModel(order=2, rng=rng)
    for message in sample_messages:
        model.train(message)
    return model


@pytest.fixture
def snapshot_path(tmp_path) -> Path:
    return tmp_path / "data" / "markov-chain.json"


@pytest.fixture
def persistence(snapshot_path) -> ModelPersistence:
    return ModelPersistence(snapshot_path, growth_threshold=50, cooldown_seconds=300)


@pytest.fixture
def chatter(snapshot_path, rng) -> ChatterService:
    """Chatter service with one markov channel and replies always on."""
    model = MarkovModel(order=2, rng=rng)
    return ChatterService(
        model,
        ModelPersistence(snapshot_path),
        channel_ids=["100"],
        reply_probability=1.0,
    )


@pytest.fixture
def fixed_rng():
    """Factory for a Random whose random() is pinned to a value."""
    return FixedRandom
