"""
Markov Chatter Service Configuration
"""

from typing import List, Optional, Union
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # ===== Service =====
    SERVICE_NAME: str = Field(default="markov-chatter-service", env="SERVICE_NAME")  # type: ignore
    SERVICE_VERSION: str = Field(default="2.1.0", env="SERVICE_VERSION")  # type: ignore
    HOST: str = Field(default="0.0.0.0", env="HOST")  # type: ignore
    PORT: int = Field(default=8000, env="PORT")  # type: ignore
    LOG_LEVEL: str = Field(default="info", env="LOG_LEVEL")  # type: ignore
    DEBUG: bool = Field(default=False, env="DEBUG")  # type: ignore

    # ===== CORS =====
    CORS_ORIGINS: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:8080"], env="CORS_ORIGINS"  # type: ignore
    )

    # ===== Model =====
    MARKOV_ORDER: int = Field(default=4, env="MARKOV_ORDER")  # type: ignore
    MARKOV_RANDOM_SEED: Optional[int] = Field(default=None, env="MARKOV_RANDOM_SEED")  # type: ignore
    MARKOV_MAX_ITERATION_FACTOR: int = Field(default=10, env="MARKOV_MAX_ITERATION_FACTOR")  # type: ignore

    # Candidate selection
    MARKOV_FREQUENCY_WEIGHT: float = Field(default=0.3, env="MARKOV_FREQUENCY_WEIGHT")  # type: ignore
    MARKOV_CONTEXT_WEIGHT: float = Field(default=0.7, env="MARKOV_CONTEXT_WEIGHT")  # type: ignore
    MARKOV_TOP_K: int = Field(default=3, env="MARKOV_TOP_K")  # type: ignore

    # Repetition filters
    MARKOV_RECENT_NGRAM_WINDOW: int = Field(default=10, env="MARKOV_RECENT_NGRAM_WINDOW")  # type: ignore
    MARKOV_RECENT_WORD_WINDOW: int = Field(default=3, env="MARKOV_RECENT_WORD_WINDOW")  # type: ignore
    MARKOV_REPEAT_NGRAM_PASS_RATE: float = Field(default=0.1, env="MARKOV_REPEAT_NGRAM_PASS_RATE")  # type: ignore
    MARKOV_REPEAT_WORD_PASS_RATE: float = Field(default=0.3, env="MARKOV_REPEAT_WORD_PASS_RATE")  # type: ignore

    # Sentence segmentation
    MARKOV_END_NEAR_TARGET_RATIO: float = Field(default=0.8, env="MARKOV_END_NEAR_TARGET_RATIO")  # type: ignore
    MARKOV_END_NEAR_TARGET_PROBABILITY: float = Field(default=0.3, env="MARKOV_END_NEAR_TARGET_PROBABILITY")  # type: ignore
    MARKOV_END_AT_ENDER_PROBABILITY: float = Field(default=0.6, env="MARKOV_END_AT_ENDER_PROBABILITY")  # type: ignore
    MARKOV_LONG_SENTENCE_RATIO: float = Field(default=0.4, env="MARKOV_LONG_SENTENCE_RATIO")  # type: ignore
    MARKOV_LONG_SENTENCE_PROBABILITY: float = Field(default=0.1, env="MARKOV_LONG_SENTENCE_PROBABILITY")  # type: ignore

    # ===== Snapshot =====
    MARKOV_SNAPSHOT_PATH: str = Field(default="./data/markov-chain.json", env="MARKOV_SNAPSHOT_PATH")  # type: ignore
    MARKOV_SAVE_GROWTH_THRESHOLD: int = Field(default=50, env="MARKOV_SAVE_GROWTH_THRESHOLD")  # type: ignore
    MARKOV_SAVE_COOLDOWN_SECONDS: float = Field(default=300.0, env="MARKOV_SAVE_COOLDOWN_SECONDS")  # type: ignore
    MARKOV_AUTOSAVE_INTERVAL_SECONDS: float = Field(default=3600.0, env="MARKOV_AUTOSAVE_INTERVAL_SECONDS")  # type: ignore

    # ===== Chat =====
    # Bare JSON numbers are accepted; ChatterService compares them as strings
    MARKOV_CHANNEL_IDS: List[Union[int, str]] = Field(default=[], env="MARKOV_CHANNEL_IDS")  # type: ignore
    BOT_PREFIX: str = Field(default="!", env="BOT_PREFIX")  # type: ignore
    MARKOV_REPLY_PROBABILITY: float = Field(default=0.0033, env="MARKOV_REPLY_PROBABILITY")  # type: ignore
    MARKOV_REPLY_MIN_LENGTH: int = Field(default=25, env="MARKOV_REPLY_MIN_LENGTH")  # type: ignore
    MARKOV_REPLY_MAX_LENGTH: int = Field(default=75, env="MARKOV_REPLY_MAX_LENGTH")  # type: ignore
    MARKOV_MIN_REPLY_CHARS: int = Field(default=15, env="MARKOV_MIN_REPLY_CHARS")  # type: ignore

    # >>> pydantic v2 settings config <<<
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )


settings = Settings()
