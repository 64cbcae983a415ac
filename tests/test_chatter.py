"""
Tests for chat orchestration around the Markov model.
"""
import asyncio
import json

from markov_service.services.chatter import ChatMessage, ChatterService, GenerationResult
from markov_service.services.markov import MarkovModel
from markov_service.services.persistence import ModelPersistence


def _message(content: str, channel_id: str = "100", **kwargs) -> ChatMessage:
    return ChatMessage(content=content, channel_id=channel_id, **kwargs)


def _train_all(chatter: ChatterService, messages):
    for text in messages:
        chatter.train(text)


class TestTrain:
    """Test suite for ChatterService.train."""

    def test_train_marks_dirty(self, chatter, sample_messages):
        """Test training updates the model and flags the snapshot."""
        assert chatter.train(sample_messages[0])

        assert not chatter.model.is_empty
        assert chatter.persistence.is_dirty

    def test_short_text_not_trained(self, chatter):
        """Test text too short after cleanup is skipped."""
        assert not chatter.train("ok <@1>")

        assert chatter.model.is_empty
        assert not chatter.persistence.is_dirty


class TestObserve:
    """Test suite for ChatterService.observe."""

    def test_bot_messages_ignored(self, chatter):
        """Test bot authors neither train nor trigger replies."""
        trained, reply = chatter.observe(
            _message("I am a bot and this is a long message", author_is_bot=True)
        )

        assert (trained, reply) == (False, None)
        assert chatter.model.is_empty

    def test_commands_not_trained(self, chatter):
        """Test prefixed commands are not training data."""
        trained, _ = chatter.observe(_message("!play some long song name here", channel_id="5"))

        assert not trained
        assert chatter.model.is_empty

    def test_bot_mentions_not_trained(self, chatter):
        """Test messages addressed to the bot are not training data."""
        trained, _ = chatter.observe(
            _message("hey bot tell me something nice", channel_id="5", mentions_bot=True)
        )

        assert not trained

    def test_trains_outside_markov_channels(self, chatter):
        """Test any channel trains but only markov channels reply."""
        trained, reply = chatter.observe(
            _message("the quick brown fox jumps over the dog", channel_id="5")
        )

        assert trained
        assert reply is None

    def test_author_mapping_learned(self, chatter):
        """Test authors are remembered for mention rendering."""
        chatter.observe(_message("hello there", channel_id="5", author_id="42", author_name="Sam"))
        chatter.observe(_message("say hi to <@42> for me please", channel_id="5"))

        assert chatter.preprocessor.knows("42")
        assert any("@Sam" in key for key in chatter.model.chain)

    def test_reply_in_markov_channel(self, chatter, sample_messages):
        """Test a trained model replies when the trigger fires."""
        _train_all(chatter, sample_messages)

        trained, reply = chatter.observe(_message("what does everyone think of the update"))

        assert trained
        assert reply is not None
        assert reply.endswith(".")
        assert len(reply) > 15

    def test_no_reply_when_trigger_misses(self, chatter, sample_messages):
        """Test the reply probability gates generation."""
        _train_all(chatter, sample_messages)
        chatter.reply_probability = 0.0

        _, reply = chatter.observe(_message("what does everyone think of the update"))

        assert reply is None

    def test_ascii_art_skipped(self, chatter, sample_messages):
        """Test ASCII art never triggers a reply."""
        _train_all(chatter, sample_messages)
        art = "  /\\_/\\\n ( o.o )\n  > ^ <\n /|   |\\"

        _, reply = chatter.observe(_message(art))

        assert reply is None

    def test_empty_model_no_reply(self, chatter):
        """Test an untrained model never replies."""
        _, reply = chatter.observe(_message("lol"))

        assert reply is None


class TestGenerate:
    """Test suite for ChatterService.generate."""

    def test_prompt_found(self, chatter, sample_messages):
        """Test a matching prompt seeds generation."""
        _train_all(chatter, sample_messages)

        result = chatter.generate(prompt="patch", length=20)

        assert isinstance(result, GenerationResult)
        assert result.prompt_found
        assert "patch" in result.text.split(".")[0].lower()
        assert result.word_count == len(result.text.split())

    def test_prompt_not_found(self, chatter, sample_messages):
        """Test unknown prompts fall back to random generation."""
        _train_all(chatter, sample_messages)

        result = chatter.generate(prompt="zebra crossing", length=20)

        assert not result.prompt_found
        assert result.text

    def test_stats(self, chatter, sample_messages):
        """Test stats include model and service counters."""
        _train_all(chatter, sample_messages)
        chatter.set_user_mappings([("1", "Ann")])

        stats = chatter.stats()

        assert stats["chain_size"] == len(chatter.model.chain)
        assert stats["order"] == 2
        assert stats["known_users"] == 1
        assert stats["markov_channels"] == 1
        assert stats["dirty"] is True


class TestLifecycle:
    """Test snapshot loading, autosave and shutdown."""

    def test_start_cold(self, chatter):
        """Test start without a snapshot leaves the model empty."""
        assert asyncio.run(chatter.start()) is False
        assert chatter.model.is_empty

    def test_stop_force_saves(self, chatter, sample_messages, snapshot_path):
        """Test shutdown writes a snapshot that the next start restores."""
        _train_all(chatter, sample_messages)

        assert asyncio.run(chatter.stop())
        assert snapshot_path.exists()

        fresh = ChatterService(MarkovModel(order=2), ModelPersistence(snapshot_path))
        assert asyncio.run(fresh.start())
        assert fresh.model.chain == chatter.model.chain

    def test_autosave_loop(self, chatter, sample_messages, snapshot_path):
        """Test the autosave task writes dirty models and stops cleanly."""
        _train_all(chatter, sample_messages)

        async def run():
            await chatter.start(autosave_interval=0.01)
            await asyncio.sleep(0.1)
            saved_by_loop = snapshot_path.exists()
            await chatter.stop()
            return saved_by_loop

        assert asyncio.run(run())
        assert chatter._autosave_task is None
        assert json.loads(snapshot_path.read_text(encoding="utf-8"))["order"] == 2

    def test_from_settings(self, tmp_path):
        """Test construction from service settings."""
        from markov_service.config import Settings

        settings = Settings(
            MARKOV_ORDER=3,
            MARKOV_SNAPSHOT_PATH=str(tmp_path / "snap.json"),
            MARKOV_CHANNEL_IDS=["1", "2"],
            MARKOV_SAVE_GROWTH_THRESHOLD=7,
            MARKOV_RANDOM_SEED=9,
        )

        chatter = ChatterService.from_settings(settings)

        assert chatter.model.order == 3
        assert chatter.channel_ids == {"1", "2"}
        assert chatter.persistence.growth_threshold == 7
        assert chatter.persistence.file_path == tmp_path / "snap.json"

    def test_numeric_channel_ids_from_env(self, monkeypatch):
        """Test unquoted channel IDs in the environment match string channel IDs."""
        from markov_service.config import Settings

        monkeypatch.setenv("MARKOV_CHANNEL_IDS", '[1234, "5678"]')

        chatter = ChatterService.from_settings(Settings())

        assert chatter.channel_ids == {"1234", "5678"}
        chatter.reply_probability = 1.0
        trained, reply = chatter.observe(_message("nothing to learn from yet", channel_id="1234"))
        assert trained
        assert reply is not None
