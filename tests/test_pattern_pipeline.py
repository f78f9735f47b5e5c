"""Tests for writing statistics, batch aggregation and the cached pattern analyzer."""

from datetime import datetime, timedelta, timezone
from pathlib import Path
import sys
from unittest.mock import AsyncMock, patch

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import asyncio

import numpy as np
import pytest

from tonedraft.config import PatternConfig
from tonedraft.errors import JSONContractError, LockContention, ProviderError, ProviderErrorKind
from tonedraft.locks import InProcessLeaseService, RedisLeaseService, hold, lease_key
from tonedraft.patterns.aggregation import (
    WeightedBatch,
    aggregate_batches,
    merge_negative_patterns,
    merge_response_patterns,
    merge_unique_expressions,
)
from tonedraft.patterns.analyzer import WritingPatternAnalyzer
from tonedraft.patterns.models import BatchPatternAnalysis, WritingPatterns
from tonedraft.patterns.statistics import (
    BRIEF_MULTI_LINE,
    MIXED,
    MULTI_PARAGRAPH,
    NO_GREETING,
    NO_VALEDICTION,
    SINGLE_LINE,
    classify_paragraph_structure,
    compute_statistics,
    count_line_breaks,
    example_sentences,
    extract_opening,
    extract_valediction,
    percentage_histogram,
    sentence_distribution,
    sentence_statistics,
    trimmed_mean,
)
from tonedraft.patterns.style_profile import StyleProfileBuilder
from tonedraft.store import InMemoryCorrespondenceStore, JsonProfileStore, StoredEmail
from tonedraft.vectors.clustering import StyleCluster


FIXED_NOW = datetime(2025, 6, 1, 9, 30, tzinfo=timezone.utc)

BATCH_PAYLOAD = {
    "negativePatterns": [{"description": "Never uses emojis", "confidence": 0.9}],
    "responsePatterns": {"immediate": 0.6, "contemplative": 0.4, "questionHandling": "answers inline"},
    "uniqueExpressions": [{"phrase": "Sounds good", "context": "agreement", "occurrenceRate": 0.3}],
}


def _sentence(words):
    return " ".join(["word"] * words) + "."


def _batch(count, negative=(), unique=(), immediate=0.5, contemplative=0.5, question_handling=""):
    return WeightedBatch(
        email_count=count,
        analysis=BatchPatternAnalysis.model_validate(
            {
                "negativePatterns": [{"description": desc, "confidence": conf} for desc, conf in negative],
                "responsePatterns": {
                    "immediate": immediate,
                    "contemplative": contemplative,
                    "questionHandling": question_handling,
                },
                "uniqueExpressions": [
                    {"phrase": phrase, "context": context, "occurrenceRate": rate} for phrase, context, rate in unique
                ],
            }
        ),
    )


class FakeJSONClient:
    """Stands in for the resilient model client; replays a script of payloads or errors."""

    def __init__(self, script=None):
        self.script = list(script or [])
        self.prompts = []

    async def generate_json(self, prompt, schema, options=None, deadline=None):
        self.prompts.append(prompt)
        item = self.script.pop(0) if self.script else BATCH_PAYLOAD
        if isinstance(item, Exception):
            raise item
        return schema.model_validate(item)


class TestSentenceStatistics:
    def test_distribution_of_five_sentences(self):
        distribution = sentence_distribution([3, 12, 30, 8, 15], short_max=10, long_min=25)

        assert distribution.short == pytest.approx(0.4)
        assert distribution.medium == pytest.approx(0.4)
        assert distribution.long == pytest.approx(0.2)

    def test_statistics_from_text(self):
        text = " ".join(_sentence(n) for n in (3, 12, 30, 8, 15))
        stats = sentence_statistics([text])

        assert stats.sentence_count == 5
        assert stats.avg_length == pytest.approx(13.6)
        assert stats.median_length == pytest.approx(12)
        assert stats.distribution.long == pytest.approx(0.2)
        assert (stats.min_length, stats.max_length) == (3, 30)

    def test_example_sentences_cover_each_length_bucket(self):
        text = " ".join(_sentence(n) for n in (3, 12, 30, 8, 15))
        stats = sentence_statistics([text])

        assert stats.examples == [_sentence(8), _sentence(15), _sentence(30)]

    def test_example_sentences_top_up_from_remaining(self):
        assert example_sentences(["Ok.", "Sounds fine.", "Sure."], [1, 2, 1]) == ["Sounds fine.", "Ok.", "Sure."]

    def test_trimmed_mean_drops_outliers(self):
        values = list(range(1, 20)) + [1000]
        assert trimmed_mean(values, 0.05) == pytest.approx(10.5)

    def test_empty_input(self):
        stats = sentence_statistics([])
        assert stats.sentence_count == 0
        assert stats.distribution.short == 0.0


class TestOpeningsAndValedictions:
    @pytest.mark.parametrize(
        "text, expected",
        [
            ("Hi Sarah, thanks for the update.\nMore here.", "Hi Sarah,"),
            ("\n\nGood morning team! Here is the plan.", "Good morning team!"),
            ("Quick question about the budget.", NO_GREETING),
            ("", NO_GREETING),
        ],
    )
    def test_extract_opening(self, text, expected):
        assert extract_opening(text) == expected

    @pytest.mark.parametrize(
        "text, expected",
        [
            ("See you then.\nThanks,\nAlex", "Thanks"),
            ("Attached.\nBest regards,\nAlex", "Best regards"),
            ("Noted.\nCheers!", "Cheers"),
            ("Thank you so much.\nThanks again,\nAlex", "Thank you"),
            ("no closing here", NO_VALEDICTION),
            ("Got it, see you Monday.\nSounds great, thanks!", "Thanks"),
            ("Will do. Talk soon\nAlex", "Talk soon"),
            ("Thanksgiving plans are set.", NO_VALEDICTION),
        ],
    )
    def test_extract_valediction(self, text, expected):
        assert extract_valediction(text) == expected

    def test_valediction_outside_closing_window_is_ignored(self):
        text = "Thanks for the note.\nLine two.\nLine three.\nLine four."
        assert extract_valediction(text) == NO_VALEDICTION


class TestParagraphStructure:
    @pytest.mark.parametrize(
        "text, expected",
        [
            ("Sounds good.", SINGLE_LINE),
            ("Hi Tom,\nSounds good.\nSee you then.\nThanks", BRIEF_MULTI_LINE),
            (
                "Hi Tom,\n\nPara one. More.\n\nPara two. More. Even more.\n\nPara three.\n\nBest,\nAnn",
                MULTI_PARAGRAPH,
            ),
            ("Para one. Two. Three.\nFour. Five. Six.", MIXED),
            ("Sounds good.\n\nThanks", SINGLE_LINE),
            ("Hi Tom,\n\nSounds good.\n\nSee you then.\n\nThanks", BRIEF_MULTI_LINE),
        ],
    )
    def test_classification(self, text, expected):
        assert classify_paragraph_structure(text) == expected

    @pytest.mark.parametrize("text, expected", [("", 0), ("one line", 0), ("a\n\n\nb\n", 1), ("a\nb\n \nc", 2)])
    def test_blank_lines_are_not_line_breaks(self, text, expected):
        assert count_line_breaks(text) == expected


class TestPercentageHistogram:
    def test_thirds_use_largest_remainder(self):
        assert percentage_histogram(["a", "b", "c"]) == [("a", 34), ("b", 33), ("c", 33)]

    def test_most_frequent_first(self):
        assert percentage_histogram(["Thanks", "Best", "Thanks"]) == [("Thanks", 67), ("Best", 33)]

    def test_missing_points_go_to_largest_remainders(self):
        labels = ["a"] * 2 + ["b"] * 3 + ["c"] * 2
        # 28.57, 42.86, 28.57 floor to 28, 42, 28; remainders favour b, then a
        assert percentage_histogram(labels) == [("b", 43), ("a", 29), ("c", 28)]

    @pytest.mark.parametrize(
        "counts",
        [(4, 4, 3), (2, 2, 2, 1, 1, 1, 1, 1), (1,) * 7, (5, 1), (1,) * 3],
    )
    def test_sums_to_exactly_one_hundred(self, counts):
        labels = [f"label-{idx}" for idx, count in enumerate(counts) for _ in range(count)]
        histogram = percentage_histogram(labels)

        assert sum(pct for _, pct in histogram) == 100
        assert all(isinstance(pct, int) for _, pct in histogram)

    def test_valediction_shares_sum_to_one_hundred(self):
        texts = ["Sure.\nThanks"] * 4 + ["Sure.\nBest"] * 4 + ["Sure.\nCheers"] * 3
        stats = compute_statistics(texts)

        assert [(entry.phrase, entry.percentage) for entry in stats.valediction] == [
            ("Thanks", 37),
            ("Best", 36),
            ("Cheers", 27),
        ]
        assert sum(entry.percentage for entry in stats.valediction) == 100

    def test_compute_statistics_histograms(self):
        texts = ["Hi A,\nok.\nThanks,\nB", "Hello there.\nBest,\nB", "Sure.", "Fine by me.\nCheers"]
        stats = compute_statistics(texts)

        for histogram in (stats.valediction, stats.opening_patterns, stats.paragraph_patterns):
            assert sum(entry.percentage for entry in histogram) == 100
        assert {entry.phrase for entry in stats.valediction} == {"Thanks", "Best", "Cheers", NO_VALEDICTION}


class TestBatchAggregation:
    def test_negative_patterns_deduplicated_and_filtered(self):
        batches = [
            _batch(10, negative=[("Avoid emojis", 0.8), ("Never uses exclamation marks", 0.6), ("No slang", 0.7)]),
            _batch(10, negative=[("avoid EMOJIS", 0.95), ("Skips small talk", 0.75)]),
        ]
        merged = merge_negative_patterns(batches, confidence_floor=0.7, limit=10)

        assert [(p.description, p.confidence) for p in merged] == [("avoid EMOJIS", 0.95), ("Skips small talk", 0.75)]

    def test_negative_patterns_limited(self):
        batches = [_batch(1, negative=[(f"pattern {idx}", 0.8 + idx / 100) for idx in range(15)])]
        merged = merge_negative_patterns(batches, limit=10)

        assert len(merged) == 10
        assert merged[0].description == "pattern 14"

    def test_unique_expressions_weighted_by_batch_size(self):
        batches = [
            _batch(10, unique=[("Sounds good", "agreement", 0.2)]),
            _batch(30, unique=[("sounds good", "scheduling", 0.4)]),
        ]
        merged = merge_unique_expressions(batches)

        assert len(merged) == 1
        assert merged[0].phrase == "Sounds good"
        assert merged[0].occurrence_rate == pytest.approx(0.35)
        assert merged[0].context == "scheduling"

    def test_unique_expression_context_notes_variation(self):
        batches = [
            _batch(10, unique=[("Sounds good", "agreement", 0.2)]),
            _batch(30, unique=[("sounds good", "scheduling", 0.4)]),
            _batch(10, unique=[("Sounds Good", "closing", 0.1)]),
        ]
        merged = merge_unique_expressions(batches)

        assert merged[0].occurrence_rate == pytest.approx(0.3)
        assert merged[0].context == "scheduling (used in 3 contexts)"

    def test_response_patterns_weighted_mean_and_mode(self):
        batches = [
            _batch(10, immediate=0.8, contemplative=0.2, question_handling="answers inline"),
            _batch(30, immediate=0.4, contemplative=0.6, question_handling="answers at the end"),
        ]
        merged = merge_response_patterns(batches)

        assert merged.immediate == pytest.approx(0.5)
        assert merged.contemplative == pytest.approx(0.5)
        assert merged.question_handling == "answers at the end"

    def test_aggregate_empty(self):
        result = aggregate_batches([])
        assert result.negative_patterns == []
        assert result.unique_expressions == []
        assert result.response_patterns.immediate == 0.0


@pytest.fixture
def corpus_store():
    store = InMemoryCorrespondenceStore()
    texts = [
        "Hi Sarah,\n\nSounds good, see you Friday.\n\nThanks,\nAlex",
        "Sure thing. I'll send it over.",
        "Hello Tom,\nAttached is the report.\nBest,\nAlex",
    ]
    for idx, text in enumerate(texts):
        store.add_email(
            StoredEmail(
                email_id=f"e{idx}",
                user_id="u1",
                text=text,
                recipient_address=f"person{idx}@example.com",
                relationship="colleague",
                sent_date=FIXED_NOW - timedelta(days=idx),
            )
        )
    return store


def _analyzer(client, store, tmp_path, leases=None, profiles=None, **config_overrides):
    config = PatternConfig(batch_size=2, lock_wait_seconds=0.01, profile_dir=tmp_path, **config_overrides)
    return WritingPatternAnalyzer(
        client=client,
        profiles=profiles or JsonProfileStore(tmp_path),
        leases=leases or InProcessLeaseService(),
        emails=store,
        config=config,
        clock=lambda: FIXED_NOW,
    )


class TestWritingPatternAnalyzer:
    """Cache-first computation guarded by a per-(user, relationship) lease."""

    def test_computes_on_miss_then_serves_cache(self, corpus_store, tmp_path):
        client = FakeJSONClient()
        analyzer = _analyzer(client, corpus_store, tmp_path)

        first = asyncio.run(analyzer.ensure_patterns("u1", "colleague", known_names=["Alex"]))
        second = asyncio.run(analyzer.ensure_patterns("u1", "colleague"))

        assert len(client.prompts) == 2
        assert first.email_count == 3
        assert first.last_calculated == FIXED_NOW
        assert second.last_calculated == FIXED_NOW
        assert [p.description for p in second.negative_patterns] == ["Never uses emojis"]
        assert second.unique_expressions[0].occurrence_rate == pytest.approx(0.3)

    def test_prompts_are_name_redacted(self, corpus_store, tmp_path):
        client = FakeJSONClient()
        analyzer = _analyzer(client, corpus_store, tmp_path)

        asyncio.run(analyzer.ensure_patterns("u1", "colleague", known_names=["Alex"]))

        joined = "\n".join(client.prompts)
        assert "Sarah" not in joined
        assert "Alex" not in joined
        assert "[NAME]" in joined

    def test_waits_for_other_worker_and_uses_its_result(self, corpus_store, tmp_path):
        profiles = JsonProfileStore(tmp_path)
        finished = WritingPatterns(email_count=7, last_calculated=FIXED_NOW).to_dict()

        class BusyLeases:
            async def acquire(self, key, wait=0.0):
                profiles.save_patterns("u1", "colleague", finished)
                return False

            async def release(self, key):
                raise AssertionError("lease was never acquired")

        client = FakeJSONClient()
        analyzer = _analyzer(client, corpus_store, tmp_path, leases=BusyLeases(), profiles=profiles)

        patterns = asyncio.run(analyzer.ensure_patterns("u1", "colleague"))

        assert patterns.email_count == 7
        assert client.prompts == []

    def test_rechecks_cache_once_lease_is_granted(self, corpus_store, tmp_path):
        profiles = JsonProfileStore(tmp_path)
        finished = WritingPatterns(email_count=9, last_calculated=FIXED_NOW).to_dict()
        released = []

        class LateGrantLeases:
            async def acquire(self, key, wait=0.0):
                # the previous holder stored its result and released just before this grant
                profiles.save_patterns("u1", "colleague", finished)
                return True

            async def release(self, key):
                released.append(key)

        client = FakeJSONClient()
        analyzer = _analyzer(client, corpus_store, tmp_path, leases=LateGrantLeases(), profiles=profiles)

        patterns = asyncio.run(analyzer.ensure_patterns("u1", "colleague"))

        assert patterns.email_count == 9
        assert client.prompts == []
        assert released == [lease_key("u1", "colleague")]

    def test_computes_anyway_when_other_worker_never_finishes(self, corpus_store, tmp_path):
        leases = InProcessLeaseService()
        key = lease_key("u1", "colleague")
        asyncio.run(leases.acquire(key))
        client = FakeJSONClient()
        analyzer = _analyzer(client, corpus_store, tmp_path, leases=leases)

        patterns = asyncio.run(analyzer.ensure_patterns("u1", "colleague"))

        assert patterns.email_count == 3
        assert leases.is_held(key)

    def test_lease_released_when_analysis_fails(self, corpus_store, tmp_path):
        leases = InProcessLeaseService()
        client = FakeJSONClient([ProviderError(ProviderErrorKind.INVALID_CREDENTIALS, "bad key")])
        analyzer = _analyzer(client, corpus_store, tmp_path, leases=leases)

        with pytest.raises(ProviderError):
            asyncio.run(analyzer.ensure_patterns("u1", "colleague"))

        assert not leases.is_held(lease_key("u1", "colleague"))

    def test_failed_batch_is_skipped(self, corpus_store, tmp_path):
        client = FakeJSONClient([JSONContractError("bad json")])
        analyzer = _analyzer(client, corpus_store, tmp_path)

        patterns = asyncio.run(analyzer.ensure_patterns("u1", "colleague"))

        assert len(client.prompts) == 2
        assert patterns.email_count == 3
        assert [p.description for p in patterns.negative_patterns] == ["Never uses emojis"]

    def test_all_batches_failing_raises(self, corpus_store, tmp_path):
        client = FakeJSONClient([JSONContractError("bad"), JSONContractError("worse")])
        analyzer = _analyzer(client, corpus_store, tmp_path)

        with pytest.raises(JSONContractError):
            asyncio.run(analyzer.ensure_patterns("u1", "colleague"))
        assert analyzer.load_patterns("u1", "colleague") is None

    def test_refresh_raises_lock_contention(self, corpus_store, tmp_path):
        leases = InProcessLeaseService()
        key = lease_key("u1", "colleague")
        asyncio.run(leases.acquire(key))
        analyzer = _analyzer(FakeJSONClient(), corpus_store, tmp_path, leases=leases)

        with pytest.raises(LockContention) as excinfo:
            asyncio.run(analyzer.refresh_patterns("u1", "colleague"))
        assert excinfo.value.key == key

    def test_refresh_recomputes_over_cache(self, corpus_store, tmp_path):
        client = FakeJSONClient()
        analyzer = _analyzer(client, corpus_store, tmp_path)

        asyncio.run(analyzer.ensure_patterns("u1", "colleague"))
        asyncio.run(analyzer.refresh_patterns("u1", "colleague"))

        assert len(client.prompts) == 4

    def test_empty_corpus_returns_none_without_caching(self, tmp_path):
        analyzer = _analyzer(FakeJSONClient(), InMemoryCorrespondenceStore(), tmp_path)

        assert asyncio.run(analyzer.ensure_patterns("u1", "colleague")) is None
        assert analyzer.load_patterns("u1", "colleague") is None

    def test_aggregate_target_covers_every_relationship(self, corpus_store, tmp_path):
        analyzer = _analyzer(FakeJSONClient(), corpus_store, tmp_path)

        patterns = asyncio.run(analyzer.ensure_patterns("u1"))

        assert patterns.email_count == 3
        assert analyzer.load_patterns("u1") is not None

    def test_clear_patterns(self, corpus_store, tmp_path):
        analyzer = _analyzer(FakeJSONClient(), corpus_store, tmp_path)
        asyncio.run(analyzer.ensure_patterns("u1", "colleague"))
        asyncio.run(analyzer.ensure_patterns("u1"))

        assert analyzer.clear_patterns("u1", "colleague") == 1
        assert analyzer.load_patterns("u1", "colleague") is None
        assert analyzer.clear_patterns("u1") == 1
        assert analyzer.load_patterns("u1") is None


class TestLeases:
    def test_in_process_leases_are_not_reentrant(self):
        leases = InProcessLeaseService()

        assert asyncio.run(leases.acquire(1)) is True
        assert asyncio.run(leases.acquire(1)) is False
        asyncio.run(leases.release(1))
        assert asyncio.run(leases.acquire(1)) is True

    def test_waiting_acquire_succeeds_after_release(self):
        leases = InProcessLeaseService()

        async def scenario():
            await leases.acquire(5)

            async def release_later():
                await asyncio.sleep(0.05)
                await leases.release(5)

            releaser = asyncio.create_task(release_later())
            acquired = await leases.acquire(5, wait=1.0)
            await releaser
            return acquired

        assert asyncio.run(scenario()) is True

    def test_hold_releases_on_exception(self):
        leases = InProcessLeaseService()

        async def scenario():
            async with hold(leases, 9) as acquired:
                assert acquired
                raise ValueError("boom")

        with pytest.raises(ValueError):
            asyncio.run(scenario())
        assert not leases.is_held(9)

    def test_lease_key_is_stable_and_positive(self):
        key = lease_key("u1", "colleague")

        assert key == lease_key("u1", "colleague")
        assert key != lease_key("u1", "friend")
        assert 0 <= key < 2**63


class TestRedisLeaseService:
    """The Redis client is mocked; only the command shapes are checked."""

    @patch("tonedraft.locks.redis.from_url")
    def test_acquire_sets_token_and_release_checks_it(self, mock_from_url):
        client = mock_from_url.return_value
        client.set = AsyncMock(return_value=True)
        client.eval = AsyncMock(return_value=1)
        leases = RedisLeaseService("redis://localhost:6379/0", ttl_seconds=5)

        assert asyncio.run(leases.acquire(42)) is True
        args, kwargs = client.set.await_args
        assert args[0] == "tonedraft:lease:42"
        assert kwargs == {"nx": True, "px": 5000}

        asyncio.run(leases.release(42))
        assert client.eval.await_args.args[1:] == (1, "tonedraft:lease:42", args[1])
        mock_from_url.assert_called_once_with("redis://localhost:6379/0", decode_responses=True)

    @patch("tonedraft.locks.redis.from_url")
    def test_busy_lease_is_not_released(self, mock_from_url):
        client = mock_from_url.return_value
        client.set = AsyncMock(return_value=None)
        client.eval = AsyncMock()
        leases = RedisLeaseService("redis://localhost:6379/0")

        assert asyncio.run(leases.acquire(7)) is False
        asyncio.run(leases.release(7))
        client.eval.assert_not_awaited()


class TestJsonProfileStore:
    def test_round_trip_and_clear(self, tmp_path):
        store = JsonProfileStore(tmp_path / "profiles")
        store.save_patterns("user/1", "colleague", {"email_count": 3})
        store.save_patterns("user/1", "aggregate", {"email_count": 9})

        assert store.load_patterns("user/1", "colleague") == {"email_count": 3}
        assert store.load_patterns("user/1", "friend") is None
        assert store.clear_patterns("user/1") == 2
        assert store.load_patterns("user/1", "aggregate") is None

    def test_corrupt_file_is_treated_as_empty(self, tmp_path):
        store = JsonProfileStore(tmp_path)
        store.save_patterns("u1", "friend", {"email_count": 4})
        (tmp_path / "patterns_u1" / "colleague.json").write_text("{not json", encoding="utf-8")

        assert store.load_patterns("u1", "colleague") is None
        assert store.load_patterns("u1", "friend") == {"email_count": 4}

    def test_writers_of_different_relationships_do_not_clobber_each_other(self, tmp_path):
        worker_a = JsonProfileStore(tmp_path)
        worker_b = JsonProfileStore(tmp_path)

        worker_a.save_patterns("u1", "friend", {"email_count": 1})
        worker_b.save_patterns("u1", "colleague", {"email_count": 2})
        worker_a.save_patterns("u1", "friend", {"email_count": 3})

        assert worker_b.load_patterns("u1", "friend") == {"email_count": 3}
        assert worker_a.load_patterns("u1", "colleague") == {"email_count": 2}

    def test_failed_write_keeps_previous_blob(self, tmp_path):
        store = JsonProfileStore(tmp_path)
        store.save_patterns("u1", "colleague", {"email_count": 3})

        with patch("tonedraft.store.json.dump", side_effect=OSError("disk full")):
            with pytest.raises(OSError):
                store.save_patterns("u1", "colleague", {"email_count": 5})

        assert store.load_patterns("u1", "colleague") == {"email_count": 3}
        assert [path.name for path in (tmp_path / "patterns_u1").iterdir()] == ["colleague.json"]


class TestStyleProfileBuilder:
    def test_profile_from_clusters_and_corpus(self, corpus_store):
        clusters = [
            StyleCluster(cluster_id=0, name="casual", centroid=np.array([1.0, 0.0]), member_ids=["e0", "e1"], cohesion=0.9),
            StyleCluster(cluster_id=1, name="formal", centroid=np.array([0.0, 1.0]), member_ids=["e2"], cohesion=0.7),
        ]
        asyncio.run(corpus_store.save_clusters("u1", "colleague", clusters))

        profile = asyncio.run(StyleProfileBuilder(corpus_store, corpus_store).build("u1", "colleague"))

        assert profile.dominant_style == "casual"
        assert profile.style_shares["casual"] == pytest.approx(200 / 3)
        assert profile.avg_cohesion == pytest.approx(0.8)
        assert profile.sample_size == 3
        assert any(line.startswith("Dominant style: casual") for line in profile.to_prompt_lines())

    def test_no_data_gives_no_profile(self):
        store = InMemoryCorrespondenceStore()
        assert asyncio.run(StyleProfileBuilder(store, store).build("u1", "colleague")) is None
