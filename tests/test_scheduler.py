"""
Tests for the spaced-repetition scheduler.
"""

from datetime import timedelta

import pytest

from core.models import utcnow
from services.review.ratings import Rating, parse_rating
from services.review.scheduler import compute_next, round_half_up
from utils.exceptions import NotFoundError, UnsupportedRatingError


class TestRatings:
    """Tests for the rating taxonomy."""

    @pytest.mark.parametrize("label,expected", [
        ("familiar", Rating.FAMILIAR),
        ("easy", Rating.FAMILIAR),
        ("熟悉", Rating.FAMILIAR),
        ("simple", Rating.SIMPLE),
        ("good", Rating.SIMPLE),
        ("ok", Rating.SIMPLE),
        ("normal", Rating.SIMPLE),
        ("简单", Rating.SIMPLE),
        ("unfamiliar", Rating.UNFAMILIAR),
        ("again", Rating.UNFAMILIAR),
        ("hard", Rating.UNFAMILIAR),
        ("fail", Rating.UNFAMILIAR),
        ("生词", Rating.UNFAMILIAR),
        ("  Easy ", Rating.FAMILIAR),
    ])
    def test_synonyms_map_to_buckets(self, label, expected):
        assert parse_rating(label) is expected

    @pytest.mark.parametrize("label", ["meh", "", None, "perfect"])
    def test_unknown_labels_rejected(self, label):
        with pytest.raises(UnsupportedRatingError):
            parse_rating(label)


class TestComputeNext:
    """Tests for the pure interval/easiness step."""

    def test_familiar_from_initial_hits_one_day_floor(self):
        step = compute_next(10, 2.5, Rating.FAMILIAR)
        assert step.interval_minutes == 1440
        assert step.easiness == pytest.approx(2.65)

    def test_familiar_grows_past_floor(self):
        step = compute_next(1440, 2.5, Rating.FAMILIAR)
        assert step.interval_minutes == round_half_up(1440 * 2.2)

    def test_simple_floor_and_growth(self):
        assert compute_next(10, 2.5, Rating.SIMPLE).interval_minutes == 720
        assert compute_next(1000, 2.5, Rating.SIMPLE).interval_minutes == 1400

    def test_unfamiliar_resets_interval(self):
        step = compute_next(5000, 2.5, Rating.UNFAMILIAR)
        assert step.interval_minutes == 10
        assert step.easiness == pytest.approx(2.2)

    def test_easiness_clamped_low(self):
        step = compute_next(10, 1.4, Rating.UNFAMILIAR)
        assert step.easiness == pytest.approx(1.3)

    def test_easiness_clamped_high(self):
        step = compute_next(10, 2.75, Rating.FAMILIAR)
        assert step.easiness == pytest.approx(2.8)

    def test_zero_previous_interval_treated_as_initial(self):
        assert compute_next(0, 2.5, Rating.SIMPLE).interval_minutes == 720

    def test_round_half_up(self):
        assert round_half_up(2.5) == 3
        assert round_half_up(2.4) == 2


class TestSchedulingEngine:
    """Tests for review persistence and ownership."""

    @pytest.mark.asyncio
    async def test_schedule_initial(self, scheduler, make_word, stats):
        word = await make_word("apple")
        now = utcnow()

        review = await scheduler.schedule_initial(word, now=now)

        assert review.interval_minutes == 10
        assert review.easiness == 2.5
        assert review.next_due_at == now + timedelta(minutes=10)

        summary = await stats.summarize(1, word.created_at.date(), word.created_at.date())
        assert summary[0].new_words == 1

    @pytest.mark.asyncio
    async def test_schedule_initial_idempotent(self, scheduler, make_word, stats):
        word = await make_word("apple")

        first = await scheduler.schedule_initial(word)
        second = await scheduler.schedule_initial(word)

        assert first.id == second.id
        day = word.created_at.date()
        summary = await stats.summarize(1, day, day)
        assert summary[0].new_words == 1

    @pytest.mark.asyncio
    async def test_familiar_answer(self, scheduler, store, make_word):
        word = await make_word("apple")
        now = utcnow()
        review = await scheduler.schedule_initial(word, now=now)

        outcome = await scheduler.record_result(1, review.id, "easy", now=now)

        assert outcome.outcome == "familiar"
        assert outcome.interval_minutes == 1440
        assert outcome.easiness == pytest.approx(2.65)
        assert outcome.next_due_at == now + timedelta(minutes=1440)

        history = await store.review_history(review.id)
        assert len(history) == 1
        assert history[0].outcome == "familiar"
        assert history[0].interval_minutes == 1440

    @pytest.mark.asyncio
    async def test_due_time_increases_for_positive_answers(self, scheduler, make_word):
        word = await make_word("apple")
        now = utcnow()
        review = await scheduler.schedule_initial(word, now=now)

        due = review.next_due_at
        for rating in ["simple", "familiar", "good", "easy"]:
            outcome = await scheduler.record_result(1, review.id, rating, now=now)
            assert outcome.next_due_at > due
            due = outcome.next_due_at

    @pytest.mark.asyncio
    async def test_synonyms_produce_identical_state(self, scheduler, make_word):
        now = utcnow()
        a = await scheduler.schedule_initial(await make_word("apple"), now=now)
        b = await scheduler.schedule_initial(await make_word("banana"), now=now)

        first = await scheduler.record_result(1, a.id, "again", now=now)
        second = await scheduler.record_result(1, b.id, "fail", now=now)

        assert first.interval_minutes == second.interval_minutes == 10
        assert first.easiness == pytest.approx(second.easiness)
        assert first.next_due_at == second.next_due_at

    @pytest.mark.asyncio
    async def test_each_answer_counted(self, scheduler, make_word, stats):
        word = await make_word("apple")
        now = utcnow()
        review = await scheduler.schedule_initial(word, now=now)

        await scheduler.record_result(1, review.id, "easy", now=now)
        await scheduler.record_result(1, review.id, "again", now=now)

        summary = await stats.summarize(1, now.date(), now.date())
        assert summary[0].reviews_completed == 2

    @pytest.mark.asyncio
    async def test_unknown_rating_leaves_review_untouched(self, scheduler, store, make_word):
        word = await make_word("apple")
        review = await scheduler.schedule_initial(word)

        with pytest.raises(UnsupportedRatingError):
            await scheduler.record_result(1, review.id, "meh")

        assert await store.review_history(review.id) == []

    @pytest.mark.asyncio
    async def test_failed_stat_update_rolls_back_answer(self, scheduler, store, stats, make_word, monkeypatch):
        word = await make_word("apple")
        now = utcnow()
        review = await scheduler.schedule_initial(word, now=now)
        before = (review.interval_minutes, review.easiness, review.next_due_at)

        async def broken_increment(*args, **kwargs):
            raise RuntimeError("stats table locked")

        monkeypatch.setattr(store, "increment_daily_stat", broken_increment)

        with pytest.raises(RuntimeError):
            await scheduler.record_result(1, review.id, "easy", now=now + timedelta(hours=1))

        reloaded = await store.get_review_for_word(word.id)
        assert (reloaded.interval_minutes, reloaded.easiness, reloaded.next_due_at) == before
        assert reloaded.outcome is None
        assert await store.review_history(review.id) == []

        summary = await stats.summarize(1, now.date() - timedelta(days=1), now.date() + timedelta(days=1))
        assert sum(row.reviews_completed for row in summary) == 0

    @pytest.mark.asyncio
    async def test_other_owner_gets_not_found(self, scheduler, make_word):
        word = await make_word("apple", owner_id=1)
        review = await scheduler.schedule_initial(word)

        with pytest.raises(NotFoundError):
            await scheduler.record_result(2, review.id, "easy")

    @pytest.mark.asyncio
    async def test_missing_review_not_found(self, scheduler):
        with pytest.raises(NotFoundError):
            await scheduler.record_result(1, 9999, "easy")


class TestFetchDue:
    """Tests for the due review query."""

    @pytest.mark.asyncio
    async def test_never_returns_future_reviews(self, scheduler, make_word):
        now = utcnow()
        await scheduler.schedule_initial(await make_word("apple"), now=now)

        assert await scheduler.fetch_due(1, now=now + timedelta(minutes=5)) == []
        due = await scheduler.fetch_due(1, now=now + timedelta(minutes=10))
        assert [item.lemma for item in due] == ["apple"]

    @pytest.mark.asyncio
    async def test_ordered_and_limited(self, scheduler, make_word):
        now = utcnow()
        await scheduler.schedule_initial(await make_word("late"), now=now)
        await scheduler.schedule_initial(await make_word("early"), now=now - timedelta(minutes=30))
        await scheduler.schedule_initial(await make_word("middle"), now=now - timedelta(minutes=15))

        later = now + timedelta(hours=1)
        due = await scheduler.fetch_due(1, limit=10, now=later)
        assert [item.lemma for item in due] == ["early", "middle", "late"]

        limited = await scheduler.fetch_due(1, limit=2, now=later)
        assert len(limited) == 2

    @pytest.mark.asyncio
    async def test_scoped_to_owner(self, scheduler, make_word):
        now = utcnow()
        await scheduler.schedule_initial(await make_word("apple", owner_id=2), now=now)

        assert await scheduler.fetch_due(1, now=now + timedelta(days=1)) == []
