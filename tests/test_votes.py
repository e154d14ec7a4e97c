"""
Tests for the vote ledger: upsert semantics, tallies, and vote events.
"""
import asyncio
from datetime import date, datetime, timezone

import pytest
import pytest_asyncio
from sqlalchemy import func, select

from fairway.models.outing import Outing
from fairway.models.participant import Participant
from fairway.models.plan_card import PlanCard
from fairway.models.vote import Vote, VoteDirection
from fairway.services.votes import (
    VoteEvent,
    VoteEventBroker,
    VoteTally,
    cast_vote,
    clear_vote,
    outing_tallies,
    tally,
    voter_choice,
    voter_choices,
)


def _card(outing_id, course, fit_score):
    return PlanCard(
        outing_id=outing_id,
        title=f"Golf at {course}",
        course_name=course,
        course_address=f"{course} address",
        time_window_start=datetime(2025, 6, 7, 8, tzinfo=timezone.utc),
        time_window_end=datetime(2025, 6, 7, 12, tzinfo=timezone.utc),
        fit_score=fit_score,
    )


@pytest_asyncio.fixture
async def cards(db, weekend_outing):
    plans = [
        _card(weekend_outing.id, "Oak Ridge Country Club", 70),
        _card(weekend_outing.id, "Pine Hollow Municipal", 92),
    ]
    db.add_all(plans)
    await db.commit()
    return plans


@pytest_asyncio.fixture
async def people(db, weekend_outing):
    res = await db.execute(
        select(Participant).where(Participant.outing_id == weekend_outing.id).order_by(Participant.id)
    )
    return {p.name: p for p in res.scalars().all()}


@pytest.fixture
def broker():
    return VoteEventBroker()


class Recorder:
    def __init__(self):
        self.events = []

    async def __call__(self, event):
        self.events.append(event)


async def _row_count(db, plan_card_id, participant_id):
    return (await db.execute(
        select(func.count(Vote.id)).where(
            Vote.plan_card_id == plan_card_id,
            Vote.participant_id == participant_id,
        )
    )).scalar()


@pytest.mark.asyncio
class TestCastVote:

    async def test_first_vote_counts(self, db, cards, people, broker):
        counts = await cast_vote(db, cards[0].id, people["Mike"].id, VoteDirection.UP, broker=broker)

        assert counts == VoteTally(up_count=1, down_count=0)
        assert await voter_choice(db, cards[0].id, people["Mike"].id) == "up"

    async def test_same_vote_twice_is_idempotent(self, db, cards, people, broker):
        card_id, mike = cards[0].id, people["Mike"].id
        first = await cast_vote(db, card_id, mike, VoteDirection.UP, broker=broker)
        second = await cast_vote(db, card_id, mike, VoteDirection.UP, broker=broker)

        assert first == second == VoteTally(up_count=1, down_count=0)
        assert await _row_count(db, card_id, mike) == 1

    async def test_switching_direction_overwrites(self, db, cards, people, broker):
        card_id = cards[0].id
        await cast_vote(db, card_id, people["Sarah"].id, VoteDirection.UP, broker=broker)
        await cast_vote(db, card_id, people["Mike"].id, VoteDirection.UP, broker=broker)

        counts = await cast_vote(db, card_id, people["Mike"].id, VoteDirection.DOWN, broker=broker)

        assert counts == VoteTally(up_count=1, down_count=1)
        assert await voter_choice(db, card_id, people["Mike"].id) == "down"
        assert await _row_count(db, card_id, people["Mike"].id) == 1

    async def test_string_direction_is_accepted(self, db, cards, people, broker):
        counts = await cast_vote(db, cards[0].id, people["Olivia"].id, "down", broker=broker)
        assert counts.down_count == 1

    async def test_votes_from_separate_sessions_keep_one_row(self, session_factory, cards, people, broker):
        card_id, mike = cards[0].id, people["Mike"].id
        directions = [VoteDirection.UP, VoteDirection.DOWN, VoteDirection.UP, VoteDirection.DOWN]

        for direction in directions:
            async with session_factory() as session:
                await cast_vote(session, card_id, mike, direction, broker=broker)

        async with session_factory() as session:
            assert await _row_count(session, card_id, mike) == 1
            assert await voter_choice(session, card_id, mike) == "down"
            assert await tally(session, card_id) == VoteTally(up_count=0, down_count=1)

    async def test_tallies_are_per_plan(self, db, cards, people, broker):
        await cast_vote(db, cards[0].id, people["Mike"].id, VoteDirection.UP, broker=broker)
        await cast_vote(db, cards[1].id, people["Mike"].id, VoteDirection.DOWN, broker=broker)

        assert await tally(db, cards[0].id) == VoteTally(up_count=1, down_count=0)
        assert await tally(db, cards[1].id) == VoteTally(up_count=0, down_count=1)

    async def test_unknown_plan_card(self, db, cards, people, broker):
        assert await cast_vote(db, 9999, people["Mike"].id, VoteDirection.UP, broker=broker) is None

    async def test_unknown_participant(self, db, cards, broker):
        assert await cast_vote(db, cards[0].id, 9999, VoteDirection.UP, broker=broker) is None

    async def test_participant_from_another_outing(self, db, cards, broker):
        other = Outing(
            title="Other Trip",
            date_range_start=date(2025, 7, 1),
            date_range_end=date(2025, 7, 2),
            deadline=datetime(2025, 6, 20, tzinfo=timezone.utc),
        )
        db.add(other)
        await db.flush()
        stranger = Participant(outing_id=other.id, name="Stranger")
        db.add(stranger)
        await db.commit()

        assert await cast_vote(db, cards[0].id, stranger.id, VoteDirection.UP, broker=broker) is None
        assert await tally(db, cards[0].id) == VoteTally()


@pytest.mark.asyncio
class TestReads:

    async def test_voter_choice_defaults_to_none(self, db, cards, people):
        assert await voter_choice(db, cards[0].id, people["Mike"].id) == "none"

    async def test_tally_of_unvoted_plan_is_zero(self, db, cards):
        assert await tally(db, cards[0].id) == VoteTally(up_count=0, down_count=0)

    async def test_outing_tallies_best_fit_first(self, db, weekend_outing, cards, people, broker):
        await cast_vote(db, cards[0].id, people["Mike"].id, VoteDirection.DOWN, broker=broker)
        await cast_vote(db, cards[1].id, people["Sarah"].id, VoteDirection.UP, broker=broker)

        tallies = await outing_tallies(db, weekend_outing.id)

        assert list(tallies) == [cards[1].id, cards[0].id]
        assert tallies[cards[1].id] == VoteTally(up_count=1, down_count=0)
        assert tallies[cards[0].id] == VoteTally(up_count=0, down_count=1)

    async def test_outing_tallies_without_plans(self, db, weekend_outing):
        assert await outing_tallies(db, weekend_outing.id) == {}


@pytest.mark.asyncio
class TestClearVote:

    async def test_clear_removes_the_vote(self, db, cards, people, broker):
        card_id, mike = cards[0].id, people["Mike"].id
        await cast_vote(db, card_id, mike, VoteDirection.UP, broker=broker)

        counts = await clear_vote(db, card_id, mike, broker=broker)

        assert counts == VoteTally(up_count=0, down_count=0)
        assert await voter_choice(db, card_id, mike) == "none"

    async def test_clear_without_vote_is_quiet(self, db, cards, people, broker):
        recorder = Recorder()
        broker.subscribe(cards[0].outing_id, recorder)

        counts = await clear_vote(db, cards[0].id, people["Mike"].id, broker=broker)

        assert counts == VoteTally()
        assert recorder.events == []

    async def test_clear_unknown_plan(self, db, cards, people, broker):
        assert await clear_vote(db, 9999, people["Mike"].id, broker=broker) is None


@pytest.mark.asyncio
class TestVoteEvents:

    async def test_upsert_and_delete_are_published(self, db, weekend_outing, cards, people, broker):
        recorder = Recorder()
        broker.subscribe(weekend_outing.id, recorder)
        card_id, mike = cards[0].id, people["Mike"].id

        await cast_vote(db, card_id, mike, VoteDirection.UP, broker=broker)
        await clear_vote(db, card_id, mike, broker=broker)

        assert [e.action for e in recorder.events] == ["upsert", "delete"]
        upsert, removal = recorder.events
        assert upsert.as_dict() == {
            "outing_id": weekend_outing.id,
            "plan_card_id": card_id,
            "participant_id": mike,
            "action": "upsert",
            "vote": "up",
            "up_count": 1,
            "down_count": 0,
        }
        assert removal.vote is None
        assert removal.as_dict()["vote"] == "none"
        assert removal.tally == VoteTally()

    async def test_event_sees_committed_vote(self, session_factory, weekend_outing, cards, people, broker):
        seen = []

        async def check_from_fresh_session(event):
            async with session_factory() as session:
                seen.append(await voter_choice(session, event.plan_card_id, event.participant_id))

        broker.subscribe(weekend_outing.id, check_from_fresh_session)
        async with session_factory() as session:
            await cast_vote(session, cards[0].id, people["Sarah"].id, VoteDirection.DOWN, broker=broker)

        assert seen == ["down"]

    async def test_other_outings_are_not_notified(self, db, weekend_outing, cards, people, broker):
        recorder = Recorder()
        broker.subscribe(weekend_outing.id + 1, recorder)

        await cast_vote(db, cards[0].id, people["Mike"].id, VoteDirection.UP, broker=broker)

        assert recorder.events == []

    async def test_failing_listener_is_dropped(self, db, weekend_outing, cards, people, broker):
        recorder = Recorder()

        async def broken(event):
            raise ConnectionError("socket closed")

        broker.subscribe(weekend_outing.id, broken)
        broker.subscribe(weekend_outing.id, recorder)

        counts = await cast_vote(db, cards[0].id, people["Mike"].id, VoteDirection.UP, broker=broker)

        assert counts.up_count == 1
        assert len(recorder.events) == 1
        assert broker.listener_count(weekend_outing.id) == 1


@pytest.mark.asyncio
class TestBrokerPublish:

    def _event(self, outing_id=1):
        return VoteEvent(
            outing_id=outing_id,
            plan_card_id=10,
            participant_id=20,
            action="upsert",
            vote=VoteDirection.UP,
            tally=VoteTally(up_count=1),
        )

    async def test_slow_listener_times_out_and_is_dropped(self):
        broker = VoteEventBroker(send_timeout=0.05)
        recorder = Recorder()

        async def stalled(event):
            await asyncio.sleep(10)

        broker.subscribe(1, stalled)
        broker.subscribe(1, recorder)

        loop = asyncio.get_running_loop()
        started = loop.time()
        await broker.publish(self._event())

        assert loop.time() - started < 5
        assert len(recorder.events) == 1
        assert broker.listener_count(1) == 1

    async def test_listeners_run_concurrently(self):
        broker = VoteEventBroker(send_timeout=5)
        both_started = asyncio.Event()
        started = []

        async def waits_for_peer(event):
            started.append(event)
            if len(started) == 2:
                both_started.set()
            await asyncio.wait_for(both_started.wait(), 1)

        broker.subscribe(1, waits_for_peer)
        broker.subscribe(1, waits_for_peer)
        await broker.publish(self._event())

        # sequential delivery would leave the first listener waiting until its timeout
        assert len(started) == 2
        assert broker.listener_count(1) == 2


@pytest.mark.asyncio
async def test_voter_choices_for_several_plans(db, cards, people, broker):
    mike = people["Mike"].id
    await cast_vote(db, cards[1].id, mike, VoteDirection.DOWN, broker=broker)

    choices = await voter_choices(db, mike, [cards[0].id, cards[1].id])

    assert choices == {cards[0].id: "none", cards[1].id: "down"}
    assert await voter_choices(db, mike, []) == {}


class TestBroker:

    def test_unsubscribe_forgets_empty_outings(self):
        broker = VoteEventBroker()
        recorder = Recorder()
        broker.subscribe(1, recorder)
        broker.unsubscribe(1, recorder)
        broker.unsubscribe(1, recorder)

        assert broker.listener_count(1) == 0
