"""
Tests for the service layer.

The backend client is replaced by an AsyncMock with the BackendClient spec,
so these cover the query shapes each operation sends and how results and
failures are turned into models and ScoutErrors.
"""

import asyncio
import logging
from datetime import date, datetime, timezone
from unittest.mock import AsyncMock

import httpx
import pytest

from talent_scout.backend import BackendClient, BackendError
from talent_scout.core.errors import (
    AuthenticationError,
    ExhaustedRetriesError,
    NotFoundError,
    ValidationError,
)
from talent_scout.core.models import (
    Achievement,
    Player,
    SearchFilters,
    Video,
    age_from_birth_date,
)
from talent_scout.core.types import PerformancePeriod, SortBy, TrialStatus, UserRole
from talent_scout.services import (
    AuthService,
    MessageService,
    PlayerService,
    TrialService,
    to_embed_url,
)
from talent_scout.services.players import period_start


@pytest.fixture
def backend():
    return AsyncMock(spec=BackendClient)


def stats(**overrides):
    values = {
        "pace": 50,
        "shooting": 50,
        "passing": 50,
        "dribbling": 50,
        "defending": 50,
        "physical": 50,
    }
    values.update(overrides)
    return values


def candidate(player_id, name, **rating_overrides):
    return {
        "id": player_id,
        "profiles": {"full_name": name},
        "position": "Forward",
        "location": "Lisbon",
        "birth_date": "2000-06-01",
        "stats": stats(**rating_overrides),
        "verified": False,
    }


# =============================================================================
# Helpers
# =============================================================================


class TestEmbedUrl:
    @pytest.mark.parametrize(
        "url, expected",
        [
            ("https://www.youtube.com/watch?v=abc123", "https://www.youtube.com/embed/abc123"),
            ("https://youtube.com/watch?v=abc123&t=42", "https://www.youtube.com/embed/abc123"),
            ("https://youtu.be/abc123", "https://www.youtube.com/embed/abc123"),
            ("https://vimeo.com/76979871", "https://player.vimeo.com/video/76979871"),
            ("https://example.com/clip.mp4", "https://example.com/clip.mp4"),
        ],
    )
    def test_conversion(self, url, expected):
        assert to_embed_url(url) == expected

    def test_youtube_without_video_id_unchanged(self):
        assert to_embed_url("https://www.youtube.com/channel/xyz") == "https://www.youtube.com/channel/xyz"


class TestPeriodStart:
    def test_week(self):
        now = datetime(2024, 3, 10, 12, tzinfo=timezone.utc)
        assert period_start(PerformancePeriod.week, now) == datetime(2024, 3, 3, 12, tzinfo=timezone.utc)

    def test_month_clamps_to_shorter_month(self):
        now = datetime(2024, 3, 31, tzinfo=timezone.utc)
        assert period_start(PerformancePeriod.month, now) == datetime(2024, 2, 29, tzinfo=timezone.utc)

    def test_month_wraps_year(self):
        now = datetime(2024, 1, 15, tzinfo=timezone.utc)
        assert period_start("month", now) == datetime(2023, 12, 15, tzinfo=timezone.utc)

    def test_year_from_leap_day(self):
        now = datetime(2024, 2, 29, tzinfo=timezone.utc)
        assert period_start(PerformancePeriod.year, now) == datetime(2023, 2, 28, tzinfo=timezone.utc)


class TestAge:
    def test_year_subtraction_ignores_birthday(self):
        # Birthday not reached yet, still counted
        assert age_from_birth_date(date(2000, 12, 31), today=date(2024, 1, 1)) == 24

    def test_iso_string(self):
        assert age_from_birth_date("2004-05-06T00:00:00", today=date(2024, 1, 1)) == 20

    def test_missing_is_zero(self):
        assert age_from_birth_date(None) == 0

    def test_player_row_flattens_profile(self):
        player = Player.from_row(
            {
                "id": "p1",
                "birth_date": "2001-02-03",
                "stats": None,
                "profiles": {"full_name": "Ana Silva", "email": "ana@example.com", "role": "player"},
            }
        )
        assert player.full_name == "Ana Silva"
        assert player.email == "ana@example.com"
        assert player.stats == {}
        assert player.age == date.today().year - 2001


# =============================================================================
# Players
# =============================================================================


class TestSimilarPlayers:
    async def test_returns_top_three_by_similarity(self, backend, fast_policy):
        backend.select.side_effect = [
            [{"position": "Forward", "stats": stats()}],
            [
                candidate("p-a", "A", pace=60),
                candidate("p-b", "B", pace=80),
                candidate("p-c", "C"),
                candidate("p-d", "D", pace=100, shooting=0),
                candidate("p-e", "E", shooting=70),
            ],
        ]
        service = PlayerService(backend, fast_policy)

        result = await service.get_similar_players("ref", access_token="tok")

        assert [r.player_id for r in result] == ["p-c", "p-a", "p-e"]
        assert [r.player_name for r in result] == ["C", "A", "E"]
        assert result[0].similarity_score == 1.0
        assert result[0].player_position == "Forward"

        reference_call, candidates_call = backend.select.await_args_list
        assert reference_call.kwargs["filters"] == {"id": "eq.ref"}
        assert candidates_call.kwargs["filters"] == {
            "position": "eq.Forward",
            "id": "neq.ref",
        }
        assert candidates_call.kwargs["limit"] == 10
        assert candidates_call.kwargs["access_token"] == "tok"

    async def test_candidate_pool_size(self, backend, fast_policy):
        backend.select.side_effect = [[{"position": "Midfielder", "stats": stats()}], []]
        service = PlayerService(backend, fast_policy, candidate_pool=25)

        assert await service.get_similar_players("ref") == []
        assert backend.select.await_args_list[1].kwargs["limit"] == 25

    async def test_unknown_player(self, backend, fast_policy):
        backend.select.return_value = []
        service = PlayerService(backend, fast_policy)

        with pytest.raises(NotFoundError) as exc_info:
            await service.get_similar_players("missing")

        assert exc_info.value.code == "PGRST116"
        assert backend.select.await_count == 1

    async def test_rejects_non_positive_limit(self, backend, fast_policy):
        service = PlayerService(backend, fast_policy)
        with pytest.raises(ValidationError):
            await service.get_similar_players("ref", limit=0)
        backend.select.assert_not_awaited()

    async def test_transient_failure_retried(self, backend, fast_policy):
        backend.select.side_effect = [
            BackendError("timeout", status_code=504),
            [{"position": "Forward", "stats": stats()}],
            [candidate("p-a", "A")],
        ]
        service = PlayerService(backend, fast_policy)

        result = await service.get_similar_players("ref")

        assert [r.player_id for r in result] == ["p-a"]
        assert backend.select.await_count == 3

    async def test_exhausted_retries(self, backend, fast_policy):
        backend.select.side_effect = BackendError("down", status_code=503)
        service = PlayerService(backend, fast_policy)

        with pytest.raises(ExhaustedRetriesError):
            await service.get_similar_players("ref")

        assert backend.select.await_count == 3

    async def test_expired_session_not_retried(self, backend, fast_policy):
        backend.select.side_effect = BackendError("JWT expired", status_code=401)
        service = PlayerService(backend, fast_policy)

        with pytest.raises(AuthenticationError):
            await service.get_similar_players("ref", access_token="old")

        assert backend.select.await_count == 1


class TestSearch:
    @pytest.fixture
    def rows(self):
        return [
            {
                "player_id": "p1",
                "player_name": "Older Striker",
                "player_age": 27,
                "player_stats": stats(pace=90, shooting=90),
                "player_height": 185,
                "player_preferred_foot": "right",
            },
            {
                "player_id": "p2",
                "player_name": "Young Winger",
                "player_age": 19,
                "player_stats": stats(pace=70),
                "player_height": 170,
                "player_preferred_foot": "left",
            },
            {
                "player_id": "p3",
                "player_name": "Reference",
                "player_age": 22,
                "player_stats": stats(),
            },
        ]

    async def test_rpc_params(self, backend, fast_policy):
        backend.rpc.return_value = []
        service = PlayerService(backend, fast_policy)

        await service.search_players(
            SearchFilters(query="silva", position="Forward", min_age=18, max_age=25),
            access_token="tok",
        )

        backend.rpc.assert_awaited_once_with(
            "search_players",
            {
                "search_query": "silva",
                "position_filter": "Forward",
                "min_age": 18,
                "max_age": 25,
                "location_filter": None,
            },
            access_token="tok",
        )

    async def test_local_filters(self, backend, fast_policy, rows):
        backend.rpc.return_value = rows
        service = PlayerService(backend, fast_policy)

        by_stat = await service.search_players(SearchFilters(min_stats={"shooting": 80}))
        by_foot = await service.search_players(SearchFilters(preferred_foot="left"))
        by_height = await service.search_players(SearchFilters(min_height=180))

        assert [p.player_id for p in by_stat] == ["p1"]
        assert [p.player_id for p in by_foot] == ["p2", "p3"]
        assert [p.player_id for p in by_height] == ["p1", "p3"]

    async def test_sort_by_age_and_rating(self, backend, fast_policy, rows):
        backend.rpc.return_value = rows
        service = PlayerService(backend, fast_policy)

        by_age = await service.search_players(SearchFilters(sort_by=SortBy.age))
        by_rating = await service.search_players(SearchFilters(sort_by=SortBy.rating))

        assert [p.player_id for p in by_age] == ["p2", "p3", "p1"]
        assert [p.player_id for p in by_rating] == ["p1", "p2", "p3"]

    async def test_similar_to_scores_and_excludes_reference(self, backend, fast_policy, rows):
        backend.rpc.return_value = rows
        backend.select.return_value = [{"position": "Forward", "stats": stats()}]
        service = PlayerService(backend, fast_policy)

        result = await service.search_players(SearchFilters(similar_to="p3"))

        assert [p.player_id for p in result] == ["p2", "p1"]
        assert result[0].similarity_score == pytest.approx(1 - 20 / 600)
        assert result[1].similarity_score == pytest.approx(1 - 80 / 600)


class TestPlayerContent:
    async def test_add_video_normalises_url(self, backend, fast_policy):
        backend.insert.side_effect = lambda table, rows, access_token=None: rows
        service = PlayerService(backend, fast_policy)

        video = await service.add_video(
            "p1", Video(title="Hat-trick", url="https://youtu.be/xyz"), access_token="tok"
        )

        assert video.url == "https://www.youtube.com/embed/xyz"
        assert video.player_id == "p1"
        table, payload = backend.insert.await_args.args
        assert table == "player_videos"
        assert payload[0]["url"] == "https://www.youtube.com/embed/xyz"

    async def test_add_achievement_defaults_date(self, backend, fast_policy):
        backend.insert.side_effect = lambda table, rows, access_token=None: rows
        service = PlayerService(backend, fast_policy)

        achievement = await service.add_achievement("p1", Achievement(title="Top scorer"))

        assert achievement.achievement_date is not None
        assert achievement.player_id == "p1"

    async def test_performance_window(self, backend, fast_policy):
        backend.select.return_value = [
            {
                "match_date": "2024-03-20T15:00:00+00:00",
                "minutes_played": 90,
                "goals": 2,
                "performance_metrics": {"pass_accuracy": 87.5},
            }
        ]
        service = PlayerService(backend, fast_policy)
        now = datetime(2024, 3, 31, tzinfo=timezone.utc)

        matches = await service.get_performance("p1", PerformancePeriod.month, now=now)

        assert matches[0].goals == 2
        assert matches[0].pass_accuracy == 87.5
        assert matches[0].assists == 0
        filters = backend.select.await_args.kwargs["filters"]
        assert filters["player_id"] == "eq.p1"
        assert filters["and"] == (
            "(match_date.gte.2024-02-29T00:00:00+00:00,"
            "match_date.lte.2024-03-31T00:00:00+00:00)"
        )

    async def test_profile_not_found(self, backend, fast_policy):
        backend.select.return_value = []
        service = PlayerService(backend, fast_policy)

        with pytest.raises(NotFoundError):
            await service.get_player_profile("nobody")


# =============================================================================
# Auth
# =============================================================================


class TestAuthService:
    async def test_sign_in(self, backend, fast_policy):
        backend.sign_in_with_password.return_value = {
            "access_token": "tok",
            "refresh_token": "ref",
            "user": {"id": "u1", "email": "a@b.c"},
        }
        service = AuthService(backend, fast_policy)

        session = await service.sign_in("a@b.c", "secret")

        assert session.access_token == "tok"
        assert session.user_id == "u1"

    async def test_bad_credentials_not_retried(self, make_backend, fast_policy):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(
                400,
                json={"error": "invalid_grant", "error_description": "Invalid login credentials"},
            )

        service = AuthService(make_backend(handler), fast_policy)

        with pytest.raises(AuthenticationError) as exc_info:
            await service.sign_in("a@b.c", "wrong")

        assert exc_info.value.message == "Invalid login credentials"
        assert exc_info.value.status_code == 401
        assert len(requests) == 1
        await service.backend.close()

    async def test_player_sign_up_creates_profile_and_ratings(self, backend, fast_policy):
        backend.sign_up.return_value = {
            "access_token": "tok",
            "user": {"id": "u1", "email": "a@b.c"},
        }
        backend.upsert.side_effect = lambda table, row, access_token=None: [row]
        service = AuthService(backend, fast_policy)

        result = await service.sign_up("a@b.c", "secret", role=UserRole.player)

        assert result.user.user_id == "u1"
        assert result.user.profile.role is UserRole.player
        assert result.session.access_token == "tok"

        (profile_table, profile_row), (player_table, player_row) = [
            call.args for call in backend.upsert.await_args_list
        ]
        assert profile_table == "profiles"
        assert profile_row == {"id": "u1", "email": "a@b.c", "role": "player"}
        assert player_table == "players"
        assert player_row["stats"] == stats()

    async def test_scout_sign_up_skips_player_row(self, backend, fast_policy):
        backend.sign_up.return_value = {"id": "u2", "email": "s@b.c"}
        backend.upsert.side_effect = lambda table, row, access_token=None: [row]
        service = AuthService(backend, fast_policy)

        result = await service.sign_up("s@b.c", "secret", role="scout")

        assert result.session is None
        assert backend.upsert.await_count == 1

    async def test_sign_up_rolls_back_user(self, backend, fast_policy):
        backend.sign_up.return_value = {"id": "u1", "email": "a@b.c"}
        backend.upsert.side_effect = BackendError("bad row", status_code=422)
        service = AuthService(backend, fast_policy)

        with pytest.raises(ValidationError):
            await service.sign_up("a@b.c", "secret")

        backend.delete_user.assert_awaited_once_with("u1")

    async def test_failed_rollback_keeps_original_error(self, backend, fast_policy):
        backend.sign_up.return_value = {"id": "u1", "email": "a@b.c"}
        backend.upsert.side_effect = BackendError("bad row", status_code=422)
        backend.delete_user.side_effect = RuntimeError("no service key")
        service = AuthService(backend, fast_policy)

        with pytest.raises(ValidationError):
            await service.sign_up("a@b.c", "secret")

    async def test_load_user_with_profile(self, backend, fast_policy):
        backend.get_user.return_value = {"id": "u1", "email": "a@b.c"}
        backend.select.return_value = [{"id": "u1", "email": "a@b.c", "role": "scout"}]
        service = AuthService(backend, fast_policy)

        user = await service.load_user("tok")

        assert user.profile.role is UserRole.scout
        backend.upsert.assert_not_awaited()

    async def test_load_user_creates_missing_profile(self, backend, fast_policy):
        backend.get_user.return_value = {"id": "u1", "email": "a@b.c"}
        backend.select.return_value = []
        backend.upsert.side_effect = lambda table, row, access_token=None: [row]
        service = AuthService(backend, fast_policy)

        user = await service.load_user("tok")

        assert user.profile.role is UserRole.player
        backend.upsert.assert_awaited_once()
        assert backend.upsert.await_args.kwargs["access_token"] == "tok"

    async def test_load_user_without_token(self, backend, fast_policy):
        service = AuthService(backend, fast_policy)
        with pytest.raises(AuthenticationError):
            await service.load_user("")
        backend.get_user.assert_not_awaited()


# =============================================================================
# Messages and trials
# =============================================================================


class TestMessages:
    async def test_empty_message_rejected_before_backend(self, backend, fast_policy):
        service = MessageService(backend, fast_policy)

        with pytest.raises(ValidationError) as exc_info:
            await service.send_message("u1", "u2", "   ")

        assert exc_info.value.code == "EMPTY_MESSAGE"
        backend.insert.assert_not_awaited()

    async def test_send_message(self, backend, fast_policy):
        backend.insert.side_effect = lambda table, rows, access_token=None: [
            {**rows[0], "id": "m1"}
        ]
        service = MessageService(backend, fast_policy)

        message = await service.send_message("u1", "u2", " hello ", access_token="tok")

        assert message.id == "m1"
        assert message.content == "hello"

    async def test_conversation_filter(self, backend, fast_policy):
        backend.select.return_value = []
        service = MessageService(backend, fast_policy)

        await service.list_messages("u1", peer_id="u2")

        filters = backend.select.await_args.kwargs["filters"]
        assert filters == {
            "or": "(and(sender_id.eq.u1,receiver_id.eq.u2),"
            "and(sender_id.eq.u2,receiver_id.eq.u1))"
        }

    async def test_subscription_delivers_each_message_once(self, backend, fast_policy):
        rows = [
            {"id": "m1", "sender_id": "u2", "receiver_id": "u1", "content": "hi",
             "created_at": "2024-01-01T10:00:00+00:00"},
            {"id": "m2", "sender_id": "u2", "receiver_id": "u1", "content": "there",
             "created_at": "2024-01-01T10:00:01+00:00"},
        ]
        backend.select.return_value = rows
        service = MessageService(backend, fast_policy, poll_interval=0.001)
        received = []
        done = asyncio.Event()

        async def on_message(message):
            received.append(message.id)
            if len(received) == 2:
                done.set()

        subscription = service.subscribe("u1", on_message, peer_id="u2")
        await asyncio.wait_for(done.wait(), timeout=2)
        # Let a few more polls run; repeats are dropped
        await asyncio.sleep(0.02)
        await subscription.aclose()

        assert received == ["m1", "m2"]
        assert not subscription.active
        later_filters = backend.select.await_args.kwargs["filters"]
        assert later_filters["receiver_id"] == "eq.u1"
        assert later_filters["sender_id"] == "eq.u2"
        assert later_filters["created_at"].startswith("gt.2024-01-01T10:00:01")

    async def test_callback_failure_keeps_subscription_alive(self, backend, fast_policy, caplog):
        first = {"id": "m1", "sender_id": "u2", "receiver_id": "u1", "content": "hi",
                 "created_at": "2024-01-01T10:00:00+00:00"}
        second = {"id": "m2", "sender_id": "u2", "receiver_id": "u1", "content": "again",
                  "created_at": "2024-01-01T10:00:05+00:00"}
        polls = []

        async def select(*args, **kwargs):
            polls.append(kwargs["filters"])
            return [first] if len(polls) == 1 else [first, second]

        backend.select.side_effect = select
        service = MessageService(backend, fast_policy, poll_interval=0.001)
        received = []
        done = asyncio.Event()

        def on_message(message):
            received.append(message.id)
            if message.id == "m1":
                raise RuntimeError("handler bug")
            done.set()

        with caplog.at_level(logging.ERROR, logger="talent_scout.services.messages"):
            subscription = service.subscribe("u1", on_message)
            await asyncio.wait_for(done.wait(), timeout=2)
            assert subscription.active
            await subscription.aclose()

        assert received == ["m1", "m2"]
        assert any("callback" in r.getMessage() for r in caplog.records)
        assert polls[1]["created_at"] == "gt.2024-01-01T10:00:00+00:00"

    async def test_malformed_row_skipped(self, backend, fast_policy, caplog):
        rows = [
            {"id": "bad", "content": "no sender"},
            {"id": "m1", "sender_id": "u2", "receiver_id": "u1", "content": "hi",
             "created_at": "2024-01-01T10:00:00+00:00"},
        ]
        backend.select.return_value = rows
        service = MessageService(backend, fast_policy, poll_interval=0.001)
        received = []
        done = asyncio.Event()

        def on_message(message):
            received.append(message.id)
            done.set()

        with caplog.at_level(logging.ERROR, logger="talent_scout.services.messages"):
            subscription = service.subscribe("u1", on_message)
            await asyncio.wait_for(done.wait(), timeout=2)
            await asyncio.sleep(0.01)
            await subscription.aclose()

        assert received == ["m1"]
        assert any("malformed" in r.getMessage() for r in caplog.records)

    async def test_rows_behind_cursor_not_redelivered(self, backend, fast_policy):
        # Three messages, two sharing a timestamp; the backend repeats all of them
        rows = [
            {"id": "m1", "sender_id": "u2", "receiver_id": "u1", "content": "a",
             "created_at": "2024-01-01T10:00:00+00:00"},
            {"id": "m2", "sender_id": "u2", "receiver_id": "u1", "content": "b",
             "created_at": "2024-01-01T10:00:01+00:00"},
            {"id": "m3", "sender_id": "u2", "receiver_id": "u1", "content": "c",
             "created_at": "2024-01-01T10:00:01+00:00"},
        ]
        backend.select.return_value = rows
        service = MessageService(backend, fast_policy, poll_interval=0.001)
        received = []

        subscription = service.subscribe("u1", lambda message: received.append(message.id))
        while backend.select.await_count < 4:
            await asyncio.sleep(0.001)
        await subscription.aclose()

        assert received == ["m1", "m2", "m3"]

    async def test_subscription_stops_on_auth_failure(self, backend, fast_policy):
        backend.select.side_effect = BackendError("JWT expired", status_code=401)
        service = MessageService(backend, fast_policy, poll_interval=0.001)

        subscription = service.subscribe("u1", lambda message: None)
        await asyncio.wait_for(subscription._task, timeout=2)

        assert not subscription.active


class TestTrials:
    async def test_schedule_trial_pending(self, backend, fast_policy):
        backend.insert.side_effect = lambda table, rows, access_token=None: [
            {**rows[0], "id": "t1"}
        ]
        service = TrialService(backend, fast_policy)

        trial = await service.schedule_trial(
            "scout", "player", datetime(2024, 5, 1, 10, tzinfo=timezone.utc), location="Porto"
        )

        assert trial.id == "t1"
        assert trial.status is TrialStatus.pending
        assert backend.insert.await_args.args[1][0]["status"] == "pending"

    async def test_same_scout_and_player_rejected(self, backend, fast_policy):
        service = TrialService(backend, fast_policy)
        with pytest.raises(ValidationError):
            await service.schedule_trial("u1", "u1", datetime(2024, 5, 1, tzinfo=timezone.utc))

    async def test_update_missing_trial(self, backend, fast_policy):
        backend.update.return_value = []
        service = TrialService(backend, fast_policy)

        with pytest.raises(NotFoundError):
            await service.update_status("t404", TrialStatus.accepted)
