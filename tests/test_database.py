"""
Database layer tests.
Tests for SQLite connection, schema creation, and CRUD operations.
"""

import pytest
import sqlite3
from datetime import datetime, timedelta
from pathlib import Path

from norm.database.connection import Database
from norm.database.models import (
    Alert,
    Client,
    Keyword,
    Mention,
    ReputationScore,
    ScoreBreakdown,
    SERPResult,
    SocialAccount,
    SocialPost,
)
from norm.database.repository import (
    AlertRepository,
    ClientRepository,
    KeywordRepository,
    MentionRepository,
    ReputationScoreRepository,
    SerpResultRepository,
    SocialAccountRepository,
    SocialPostRepository,
    SQLiteSignalStore,
)


@pytest.fixture
def db():
    """Fresh in-memory database."""
    database = Database(":memory:")
    database.initialize()
    yield database
    database.close()


@pytest.fixture
def client(db):
    """A persisted client."""
    return ClientRepository(db).create(Client(name="Acme Corp", industry="retail"))


class TestDatabaseConnection:
    """Test database connection and initialization."""

    def test_create_in_memory_database(self):
        """Should create an in-memory SQLite database."""
        db = Database(":memory:")
        assert db.connection is not None

    def test_create_file_database(self, tmp_path: Path):
        """Should create a file-based SQLite database and its directory."""
        db_path = tmp_path / "nested" / "norm.db"
        Database(str(db_path))
        assert db_path.exists()

    def test_initialize_schema(self, db):
        """Should create all required tables on initialization."""
        cursor = db.connection.cursor()
        cursor.execute("SELECT name FROM sqlite_master WHERE type='table'")
        tables = {row[0] for row in cursor.fetchall()}

        expected_tables = {
            "clients",
            "keywords",
            "serp_results",
            "news_mentions",
            "social_accounts",
            "social_posts",
            "reputation_scores",
            "alerts",
        }
        assert expected_tables.issubset(tables)

    def test_initialize_is_repeatable(self, db):
        db.initialize()

    def test_close_connection(self):
        """Should properly close database connection."""
        db = Database(":memory:")
        db.close()
        with pytest.raises(sqlite3.ProgrammingError):
            db.connection.execute("SELECT 1")


class TestClientRepository:
    """Test Client CRUD operations."""

    def test_create_client(self, db):
        created = ClientRepository(db).create(Client(name="Acme"))

        assert created.id is not None
        assert created.created_at is not None

    def test_get_by_id(self, db, client):
        fetched = ClientRepository(db).get_by_id(client.id)

        assert fetched.name == "Acme Corp"
        assert fetched.industry == "retail"
        assert fetched.is_active is True

    def test_get_missing(self, db):
        assert ClientRepository(db).get_by_id(999) is None

    def test_list_active(self, db, client):
        repo = ClientRepository(db)
        repo.create(Client(name="Dormant", is_active=False))

        assert [c.name for c in repo.list_active()] == ["Acme Corp"]
        assert len(repo.list_all()) == 2

    def test_update(self, db, client):
        repo = ClientRepository(db)
        client.website = "https://acme.com"
        client.is_active = False
        repo.update(client)

        fetched = repo.get_by_id(client.id)
        assert fetched.website == "https://acme.com"
        assert fetched.is_active is False


class TestKeywordRepository:
    """Test Keyword CRUD operations."""

    def test_create_and_list(self, db, client):
        repo = KeywordRepository(db)
        repo.create(Keyword(client_id=client.id, keyword="acme", alert_threshold=5))
        repo.create(Keyword(client_id=client.id, keyword="acme reviews", is_active=False))

        keywords = repo.get_client_keywords(client.id)
        assert [k.keyword for k in keywords] == ["acme", "acme reviews"]
        assert keywords[0].alert_threshold == 5
        assert [k.keyword for k in repo.get_active_keywords(client.id)] == ["acme"]

    def test_duplicate_keyword_rejected(self, db, client):
        repo = KeywordRepository(db)
        repo.create(Keyword(client_id=client.id, keyword="acme"))

        with pytest.raises(sqlite3.IntegrityError):
            repo.create(Keyword(client_id=client.id, keyword="acme"))

    def test_delete(self, db, client):
        repo = KeywordRepository(db)
        keyword = repo.create(Keyword(client_id=client.id, keyword="acme"))
        repo.delete(keyword.id)

        assert repo.get_client_keywords(client.id) == []


class TestSerpResultRepository:
    """Test SERP result queries."""

    def test_list_in_period_most_recent_first(self, db, client):
        keyword = KeywordRepository(db).create(Keyword(client_id=client.id, keyword="acme"))
        repo = SerpResultRepository(db)
        base = datetime(2026, 3, 1, 12, 0, 0)
        for day, position in [(1, 5), (3, 2), (40, 9)]:
            repo.create(
                SERPResult(
                    keyword_id=keyword.id,
                    url="https://acme.com",
                    position=position,
                    is_client_content=True,
                    checked_at=base + timedelta(days=day),
                )
            )

        results = repo.list_in_period([keyword.id], base, base + timedelta(days=30))

        assert [r.position for r in results] == [2, 5]
        assert results[0].is_client_content is True
        assert results[0].checked_at == base + timedelta(days=3)

    def test_list_in_period_no_keywords(self, db):
        assert SerpResultRepository(db).list_in_period([], datetime.now(), datetime.now()) == []

    def test_window_end_is_exclusive(self, db, client):
        keyword = KeywordRepository(db).create(Keyword(client_id=client.id, keyword="acme"))
        repo = SerpResultRepository(db)
        end = datetime(2026, 3, 31, 12, 0, 0)
        repo.create(SERPResult(keyword_id=keyword.id, url="u", position=1, checked_at=end))

        assert repo.list_in_period([keyword.id], end - timedelta(days=30), end) == []


class TestMentionRepository:
    """Test news mention queries."""

    def test_filters_by_scraped_at(self, db, client):
        repo = MentionRepository(db)
        start = datetime(2026, 3, 1)
        repo.create(
            Mention(
                client_id=client.id,
                title="Acme opens new store",
                url="https://news.example.com/1",
                scraped_at=start + timedelta(days=2),
                published_at=start - timedelta(days=60),
                sentiment="positive",
                sentiment_score=0.6,
                sentiment_confidence=0.9,
            )
        )
        repo.create(
            Mention(
                client_id=client.id,
                title="Old news",
                url="https://news.example.com/2",
                scraped_at=start - timedelta(days=2),
            )
        )

        mentions = repo.list_in_period(client.id, start, start + timedelta(days=30))

        assert len(mentions) == 1
        assert mentions[0].sentiment_score == 0.6
        assert mentions[0].published_at == start - timedelta(days=60)


class TestSocialRepositories:
    """Test social account and post queries."""

    def test_active_accounts_and_posts(self, db, client):
        accounts = SocialAccountRepository(db)
        posts = SocialPostRepository(db)
        active = accounts.create(
            SocialAccount(client_id=client.id, platform="instagram", account_id="acme")
        )
        accounts.create(
            SocialAccount(
                client_id=client.id, platform="facebook", account_id="old", is_active=False
            )
        )
        start = datetime(2026, 3, 1)
        posts.create(
            SocialPost(
                social_account_id=active.id,
                platform="instagram",
                post_id="p1",
                published_at=start + timedelta(days=1),
                engagement_likes=40,
                engagement_comments=3,
                sentiment="negative",
                sentiment_score=-0.6,
            )
        )

        assert [a.platform for a in accounts.get_active_accounts(client.id)] == ["instagram"]

        found = posts.list_in_period([active.id], start, start + timedelta(days=30))
        assert len(found) == 1
        assert found[0].total_engagement == 43
        assert posts.list_in_period([], start, start + timedelta(days=30)) == []


class TestReputationScoreRepository:
    """Test score history."""

    def _score(self, client_id, value, period_end, calculated_at=None):
        return ReputationScore(
            client_id=client_id,
            score=value,
            period_start=period_end - timedelta(days=30),
            period_end=period_end,
            breakdown=ScoreBreakdown(serp=8.0, news=6.5),
            calculated_at=calculated_at,
        )

    def test_breakdown_round_trip(self, db, client):
        repo = ReputationScoreRepository(db)
        end = datetime(2026, 3, 31)
        repo.create(self._score(client.id, 72.5, end))

        latest = repo.get_latest_before(client.id, end)
        assert latest.score == 72.5
        assert latest.breakdown == ScoreBreakdown(serp=8.0, news=6.5)
        assert latest.calculated_at is not None

    def test_latest_before_cutoff(self, db, client):
        repo = ReputationScoreRepository(db)
        march = datetime(2026, 3, 1)
        repo.create(self._score(client.id, 60.0, march - timedelta(days=30)))
        repo.create(self._score(client.id, 65.0, march))
        repo.create(self._score(client.id, 70.0, march + timedelta(days=30)))

        assert repo.get_latest_before(client.id, march).score == 65.0
        assert repo.get_latest_before(client.id, march - timedelta(days=31)) is None

    def test_recalculation_wins(self, db, client):
        repo = ReputationScoreRepository(db)
        end = datetime(2026, 3, 1)
        repo.create(self._score(client.id, 50.0, end, calculated_at=end))
        repo.create(self._score(client.id, 55.0, end, calculated_at=end + timedelta(hours=1)))

        assert repo.get_latest_before(client.id, end).score == 55.0

    def test_history_newest_first(self, db, client):
        repo = ReputationScoreRepository(db)
        end = datetime(2026, 3, 1)
        for i, value in enumerate([50.0, 60.0, 70.0]):
            repo.create(
                self._score(client.id, value, end, calculated_at=end + timedelta(days=i))
            )

        history = repo.get_client_history(client.id, limit=2)
        assert [s.score for s in history] == [70.0, 60.0]


class TestAlertRepository:
    """Test Alert CRUD operations."""

    @pytest.fixture
    def repo(self, db):
        return AlertRepository(db)

    def _alert(self, client_id, severity="high", created_at=None, **kwargs):
        return Alert(
            client_id=client_id,
            alert_type="score_drop",
            severity=severity,
            title="Reputation score dropped 6.0 points",
            message="Reputation score fell from 80.00 to 74.00.",
            created_at=created_at,
            **kwargs,
        )

    def test_create_alert(self, repo, client):
        created = repo.create(self._alert(client.id))

        fetched = repo.get_by_id(created.id)
        assert fetched.status == "active"
        assert fetched.email_sent is False
        assert fetched.created_at is not None

    def test_find_recent(self, repo, client):
        now = datetime(2026, 3, 31, 12, 0, 0)
        repo.create(self._alert(client.id, created_at=now - timedelta(hours=2)))
        repo.create(self._alert(client.id, created_at=now - timedelta(hours=30)))
        repo.create(self._alert(client.id, severity="medium", created_at=now))

        recent = repo.find_recent(client.id, "score_drop", "high", now - timedelta(hours=24))
        assert len(recent) == 1

    def test_client_alerts_by_status(self, repo, client):
        first = repo.create(self._alert(client.id))
        repo.create(self._alert(client.id))
        repo.update_status(first.id, "acknowledged")

        assert len(repo.get_client_alerts(client.id)) == 2
        acknowledged = repo.get_client_alerts(client.id, status="acknowledged")
        assert [a.id for a in acknowledged] == [first.id]

    def test_resolve_stamps_time(self, repo, client):
        alert = repo.create(self._alert(client.id))
        repo.update_status(alert.id, "resolved")

        fetched = repo.get_by_id(alert.id)
        assert fetched.status == "resolved"
        assert fetched.resolved_at is not None

    def test_pending_notifications(self, repo, client):
        base = datetime(2026, 3, 31)
        high = repo.create(self._alert(client.id, created_at=base))
        critical = repo.create(
            self._alert(client.id, severity="critical", created_at=base + timedelta(minutes=1))
        )
        repo.create(self._alert(client.id, severity="medium", created_at=base))
        repo.create(self._alert(client.id, email_sent=True, created_at=base))
        repo.create(self._alert(client.id, status="dismissed", created_at=base))

        pending = repo.get_pending_notifications(["high", "critical"], limit=20)
        assert [a.id for a in pending] == [high.id, critical.id]

        assert len(repo.get_pending_notifications(["high", "critical"], limit=1)) == 1

    def test_mark_email_sent(self, repo, client):
        alert = repo.create(self._alert(client.id))
        repo.mark_email_sent(alert.id)

        fetched = repo.get_by_id(alert.id)
        assert fetched.email_sent is True
        assert fetched.email_sent_at is not None
        assert repo.get_pending_notifications(["high"]) == []


class TestSQLiteSignalStore:
    """Test the store adapter used by scoring and rules."""

    def test_delegates_to_repositories(self, db, client):
        store = SQLiteSignalStore(db)
        keyword = KeywordRepository(db).create(Keyword(client_id=client.id, keyword="acme"))
        end = datetime(2026, 3, 31)

        assert [k.id for k in store.list_active_keywords(client.id)] == [keyword.id]
        assert store.previous_period_score(client.id, end) is None

        saved = store.insert_reputation_score(
            ReputationScore(
                client_id=client.id,
                score=61.0,
                period_start=end - timedelta(days=30),
                period_end=end,
            )
        )
        assert store.previous_period_score(client.id, end).id == saved.id

        alert = store.insert_alert(
            Alert(
                client_id=client.id,
                alert_type="critical_event",
                severity="critical",
                title="Reputation score critically low: 25.0",
                message="...",
            )
        )
        store.mark_alert_email_sent(alert.id)
        assert store.alert_repo.get_by_id(alert.id).email_sent is True
        assert len(
            store.recent_alerts(
                client.id, "critical_event", "critical", alert.created_at - timedelta(hours=1)
            )
        ) == 1
