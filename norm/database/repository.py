"""
Repository classes for CRUD operations.
"""

import json
from datetime import datetime
from typing import Optional

from .connection import Database
from .models import (
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
from .store import SignalStore


def _to_iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _from_iso(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _placeholders(values: list) -> str:
    return ", ".join("?" for _ in values)


class ClientRepository:
    """CRUD operations for clients."""

    def __init__(self, db: Database):
        self.db = db

    def create(self, client: Client) -> Client:
        """Create a new client."""
        client.created_at = client.created_at or datetime.now()
        cursor = self.db.connection.cursor()
        cursor.execute(
            """
            INSERT INTO clients (name, industry, website, is_active, created_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                client.name,
                client.industry,
                client.website,
                1 if client.is_active else 0,
                _to_iso(client.created_at),
            ),
        )
        self.db.connection.commit()
        client.id = cursor.lastrowid
        return client

    def get_by_id(self, client_id: int) -> Optional[Client]:
        """Get client by ID."""
        cursor = self.db.connection.cursor()
        cursor.execute("SELECT * FROM clients WHERE id = ?", (client_id,))
        row = cursor.fetchone()
        if row is None:
            return None
        return self._row_to_client(row)

    def list_all(self) -> list[Client]:
        """List all clients."""
        cursor = self.db.connection.cursor()
        cursor.execute("SELECT * FROM clients ORDER BY id")
        return [self._row_to_client(row) for row in cursor.fetchall()]

    def list_active(self) -> list[Client]:
        """List clients with monitoring enabled."""
        cursor = self.db.connection.cursor()
        cursor.execute("SELECT * FROM clients WHERE is_active = 1 ORDER BY id")
        return [self._row_to_client(row) for row in cursor.fetchall()]

    def update(self, client: Client) -> None:
        """Update client display attributes."""
        cursor = self.db.connection.cursor()
        cursor.execute(
            """
            UPDATE clients
            SET name = ?, industry = ?, website = ?, is_active = ?
            WHERE id = ?
            """,
            (
                client.name,
                client.industry,
                client.website,
                1 if client.is_active else 0,
                client.id,
            ),
        )
        self.db.connection.commit()

    def _row_to_client(self, row) -> Client:
        """Convert database row to Client."""
        return Client(
            id=row["id"],
            name=row["name"],
            industry=row["industry"],
            website=row["website"],
            is_active=bool(row["is_active"]),
            created_at=_from_iso(row["created_at"]),
        )


class KeywordRepository:
    """CRUD operations for tracked keywords."""

    def __init__(self, db: Database):
        self.db = db

    def create(self, keyword: Keyword) -> Keyword:
        """Create a new keyword."""
        cursor = self.db.connection.cursor()
        cursor.execute(
            """
            INSERT INTO keywords (client_id, keyword, is_active, alert_threshold, priority)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                keyword.client_id,
                keyword.keyword,
                1 if keyword.is_active else 0,
                keyword.alert_threshold,
                keyword.priority,
            ),
        )
        self.db.connection.commit()
        keyword.id = cursor.lastrowid
        return keyword

    def get_client_keywords(self, client_id: int) -> list[Keyword]:
        """Get all keywords for a client."""
        cursor = self.db.connection.cursor()
        cursor.execute(
            "SELECT * FROM keywords WHERE client_id = ? ORDER BY id",
            (client_id,),
        )
        return [self._row_to_keyword(row) for row in cursor.fetchall()]

    def get_active_keywords(self, client_id: int) -> list[Keyword]:
        """Get only active keywords for a client."""
        cursor = self.db.connection.cursor()
        cursor.execute(
            """
            SELECT * FROM keywords
            WHERE client_id = ? AND is_active = 1
            ORDER BY id
            """,
            (client_id,),
        )
        return [self._row_to_keyword(row) for row in cursor.fetchall()]

    def delete(self, keyword_id: int) -> None:
        """Delete a keyword."""
        cursor = self.db.connection.cursor()
        cursor.execute("DELETE FROM keywords WHERE id = ?", (keyword_id,))
        self.db.connection.commit()

    def _row_to_keyword(self, row) -> Keyword:
        """Convert database row to Keyword."""
        return Keyword(
            id=row["id"],
            client_id=row["client_id"],
            keyword=row["keyword"],
            is_active=bool(row["is_active"]),
            alert_threshold=row["alert_threshold"],
            priority=row["priority"],
        )


class SerpResultRepository:
    """Append-only log of SERP snapshots."""

    def __init__(self, db: Database):
        self.db = db

    def create(self, result: SERPResult) -> SERPResult:
        """Record a SERP result."""
        cursor = self.db.connection.cursor()
        cursor.execute(
            """
            INSERT INTO serp_results
            (keyword_id, position, url, title, snippet, domain,
             is_client_content, checked_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                result.keyword_id,
                result.position,
                result.url,
                result.title,
                result.snippet,
                result.domain,
                1 if result.is_client_content else 0,
                _to_iso(result.checked_at),
            ),
        )
        self.db.connection.commit()
        result.id = cursor.lastrowid
        return result

    def list_in_period(
        self,
        keyword_ids: list[int],
        period_start: datetime,
        period_end: datetime,
    ) -> list[SERPResult]:
        """SERP results for keywords in a period, most recent first."""
        if not keyword_ids:
            return []

        cursor = self.db.connection.cursor()
        cursor.execute(
            f"""
            SELECT * FROM serp_results
            WHERE keyword_id IN ({_placeholders(keyword_ids)})
              AND checked_at >= ?
              AND checked_at < ?
            ORDER BY checked_at DESC, id DESC
            """,
            (*keyword_ids, _to_iso(period_start), _to_iso(period_end)),
        )
        return [self._row_to_result(row) for row in cursor.fetchall()]

    def _row_to_result(self, row) -> SERPResult:
        """Convert database row to SERPResult."""
        return SERPResult(
            id=row["id"],
            keyword_id=row["keyword_id"],
            position=row["position"],
            url=row["url"],
            title=row["title"],
            snippet=row["snippet"],
            domain=row["domain"],
            is_client_content=bool(row["is_client_content"]),
            checked_at=_from_iso(row["checked_at"]),
        )


class MentionRepository:
    """Append-only log of news mentions."""

    def __init__(self, db: Database):
        self.db = db

    def create(self, mention: Mention) -> Mention:
        """Record a news mention."""
        cursor = self.db.connection.cursor()
        cursor.execute(
            """
            INSERT INTO news_mentions
            (client_id, title, url, source, excerpt, sentiment, sentiment_score,
             sentiment_confidence, published_at, scraped_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                mention.client_id,
                mention.title,
                mention.url,
                mention.source,
                mention.excerpt,
                mention.sentiment,
                mention.sentiment_score,
                mention.sentiment_confidence,
                _to_iso(mention.published_at),
                _to_iso(mention.scraped_at),
            ),
        )
        self.db.connection.commit()
        mention.id = cursor.lastrowid
        return mention

    def list_in_period(
        self, client_id: int, period_start: datetime, period_end: datetime
    ) -> list[Mention]:
        """Mentions scraped for a client in a period, most recent first."""
        cursor = self.db.connection.cursor()
        cursor.execute(
            """
            SELECT * FROM news_mentions
            WHERE client_id = ?
              AND scraped_at >= ?
              AND scraped_at < ?
            ORDER BY scraped_at DESC, id DESC
            """,
            (client_id, _to_iso(period_start), _to_iso(period_end)),
        )
        return [self._row_to_mention(row) for row in cursor.fetchall()]

    def _row_to_mention(self, row) -> Mention:
        """Convert database row to Mention."""
        return Mention(
            id=row["id"],
            client_id=row["client_id"],
            title=row["title"],
            url=row["url"],
            source=row["source"],
            excerpt=row["excerpt"],
            sentiment=row["sentiment"],
            sentiment_score=row["sentiment_score"],
            sentiment_confidence=row["sentiment_confidence"],
            published_at=_from_iso(row["published_at"]),
            scraped_at=_from_iso(row["scraped_at"]),
        )


class SocialAccountRepository:
    """CRUD operations for social accounts."""

    def __init__(self, db: Database):
        self.db = db

    def create(self, account: SocialAccount) -> SocialAccount:
        """Create a new social account."""
        cursor = self.db.connection.cursor()
        cursor.execute(
            """
            INSERT INTO social_accounts
            (client_id, platform, account_id, account_name, is_active)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                account.client_id,
                account.platform,
                account.account_id,
                account.account_name,
                1 if account.is_active else 0,
            ),
        )
        self.db.connection.commit()
        account.id = cursor.lastrowid
        return account

    def get_active_accounts(self, client_id: int) -> list[SocialAccount]:
        """Get active social accounts for a client."""
        cursor = self.db.connection.cursor()
        cursor.execute(
            """
            SELECT * FROM social_accounts
            WHERE client_id = ? AND is_active = 1
            ORDER BY id
            """,
            (client_id,),
        )
        return [
            SocialAccount(
                id=row["id"],
                client_id=row["client_id"],
                platform=row["platform"],
                account_id=row["account_id"],
                account_name=row["account_name"],
                is_active=bool(row["is_active"]),
            )
            for row in cursor.fetchall()
        ]


class SocialPostRepository:
    """Append-only log of social posts."""

    def __init__(self, db: Database):
        self.db = db

    def create(self, post: SocialPost) -> SocialPost:
        """Record a social post."""
        cursor = self.db.connection.cursor()
        cursor.execute(
            """
            INSERT INTO social_posts
            (social_account_id, platform, post_id, author_name, content,
             engagement_likes, engagement_comments, engagement_shares,
             sentiment, sentiment_score, sentiment_confidence, published_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                post.social_account_id,
                post.platform,
                post.post_id,
                post.author_name,
                post.content,
                post.engagement_likes,
                post.engagement_comments,
                post.engagement_shares,
                post.sentiment,
                post.sentiment_score,
                post.sentiment_confidence,
                _to_iso(post.published_at),
            ),
        )
        self.db.connection.commit()
        post.id = cursor.lastrowid
        return post

    def list_in_period(
        self,
        account_ids: list[int],
        period_start: datetime,
        period_end: datetime,
    ) -> list[SocialPost]:
        """Posts published on the given accounts in a period."""
        if not account_ids:
            return []

        cursor = self.db.connection.cursor()
        cursor.execute(
            f"""
            SELECT * FROM social_posts
            WHERE social_account_id IN ({_placeholders(account_ids)})
              AND published_at >= ?
              AND published_at < ?
            ORDER BY published_at DESC, id DESC
            """,
            (*account_ids, _to_iso(period_start), _to_iso(period_end)),
        )
        return [self._row_to_post(row) for row in cursor.fetchall()]

    def _row_to_post(self, row) -> SocialPost:
        """Convert database row to SocialPost."""
        return SocialPost(
            id=row["id"],
            social_account_id=row["social_account_id"],
            platform=row["platform"],
            post_id=row["post_id"],
            author_name=row["author_name"],
            content=row["content"],
            engagement_likes=row["engagement_likes"],
            engagement_comments=row["engagement_comments"],
            engagement_shares=row["engagement_shares"],
            sentiment=row["sentiment"],
            sentiment_score=row["sentiment_score"],
            sentiment_confidence=row["sentiment_confidence"],
            published_at=_from_iso(row["published_at"]),
        )


class ReputationScoreRepository:
    """Insert-only history of reputation scores."""

    def __init__(self, db: Database):
        self.db = db

    def create(self, score: ReputationScore) -> ReputationScore:
        """Record a calculated score."""
        score.calculated_at = score.calculated_at or datetime.now()
        cursor = self.db.connection.cursor()
        cursor.execute(
            """
            INSERT INTO reputation_scores
            (client_id, score, score_breakdown, period_start, period_end, calculated_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                score.client_id,
                score.score,
                json.dumps(score.breakdown.to_dict()),
                _to_iso(score.period_start),
                _to_iso(score.period_end),
                _to_iso(score.calculated_at),
            ),
        )
        self.db.connection.commit()
        score.id = cursor.lastrowid
        return score

    def get_latest_before(
        self, client_id: int, cutoff: datetime
    ) -> Optional[ReputationScore]:
        """Most recent score whose period ended on or before cutoff."""
        cursor = self.db.connection.cursor()
        cursor.execute(
            """
            SELECT * FROM reputation_scores
            WHERE client_id = ? AND period_end <= ?
            ORDER BY period_end DESC, calculated_at DESC, id DESC
            LIMIT 1
            """,
            (client_id, _to_iso(cutoff)),
        )
        row = cursor.fetchone()
        if row is None:
            return None
        return self._row_to_score(row)

    def get_client_history(
        self, client_id: int, limit: int = 90
    ) -> list[ReputationScore]:
        """Score history for a client, newest first."""
        cursor = self.db.connection.cursor()
        cursor.execute(
            """
            SELECT * FROM reputation_scores
            WHERE client_id = ?
            ORDER BY calculated_at DESC, id DESC
            LIMIT ?
            """,
            (client_id, limit),
        )
        return [self._row_to_score(row) for row in cursor.fetchall()]

    def _row_to_score(self, row) -> ReputationScore:
        """Convert database row to ReputationScore."""
        return ReputationScore(
            id=row["id"],
            client_id=row["client_id"],
            score=row["score"],
            breakdown=ScoreBreakdown(**json.loads(row["score_breakdown"])),
            period_start=_from_iso(row["period_start"]),
            period_end=_from_iso(row["period_end"]),
            calculated_at=_from_iso(row["calculated_at"]),
        )


class AlertRepository:
    """CRUD operations for alerts."""

    def __init__(self, db: Database):
        self.db = db

    def create(self, alert: Alert) -> Alert:
        """Create a new alert."""
        alert.created_at = alert.created_at or datetime.now()
        cursor = self.db.connection.cursor()
        cursor.execute(
            """
            INSERT INTO alerts
            (client_id, alert_type, severity, title, message,
             related_serp_result_id, related_mention_id, related_social_post_id,
             status, email_sent, email_sent_at, created_at, resolved_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                alert.client_id,
                alert.alert_type,
                alert.severity,
                alert.title,
                alert.message,
                alert.related_serp_result_id,
                alert.related_mention_id,
                alert.related_social_post_id,
                alert.status,
                1 if alert.email_sent else 0,
                _to_iso(alert.email_sent_at),
                _to_iso(alert.created_at),
                _to_iso(alert.resolved_at),
            ),
        )
        self.db.connection.commit()
        alert.id = cursor.lastrowid
        return alert

    def get_by_id(self, alert_id: int) -> Optional[Alert]:
        """Get alert by ID."""
        cursor = self.db.connection.cursor()
        cursor.execute("SELECT * FROM alerts WHERE id = ?", (alert_id,))
        row = cursor.fetchone()
        if row is None:
            return None
        return self._row_to_alert(row)

    def find_recent(
        self,
        client_id: int,
        alert_type: str,
        severity: str,
        since: datetime,
    ) -> list[Alert]:
        """Alerts of the same kind created since a timestamp."""
        cursor = self.db.connection.cursor()
        cursor.execute(
            """
            SELECT * FROM alerts
            WHERE client_id = ?
              AND alert_type = ?
              AND severity = ?
              AND created_at > ?
            ORDER BY created_at DESC
            """,
            (client_id, alert_type, severity, _to_iso(since)),
        )
        return [self._row_to_alert(row) for row in cursor.fetchall()]

    def get_client_alerts(
        self,
        client_id: int,
        status: Optional[str] = None,
        limit: int = 50,
    ) -> list[Alert]:
        """Get alerts for a client, newest first."""
        cursor = self.db.connection.cursor()
        if status:
            cursor.execute(
                """
                SELECT * FROM alerts
                WHERE client_id = ? AND status = ?
                ORDER BY created_at DESC, id DESC
                LIMIT ?
                """,
                (client_id, status, limit),
            )
        else:
            cursor.execute(
                """
                SELECT * FROM alerts
                WHERE client_id = ?
                ORDER BY created_at DESC, id DESC
                LIMIT ?
                """,
                (client_id, limit),
            )
        return [self._row_to_alert(row) for row in cursor.fetchall()]

    def get_pending_notifications(
        self, severities: list[str], limit: int = 20
    ) -> list[Alert]:
        """Active alerts that have not been emailed yet, oldest first."""
        cursor = self.db.connection.cursor()
        cursor.execute(
            f"""
            SELECT * FROM alerts
            WHERE status = 'active'
              AND email_sent = 0
              AND severity IN ({_placeholders(severities)})
            ORDER BY created_at ASC, id ASC
            LIMIT ?
            """,
            (*severities, limit),
        )
        return [self._row_to_alert(row) for row in cursor.fetchall()]

    def mark_email_sent(self, alert_id: int) -> None:
        """Mark alert as delivered."""
        cursor = self.db.connection.cursor()
        cursor.execute(
            """
            UPDATE alerts
            SET email_sent = 1, email_sent_at = ?
            WHERE id = ?
            """,
            (datetime.now().isoformat(), alert_id),
        )
        self.db.connection.commit()

    def update_status(self, alert_id: int, status: str) -> None:
        """Move an alert to a new lifecycle status."""
        resolved_at = datetime.now().isoformat() if status == "resolved" else None
        cursor = self.db.connection.cursor()
        cursor.execute(
            """
            UPDATE alerts
            SET status = ?, resolved_at = COALESCE(?, resolved_at)
            WHERE id = ?
            """,
            (status, resolved_at, alert_id),
        )
        self.db.connection.commit()

    def _row_to_alert(self, row) -> Alert:
        """Convert database row to Alert."""
        return Alert(
            id=row["id"],
            client_id=row["client_id"],
            alert_type=row["alert_type"],
            severity=row["severity"],
            title=row["title"],
            message=row["message"],
            related_serp_result_id=row["related_serp_result_id"],
            related_mention_id=row["related_mention_id"],
            related_social_post_id=row["related_social_post_id"],
            status=row["status"],
            email_sent=bool(row["email_sent"]),
            email_sent_at=_from_iso(row["email_sent_at"]),
            created_at=_from_iso(row["created_at"]),
            resolved_at=_from_iso(row["resolved_at"]),
        )


class SQLiteSignalStore(SignalStore):
    """SignalStore backed by the SQLite repositories."""

    def __init__(self, db: Database):
        self.db = db
        self.keyword_repo = KeywordRepository(db)
        self.serp_repo = SerpResultRepository(db)
        self.mention_repo = MentionRepository(db)
        self.account_repo = SocialAccountRepository(db)
        self.post_repo = SocialPostRepository(db)
        self.score_repo = ReputationScoreRepository(db)
        self.alert_repo = AlertRepository(db)

    def list_active_keywords(self, client_id):
        return self.keyword_repo.get_active_keywords(client_id)

    def latest_serp_results_by_keyword(self, keyword_ids, period_start, period_end):
        return self.serp_repo.list_in_period(keyword_ids, period_start, period_end)

    def news_mentions(self, client_id, period_start, period_end):
        return self.mention_repo.list_in_period(client_id, period_start, period_end)

    def active_social_accounts(self, client_id):
        return self.account_repo.get_active_accounts(client_id)

    def social_posts(self, account_ids, period_start, period_end):
        return self.post_repo.list_in_period(account_ids, period_start, period_end)

    def previous_period_score(self, client_id, period_start):
        return self.score_repo.get_latest_before(client_id, period_start)

    def recent_alerts(self, client_id, alert_type, severity, since):
        return self.alert_repo.find_recent(client_id, alert_type, severity, since)

    def insert_alert(self, alert):
        return self.alert_repo.create(alert)

    def insert_reputation_score(self, score):
        return self.score_repo.create(score)

    def mark_alert_email_sent(self, alert_id):
        self.alert_repo.mark_email_sent(alert_id)
