"""
SQLite database connection and schema management.
"""

import sqlite3
from pathlib import Path
from typing import Optional


class Database:
    """SQLite database connection manager."""

    def __init__(self, db_path: str):
        """
        Initialize database connection.

        Args:
            db_path: Path to SQLite database file, or ":memory:" for in-memory DB.
        """
        self.db_path = db_path
        self._connection: Optional[sqlite3.Connection] = None
        self._connect()

    def _connect(self) -> None:
        """Establish database connection."""
        if self.db_path != ":memory:":
            # Ensure parent directory exists
            path = Path(self.db_path)
            path.parent.mkdir(parents=True, exist_ok=True)

        self._connection = sqlite3.connect(self.db_path)
        self._connection.row_factory = sqlite3.Row
        self._connection.execute("PRAGMA foreign_keys = ON")

    @property
    def connection(self) -> sqlite3.Connection:
        """Get the database connection."""
        if self._connection is None:
            raise sqlite3.ProgrammingError("Database connection is closed")
        return self._connection

    def initialize(self) -> None:
        """Create database schema if it doesn't exist."""
        cursor = self.connection.cursor()

        # Timestamps are ISO-8601 text written by the repositories so that
        # range filters compare lexically.
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS clients (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                industry TEXT,
                website TEXT,
                is_active INTEGER NOT NULL DEFAULT 1,
                created_at TEXT
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS keywords (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                client_id INTEGER NOT NULL,
                keyword TEXT NOT NULL,
                is_active INTEGER NOT NULL DEFAULT 1,
                alert_threshold INTEGER NOT NULL DEFAULT 3,
                priority TEXT NOT NULL DEFAULT 'normal',
                FOREIGN KEY (client_id) REFERENCES clients(id) ON DELETE CASCADE,
                UNIQUE (client_id, keyword)
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS serp_results (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                keyword_id INTEGER NOT NULL,
                position INTEGER,
                url TEXT NOT NULL,
                title TEXT,
                snippet TEXT,
                domain TEXT,
                is_client_content INTEGER NOT NULL DEFAULT 0,
                checked_at TEXT NOT NULL,
                FOREIGN KEY (keyword_id) REFERENCES keywords(id) ON DELETE CASCADE
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS news_mentions (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                client_id INTEGER NOT NULL,
                title TEXT NOT NULL,
                url TEXT NOT NULL,
                source TEXT,
                excerpt TEXT,
                sentiment TEXT,
                sentiment_score REAL,
                sentiment_confidence REAL,
                published_at TEXT,
                scraped_at TEXT NOT NULL,
                FOREIGN KEY (client_id) REFERENCES clients(id) ON DELETE CASCADE
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS social_accounts (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                client_id INTEGER NOT NULL,
                platform TEXT NOT NULL,
                account_id TEXT NOT NULL,
                account_name TEXT,
                is_active INTEGER NOT NULL DEFAULT 1,
                FOREIGN KEY (client_id) REFERENCES clients(id) ON DELETE CASCADE
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS social_posts (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                social_account_id INTEGER NOT NULL,
                platform TEXT NOT NULL,
                post_id TEXT NOT NULL,
                author_name TEXT,
                content TEXT,
                engagement_likes INTEGER NOT NULL DEFAULT 0,
                engagement_comments INTEGER NOT NULL DEFAULT 0,
                engagement_shares INTEGER NOT NULL DEFAULT 0,
                sentiment TEXT,
                sentiment_score REAL,
                sentiment_confidence REAL,
                published_at TEXT NOT NULL,
                FOREIGN KEY (social_account_id) REFERENCES social_accounts(id)
                    ON DELETE CASCADE
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS reputation_scores (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                client_id INTEGER NOT NULL,
                score REAL NOT NULL,
                score_breakdown TEXT NOT NULL,
                period_start TEXT NOT NULL,
                period_end TEXT NOT NULL,
                calculated_at TEXT NOT NULL,
                FOREIGN KEY (client_id) REFERENCES clients(id) ON DELETE CASCADE
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS alerts (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                client_id INTEGER NOT NULL,
                alert_type TEXT NOT NULL,
                severity TEXT NOT NULL,
                title TEXT NOT NULL,
                message TEXT NOT NULL,
                related_serp_result_id INTEGER,
                related_mention_id INTEGER,
                related_social_post_id INTEGER,
                status TEXT NOT NULL DEFAULT 'active',
                email_sent INTEGER NOT NULL DEFAULT 0,
                email_sent_at TEXT,
                created_at TEXT NOT NULL,
                resolved_at TEXT,
                FOREIGN KEY (client_id) REFERENCES clients(id) ON DELETE CASCADE
            )
        """)

        # Create indexes for common queries
        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_keywords_client ON keywords(client_id)
        """)
        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_serp_keyword_checked
            ON serp_results(keyword_id, checked_at)
        """)
        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_mentions_client_scraped
            ON news_mentions(client_id, scraped_at)
        """)
        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_posts_account_published
            ON social_posts(social_account_id, published_at)
        """)
        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_scores_client_period
            ON reputation_scores(client_id, period_end)
        """)
        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_alerts_client_type_severity
            ON alerts(client_id, alert_type, severity, created_at)
        """)

        self.connection.commit()

    def close(self) -> None:
        """Close the database connection."""
        if self._connection:
            self._connection.close()
            self._connection = None
