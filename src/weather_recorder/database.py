"""
SQLite database operations for Weather Recorder.
"""
import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from .models import Measurement


logger = logging.getLogger(__name__)


class DatabaseError(Exception):
    """Base exception for database errors."""
    pass


class MeasurementDatabase:
    """
    SQLite database manager for hourly measurements.

    Handles schema initialization, data insertion, and queries.
    """

    def __init__(self, db_path: str):
        """
        Initialize database location.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = db_path

        # Ensure database directory exists
        db_dir = Path(db_path).parent
        db_dir.mkdir(parents=True, exist_ok=True)

        logger.info(f"Initialized database at {db_path}")

    @contextmanager
    def get_connection(self):
        """
        Context manager for database connections.

        Yields:
            sqlite3.Connection instance
        """
        conn = None
        try:
            conn = sqlite3.connect(self.db_path)
            # WAL lets the HTTP handlers read while the poller writes
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute("PRAGMA synchronous=NORMAL")

            conn.row_factory = sqlite3.Row

            yield conn
        except sqlite3.Error as e:
            logger.error(f"Database connection error: {e}")
            if conn:
                conn.rollback()
            raise DatabaseError(f"Database connection error: {e}") from e
        finally:
            if conn:
                conn.close()

    def initialize_schema(self) -> None:
        """
        Initialize database schema.

        Creates the measurements table and indexes if they don't exist.

        Raises:
            DatabaseError: If the database cannot be opened or migrated
        """
        logger.info("Initializing database schema")

        with self.get_connection() as conn:
            cursor = conn.cursor()

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS measurements (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,

                    -- Sample slot
                    hour INTEGER NOT NULL CHECK (hour BETWEEN 0 AND 23),
                    date TEXT NOT NULL,

                    -- Reading
                    temperature REAL NOT NULL,
                    wind_speed REAL NOT NULL,

                    -- Metadata
                    created_at DATETIME DEFAULT CURRENT_TIMESTAMP,

                    -- One sample per recording slot
                    UNIQUE(hour, date)
                )
            """)

            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_hour
                ON measurements(hour)
            """)

            conn.commit()
            logger.info("Database schema initialized successfully")

    def insert_measurement(self, measurement: Measurement) -> Optional[int]:
        """
        Insert a measurement into the database.

        Uses INSERT OR IGNORE to skip duplicates based on (hour, date).

        Args:
            measurement: Measurement instance

        Returns:
            Row ID if inserted, None if duplicate

        Raises:
            DatabaseError: If insert fails
        """
        with self.get_connection() as conn:
            cursor = conn.cursor()

            try:
                cursor.execute("""
                    INSERT OR IGNORE INTO measurements (hour, date, temperature, wind_speed)
                    VALUES (?, ?, ?, ?)
                """, (
                    measurement.hour,
                    measurement.date,
                    measurement.temperature,
                    measurement.wind_speed,
                ))

                conn.commit()

                if cursor.rowcount > 0:
                    logger.debug(f"Inserted measurement: {measurement.date} {measurement.hour}h")
                    return cursor.lastrowid

                logger.debug(f"Duplicate measurement skipped: {measurement.date} {measurement.hour}h")
                return None

            except sqlite3.Error as e:
                logger.error(f"Error inserting measurement: {e}")
                raise DatabaseError(f"Failed to insert measurement: {e}") from e

    def find_measurement(self, hour: int, date: str) -> Optional[Measurement]:
        """
        Look up the measurement for one recording slot.

        Args:
            hour: Hour of day
            date: Formatted calendar date

        Returns:
            Measurement if one exists, None if no row matches

        Raises:
            DatabaseError: If the query fails (never reported as "not found")
        """
        with self.get_connection() as conn:
            cursor = conn.cursor()

            try:
                cursor.execute("""
                    SELECT * FROM measurements
                    WHERE hour = ? AND date = ?
                    ORDER BY id DESC
                    LIMIT 1
                """, (hour, date))

                row = cursor.fetchone()
                return self._row_to_measurement(row) if row else None

            except sqlite3.Error as e:
                logger.error(f"Error looking up measurement: {e}")
                raise DatabaseError(f"Failed to look up measurement: {e}") from e

    def get_measurements(self, hour: Optional[int] = None) -> List[Measurement]:
        """
        Query stored measurements.

        Args:
            hour: Only return measurements taken at this hour (optional)

        Returns:
            List of Measurement instances, ordered by date then id

        Raises:
            DatabaseError: If query fails
        """
        with self.get_connection() as conn:
            cursor = conn.cursor()

            try:
                query = "SELECT * FROM measurements"
                params = []

                if hour is not None:
                    query += " WHERE hour = ?"
                    params.append(hour)

                query += " ORDER BY date, id"

                cursor.execute(query, params)
                measurements = [self._row_to_measurement(row) for row in cursor.fetchall()]

                logger.debug(f"Retrieved {len(measurements)} measurements (hour={hour})")
                return measurements

            except sqlite3.Error as e:
                logger.error(f"Error querying measurements: {e}")
                raise DatabaseError(f"Failed to query measurements: {e}") from e

    def get_measurements_for_hours(self, hours: Iterable[int]) -> Dict[int, List[Measurement]]:
        """
        Group stored measurements by hour.

        Every requested hour is present in the result, with an empty list
        when nothing has been recorded for it.
        """
        return {hour: self.get_measurements(hour) for hour in hours}

    def get_record_count(self, hour: Optional[int] = None) -> int:
        """
        Get total number of records in database.

        Args:
            hour: Filter by hour of day (optional)

        Returns:
            Number of records

        Raises:
            DatabaseError: If query fails
        """
        with self.get_connection() as conn:
            cursor = conn.cursor()

            try:
                if hour is not None:
                    cursor.execute("""
                        SELECT COUNT(*) as count
                        FROM measurements
                        WHERE hour = ?
                    """, (hour,))
                else:
                    cursor.execute("""
                        SELECT COUNT(*) as count
                        FROM measurements
                    """)

                row = cursor.fetchone()
                return row['count'] if row else 0

            except sqlite3.Error as e:
                logger.error(f"Error getting record count: {e}")
                raise DatabaseError(f"Failed to get record count: {e}") from e

    @staticmethod
    def _row_to_measurement(row: sqlite3.Row) -> Measurement:
        return Measurement(
            id=row['id'],
            hour=row['hour'],
            date=row['date'],
            temperature=row['temperature'],
            wind_speed=row['wind_speed'],
        )
