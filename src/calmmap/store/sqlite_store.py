"""
SQLite-backed segment store.
"""

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, List, Optional

from calmmap.core.adjacency import AdjacencyBuilder
from calmmap.errors import DataInconsistencyError
from calmmap.models import Request, Segment, SegmentFilter
from calmmap.store.base import SegmentStore
from calmmap.store.migrations import apply_schema

logger = logging.getLogger(__name__)

SEGMENT_COLUMNS = (
    "id, str_name, str_type, st_class, full_name, from_str, to_str, "
    "route_id, direction, line_string, first_point, last_point"
)


class SqliteSegmentStore(SegmentStore):
    """Persistent store of segments, segment links and requests."""

    def __init__(self, db_path: Path, builder: Optional[AdjacencyBuilder] = None):
        """Initialize store.

        Args:
            db_path: Path to SQLite database file
            builder: Adjacency builder used on load (default settings if omitted)
        """
        self.db_path = Path(db_path)
        self.builder = builder or AdjacencyBuilder()
        self._ensure_schema()

    def _ensure_schema(self) -> None:
        """Create tables if they don't exist."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        apply_schema(self.db_path)

    @contextmanager
    def _get_connection(self):
        """Get database connection that commits on success, rolls back on error."""
        conn = sqlite3.connect(
            self.db_path,
            timeout=30.0,
            isolation_level="DEFERRED"
        )
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def reset(self) -> None:
        """Delete all segments, links and requests."""
        with self._get_connection() as conn:
            self._clear(conn)

    @staticmethod
    def _clear(conn: sqlite3.Connection) -> None:
        conn.execute("DELETE FROM segment_links")
        conn.execute("DELETE FROM segments")
        conn.execute("DELETE FROM requests")

    @staticmethod
    def _check_new_routes(conn: sqlite3.Connection, segments: List[Segment]) -> None:
        stored = {row[0] for row in conn.execute("SELECT DISTINCT route_id FROM segments")}
        reloaded = sorted({seg.route_id for seg in segments} & stored)
        if reloaded:
            raise DataInconsistencyError(f"routes already loaded: {reloaded}")

    def requests(self) -> List[Request]:
        with self._get_connection() as conn:
            rows = conn.execute(
                """SELECT street_name, from_street, to_street, district, rank
                   FROM requests ORDER BY rank"""
            ).fetchall()

        return [
            Request(
                street_name=row["street_name"],
                from_street=row["from_street"],
                to_street=row["to_street"],
                district=row["district"],
                rank=row["rank"],
            )
            for row in rows
        ]

    def filter_segments(self, segment_filter: SegmentFilter) -> List[Segment]:
        conditions = ["1 = 1"]
        params: List[Any] = []

        if segment_filter.ids:
            placeholders = ",".join("?" * len(segment_filter.ids))
            conditions.append(f"id IN ({placeholders})")
            params.extend(segment_filter.ids)

        if segment_filter.full_names:
            conditions.append(
                "(" + " OR ".join("UPPER(full_name) = UPPER(?)" for _ in segment_filter.full_names) + ")"
            )
            params.extend(segment_filter.full_names)

        if segment_filter.route_ids:
            placeholders = ",".join("?" * len(segment_filter.route_ids))
            conditions.append(f"route_id IN ({placeholders})")
            params.extend(segment_filter.route_ids)

        if segment_filter.end_streets:
            conditions.append(
                "(" + " OR ".join(
                    "UPPER(?) IN (UPPER(from_str), UPPER(to_str))" for _ in segment_filter.end_streets
                ) + ")"
            )
            params.extend(segment_filter.end_streets)

        where_clause = " AND ".join(conditions)
        sql = f"SELECT {SEGMENT_COLUMNS} FROM segments WHERE {where_clause} ORDER BY id"

        with self._get_connection() as conn:
            rows = conn.execute(sql, params).fetchall()
            return [Segment.from_db_row(row) for row in rows]

    def route_links(self, route_id: int) -> Dict[int, List[int]]:
        links: Dict[int, List[int]] = {}
        with self._get_connection() as conn:
            rows = conn.execute(
                "SELECT id, next_id FROM segment_links WHERE route_id = ? ORDER BY rowid",
                (route_id,)
            ).fetchall()

        for row in rows:
            links.setdefault(row["id"], []).append(row["next_id"])
        return links

    def load_segments(
        self,
        segments: List[Segment],
        requests: Optional[List[Request]] = None,
        replace: bool = False,
    ) -> None:
        """Insert segments and their links (and optionally requests) in one transaction.

        Links are computed before the transaction opens; if that or any
        insert fails, nothing from this batch is stored and, with replace,
        the previous contents are kept.

        Args:
            segments: Segments to store, grouped into routes by route id
            requests: Requests to store alongside
            replace: Clear segments, links and requests in the same transaction

        Raises:
            DataInconsistencyError: If adjacency cannot be built or a route
                is already stored
            sqlite3.IntegrityError: If a segment id already exists
        """
        links = self.builder.build(segments)

        with self._get_connection() as conn:
            if replace:
                self._clear(conn)
            else:
                self._check_new_routes(conn, segments)
            conn.executemany(
                f"INSERT INTO segments ({SEGMENT_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                [seg.to_db_params() for seg in segments]
            )
            conn.executemany(
                "INSERT INTO segment_links (id, route_id, next_id) VALUES (?, ?, ?)",
                [tuple(link) for link in links]
            )
            if requests:
                self._insert_requests(conn, requests)

        logger.info(f"Stored {len(segments)} segments and {len(links)} links in {self.db_path}")

    def load_requests(self, requests: List[Request]) -> None:
        with self._get_connection() as conn:
            self._insert_requests(conn, requests)

    @staticmethod
    def _insert_requests(conn: sqlite3.Connection, requests: List[Request]) -> None:
        conn.executemany(
            """INSERT INTO requests (street_name, from_street, to_street, district, rank)
               VALUES (?, ?, ?, ?, ?)""",
            [
                (
                    req.street_name,
                    req.from_street or None,
                    req.to_street or None,
                    req.district,
                    req.rank,
                )
                for req in requests
            ]
        )

    def get_statistics(self) -> Dict[str, Any]:
        """Get row counts for the database.

        Returns:
            Dict with segment, route, link and request counts
        """
        with self._get_connection() as conn:
            return {
                "segments": conn.execute("SELECT COUNT(*) FROM segments").fetchone()[0],
                "routes": conn.execute("SELECT COUNT(DISTINCT route_id) FROM segments").fetchone()[0],
                "links": conn.execute("SELECT COUNT(*) FROM segment_links").fetchone()[0],
                "requests": conn.execute("SELECT COUNT(*) FROM requests").fetchone()[0],
            }
