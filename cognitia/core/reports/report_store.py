"""Report Store for Cognitia.

Insert-only persistence of analysis reports plus the user upsert the
identity bridge needs. Every operation is one transaction; no update or
delete of reports is exposed.
"""

import json
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import literal_column
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..db import DatabaseManager
from ..db.models import Report, User, utcnow
from ..errors import DuplicateIdError, StoreUnavailableError

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 10


def encode_result(result: Dict[str, Any]) -> str:
    """Serialize an AnalysisResult for storage."""
    return json.dumps(result, ensure_ascii=False)


def decode_result(payload: str) -> Dict[str, Any]:
    """Inverse of encode_result."""
    return json.loads(payload)


class ReportStore:
    """Manages users and their reports with database persistence."""

    def __init__(self, db_manager: DatabaseManager):
        self.db = db_manager
        logger.info("ReportStore initialized")

    # =========================================================================
    # Reports
    # =========================================================================

    def append(
        self,
        report_id: str,
        user_id: str,
        query: Optional[str],
        context: Optional[str],
        result: Dict[str, Any],
    ) -> Dict:
        """Insert a new immutable report.

        Raises:
            DuplicateIdError: ``report_id`` already exists (existing row untouched)
            StoreUnavailableError: the database failed
        """
        payload = encode_result(result)
        try:
            with self.db.get_session() as session:
                if session.get(Report, report_id) is not None:
                    raise DuplicateIdError(f"Report '{report_id}' already exists")

                report = Report(
                    id=report_id,
                    user_id=user_id,
                    query=query,
                    context=context,
                    result=payload,
                    created_at=utcnow(),
                )
                session.add(report)
                session.flush()

                logger.info(f"Stored report {report_id} for user {user_id}")
                return self._report_to_dict(report)

        except DuplicateIdError:
            raise
        except IntegrityError as e:
            logger.warning(f"Integrity error storing report {report_id}: {e.orig}")
            if self._report_exists(report_id):
                # Lost a race with a concurrent insert of the same id
                raise DuplicateIdError(f"Report '{report_id}' already exists") from e
            raise StoreUnavailableError(
                f"Report '{report_id}' rejected by the database: {e.orig}"
            ) from e
        except SQLAlchemyError as e:
            logger.error(f"Failed to store report {report_id}: {e}")
            raise StoreUnavailableError(f"Report store unavailable: {e}") from e

    def list_by_user(self, user_id: str, limit: int = DEFAULT_HISTORY_LIMIT) -> List[Dict]:
        """Most recent ``limit`` reports for a user, newest first."""
        if limit <= 0:
            return []

        order = [Report.created_at.desc()]
        if self.db.dialect == "sqlite":
            order.append(literal_column("reports.rowid").desc())
        else:
            order.append(Report.id.desc())

        try:
            with self.db.get_session() as session:
                reports = (
                    session.query(Report)
                    .filter(Report.user_id == user_id)
                    .order_by(*order)
                    .limit(limit)
                    .all()
                )
                return [self._report_to_dict(r) for r in reports]

        except SQLAlchemyError as e:
            logger.error(f"Failed to list reports for user {user_id}: {e}")
            raise StoreUnavailableError(f"Report store unavailable: {e}") from e

    def _report_exists(self, report_id: str) -> bool:
        try:
            with self.db.get_session() as session:
                return session.get(Report, report_id) is not None
        except SQLAlchemyError:
            return False

    # =========================================================================
    # Users
    # =========================================================================

    def upsert_user(self, user_id: str, name: Optional[str], email: Optional[str],
                    avatar: Optional[str]) -> Dict:
        """Create or replace a user record; last write wins."""
        try:
            with self.db.get_session() as session:
                user = session.merge(User(id=user_id, name=name, email=email, avatar=avatar))
                session.flush()
                logger.info(f"Upserted user {user_id}")
                return self._user_to_dict(user)

        except SQLAlchemyError as e:
            logger.error(f"Failed to upsert user {user_id}: {e}")
            raise StoreUnavailableError(f"User store unavailable: {e}") from e

    def get_user(self, user_id: str) -> Optional[Dict]:
        try:
            with self.db.get_session() as session:
                user = session.get(User, user_id)
                return self._user_to_dict(user) if user else None

        except SQLAlchemyError as e:
            logger.error(f"Failed to get user {user_id}: {e}")
            raise StoreUnavailableError(f"User store unavailable: {e}") from e

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _report_to_dict(report: Report) -> Dict:
        return {
            "id": report.id,
            "user_id": report.user_id,
            "query": report.query,
            "context": report.context,
            "result": decode_result(report.result),
            "created_at": report.created_at.isoformat() if report.created_at else None,
        }

    @staticmethod
    def _user_to_dict(user: User) -> Dict:
        return {
            "id": user.id,
            "name": user.name,
            "email": user.email,
            "avatar": user.avatar,
        }
