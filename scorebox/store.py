"""
Match persistence: snapshots go in and out as JSON, verbatim.

Saving never raises. A failed write is rolled back, logged and reported through
SaveResult so scoring can carry on with the in-memory state.
"""
import json
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from scorebox.engine.metrics import get_match_result
from scorebox.engine.serialization import dump_match, load_match
from scorebox.engine.state import MatchState, MatchStatus
from scorebox.models.match import MatchRecord

logger = logging.getLogger(__name__)

_STATUS_ALIASES = {
    "draft": MatchStatus.DRAFT,
    "upcoming": MatchStatus.DRAFT,
    "live": MatchStatus.LIVE,
    "in progress": MatchStatus.LIVE,
    "in_progress": MatchStatus.LIVE,
    "completed": MatchStatus.COMPLETED,
    "abandoned": MatchStatus.ABANDONED,
    "deleted": MatchStatus.DELETED,
}


def normalize_status(value) -> MatchStatus:
    """Map loose status labels from older snapshots onto MatchStatus; unknown means draft."""
    if isinstance(value, MatchStatus):
        return value
    if not isinstance(value, str):
        return MatchStatus.DRAFT
    return _STATUS_ALIASES.get(value.strip().lower(), MatchStatus.DRAFT)


def new_match_id() -> str:
    return uuid.uuid4().hex


@dataclass
class SaveResult:
    success: bool
    match_id: str
    error: Optional[str] = None


class MatchStore:
    """Load and save match snapshots through a SQLAlchemy session"""

    def __init__(self, session: Session):
        self.session = session

    def save(self, match_id: str, state: MatchState) -> SaveResult:
        try:
            record = self.session.get(MatchRecord, match_id)
            if record is None:
                record = MatchRecord(id=match_id)
                self.session.add(record)

            record.team_a_name = state.team_a_name
            record.team_b_name = state.team_b_name
            record.format = state.format
            record.status = normalize_status(state.status)
            record.result_summary = get_match_result(state)
            record.state_json = dump_match(state)
            if record.status == MatchStatus.DELETED and record.deleted_at is None:
                record.deleted_at = datetime.now(timezone.utc)

            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Failed to save match {match_id}: {e}")
            return SaveResult(success=False, match_id=match_id, error=str(e))

        logger.debug(f"Saved match {match_id} ({record.status.value})")
        return SaveResult(success=True, match_id=match_id)

    def get_record(self, match_id: str) -> Optional[MatchRecord]:
        return self.session.get(MatchRecord, match_id)

    def load(self, match_id: str) -> Optional[MatchState]:
        record = self.get_record(match_id)
        if record is None:
            return None
        data = json.loads(record.state_json)
        data["status"] = normalize_status(data.get("status")).value
        return load_match(data)

    def list_matches(self, include_deleted: bool = False) -> List[MatchRecord]:
        query = self.session.query(MatchRecord)
        if not include_deleted:
            query = query.filter(MatchRecord.status != MatchStatus.DELETED)
        return query.order_by(MatchRecord.updated_at.desc()).all()

    def delete(self, match_id: str) -> SaveResult:
        """Soft delete: the snapshot stays, flagged deleted."""
        state = self.load(match_id)
        if state is None:
            return SaveResult(success=False, match_id=match_id, error="Match not found")
        state.status = MatchStatus.DELETED
        state.deleted_at = datetime.now(timezone.utc).isoformat()
        return self.save(match_id, state)
