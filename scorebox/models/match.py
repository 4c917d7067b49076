from typing import Optional
from sqlalchemy import String, DateTime, Text, Enum
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime, timezone

from scorebox.database import Base
from scorebox.engine.state import MatchFormat, MatchStatus


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MatchRecord(Base):
    """A stored match snapshot. The scoring state lives in state_json untouched."""
    __tablename__ = "matches"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)

    # Listing columns, copied out of the snapshot on every save
    team_a_name: Mapped[str] = mapped_column(String(100))
    team_b_name: Mapped[str] = mapped_column(String(100))
    format: Mapped[MatchFormat] = mapped_column(Enum(MatchFormat), default=MatchFormat.INDOOR)
    status: Mapped[MatchStatus] = mapped_column(Enum(MatchStatus), default=MatchStatus.DRAFT)
    result_summary: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    state_json: Mapped[str] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow, onupdate=_utcnow)
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    def __repr__(self):
        return f"<MatchRecord {self.id}: {self.team_a_name} vs {self.team_b_name} ({self.status.value})>"
