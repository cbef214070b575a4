"""Triage session history service."""

from collections import Counter
from datetime import date, datetime, timedelta
from typing import Awaitable, Callable, Iterable, List, Optional
from healthcheck.config.database import get_sessions_collection
from healthcheck.models.session import (
    DailySessionCount,
    HistorySummary,
    SymptomCount,
    TriageSession,
)
from healthcheck.models.triage import UrgencyLevel
import logging

logger = logging.getLogger(__name__)

TOP_SYMPTOM_COUNT = 5
ACTIVITY_WINDOW_DAYS = 30


def summarize_sessions(
    sessions: Iterable[TriageSession], today: Optional[date] = None
) -> HistorySummary:
    """
    Compute history page aggregates.

    Args:
        sessions: A user's stored sessions
        today: Last day of the activity window (defaults to the current UTC date)

    Returns:
        HistorySummary with urgency totals, the five most frequent symptoms,
        symptom category counts and per-day counts for the last 30 days
    """
    sessions = list(sessions)
    today = today or datetime.utcnow().date()

    urgency = Counter(s.urgency_level for s in sessions)
    symptoms: Counter = Counter()
    categories: Counter = Counter()
    per_day: Counter = Counter()
    for s in sessions:
        symptoms.update(s.symptoms)
        categories.update(s.symptom_categories)
        per_day[s.created_at.date()] += 1

    window_start = today - timedelta(days=ACTIVITY_WINDOW_DAYS - 1)
    return HistorySummary(
        total_sessions=len(sessions),
        emergency_count=urgency[UrgencyLevel.EMERGENCY],
        urgent_count=urgency[UrgencyLevel.URGENT],
        routine_count=urgency[UrgencyLevel.ROUTINE],
        top_symptoms=[
            SymptomCount(symptom=name, count=count)
            for name, count in symptoms.most_common(TOP_SYMPTOM_COUNT)
        ],
        category_distribution=dict(categories),
        sessions_over_time=[
            DailySessionCount(
                date=(window_start + timedelta(days=i)).isoformat(),
                sessions=per_day[window_start + timedelta(days=i)],
            )
            for i in range(ACTIVITY_WINDOW_DAYS)
        ],
    )


class SessionService:
    """Service for storing and reading finalized triage sessions."""

    def __init__(
        self, collection_getter: Callable[[], Awaitable] = get_sessions_collection
    ):
        self._collection = collection_getter

    async def insert_session(self, session: TriageSession) -> TriageSession:
        """
        Insert a finalized session. Sessions are never updated afterwards.

        Args:
            session: Session built from a finalized verdict

        Returns:
            The stored TriageSession
        """
        collection = await self._collection()
        await collection.insert_one(session.model_dump())

        logger.info(
            f"Stored session {session.session_id} for user {session.user_id} "
            f"(status={session.status.value})"
        )
        return session

    async def get_session(self, session_id: str) -> Optional[TriageSession]:
        collection = await self._collection()
        doc = await collection.find_one({"session_id": session_id})

        if doc:
            return TriageSession(**doc)
        return None

    async def get_user_sessions(
        self, user_id: str, limit: int = 10, offset: int = 0
    ) -> List[TriageSession]:
        """
        Get a user's sessions, newest first.

        Args:
            user_id: User identifier
            limit: Maximum number of sessions to return
            offset: Number of sessions to skip

        Returns:
            List of TriageSession
        """
        collection = await self._collection()
        cursor = (
            collection.find({"user_id": user_id})
            .sort("created_at", -1)
            .skip(offset)
            .limit(limit)
        )

        sessions = []
        async for doc in cursor:
            sessions.append(TriageSession(**doc))

        return sessions

    async def count_user_sessions(self, user_id: str) -> int:
        collection = await self._collection()
        return await collection.count_documents({"user_id": user_id})

    async def get_history_summary(self, user_id: str) -> HistorySummary:
        collection = await self._collection()
        cursor = collection.find({"user_id": user_id}).sort("created_at", -1)

        sessions = []
        async for doc in cursor:
            sessions.append(TriageSession(**doc))

        return summarize_sessions(sessions)


# Global service instance
_session_service: Optional[SessionService] = None


def get_session_service() -> SessionService:
    """Get or create SessionService instance."""
    global _session_service
    if _session_service is None:
        _session_service = SessionService()
    return _session_service
