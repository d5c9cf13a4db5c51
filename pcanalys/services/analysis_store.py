"""
Analysis Store.

Persistence for analysis records: create on ingestion, fetch by id, and attach
the result of a recommendation cycle. The store owns identity (UUID4) and
timestamps. "Not found" is a normal outcome here (None), not an error.
"""

import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError

from pcanalys.config.constants import DEFAULT_STATS_WINDOW_DAYS
from pcanalys.schemas.analysis import (
    AnalysisRecord,
    Recommendations,
    UsageProfile,
    to_utc_naive,
    utcnow,
)
from pcanalys.schemas.hardware import HardwareProfile
from pcanalys.services.database.engine import DatabaseManager
from pcanalys.services.database.models import Analysis
from pcanalys.services.errors import PersistenceFailure
from pcanalys.utils.logger import log


class AnalysisStore(ABC):
    """Operations the recommendation pipeline needs from persistence."""

    @abstractmethod
    def create(
        self,
        hardware_profile: HardwareProfile,
        raw_data: Dict[str, Any],
        timestamp: Optional[datetime] = None
    ) -> AnalysisRecord:
        pass

    @abstractmethod
    def get_by_id(self, analysis_id: str) -> Optional[AnalysisRecord]:
        pass

    @abstractmethod
    def attach_recommendations(
        self,
        analysis_id: str,
        recommendations: Recommendations,
        performance_score: int,
        usage_profile: UsageProfile
    ) -> Optional[AnalysisRecord]:
        """Replace the recommendation fields. Last call wins; nothing is merged."""
        pass

    @abstractmethod
    def get_stats(self, days: int = DEFAULT_STATS_WINDOW_DAYS) -> Dict[str, Any]:
        pass


class SQLAlchemyAnalysisStore(AnalysisStore):
    """
    AnalysisStore backed by the SQLAlchemy `analyses` table.
    """

    def __init__(self, db_manager: DatabaseManager):
        self.db_manager = db_manager

    def create(
        self,
        hardware_profile: HardwareProfile,
        raw_data: Dict[str, Any],
        timestamp: Optional[datetime] = None
    ) -> AnalysisRecord:
        session = self.db_manager.get_session()
        try:
            created_at = to_utc_naive(timestamp) if timestamp else utcnow()
            row = Analysis(
                id=str(uuid.uuid4()),
                raw_data=raw_data,
                hardware_profile=hardware_profile.to_dict(),
                created_at=created_at,
                updated_at=created_at,
            )
            session.add(row)
            session.commit()
            session.refresh(row)
            log.info(f"Stored analysis {row.id} ({hardware_profile.cpu.name})")
            return self._to_record(row)
        except SQLAlchemyError as e:
            session.rollback()
            log.error(f"Failed to store analysis: {e}")
            raise PersistenceFailure("Failed to store analysis") from e
        finally:
            session.close()

    def get_by_id(self, analysis_id: str) -> Optional[AnalysisRecord]:
        session = self.db_manager.get_session()
        try:
            row = session.get(Analysis, analysis_id)
            return self._to_record(row) if row else None
        except SQLAlchemyError as e:
            log.error(f"Failed to load analysis {analysis_id}: {e}")
            raise PersistenceFailure("Failed to load analysis") from e
        finally:
            session.close()

    def attach_recommendations(
        self,
        analysis_id: str,
        recommendations: Recommendations,
        performance_score: int,
        usage_profile: UsageProfile
    ) -> Optional[AnalysisRecord]:
        session = self.db_manager.get_session()
        try:
            row = session.get(Analysis, analysis_id)
            if row is None:
                return None

            row.recommendations = recommendations.to_dict()
            row.performance_score = performance_score
            row.usage_profile = usage_profile.value
            session.commit()
            session.refresh(row)
            log.info(f"Attached {usage_profile.value} recommendations to {analysis_id} (score {performance_score})")
            return self._to_record(row)
        except SQLAlchemyError as e:
            session.rollback()
            log.error(f"Failed to attach recommendations to {analysis_id}: {e}")
            raise PersistenceFailure("Failed to save recommendations") from e
        finally:
            session.close()

    def get_stats(self, days: int = DEFAULT_STATS_WINDOW_DAYS) -> Dict[str, Any]:
        """
        Analysis counts over the last `days` days.
        """
        since = utcnow() - timedelta(days=days)
        session = self.db_manager.get_session()
        try:
            recent = session.query(Analysis).filter(Analysis.created_at >= since)
            total = recent.count()
            with_recommendations = recent.filter(Analysis.recommendations.isnot(None)).count()
        except SQLAlchemyError as e:
            log.error(f"Failed to compute analysis stats: {e}")
            raise PersistenceFailure("Failed to compute analysis stats") from e
        finally:
            session.close()

        return {
            "totalAnalyses": total,
            "analysesWithRecommendations": with_recommendations,
            "completionRate": (with_recommendations / total) * 100 if total > 0 else 0,
        }

    @staticmethod
    def _to_record(row: Analysis) -> AnalysisRecord:
        return AnalysisRecord(
            id=row.id,
            created_at=row.created_at,
            raw_data=row.raw_data,
            hardware_profile=HardwareProfile.from_dict(row.hardware_profile),
            usage_profile=UsageProfile(row.usage_profile) if row.usage_profile else None,
            recommendations=Recommendations.from_dict(row.recommendations) if row.recommendations else None,
            performance_score=row.performance_score,
            updated_at=row.updated_at,
        )
