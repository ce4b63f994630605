from fastapi import APIRouter, HTTPException, Depends, Query
from datetime import datetime
import logging

from core.database import ProtocolDatabase, DatabaseError
from core.models import UserRecord
from core.progress import ProgressAggregator, Timeframe
from shared.models import ProgressSummarySchema
from ..dependencies import get_database, get_aggregator, get_current_user, get_now

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/user", tags=["statistics"])

@router.get("/progress", response_model=ProgressSummarySchema)
def get_progress(
    timeframe: Timeframe = Query(Timeframe.WEEK, description="day, week или month"),
    user: UserRecord = Depends(get_current_user),
    database: ProtocolDatabase = Depends(get_database),
    aggregator: ProgressAggregator = Depends(get_aggregator),
    now: datetime = Depends(get_now)
):
    """
    Сводка прогресса: выполнение за сегодня, плотность за период,
    серии полностью выполненных дней и рейтинги протоколов
    """
    try:
        protocols = database.get_protocols(user.user_id)
    except DatabaseError as e:
        logger.error(f"❌ Progress summary error: {e}")
        raise HTTPException(status_code=500, detail="Server error")

    summary = aggregator.summarize(protocols, timeframe, now)
    return ProgressSummarySchema.from_summary(summary)
