"""Usage report routes — read-only."""
import logging
from datetime import date
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.database import get_db
from app.schemas.report import UsageReportOut
from app.services import usage_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/facilities/{facility_id}/usage", response_model=UsageReportOut)
def facility_usage(
    facility_id: str,
    date_from: date = Query(...),
    date_to: date = Query(...),
    db: Session = Depends(get_db),
):
    return usage_service.facility_usage(db, facility_id, date_from, date_to)


@router.get("/usage", response_model=list[UsageReportOut])
def community_usage(
    date_from: date = Query(...),
    date_to: date = Query(...),
    db: Session = Depends(get_db),
):
    return usage_service.community_usage(db, date_from, date_to)
