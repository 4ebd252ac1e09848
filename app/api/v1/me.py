"""The caller's own balance and notifications."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.api.v1.auth import get_current_user
from app.core.database import get_db
from app.models import Notification, UserBalance
from app.schemas.account import BalanceResponse, NotificationItem, NotificationsResponse
from app.schemas.auth import CurrentUser

router = APIRouter()


@router.get("/balance", response_model=BalanceResponse)
def read_balance(
    db: Annotated[Session, Depends(get_db)],
    user: Annotated[CurrentUser, Depends(get_current_user)],
) -> BalanceResponse:
    balance = db.get(UserBalance, user.id)
    if balance is None:
        raise HTTPException(status_code=404, detail="Balance not found.")
    return BalanceResponse.model_validate(balance)


@router.get("/notifications", response_model=NotificationsResponse)
def list_notifications(
    db: Annotated[Session, Depends(get_db)],
    user: Annotated[CurrentUser, Depends(get_current_user)],
    limit: Annotated[int, Query(ge=1, le=100)] = 50,
) -> NotificationsResponse:
    rows = db.execute(
        select(Notification)
        .where(Notification.user_id == user.id)
        .order_by(Notification.created_at.desc())
        .limit(limit)
    ).scalars()
    return NotificationsResponse(
        notifications=[NotificationItem.model_validate(n) for n in rows]
    )
