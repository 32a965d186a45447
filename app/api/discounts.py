# app/api/discounts.py

from typing import List, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from app.api.dependencies import Admin, CurrentUser, DiscountsDep, StoreDep
from app.models.enums import UserRole
from app.models.schemas import DiscountRecord

router = APIRouter(prefix="/discounts", tags=["discounts"])


class DiscountGrant(BaseModel):
    user_id: str
    amount: Optional[float] = Field(default=None, gt=0)


@router.post("", response_model=DiscountRecord, status_code=201)
def grant_discount(body: DiscountGrant, admin: Admin, store: StoreDep, discounts: DiscountsDep):
    if not store.get_user(body.user_id):
        raise HTTPException(status_code=404, detail="User not found")
    return discounts.grant(admin, body.user_id, amount=body.amount)


@router.get("", response_model=List[DiscountRecord])
def list_discounts(user: CurrentUser, store: StoreDep):
    if user.role == UserRole.ADMIN:
        return store.get_discounts()
    return store.get_discounts(user.id)


@router.post("/{discount_id}/claim", response_model=DiscountRecord)
def claim_discount(discount_id: str, user: CurrentUser, discounts: DiscountsDep):
    offer = discounts.claim(user.id, discount_id)
    if not offer:
        raise HTTPException(status_code=404, detail="Discount not found")
    return offer
