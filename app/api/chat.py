# app/api/chat.py
#
# Support chat routes. Who may answer a thread is decided by
# ChatOwnershipArbiter; these routes only check who is calling.

from typing import List

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from app.api.dependencies import (
    ArbiterDep, CurrentUser, DashboardsDep, Operator, ensure_own_thread
)
from app.models.enums import UserRole
from app.services.dashboards import ThreadView

router = APIRouter(prefix="/chat", tags=["chat"])


class MessageIn(BaseModel):
    text: str = Field(min_length=1)


@router.get("/attention", response_model=List[ThreadView])
def threads_needing_attention(operator: Operator, arbiter: ArbiterDep, dashboards: DashboardsDep):
    """Threads a person should look at, for the staff and admin inboxes."""
    return [dashboards.thread_view(t.customer_id) for t in arbiter.threads_needing_attention()]


@router.get("/{customer_id}", response_model=ThreadView)
def get_thread(customer_id: str, user: CurrentUser, dashboards: DashboardsDep):
    ensure_own_thread(user, customer_id)
    return dashboards.thread_view(customer_id)


@router.post("/{customer_id}/messages", response_model=ThreadView)
async def send_customer_message(
    customer_id: str,
    body: MessageIn,
    user: CurrentUser,
    arbiter: ArbiterDep,
    dashboards: DashboardsDep,
):
    """
    The customer writes. If the thread is AI-owned, the automated reply is
    generated before this returns.
    """
    if user.role != UserRole.CUSTOMER or user.id != customer_id:
        raise HTTPException(status_code=403, detail="Only the customer can write here")
    await arbiter.send_customer_message(user, body.text)
    return dashboards.thread_view(customer_id)


@router.post("/{customer_id}/replies", response_model=ThreadView)
def send_operator_reply(
    customer_id: str,
    body: MessageIn,
    operator: Operator,
    arbiter: ArbiterDep,
    dashboards: DashboardsDep,
):
    """A staff/admin reply. Takes the thread over."""
    arbiter.send_operator_reply(customer_id, body.text, operator)
    return dashboards.thread_view(customer_id)


@router.post("/{customer_id}/takeover", response_model=ThreadView)
def take_over_thread(customer_id: str, operator: Operator, arbiter: ArbiterDep, dashboards: DashboardsDep):
    arbiter.take_over(customer_id)
    return dashboards.thread_view(customer_id)


@router.post("/{customer_id}/release", response_model=ThreadView)
def release_thread(customer_id: str, operator: Operator, arbiter: ArbiterDep, dashboards: DashboardsDep):
    arbiter.release(customer_id)
    return dashboards.thread_view(customer_id)


@router.post("/{customer_id}/viewers", status_code=204)
def open_thread(customer_id: str, operator: Operator, arbiter: ArbiterDep):
    """The operator opened the thread on their dashboard."""
    arbiter.viewers.open(customer_id, operator.id)


@router.delete("/{customer_id}/viewers", status_code=204)
def close_thread(customer_id: str, operator: Operator, arbiter: ArbiterDep):
    arbiter.viewers.close(customer_id, operator.id)
