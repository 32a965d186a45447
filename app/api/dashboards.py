# app/api/dashboards.py
#
# One read-only endpoint per dashboard. Dashboards call these on load and
# again whenever /events says the store changed.

from fastapi import APIRouter, HTTPException

from app.api.dependencies import Admin, CurrentUser, DashboardsDep, Operator
from app.models.enums import UserRole
from app.services.dashboards import AdminBoard, CustomerBoard, StaffBoard

router = APIRouter(prefix="/dashboards", tags=["dashboards"])


@router.get("/customer", response_model=CustomerBoard)
def customer_dashboard(user: CurrentUser, dashboards: DashboardsDep):
    if user.role != UserRole.CUSTOMER:
        raise HTTPException(status_code=403, detail="Customers only")
    return dashboards.customer_board(user)


@router.get("/staff", response_model=StaffBoard)
def staff_dashboard(operator: Operator, dashboards: DashboardsDep):
    return dashboards.staff_board()


@router.get("/admin", response_model=AdminBoard)
def admin_dashboard(
    admin: Admin,
    dashboards: DashboardsDep,
    order_search: str = "",
    page: int = 1,
    user_search: str = "",
):
    return dashboards.admin_board(order_search=order_search, page=page, user_search=user_search)
