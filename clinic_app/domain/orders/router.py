"""Order router - Booking commit and order status endpoints"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session as DbSession

from ...auth import CurrentUser, get_current_user, require_admin
from ...cache import get_cache
from ...database import get_db
from .schemas import OrderCreate, OrderResponse, OrderStatusUpdate
from .service import OrderService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/orders", tags=["Orders"])


def get_order_service(db: DbSession = Depends(get_db), cache=Depends(get_cache)) -> OrderService:
    """Dependency injection for OrderService"""
    return OrderService(db, cache)


@router.post("", response_model=OrderResponse, status_code=201)
async def create_order(
    data: OrderCreate,
    current_user: CurrentUser = Depends(get_current_user),
    service: OrderService = Depends(get_order_service),
):
    """Book a slot. 409 means someone else took it first; re-query /availability."""
    return service.create_order(data, current_user)


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    service: OrderService = Depends(get_order_service),
):
    return service.get_order(order_id, current_user)


@router.patch("/{order_id}", response_model=OrderResponse)
async def update_order_status(
    order_id: str,
    data: OrderStatusUpdate,
    admin: CurrentUser = Depends(require_admin),
    service: OrderService = Depends(get_order_service),
):
    """Change order status (admin)"""
    return service.update_status(order_id, data.status, admin)


@router.delete("/{order_id}", response_model=OrderResponse)
async def cancel_order(
    order_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    service: OrderService = Depends(get_order_service),
):
    """Cancel an order (status → cancelled; the row is kept)"""
    return service.cancel_order(order_id, current_user)
