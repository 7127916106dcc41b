from typing import Sequence

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Order, OrderItem
from .state_machine import OrderStatus, PaymentStatus


class OrderRepository:

    @staticmethod
    async def add_order(db: AsyncSession, order: Order) -> Order:
        """Stages the order and its items. The caller owns the commit."""
        db.add(order)
        await db.flush()
        return order

    @staticmethod
    async def get_order(db: AsyncSession, order_id: str) -> Order | None:
        result = await db.execute(select(Order).where(Order.id == order_id))
        return result.scalars().first()

    @staticmethod
    async def list_orders_for_user(db: AsyncSession, user_id: str) -> Sequence[Order]:
        result = await db.execute(
            select(Order).where(Order.user_id == user_id).order_by(Order.created_at.desc())
        )
        return result.scalars().all()

    @staticmethod
    async def set_payment_intent(db: AsyncSession, order: Order, intent_id: str) -> Order:
        order.payment_intent_id = intent_id
        await db.commit()
        await db.refresh(order)
        return order

    # Compare-and-set updates: each returns False when another request got there first

    @staticmethod
    async def transition_status(
        db: AsyncSession, order_id: str, expected: OrderStatus, target: OrderStatus, **values
    ) -> bool:
        result = await db.execute(
            update(Order)
            .where(Order.id == order_id, Order.status == expected)
            .values(status=target, **values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    @staticmethod
    async def mark_paid(
        db: AsyncSession, order_id: str, transaction_id: str, status: OrderStatus | None = None
    ) -> bool:
        values = {"payment_status": PaymentStatus.PAID, "payment_transaction_id": transaction_id}
        if status is not None:
            values["status"] = status
        result = await db.execute(
            update(Order)
            .where(
                Order.id == order_id,
                Order.payment_status == PaymentStatus.PENDING,
                Order.status != OrderStatus.CANCELLED,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    @staticmethod
    async def delete_unpaid(db: AsyncSession, order_id: str) -> bool:
        result = await db.execute(
            delete(Order)
            .where(
                Order.id == order_id,
                Order.payment_status == PaymentStatus.PENDING,
                Order.status != OrderStatus.CANCELLED,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return False
        await db.execute(
            delete(OrderItem)
            .where(OrderItem.order_id == order_id)
            .execution_options(synchronize_session=False)
        )
        return True

    @staticmethod
    async def save_shipment(db: AsyncSession, order_id: str, shipment: dict) -> bool:
        """Stores the courier outcome unless the order was cancelled meanwhile."""
        result = await db.execute(
            update(Order)
            .where(Order.id == order_id, Order.status != OrderStatus.CANCELLED)
            .values(shipment_details=shipment)
            .execution_options(synchronize_session=False)
        )
        await db.commit()
        return result.rowcount == 1
