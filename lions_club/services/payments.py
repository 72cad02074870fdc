from sqlalchemy import desc, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from lions_club.errors import NotFoundError
from lions_club.models import Event, Member, Payment
from lions_club.schemas import PaymentCreate


async def create_payment(session: AsyncSession, data: PaymentCreate) -> Payment:
    if not await session.get(Member, data.member_id):
        raise NotFoundError("會員不存在", code="MEMBER_NOT_FOUND")
    if data.event_id is not None and not await session.get(Event, data.event_id):
        raise NotFoundError("活動不存在", code="EVENT_NOT_FOUND")

    payment = Payment(**data.model_dump())
    session.add(payment)
    await session.commit()
    await session.refresh(payment)
    return payment


async def search_payments(
    session: AsyncSession,
    member_id: int | None = None,
    event_id: int | None = None,
    status: str | None = None,
    limit: int = 20,
    offset: int = 0,
) -> tuple[list[Payment], int]:
    conditions = []
    if member_id is not None:
        conditions.append(Payment.member_id == member_id)
    if event_id is not None:
        conditions.append(Payment.event_id == event_id)
    if status:
        conditions.append(Payment.status == status)

    total = (await session.execute(select(func.count()).select_from(Payment).where(*conditions))).scalar_one()
    result = await session.execute(
        select(Payment).where(*conditions).order_by(desc(Payment.created_at)).offset(offset).limit(limit)  # type: ignore[arg-type]
    )
    return list(result.scalars().all()), total


async def update_payment_status(session: AsyncSession, payment_id: int, status: str) -> Payment:
    payment = await session.get(Payment, payment_id)
    if not payment:
        raise NotFoundError("付款記錄不存在", code="PAYMENT_NOT_FOUND")
    payment.status = status
    session.add(payment)
    await session.commit()
    await session.refresh(payment)
    return payment
