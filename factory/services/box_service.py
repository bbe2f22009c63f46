"""
Box Service.

A box is created exactly once per batch, as part of the transaction that
approves the batch's PACKING log. After that its status only moves forward:
PACKED -> SHIPPED -> DELIVERED.
"""
import logging
import uuid
from typing import Optional, List, Tuple

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from factory.config import settings
from factory.core.context import AuthContext
from factory.core.enum_utils import get_enum_value, to_enum
from factory.core.exceptions import ValidationFailed, NotFound, Conflict
from factory.core.time_utils import utc_now
from factory.database import atomic
from factory.models.batch import Batch
from factory.models.box import Box, BoxStatus
from factory.schemas.box import BoxResponse
from factory.services import events
from factory.services.events import EventPublisher, notify


logger = logging.getLogger(__name__)


BOX_STATUS_ORDER: List[BoxStatus] = [
    BoxStatus.PACKED,
    BoxStatus.SHIPPED,
    BoxStatus.DELIVERED,
]


def box_code_for(batch: Batch) -> str:
    return f"{settings.BOX_CODE_PREFIX}-{batch.batch_number}"


class BoxService:
    """Service for shipping boxes."""

    def __init__(self, db: AsyncSession, publisher: Optional[EventPublisher] = None):
        self.db = db
        self.publisher = publisher

    async def get_box_for_batch(self, batch_id: uuid.UUID) -> Optional[Box]:
        result = await self.db.execute(select(Box).where(Box.batch_id == batch_id))
        return result.scalar_one_or_none()

    async def create_box_for_batch(self, batch: Batch) -> Box:
        """
        Create the batch's box inside the caller's transaction.

        The unique constraint on batch_id is the last line of defence
        against a concurrent second PACKING approval.

        Raises:
            Conflict: if the batch already has a box
        """
        batch_id = batch.id
        batch_number = batch.batch_number
        box_code = box_code_for(batch)

        box = Box(
            box_code=box_code,
            batch_id=batch_id,
            quantity=batch.usable_quantity,
            status=BoxStatus.PACKED.value,
        )
        self.db.add(box)
        try:
            await self.db.flush()
        except IntegrityError:
            # the failed flush expires session state; only locals are safe here
            logger.warning(f"Duplicate box creation attempted for batch {batch_number}")
            raise Conflict(
                f"A box already exists for batch {batch_number}",
                {"batch_id": str(batch_id), "box_code": box_code},
            )

        logger.info(f"Box {box.box_code} packed with {box.quantity} units")
        return box

    async def list_boxes(
        self,
        status: Optional[BoxStatus] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> Tuple[List[Box], int]:
        query = select(Box)
        count_query = select(func.count(Box.id))
        if status:
            query = query.where(Box.status == get_enum_value(status))
            count_query = count_query.where(Box.status == get_enum_value(status))

        total = (await self.db.execute(count_query)).scalar_one()
        result = await self.db.execute(
            query.order_by(Box.created_at.desc()).offset(skip).limit(limit)
        )
        return list(result.scalars().all()), total

    async def update_status(self, box_id: uuid.UUID, new_status, ctx: AuthContext) -> Box:
        """
        Move a box forward in the shipping flow.

        Raises:
            NotFound: unknown box
            ValidationFailed: the requested status is not ahead of the current one
        """
        target = to_enum(new_status, BoxStatus)
        if target is None:
            raise ValidationFailed(f"Unknown box status {new_status}")

        async with atomic(self.db):
            result = await self.db.execute(
                select(Box)
                .where(Box.id == box_id)
                .with_for_update()
                .execution_options(populate_existing=True)
            )
            box = result.scalar_one_or_none()
            if box is None:
                raise NotFound("Box not found", {"box_id": str(box_id)})

            current = to_enum(box.status, BoxStatus)
            if BOX_STATUS_ORDER.index(target) <= BOX_STATUS_ORDER.index(current):
                raise ValidationFailed(
                    f"Box status can only move forward (currently {current.value})",
                    {"current_status": current.value, "requested_status": target.value},
                )

            now = utc_now()
            if target in (BoxStatus.SHIPPED, BoxStatus.DELIVERED) and box.shipped_at is None:
                box.shipped_at = now
            if target == BoxStatus.DELIVERED:
                box.delivered_at = now
            box.status = target.value
            await self.db.flush()

        logger.info(f"Box {box.box_code} moved {current.value} -> {target.value} by {ctx.user_id}")
        await notify(self.publisher, events.BOX_UPDATED, BoxResponse.payload(box))
        return box
