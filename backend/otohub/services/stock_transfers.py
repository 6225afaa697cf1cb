"""
Stock Transfers

Moves a vehicle between two tenants of the same dealer group. These rows
span tenants, so the scoped repositories are bypassed on purpose: each
operation checks the caller's side of the transfer and touches both
tenants' rows in a single transaction.
"""
from typing import List, Optional
import logging

from sqlalchemy import or_, select

from otohub.core.constants import Feature, TransferStatus, VehicleStatus
from otohub.core.errors import InsufficientRole, InvalidOperation, ResourceNotFound, TenantNotFound
from otohub.db.base import utcnow
from otohub.db.database import Database
from otohub.db.models.stock_transfer import StockTransfer
from otohub.db.models.vehicle import Vehicle
from otohub.db.repositories.base import BaseRepository
from otohub.db.repositories.tenant_repository import TenantRepository
from otohub.services.dealer_groups import DealerGroupService
from otohub.services.feature_limits import FeatureLimitEvaluator

logger = logging.getLogger(__name__)


class StockTransferService:
    def __init__(self, database: Database, limits: FeatureLimitEvaluator, groups: DealerGroupService):
        self.database = database
        self.limits = limits
        self.groups = groups

    async def request_transfer(
        self,
        source_tenant_id: str,
        vehicle_id: str,
        target_tenant_id: str,
        requested_by: Optional[str] = None,
        note: Optional[str] = None,
    ) -> StockTransfer:
        if source_tenant_id == target_tenant_id:
            raise InvalidOperation("Target tenant cannot be the same as source tenant")

        async with self.database.session() as session:
            async with session.begin():
                if await TenantRepository(session).get_by_id(target_tenant_id) is None:
                    raise TenantNotFound()
                if not await self.groups.share_group(session, source_tenant_id, target_tenant_id):
                    raise InvalidOperation("Transfers are only possible within a dealer group")

                vehicle = await BaseRepository(Vehicle, session).get_for_update(vehicle_id)
                if (
                    vehicle is None
                    or vehicle.tenant_id != source_tenant_id
                    or vehicle.deleted_at is not None
                    or vehicle.status != VehicleStatus.AVAILABLE.value
                ):
                    raise InvalidOperation("Vehicle not available for transfer (must be AVAILABLE and owned by you)")

                pending = await session.execute(
                    select(StockTransfer.id)
                    .where(StockTransfer.vehicle_id == vehicle_id)
                    .where(StockTransfer.status == TransferStatus.PENDING.value)
                )
                if pending.first() is not None:
                    raise InvalidOperation("Vehicle already has a pending transfer")

                transfer = await BaseRepository(StockTransfer, session).create({
                    "vehicle_id": vehicle_id,
                    "source_tenant_id": source_tenant_id,
                    "target_tenant_id": target_tenant_id,
                    "requested_by": requested_by,
                    "note": note,
                })
                vehicle.status = VehicleStatus.BOOKED.value
        logger.info(f"Stock transfer {transfer.id} requested", extra={"tenant_id": source_tenant_id})
        return transfer

    async def list_transfers(self, tenant_id: str, status: Optional[str] = None) -> List[StockTransfer]:
        async with self.database.session() as session:
            query = select(StockTransfer).where(or_(
                StockTransfer.source_tenant_id == tenant_id,
                StockTransfer.target_tenant_id == tenant_id,
            ))
            if status:
                query = query.where(StockTransfer.status == status)
            result = await session.execute(query.order_by(StockTransfer.created_at.desc()))
            return list(result.scalars().all())

    async def approve_transfer(self, tenant_id: str, transfer_id: str) -> StockTransfer:
        """Recipient accepts: the vehicle changes owner and the transfer closes, atomically."""
        async with self.database.session() as session:
            async with session.begin():
                transfer = await self._pending(session, transfer_id)
                if transfer.target_tenant_id != tenant_id:
                    raise InsufficientRole("Only the recipient can approve this transfer")

                await self.limits.assert_can_create(tenant_id, Feature.VEHICLES, session=session)

                vehicle = await BaseRepository(Vehicle, session).get_for_update(transfer.vehicle_id)
                if vehicle is None or vehicle.tenant_id != transfer.source_tenant_id or vehicle.deleted_at is not None:
                    raise InvalidOperation("Vehicle is no longer available for transfer")

                vehicle.tenant_id = transfer.target_tenant_id
                vehicle.branch_id = None
                vehicle.status = VehicleStatus.AVAILABLE.value
                transfer.status = TransferStatus.APPROVED.value
                transfer.decided_at = utcnow()
        logger.info(
            f"Stock transfer {transfer.id} approved",
            extra={"tenant_id": tenant_id, "source_tenant_id": transfer.source_tenant_id},
        )
        return transfer

    async def reject_transfer(self, tenant_id: str, transfer_id: str, note: Optional[str] = None) -> StockTransfer:
        return await self._close(tenant_id, transfer_id, TransferStatus.REJECTED, note)

    async def cancel_transfer(self, tenant_id: str, transfer_id: str) -> StockTransfer:
        return await self._close(tenant_id, transfer_id, TransferStatus.CANCELLED)

    async def _close(self, tenant_id: str, transfer_id: str, outcome: TransferStatus, note: Optional[str] = None) -> StockTransfer:
        async with self.database.session() as session:
            async with session.begin():
                transfer = await self._pending(session, transfer_id)
                party = transfer.target_tenant_id if outcome == TransferStatus.REJECTED else transfer.source_tenant_id
                if party != tenant_id:
                    raise InsufficientRole(f"Only the {'recipient' if outcome == TransferStatus.REJECTED else 'sender'} can do this")

                vehicle = await BaseRepository(Vehicle, session).get_for_update(transfer.vehicle_id)
                if vehicle is not None and vehicle.status == VehicleStatus.BOOKED.value:
                    vehicle.status = VehicleStatus.AVAILABLE.value
                transfer.status = outcome.value
                transfer.decided_at = utcnow()
                if note:
                    transfer.note = note
        return transfer

    async def _pending(self, session, transfer_id: str) -> StockTransfer:
        transfer = await BaseRepository(StockTransfer, session).get_for_update(transfer_id)
        if transfer is None:
            raise ResourceNotFound("Transfer not found")
        if transfer.status != TransferStatus.PENDING.value:
            raise InvalidOperation("Transfer already processed")
        return transfer
