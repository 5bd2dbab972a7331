"""
Lead to order conversion.

    VALIDATING -> RESOLVING_CUSTOMER -> ALLOCATING_NUMBER
        -> MATERIALIZING_ORDER -> FLIPPING_LEAD_STATUS -> COMMITTED
    (ABORTED from any stage)

Validation runs before any transaction is opened. The four working stages
after it run in one serializable transaction, in this order: the EM series
is picked by the order country, which is only known once the lead is loaded.
Audit entries are written after commit and may fail on their own.
"""
import uuid
import logging
from enum import Enum
from typing import Optional

from sqlmodel.ext.asyncio.session import AsyncSession

from crm_backend.core.exceptions import ConversionValidationError, classify_storage_error
from crm_backend.database import serializable_transaction
from crm_backend.models.audit import Actions
from crm_backend.models.lead import LeadStatus
from crm_backend.models.order import Order
from crm_backend.repositories.lead_repo import LeadRepository
from crm_backend.repositories.order_repo import OrderRepository
from crm_backend.schemas.conversion import ConversionOptions, ConversionValidationResult
from crm_backend.services.audit_service import AuditService
from crm_backend.services.conversion.customer_resolver import CustomerResolver
from crm_backend.services.conversion.materializer import OrderMaterializer, resolve_order_country
from crm_backend.services.conversion.sequence import EmNumberAllocator
from crm_backend.services.conversion.snapshot import LeadSnapshotReader
from crm_backend.services.conversion.validator import validate_conversion

logger = logging.getLogger(__name__)


class ConversionStage(str, Enum):
    VALIDATING = "validating"
    RESOLVING_CUSTOMER = "resolving_customer"
    ALLOCATING_NUMBER = "allocating_number"
    MATERIALIZING_ORDER = "materializing_order"
    FLIPPING_LEAD_STATUS = "flipping_lead_status"
    COMMITTED = "committed"
    ABORTED = "aborted"


class LeadConversionService:
    """Service for converting leads into orders."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.snapshot_reader = LeadSnapshotReader(session)
        self.customer_resolver = CustomerResolver(session)
        self.allocator = EmNumberAllocator(session)
        self.materializer = OrderMaterializer(session)
        self.lead_repo = LeadRepository(session)
        self.order_repo = OrderRepository(session)
        self.audit = AuditService(session)

    async def validate_conversion(self, lead_id: uuid.UUID) -> ConversionValidationResult:
        """Dry run: same checks as convert_lead, nothing written."""
        snapshot = await self.snapshot_reader.load(lead_id)
        return validate_conversion(snapshot)

    async def convert_lead(
        self,
        lead_id: uuid.UUID,
        options: Optional[ConversionOptions] = None,
        actor_id: Optional[uuid.UUID] = None
    ) -> Order:
        """
        Convert a lead into an order.

        Raises:
            NotFoundError: lead does not exist
            ConversionValidationError: preconditions failed, storage untouched
            SequenceUnavailableError: the country's EM series is inactive
            TransientStorageError: lock timeout, serialization failure or a
                customer phone race; nothing was committed, safe to retry
            OrderConflictError: EM number or source lead already taken by a
                stored order; not retriable
        """
        options = options or ConversionOptions()

        stage = ConversionStage.VALIDATING
        snapshot = await self.snapshot_reader.load(lead_id)
        result = validate_conversion(snapshot)
        if not result.can_convert:
            raise ConversionValidationError(result.errors, result.warnings)

        stage = ConversionStage.RESOLVING_CUSTOMER
        try:
            async with serializable_transaction(self.session):
                customer_id = await self.customer_resolver.resolve(snapshot)

                stage = ConversionStage.ALLOCATING_NUMBER
                em_number = await self.allocator.allocate(resolve_order_country(snapshot))

                stage = ConversionStage.MATERIALIZING_ORDER
                order = await self.materializer.materialize(snapshot, customer_id, em_number, options)

                stage = ConversionStage.FLIPPING_LEAD_STATUS
                await self.lead_repo.update(snapshot.id, {"status": LeadStatus.WON}, commit=False)
        except Exception as e:
            logger.warning(
                f"Conversion of lead {lead_id} {ConversionStage.ABORTED.value} "
                f"during {stage.value}: {e}"
            )
            domain_error = classify_storage_error(e)
            if domain_error is not None:
                raise domain_error from e
            raise

        stage = ConversionStage.COMMITTED
        order_key = order.order_key
        order_data = order.model_dump(mode="json")
        logger.info(f"Conversion of lead {lead_id} {stage.value}: order {order_key} ({em_number})")

        await self.audit.log(
            entity_type="lead",
            entity_id=lead_id,
            action=Actions.CONVERT_TO_ORDER,
            actor_user_id=actor_id,
            before={"status": snapshot.status.value},
            after={"status": LeadStatus.WON.value, "order_key": str(order_key)}
        )
        await self.audit.log(
            entity_type="order",
            entity_id=order_key,
            action=Actions.CREATE,
            actor_user_id=actor_id,
            after=order_data
        )

        return await self.order_repo.get_with_relations(order_key)
