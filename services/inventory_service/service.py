import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from shared.errors import DomainError, InsufficientStock, NotFound, Outcome, ValidationError, internal_failure
from shared.events import ActivityRecorded
from shared.observability import ecomm_inventory_movements_total

from .models import MOVEMENT_IN, MOVEMENT_OUT, InventoryMovement, Product, ProductVariant
from .repository import InventoryRepository
from .schemas import LedgerCheck, ProductCreate

logger = structlog.get_logger(__name__)


class InventoryLedger:
    """
    Stock counter plus append-only movement log.

    debit() and credit() join the caller's transaction; they are the only
    code paths that change ProductVariant.stock_qty after creation.
    """

    @staticmethod
    async def debit(db: AsyncSession, variant_id: int, qty: int, note: str, label: str = None):
        if qty <= 0:
            raise ValidationError("Quantity must be positive", field="qty")

        if not await InventoryRepository.decrement_if_available(db, variant_id, qty):
            available = await InventoryRepository.current_stock(db, variant_id)
            if available is None:
                raise NotFound(f"Product variant {variant_id} not found", variant_id=variant_id)
            name = label or f"Variant {variant_id}"
            raise InsufficientStock(
                f"{name} is out of stock. Only {available} available.",
                variant_id=variant_id,
                requested=qty,
                available=available,
            )

        movement = await InventoryRepository.add_movement(
            db, InventoryMovement(variant_id=variant_id, direction=MOVEMENT_OUT, qty=qty, note=note)
        )
        ecomm_inventory_movements_total.labels(direction=MOVEMENT_OUT).inc()
        return movement

    @staticmethod
    async def credit(db: AsyncSession, variant_id: int, qty: int, note: str):
        if qty <= 0:
            raise ValidationError("Quantity must be positive", field="qty")

        if not await InventoryRepository.increment(db, variant_id, qty):
            raise NotFound(f"Product variant {variant_id} not found", variant_id=variant_id)

        movement = await InventoryRepository.add_movement(
            db, InventoryMovement(variant_id=variant_id, direction=MOVEMENT_IN, qty=qty, note=note)
        )
        ecomm_inventory_movements_total.labels(direction=MOVEMENT_IN).inc()
        return movement

    @staticmethod
    async def lock_variants(db: AsyncSession, variant_ids):
        return await InventoryRepository.lock_variants(db, variant_ids)


class InventoryService:

    @staticmethod
    async def create_product(db: AsyncSession, data: ProductCreate, actor_id: int = None) -> Outcome:
        try:
            async with db.begin():
                product = Product(name=data.name, is_active=data.is_active)
                await InventoryRepository.add_product(db, product)
                variants = []
                for item in data.variants:
                    variant = ProductVariant(
                        product_id=product.id,
                        sku=item.sku,
                        price=item.price,
                        stock_qty=0,
                        options=dict(item.options),
                        is_active=item.is_active,
                    )
                    db.add(variant)
                    await db.flush()
                    # Opening balance goes through the ledger so movements explain all stock
                    if item.stock_qty:
                        await InventoryLedger.credit(db, variant.id, item.stock_qty, "Initial stock")
                    variants.append(variant)
        except DomainError as exc:
            return Outcome.fail(exc.failure)
        except SQLAlchemyError:
            logger.exception("create_product_failed", name=data.name)
            return Outcome.fail(internal_failure())

        product = await InventoryService.get_product(db, product.id)
        logger.info("product_created", product_id=product.id, variants=len(variants))
        return Outcome.success(
            product,
            [ActivityRecorded("create_product", "product", str(product.id), actor_id, {"name": data.name})],
        )

    @staticmethod
    async def restock(db: AsyncSession, variant_id: int, qty: int, note: str, actor_id: int = None) -> Outcome:
        try:
            async with db.begin():
                movement = await InventoryLedger.credit(db, variant_id, qty, note or "Restock")
        except DomainError as exc:
            return Outcome.fail(exc.failure)
        except SQLAlchemyError:
            logger.exception("restock_failed", variant_id=variant_id)
            return Outcome.fail(internal_failure())

        return Outcome.success(
            movement,
            [ActivityRecorded("restock", "product_variant", str(variant_id), actor_id, {"qty": qty})],
        )

    @staticmethod
    async def get_product(db: AsyncSession, product_id: int):
        return await InventoryRepository.get_product(db, product_id)

    @staticmethod
    async def get_variant(db: AsyncSession, variant_id: int):
        return await InventoryRepository.get_variant(db, variant_id)

    @staticmethod
    async def movements(db: AsyncSession, variant_id: int):
        return await InventoryRepository.list_movements(db, variant_id)

    @staticmethod
    async def reconcile(db: AsyncSession, variant_id: int):
        stock = await InventoryRepository.current_stock(db, variant_id)
        if stock is None:
            return None
        total_in, total_out = await InventoryRepository.movement_totals(db, variant_id)
        return LedgerCheck(
            variant_id=variant_id,
            stock_qty=stock,
            ledger_in=total_in,
            ledger_out=total_out,
            consistent=(total_in - total_out == stock),
        )
