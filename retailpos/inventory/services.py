"""
Stock bookkeeping.

All stock quantity changes go through `change_stock`, which locks the product
row, journals an InventoryMovement and keeps the product's open StockAlert in
line with its new quantity.
"""
import logging

from django.db import transaction
from django.utils import timezone

from retailpos.catalog.models import Product
from .models import InventoryMovement, StockAlert

logger = logging.getLogger(__name__)

STATUS_CRITICAL = 'critical'
STATUS_LOW = 'low'
STATUS_NORMAL = 'normal'


class StockError(Exception):
    """Raised when a stock change would leave a product with negative stock"""


class BusinessRuleError(Exception):
    """Raised when an operation breaks a business rule (unknown customer, wrong status...)"""


def alert_status(product):
    """critical when out of stock, low when at or under the minimum, normal otherwise"""
    if product.stock_quantity <= 0:
        return STATUS_CRITICAL
    if product.stock_quantity <= product.minimum_stock:
        return STATUS_LOW
    return STATUS_NORMAL


def alert_priority(product):
    if product.stock_quantity <= 0:
        return 'critical'
    if product.stock_quantity <= product.minimum_stock // 2:
        return 'high'
    return 'medium'


def sync_stock_alert(product):
    """
    Create, update or resolve the product's open stock alert.

    Returns the open alert, or None when the product is back to normal.
    """
    open_alerts = StockAlert.objects.filter(product=product, is_resolved=False).exclude(
        alert_type=StockAlert.ALERT_EXPIRING_SOON
    )
    status = alert_status(product)
    if status == STATUS_NORMAL:
        for alert in open_alerts:
            alert.resolve()
        return None

    alert_type = StockAlert.ALERT_OUT_OF_STOCK if status == STATUS_CRITICAL else StockAlert.ALERT_LOW_STOCK
    values = {
        'alert_type': alert_type,
        'current_stock': product.stock_quantity,
        'threshold_stock': product.minimum_stock,
        'priority': alert_priority(product),
    }
    alert = open_alerts.order_by('-created_at').first()
    if alert is None:
        alert = StockAlert.objects.create(product=product, **values)
        logger.info(f"Stock alert raised for {product.name}: {alert_type} ({product.stock_quantity} left)")
        return alert

    changed = [field for field, value in values.items() if getattr(alert, field) != value]
    if changed:
        for field in changed:
            setattr(alert, field, values[field])
        alert.save(update_fields=changed + ['updated_at'])
    return alert


def change_stock(product, delta, movement_type=None, reference=None, reference_type='manual',
                 reason=None, user=None, movement_date=None, notes=None):
    """
    Apply a signed quantity change to a product and journal it.

    The product row is locked for the duration of the surrounding transaction.
    Raises StockError when the resulting stock would be negative.
    """
    delta = int(delta)
    if delta == 0:
        return None

    with transaction.atomic():
        locked = Product.objects.select_for_update().get(pk=product.pk)
        previous_stock = locked.stock_quantity
        new_stock = previous_stock + delta
        if new_stock < 0:
            raise StockError(
                f"Insufficient stock for {locked.name}: available {previous_stock}, requested {-delta}"
            )

        locked.stock_quantity = new_stock
        locked.save(update_fields=['stock_quantity', 'updated_at'])
        product.stock_quantity = new_stock

        if movement_type is None:
            movement_type = InventoryMovement.MOVEMENT_IN if delta > 0 else InventoryMovement.MOVEMENT_OUT

        movement = InventoryMovement.objects.create(
            product=locked,
            movement_type=movement_type,
            quantity=abs(delta),
            previous_stock=previous_stock,
            new_stock=new_stock,
            reference=reference,
            reference_type=reference_type,
            reason=reason,
            movement_date=movement_date or timezone.localdate(),
            notes=notes,
            user=user if user is not None and user.is_authenticated else None,
        )
        sync_stock_alert(locked)

    logger.debug(f"Stock of {locked.name} changed {previous_stock} -> {new_stock} ({movement_type}, ref={reference})")
    return movement


def record_movement(product, movement_type, quantity, **kwargs):
    """Journal a manual movement; incoming types add stock, the others remove it"""
    quantity = int(quantity)
    delta = quantity if movement_type in InventoryMovement.INCOMING_TYPES else -quantity
    return change_stock(product, delta, movement_type=movement_type, **kwargs)


def set_stock(product, new_quantity, **kwargs):
    """Bring a product to an absolute quantity through a journaled adjustment"""
    delta = int(new_quantity) - product.stock_quantity
    if delta == 0:
        return None
    movement_type = InventoryMovement.MOVEMENT_ADJUSTMENT_IN if delta > 0 else InventoryMovement.MOVEMENT_ADJUSTMENT_OUT
    return change_stock(product, delta, movement_type=movement_type, **kwargs)


def resolve_product_alerts(product, notes=None):
    """
    Acknowledge a product's low stock: its minimum drops just under the
    current stock and its open alerts are resolved.
    """
    with transaction.atomic():
        product.minimum_stock = max(product.stock_quantity - 1, 0)
        product.save(update_fields=['minimum_stock', 'updated_at'])
        alerts = list(StockAlert.objects.filter(product=product, is_resolved=False))
        for alert in alerts:
            alert.resolve(notes)
    return len(alerts)


def check_all_stock_alerts():
    """Synchronise alerts for every product; returns the open alerts"""
    alerts = []
    for product in Product.objects.select_related('category'):
        alert = sync_stock_alert(product)
        if alert is not None:
            alerts.append(alert)
    logger.info(f"Stock alert check completed: {len(alerts)} open alerts")
    return alerts
