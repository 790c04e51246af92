import logging
from decimal import Decimal

from django.db import transaction
from django.utils import timezone

from retailpos.core.utils import create_audit_log, next_document_number
from retailpos.catalog.models import Product
from retailpos.inventory.models import InventoryMovement
from retailpos.inventory.services import BusinessRuleError, change_stock
from .models import Purchase

logger = logging.getLogger(__name__)


def generate_purchase_number(day=None):
    return next_document_number(Purchase, 'purchase_number', 'PUR', day)


def create_purchase(validated_data, user=None):
    """Create a single-product purchase; stock is only added when it is received"""
    with transaction.atomic():
        purchase = Purchase(**validated_data)
        purchase.purchase_number = generate_purchase_number()
        purchase.purchase_type = Purchase.TYPE_SINGLE
        purchase.calculate_totals()
        purchase.created_by = user if user is not None and user.is_authenticated else None
        receive_now = purchase.status == Purchase.STATUS_RECEIVED
        if receive_now:
            purchase.status = Purchase.STATUS_PENDING
        purchase.save()
        if receive_now:
            receive_purchase(purchase, user=user)
    logger.info(f"Purchase {purchase.purchase_number} created for {purchase.final_cost}")
    return purchase


def create_bulk_purchase(lines, user=None):
    """
    One pending purchase holding several product lines.

    Supplier, payment method and dates come from the first line.
    """
    products = []
    for line in lines:
        product = line['product_id']
        total_cost = line['unit_cost'] * line['quantity']
        final_cost = total_cost + line['shipping_cost'] + line['tax']
        products.append({
            'product_id': product.id,
            'product_name': product.name,
            'quantity': line['quantity'],
            'unit_cost': str(line['unit_cost']),
            'total_cost': str(total_cost),
            'shipping_cost': str(line['shipping_cost']),
            'tax': str(line['tax']),
            'final_cost': str(final_cost),
        })

    first = lines[0]
    with transaction.atomic():
        purchase = Purchase.objects.create(
            purchase_number=generate_purchase_number(),
            product=first['product_id'],
            products=products,
            purchase_type=Purchase.TYPE_BULK,
            supplier=first['supplier_id'],
            quantity=sum(line['quantity'] for line in lines),
            unit_cost=first['unit_cost'],
            total_cost=sum((Decimal(p['total_cost']) for p in products), Decimal('0.00')),
            shipping_cost=sum((line['shipping_cost'] for line in lines), Decimal('0.00')),
            tax=sum((line['tax'] for line in lines), Decimal('0.00')),
            final_cost=sum((Decimal(p['final_cost']) for p in products), Decimal('0.00')),
            payment_method=first['payment_method'],
            status=Purchase.STATUS_PENDING,
            order_date=first['order_date'],
            expected_delivery_date=first.get('expected_delivery_date'),
            notes=first.get('notes') or None,
            created_by=user if user is not None and user.is_authenticated else None,
        )
    logger.info(f"Bulk purchase {purchase.purchase_number} created with {len(products)} lines")
    return purchase


def receive_purchase(purchase, user=None, request=None):
    """Mark a purchase received and add every line's quantity to stock"""
    if purchase.status == Purchase.STATUS_RECEIVED:
        raise BusinessRuleError('Purchase has already been received')
    if purchase.status == Purchase.STATUS_CANCELLED:
        raise BusinessRuleError('A cancelled purchase cannot be received')

    with transaction.atomic():
        purchase = Purchase.objects.select_for_update().get(pk=purchase.pk)
        if purchase.status != Purchase.STATUS_PENDING:
            raise BusinessRuleError('Purchase has already been received')
        purchase.status = Purchase.STATUS_RECEIVED
        purchase.received_date = timezone.localdate()
        purchase.save(update_fields=['status', 'received_date', 'updated_at'])

        products = Product.objects.in_bulk([product_id for product_id, _ in purchase.get_lines()])
        for product_id, quantity in purchase.get_lines():
            product = products.get(product_id)
            if product is None:
                raise BusinessRuleError(f'Product {product_id} of this purchase no longer exists')
            change_stock(
                product, quantity, movement_type=InventoryMovement.MOVEMENT_IN,
                reference=purchase.purchase_number, reference_type='purchase',
                reason='Purchase received', user=user, movement_date=purchase.received_date,
            )

    logger.info(f"Purchase {purchase.purchase_number} received")
    create_audit_log(request=request, user=user, action='purchase_receive', model_name='Purchase',
                     object_id=purchase.id, object_name=purchase.purchase_number,
                     object_reference=purchase.purchase_number,
                     changes={'lines': [{'product_id': pid, 'quantity': qty} for pid, qty in purchase.get_lines()]})
    return purchase
