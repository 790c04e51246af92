"""
Sale workflows: pricing, invoice numbering, stock movements and loyalty points.
"""
import logging
from collections import defaultdict
from decimal import Decimal

from django.db import transaction

from retailpos.core.utils import create_audit_log, next_document_number
from retailpos.catalog.models import Product
from retailpos.parties.models import Customer
from retailpos.inventory.models import InventoryMovement
from retailpos.inventory.services import BusinessRuleError, StockError, change_stock
from .models import Sale, ANONYMOUS_CUSTOMER_NAME

logger = logging.getLogger(__name__)


def generate_invoice_number(day=None):
    return next_document_number(Sale, 'invoice_number', 'INV', day)


def _held_quantities(sale):
    """Quantities per product currently taken out of stock by `sale`"""
    held = defaultdict(int)
    if sale is None or sale.status == Sale.STATUS_CANCELLED:
        return held
    for product_id, quantity in sale.get_lines():
        held[product_id] += quantity
    return held


def _apply_stock_difference(before, after, sale, user, reason):
    """
    Move stock so it reflects `after` instead of `before` (both product_id -> quantity).
    Returned stock is applied first so swapping quantities between lines never fails.
    """
    deltas = {
        product_id: before.get(product_id, 0) - after.get(product_id, 0)
        for product_id in set(before) | set(after)
    }
    products = Product.objects.in_bulk(list(deltas))
    for product_id, delta in sorted(deltas.items(), key=lambda item: -item[1]):
        if delta == 0:
            continue
        product = products.get(product_id)
        if product is None:
            raise BusinessRuleError(f'Product {product_id} no longer exists')
        change_stock(
            product, delta,
            movement_type=InventoryMovement.MOVEMENT_IN if delta > 0 else InventoryMovement.MOVEMENT_OUT,
            reference=sale.invoice_number, reference_type='sale', reason=reason,
            user=user, movement_date=sale.sale_date,
        )


def _fill_customer_details(sale):
    if sale.customer:
        if not sale.customer_name or sale.customer_name == ANONYMOUS_CUSTOMER_NAME:
            sale.customer_name = sale.customer.name
        sale.customer_email = sale.customer_email or sale.customer.email
        sale.customer_phone = sale.customer_phone or sale.customer.phone
    elif not sale.customer_name:
        sale.customer_name = ANONYMOUS_CUSTOMER_NAME


def create_sale(validated_data, user=None, request=None):
    """
    Record a single-product sale.

    Loyalty members buying a product with a loyalty price pay that price and
    earn one point per currency unit of the final amount.
    """
    product = validated_data['product']
    customer = validated_data.get('customer')

    sale = Sale(**validated_data)
    loyalty_pricing = bool(customer and customer.is_loyalty and product.loyalty_price is not None)
    if loyalty_pricing:
        sale.unit_price = product.loyalty_price
    elif sale.unit_price is None:
        sale.unit_price = product.price
    sale.calculate_totals()
    if sale.final_amount < 0:
        raise BusinessRuleError('Discount cannot exceed the sale total')
    _fill_customer_details(sale)
    sale.sale_type = Sale.TYPE_SINGLE
    sale.products = None
    sale.created_by = user if user is not None and user.is_authenticated else None

    points = int(sale.final_amount) if loyalty_pricing else 0
    with transaction.atomic():
        sale.invoice_number = generate_invoice_number()
        sale.save()
        _apply_stock_difference({}, _held_quantities(sale), sale, user, 'Sale')
        if points > 0:
            customer.add_loyalty_points(points)

    logger.info(f"Sale {sale.invoice_number} created: {sale.quantity} x {product.name} = {sale.final_amount}")
    create_audit_log(request=request, user=user, action='stock_sale', model_name='Sale',
                     object_id=sale.id, object_name=sale.invoice_number,
                     object_reference=sale.invoice_number,
                     changes={'product_id': product.id, 'quantity': sale.quantity,
                              'final_amount': str(sale.final_amount), 'loyalty_points': points})
    return sale


def update_sale(sale, validated_data, user=None):
    """
    Update a sale; quantity, product or status changes give back the
    previously taken stock and take the new quantities.
    """
    with transaction.atomic():
        sale = Sale.objects.select_for_update().get(pk=sale.pk)
        before = _held_quantities(sale)

        product_changed = 'product' in validated_data and validated_data['product'].pk != sale.product_id
        for field, value in validated_data.items():
            setattr(sale, field, value)

        if sale.sale_type == Sale.TYPE_SINGLE:
            if product_changed and 'unit_price' not in validated_data:
                sale.unit_price = sale.product.get_price_for(sale.customer)
            sale.calculate_totals()
            if sale.final_amount < 0:
                raise BusinessRuleError('Discount cannot exceed the sale total')
        _fill_customer_details(sale)
        sale.save()

        _apply_stock_difference(before, _held_quantities(sale), sale, user, 'Sale updated')

    logger.info(f"Sale {sale.invoice_number} updated")
    return sale


def delete_sale(sale, user=None):
    """Delete a sale and return every line's quantity to stock"""
    with transaction.atomic():
        sale = Sale.objects.select_for_update().get(pk=sale.pk)
        _apply_stock_difference(_held_quantities(sale), {}, sale, user, 'Sale deleted')
        sale.delete()
    logger.info(f"Sale {sale.invoice_number} deleted, stock restored")


def create_bulk_sale(lines, user=None, request=None):
    """
    One completed sale holding several product lines.

    Every customer and the stock of every line are checked before anything is
    written; the customer, payment method and date come from the first line.
    """
    for index, line in enumerate(lines, 1):
        customer_id = line.get('customer_id')
        if customer_id and not Customer.objects.filter(pk=customer_id).exists():
            raise BusinessRuleError(f'Customer {customer_id} does not exist (line {index})')

    requested = defaultdict(int)
    for line in lines:
        requested[line['product_id'].pk] += line['quantity']
    stock_errors = []
    for index, line in enumerate(lines, 1):
        product = line['product_id']
        if product.stock_quantity < requested[product.pk]:
            stock_errors.append(f'Line {index}: insufficient stock for {product.name}')
    if stock_errors:
        raise StockError('Stock errors: ' + ', '.join(stock_errors))

    products = []
    for line in lines:
        product = line['product_id']
        # Submitted line totals already include discount and tax
        products.append({
            'product_id': product.id,
            'product_name': product.name,
            'quantity': line['quantity'],
            'unit_price': str(line['unit_price']),
            'total_amount': str(line['total_amount']),
            'discount': str(line['discount']),
            'tax': str(line['tax']),
            'final_amount': str(line['total_amount']),
        })

    first = lines[0]
    customer = Customer.objects.filter(pk=first['customer_id']).first() if first.get('customer_id') else None
    with transaction.atomic():
        sale = Sale.objects.create(
            invoice_number=generate_invoice_number(),
            customer=customer,
            product=first['product_id'],
            products=products,
            sale_type=Sale.TYPE_BULK,
            quantity=sum(line['quantity'] for line in lines),
            unit_price=first['unit_price'],
            total_amount=sum((line['total_amount'] for line in lines), Decimal('0.00')),
            discount=sum((line['discount'] for line in lines), Decimal('0.00')),
            tax=sum((line['tax'] for line in lines), Decimal('0.00')),
            final_amount=sum((line['total_amount'] for line in lines), Decimal('0.00')),
            customer_name=customer.name if customer else ANONYMOUS_CUSTOMER_NAME,
            customer_email=customer.email if customer else None,
            customer_phone=customer.phone if customer else None,
            payment_method=first['payment_method'],
            status=Sale.STATUS_COMPLETED,
            sale_date=first['sale_date'],
            notes=first.get('notes') or None,
            created_by=user if user is not None and user.is_authenticated else None,
        )
        _apply_stock_difference({}, _held_quantities(sale), sale, user, 'Bulk sale')

    logger.info(f"Bulk sale {sale.invoice_number} created with {len(products)} lines")
    create_audit_log(request=request, user=user, action='stock_sale', model_name='Sale',
                     object_id=sale.id, object_name=sale.invoice_number,
                     object_reference=sale.invoice_number,
                     changes={'lines': len(products), 'final_amount': str(sale.final_amount)})
    return sale


def sale_lines(sale):
    """Printable lines: dicts with product_name, quantity, unit_price, total"""
    if sale.sale_type == Sale.TYPE_BULK and sale.products:
        return [
            {
                'product_name': line.get('product_name', ''),
                'quantity': int(line['quantity']),
                'unit_price': Decimal(str(line['unit_price'])),
                'total': Decimal(str(line.get('final_amount', line.get('total_amount', 0)))),
            }
            for line in sale.products
        ]
    return [{
        'product_name': sale.product.name,
        'quantity': sale.quantity,
        'unit_price': sale.unit_price,
        'total': sale.total_amount,
    }]
