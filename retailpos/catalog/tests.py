"""
Test suite for the catalog module
Tests: categories, products, stock journaling from the product form, search, bulk update, export
"""
import io
import os
import shutil
import tempfile
from decimal import Decimal

from django.conf import settings
from django.core.files.uploadedfile import SimpleUploadedFile
from django.core.management import call_command
from django.test import TestCase, override_settings
from openpyxl import load_workbook
from PIL import Image
from rest_framework import status

from retailpos.catalog.models import Category, Product
from retailpos.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from retailpos.inventory.models import InventoryMovement, StockAlert


class CategoryTests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user(pages=['categories'])
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_category(self):
        response = self.client.post('/api/v1/categories/', {'name': 'Drinks', 'color': '#10B981'})
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['products_count'], 0)

    def test_invalid_color_rejected(self):
        response = self.client.post('/api/v1/categories/', {'name': 'Drinks', 'color': 'green'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_all_unpaginated(self):
        TestDataFactory.create_category()
        TestDataFactory.create_category()
        response = self.client.get('/api/v1/categories/', {'all': 'true'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 2)

    def test_delete_category_with_products_refused(self):
        product = TestDataFactory.create_product()
        response = self.client.delete(f'/api/v1/categories/{product.category_id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('error', response.data)

    def test_delete_empty_category(self):
        category = TestDataFactory.create_category()
        response = self.client.delete(f'/api/v1/categories/{category.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)

    def test_requires_page_permission(self):
        other = TestDataFactory.create_user(pages=['sales'])
        self.client.authenticate_user(other)
        response = self.client.get('/api/v1/categories/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class ProductTests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user(pages=['products'])
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.category = TestDataFactory.create_category()

    def test_create_product_journals_opening_stock(self):
        response = self.client.post('/api/v1/products/', {
            'name': 'Cola', 'price': '12.50', 'category_id': self.category.id,
            'stock_quantity': 20, 'minimum_stock': 5, 'barcode': '6111000000011',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['stock_quantity'], 20)

        movement = InventoryMovement.objects.get(product_id=response.data['id'])
        self.assertEqual(movement.movement_type, InventoryMovement.MOVEMENT_IN)
        self.assertEqual(movement.reference, 'INITIAL-STOCK')
        self.assertEqual(movement.previous_stock, 0)
        self.assertEqual(movement.new_stock, 20)

    def test_create_product_without_stock_has_no_movement(self):
        response = self.client.post('/api/v1/products/', {
            'name': 'Water', 'price': '5.00', 'category_id': self.category.id, 'minimum_stock': 3,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertFalse(InventoryMovement.objects.filter(product_id=response.data['id']).exists())

    def test_accepts_ten_digit_prices(self):
        response = self.client.post('/api/v1/products/', {
            'name': 'Generator', 'price': '2500000000.00', 'cost_price': '1999999999.99',
            'category_id': self.category.id,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        product = Product.objects.get(pk=response.data['id'])
        self.assertEqual(product.price, Decimal('2500000000.00'))

    def test_loyalty_price_above_price_rejected(self):
        response = self.client.post('/api/v1/products/', {
            'name': 'Tea', 'price': '10.00', 'loyalty_price': '11.00', 'category_id': self.category.id,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('loyalty_price', response.data)

    def test_blank_barcodes_do_not_collide(self):
        for name in ('A', 'B'):
            response = self.client.post('/api/v1/products/', {
                'name': name, 'price': '1.00', 'category_id': self.category.id, 'barcode': '', 'sku': '',
            }, format='json')
            self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_stock_edit_is_journaled_as_adjustment(self):
        product = TestDataFactory.create_product(category=self.category, stock_quantity=10)
        response = self.client.patch(f'/api/v1/products/{product.id}/', {'stock_quantity': 4}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        product.refresh_from_db()
        self.assertEqual(product.stock_quantity, 4)
        movement = product.movements.get()
        self.assertEqual(movement.movement_type, InventoryMovement.MOVEMENT_ADJUSTMENT_OUT)
        self.assertEqual(movement.quantity, 6)

    def test_filter_by_stock_status(self):
        TestDataFactory.create_product(category=self.category, stock_quantity=0)
        TestDataFactory.create_product(category=self.category, stock_quantity=1, minimum_stock=2)
        TestDataFactory.create_product(category=self.category, stock_quantity=50)
        response = self.client.get('/api/v1/products/', {'stock_status': 'out_of_stock'})
        self.assertEqual(response.data['count'], 1)
        response = self.client.get('/api/v1/products/', {'stock_status': 'low_stock'})
        self.assertEqual(response.data['count'], 1)
        response = self.client.get('/api/v1/products/', {'stock_status': 'in_stock'})
        self.assertEqual(response.data['count'], 1)

    def test_sorting(self):
        TestDataFactory.create_product(name='Cheap', price=Decimal('1.00'), category=self.category)
        TestDataFactory.create_product(name='Dear', price=Decimal('99.00'), category=self.category)
        response = self.client.get('/api/v1/products/', {'sort_by': 'price', 'sort_order': 'desc'})
        self.assertEqual(response.data['results'][0]['name'], 'Dear')

    def test_delete_product_with_sales_refused(self):
        product = TestDataFactory.create_product(category=self.category)
        TestDataFactory.create_sale(product)
        response = self.client.delete(f'/api/v1/products/{product.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(Product.objects.filter(pk=product.id).exists())

    def test_search_needs_two_characters(self):
        TestDataFactory.create_product(name='Milk', category=self.category)
        self.assertEqual(self.client.get('/api/v1/products/search/', {'query': 'M'}).data, [])
        response = self.client.get('/api/v1/products/search/', {'query': 'Mil'})
        self.assertEqual(len(response.data), 1)

    def test_search_ignores_inactive(self):
        product = TestDataFactory.create_product(name='Bread', category=self.category)
        product.is_active = False
        product.save()
        response = self.client.get('/api/v1/products/search/', {'q': 'Bread'})
        self.assertEqual(response.data, [])

    def test_barcode_lookup(self):
        TestDataFactory.create_product(barcode='123456', category=self.category)
        response = self.client.get('/api/v1/products/barcode/123456/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        response = self.client.get('/api/v1/products/barcode/999999/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_bulk_update(self):
        first = TestDataFactory.create_product(category=self.category, stock_quantity=10, minimum_stock=2)
        second = TestDataFactory.create_product(category=self.category, stock_quantity=5)
        response = self.client.post('/api/v1/products/bulk-update/', {'products': [
            {'id': first.id, 'stock_quantity': 1},
            {'id': second.id, 'price': '7.50', 'is_active': False},
        ]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['updated_count'], 2)

        first.refresh_from_db()
        second.refresh_from_db()
        self.assertEqual(first.stock_quantity, 1)
        self.assertEqual(second.price, Decimal('7.50'))
        self.assertFalse(second.is_active)
        self.assertEqual(first.movements.get().reference_type, 'bulk_update')
        self.assertTrue(StockAlert.objects.filter(product=first, is_resolved=False).exists())

    def test_bulk_update_unknown_product(self):
        response = self.client.post('/api/v1/products/bulk-update/', {'products': [{'id': 999999, 'price': '1'}]},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_export_excel_and_pdf(self):
        TestDataFactory.create_product(category=self.category)
        response = self.client.get('/api/v1/products/export/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('spreadsheetml', response['Content-Type'])
        response = self.client.get('/api/v1/export/products/', {'format': 'pdf'})
        self.assertEqual(response['Content-Type'], 'application/pdf')

    def test_excel_export_keeps_formula_like_text_as_text(self):
        name = '=HYPERLINK("http://example.com","open")'
        TestDataFactory.create_product(name=name, category=self.category)
        response = self.client.get('/api/v1/products/export/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        sheet = load_workbook(io.BytesIO(response.content)).active
        cells = [cell for row in sheet.iter_rows() for cell in row]
        self.assertFalse([cell.coordinate for cell in cells if cell.data_type == 'f'])
        name_cells = [cell for cell in cells if cell.value == name]
        self.assertEqual(len(name_cells), 1)
        self.assertEqual(name_cells[0].data_type, 's')


@override_settings(MEDIA_ROOT=tempfile.mkdtemp())
class ProductPhotoTests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user(pages=['products'])
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.product = TestDataFactory.create_product()
        self.addCleanup(shutil.rmtree, settings.MEDIA_ROOT, ignore_errors=True)

    def _image(self, name='photo.png'):
        buffer = io.BytesIO()
        Image.new('RGB', (8, 8), color='red').save(buffer, format='PNG')
        return SimpleUploadedFile(name, buffer.getvalue(), content_type='image/png')

    def _upload(self, photo):
        return self.client.post('/api/v1/products/upload-photo/', {
            'product_id': self.product.id, 'photo': photo
        }, format='multipart')

    def test_upload_replaces_previous_photo(self):
        response = self._upload(self._image())
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('/media/products/', response.data['photo_url'])
        self.product.refresh_from_db()
        first_path = self.product.photo.path
        self.assertTrue(os.path.exists(first_path))

        response = self._upload(self._image('second.png'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.product.refresh_from_db()
        self.assertNotEqual(self.product.photo.path, first_path)
        self.assertTrue(os.path.exists(self.product.photo.path))
        self.assertFalse(os.path.exists(first_path))

    def test_rejects_unsupported_extension(self):
        response = self._upload(self._image('photo.bmp'))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('photo', response.data)
        self.product.refresh_from_db()
        self.assertFalse(self.product.photo)

    def test_rejects_oversized_image(self):
        with override_settings(PRODUCT_PHOTO_MAX_SIZE=16):
            response = self._upload(self._image())
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('photo', response.data)

    def test_unknown_product(self):
        response = self.client.post('/api/v1/products/upload-photo/', {
            'product_id': 999999, 'photo': self._image()
        }, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class ProductModelTests(TestCase):

    def test_stock_status_and_loyalty_price(self):
        product = TestDataFactory.create_product(price=Decimal('10.00'), loyalty_price=Decimal('8.00'),
                                                 stock_quantity=2, minimum_stock=2)
        self.assertEqual(product.stock_status, 'low_stock')
        member = TestDataFactory.create_customer(is_loyalty=True)
        walk_in = TestDataFactory.create_customer()
        self.assertEqual(product.get_price_for(member), Decimal('8.00'))
        self.assertEqual(product.get_price_for(walk_in), Decimal('10.00'))
        self.assertEqual(product.stock_value, Decimal('20.00'))


class AddCategoriesCommandTests(TestCase):

    def test_seeds_defaults_once(self):
        call_command('add_categories', verbosity=0)
        count = Category.objects.count()
        self.assertGreater(count, 0)
        call_command('add_categories', verbosity=0)
        self.assertEqual(Category.objects.count(), count)
