"""
Test suite for the core module
Tests: login, profile, password change, user management, page permissions, utilities
"""
from datetime import date
from decimal import Decimal

from django.core.management import call_command
from django.test import TestCase
from rest_framework import status

from retailpos.core.models import AuditLog, PagePermission, ROLE_ADMIN, ROLE_CASHIER, User
from retailpos.core.test_utils import TestDataFactory, AuthenticatedAPIClient, TEST_PASSWORD
from retailpos.core.utils import percentage_change, month_bounds, previous_month, next_document_number
from retailpos.sales.models import Sale


class AuthTests(TestCase):
    """Login, refresh, me, profile and password endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user(email='cashier@test.com', pages=['sales'])
        self.client = AuthenticatedAPIClient()

    def test_login_returns_tokens_and_user(self):
        response = self.client.post('/api/v1/auth/login/', {'email': 'cashier@test.com', 'password': TEST_PASSWORD})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)
        self.assertIn('refresh', response.data)
        self.assertEqual(response.data['user']['email'], 'cashier@test.com')
        self.assertEqual(response.data['user']['role'], ROLE_CASHIER)
        self.assertTrue(AuditLog.objects.filter(action='login', object_id=str(self.user.id)).exists())

    def test_login_wrong_password(self):
        response = self.client.post('/api/v1/auth/login/', {'email': 'cashier@test.com', 'password': 'wrong'})
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_login_inactive_user_rejected(self):
        self.user.is_active = False
        self.user.save()
        response = self.client.post('/api/v1/auth/login/', {'email': 'cashier@test.com', 'password': TEST_PASSWORD})
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_me_requires_authentication(self):
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_me_lists_page_permissions(self):
        self.client.authenticate_user(self.user)
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['page_permissions'], ['sales'])

    def test_update_profile(self):
        self.client.authenticate_user(self.user)
        response = self.client.put('/api/v1/auth/profile/', {
            'name': 'New Name', 'email': 'cashier@test.com', 'phone': '0622222222'
        })
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.user.refresh_from_db()
        self.assertEqual(self.user.name, 'New Name')
        self.assertEqual(self.user.phone, '0622222222')

    def test_profile_email_change_frees_old_email(self):
        self.client.authenticate_user(self.user)
        response = self.client.patch('/api/v1/auth/profile/', {'email': 'renamed@test.com'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.user.refresh_from_db()
        self.assertEqual(self.user.username, 'renamed@test.com')

        other = TestDataFactory.create_user(email='cashier@test.com')
        self.assertEqual(other.username, 'cashier@test.com')

    def test_password_change_wrong_current_password(self):
        self.client.authenticate_user(self.user)
        response = self.client.put('/api/v1/auth/password/', {
            'current_password': 'not-it', 'password': 'An0therPass!45', 'password_confirm': 'An0therPass!45'
        })
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_password_change(self):
        self.client.authenticate_user(self.user)
        response = self.client.put('/api/v1/auth/password/', {
            'current_password': TEST_PASSWORD, 'password': 'An0therPass!45', 'password_confirm': 'An0therPass!45'
        })
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.user.refresh_from_db()
        self.assertTrue(self.user.check_password('An0therPass!45'))

    def test_logout_blacklists_refresh_token(self):
        login = self.client.post('/api/v1/auth/login/', {'email': 'cashier@test.com', 'password': TEST_PASSWORD})
        refresh = login.data['refresh']
        self.client.authenticate_user(self.user)
        response = self.client.post('/api/v1/auth/logout/', {'refresh': refresh})
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        response = self.client.post('/api/v1/auth/refresh/', {'refresh': refresh})
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class UserManagementTests(TestCase):
    """Admin only user endpoints"""

    def setUp(self):
        TestDataFactory.create_page_permissions()
        self.admin = TestDataFactory.create_admin(email='admin@test.com')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)

    def test_cashier_cannot_list_users(self):
        cashier = TestDataFactory.create_user()
        self.client.authenticate_user(cashier)
        response = self.client.get('/api/v1/users/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_create_cashier_with_permissions(self):
        response = self.client.post('/api/v1/users/', {
            'name': 'Cashier', 'email': 'new@test.com', 'password': TEST_PASSWORD,
            'password_confirm': TEST_PASSWORD, 'role': ROLE_CASHIER, 'permissions': ['sales', 'customers'],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['role'], ROLE_CASHIER)
        self.assertEqual(sorted(response.data['page_permissions']), ['customers', 'sales'])

    def test_create_admin_gets_all_permissions(self):
        response = self.client.post('/api/v1/users/', {
            'name': 'Boss', 'email': 'boss@test.com', 'password': TEST_PASSWORD,
            'password_confirm': TEST_PASSWORD, 'role': ROLE_ADMIN,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        user = User.objects.get(email='boss@test.com')
        self.assertEqual(user.page_permissions.count(), PagePermission.objects.count())

    def test_create_user_password_mismatch(self):
        response = self.client.post('/api/v1/users/', {
            'name': 'X', 'email': 'x@test.com', 'password': TEST_PASSWORD,
            'password_confirm': 'different', 'role': ROLE_CASHIER,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_create_user_unknown_permission(self):
        response = self.client.post('/api/v1/users/', {
            'name': 'X', 'email': 'x@test.com', 'password': TEST_PASSWORD,
            'password_confirm': TEST_PASSWORD, 'role': ROLE_CASHIER, 'permissions': ['nope'],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_email_change_frees_old_email(self):
        payload = {
            'name': 'First', 'email': 'a@test.com', 'password': TEST_PASSWORD,
            'password_confirm': TEST_PASSWORD, 'role': ROLE_CASHIER,
        }
        response = self.client.post('/api/v1/users/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        user_id = response.data['id']

        response = self.client.patch(f'/api/v1/users/{user_id}/', {'email': 'b@test.com'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(User.objects.get(pk=user_id).username, 'b@test.com')

        response = self.client.post('/api/v1/users/', dict(payload, name='Second'), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(User.objects.filter(username='a@test.com').count(), 1)

    def test_filter_users_by_role(self):
        TestDataFactory.create_user()
        response = self.client.get('/api/v1/users/', {'role': ROLE_ADMIN})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)

    def test_cannot_delete_self(self):
        response = self.client.delete(f'/api/v1/users/{self.admin.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_delete_user(self):
        other = TestDataFactory.create_user()
        response = self.client.delete(f'/api/v1/users/{other.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(User.objects.filter(pk=other.id).exists())

    def test_roles_and_permissions(self):
        response = self.client.get('/api/v1/users/roles/')
        self.assertEqual(len(response.data), 2)
        response = self.client.get('/api/v1/users/permissions/')
        self.assertEqual(len(response.data), PagePermission.objects.count())

    def test_audit_log_filter(self):
        other = TestDataFactory.create_user()
        self.client.delete(f'/api/v1/users/{other.id}/')
        response = self.client.get('/api/v1/audit-logs/', {'action': 'delete', 'model_name': 'User'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)


class PagePermissionTests(TestCase):

    def test_page_permission_required(self):
        user = TestDataFactory.create_user(pages=['sales'])
        client = AuthenticatedAPIClient().authenticate_user(user)
        self.assertEqual(client.get('/api/v1/sales/').status_code, status.HTTP_200_OK)
        self.assertEqual(client.get('/api/v1/cash-transactions/').status_code, status.HTTP_403_FORBIDDEN)


class UtilsTests(TestCase):

    def test_percentage_change(self):
        self.assertEqual(percentage_change(150, 100), 50.0)
        self.assertEqual(percentage_change(50, 0), 0)
        self.assertEqual(percentage_change(Decimal('-50'), Decimal('-100'), use_abs=True), 50.0)

    def test_month_helpers(self):
        self.assertEqual(month_bounds(date(2024, 2, 10)), (date(2024, 2, 1), date(2024, 2, 29)))
        self.assertEqual(previous_month(date(2024, 1, 15)), date(2023, 12, 1))

    def test_next_document_number_continues_from_highest(self):
        product = TestDataFactory.create_product()
        day = date(2024, 5, 1)
        TestDataFactory.create_sale(product, invoice_number='INV-20240501-0007')
        self.assertEqual(next_document_number(Sale, 'invoice_number', 'INV', day), 'INV-20240501-0008')
        self.assertEqual(next_document_number(Sale, 'invoice_number', 'INV', date(2024, 5, 2)), 'INV-20240502-0001')


class ManagementCommandTests(TestCase):

    def test_seed_roles_and_admin(self):
        call_command('seed_roles', verbosity=0)
        self.assertTrue(PagePermission.objects.filter(name='dashboard').exists())
        call_command('create_admin_user', email='root@test.com', password=TEST_PASSWORD)
        admin = User.objects.get(email='root@test.com')
        self.assertEqual(admin.role, ROLE_ADMIN)
        self.assertEqual(admin.page_permissions.count(), PagePermission.objects.count())

    def test_assign_page_permissions(self):
        call_command('seed_roles')
        user = TestDataFactory.create_user()
        call_command('assign_page_permissions')
        self.assertEqual(user.page_permissions.count(), PagePermission.objects.count())
