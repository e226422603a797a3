"""
Test suite for the core module
Tests: authentication, permission flags, location resolution, numbering, users, uploads and system reset
"""
import os
import shutil
import tempfile

from django.conf import settings
from django.core.cache import cache
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase, override_settings
from rest_framework import status
from dpms.core.access import has_permission, effective_permissions
from dpms.core.models import AuditLog, UserLocationAccess, UserPermission
from dpms.core.numbering import generate_code
from dpms.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from dpms.core.utils import UploadError, sanitize_path_segment, save_uploaded_file, delete_uploaded_file
from dpms.catalog.models import Item
from dpms.locations.models import Company
from dpms.purchasing.models import PurchaseIndent


class AuthenticationTests(TestCase):
    """Test login, token validation and the current-user endpoint"""

    def setUp(self):
        self.location = TestDataFactory.create_location()
        self.user = TestDataFactory.create_user(
            username='operator', password='secret-pass-123', location=self.location, permissions=['view_pi']
        )
        self.client = AuthenticatedAPIClient()

    def test_login_returns_tokens_and_user(self):
        """Test logging in with valid credentials"""
        response = self.client.post(
            '/api/v1/auth/login/', {'username': 'operator', 'password': 'secret-pass-123'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)
        self.assertIn('refresh', response.data)
        self.assertEqual(response.data['user']['username'], 'operator')

    def test_login_with_wrong_password(self):
        """Test logging in with a wrong password is refused"""
        response = self.client.post(
            '/api/v1/auth/login/', {'username': 'operator', 'password': 'nope'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_unauthenticated_request_rejected(self):
        """Test protected endpoints need a token"""
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_me_reports_permissions_and_location(self):
        """Test /auth/me/ carries flags, allowed locations and the active location"""
        self.client.authenticate_user(self.user)
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['is_admin'])
        self.assertTrue(response.data['permissions']['view_pi'])
        self.assertFalse(response.data['permissions']['create_pi'])
        self.assertEqual(len(response.data['allowed_locations']), 1)
        self.assertEqual(response.data['current_location']['id'], self.location.id)


class PermissionTests(TestCase):
    """Test feature flag checks"""

    def test_new_user_gets_permission_row(self):
        """Test a permission row is created with every new user"""
        user = TestDataFactory.create_user()
        self.assertTrue(UserPermission.objects.filter(user=user).exists())
        self.assertTrue(user.permission.view_dashboard)
        self.assertFalse(user.permission.manage_item)

    def test_admin_has_every_flag(self):
        """Test the admin role bypasses flags"""
        admin = TestDataFactory.create_admin()
        self.assertTrue(has_permission(admin, 'reset_anything_at_all'))
        flags = effective_permissions(admin)
        self.assertTrue(all(flags[flag] for flag in UserPermission.FLAG_FIELDS))

    def test_user_without_flag_is_forbidden(self):
        """Test a write endpoint answers 403 without its flag"""
        location = TestDataFactory.create_location()
        user = TestDataFactory.create_user(location=location)
        client = AuthenticatedAPIClient()
        client.authenticate_user(user)
        response = client.post('/api/v1/parties/', {'name': 'Acme'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertIn('error', response.data)


class LocationResolutionTests(TestCase):
    """Test how the working location is picked for a request"""

    def setUp(self):
        self.location = TestDataFactory.create_location()
        self.other_location = TestDataFactory.create_location()
        self.user = TestDataFactory.create_user(location=self.location, permissions=['view_pi'])
        self.client = AuthenticatedAPIClient()

    def test_default_location_used_without_headers(self):
        """Test the user's default location applies when no header is sent"""
        TestDataFactory.create_purchase_indent(self.location, [TestDataFactory.create_item(location=self.location)])
        self.client.authenticate_user(self.user)
        response = self.client.get('/api/v1/purchase-indents/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)

    def test_location_without_access_forbidden(self):
        """Test selecting a location the user was not granted"""
        self.client.authenticate_user(self.user, location=self.other_location)
        response = self.client.get('/api/v1/purchase-indents/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_location_of_other_company_rejected(self):
        """Test a location header that does not match the company header"""
        self.client.authenticate_user(self.user)
        response = self.client.get(
            '/api/v1/purchase-indents/',
            HTTP_X_LOCATION_ID=str(self.location.id),
            HTTP_X_COMPANY_ID=str(self.other_location.company_id),
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_user_without_any_location(self):
        """Test a user with no default and no access gets a clear error"""
        user = TestDataFactory.create_user(permissions=['view_pi'])
        self.client.authenticate_user(user)
        response = self.client.get('/api/v1/purchase-indents/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'No location selected')

    def test_admin_may_use_any_location(self):
        """Test admins are not limited by access rows"""
        admin = TestDataFactory.create_admin()
        self.client.authenticate_user(admin, location=self.other_location)
        response = self.client.get('/api/v1/purchase-indents/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)


class NumberingTests(TestCase):
    """Test sequential document numbers"""

    def setUp(self):
        self.location = TestDataFactory.create_location()

    def test_first_number(self):
        """Test numbering starts at 01"""
        self.assertEqual(generate_code('PI', PurchaseIndent, 'pi_no', self.location), 'PI-01')

    def test_numbers_are_per_location(self):
        """Test each location keeps its own sequence"""
        TestDataFactory.create_purchase_indent(self.location, [], pi_no='PI-01')
        TestDataFactory.create_purchase_indent(self.location, [], pi_no='PI-02')
        other = TestDataFactory.create_location()
        self.assertEqual(generate_code('PI', PurchaseIndent, 'pi_no', self.location), 'PI-03')
        self.assertEqual(generate_code('PI', PurchaseIndent, 'pi_no', other), 'PI-01')

    def test_deleted_numbers_not_reused(self):
        """Test soft-deleted documents still hold their number"""
        indent = TestDataFactory.create_purchase_indent(self.location, [], pi_no='PI-07')
        indent.is_active = False
        indent.save()
        self.assertEqual(generate_code('PI', PurchaseIndent, 'pi_no', self.location), 'PI-08')


class UserManagementTests(TestCase):
    """Test user and permission administration"""

    def setUp(self):
        self.location = TestDataFactory.create_location()
        self.admin = TestDataFactory.create_admin(location=self.location)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)

    def test_create_user(self):
        """Test creating a user through the API"""
        data = {
            'username': 'new_operator',
            'email': 'new@test.com',
            'password': 'Str0ng-Passw0rd!',
            'role': 'QC_USER',
        }
        response = self.client.post('/api/v1/users/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(UserPermission.objects.filter(user__username='new_operator').exists())
        self.assertTrue(AuditLog.objects.filter(action='create', model_name='User').exists())

    def test_update_permissions_and_access(self):
        """Test replacing flags and location access in one call"""
        user = TestDataFactory.create_user()
        data = {
            'create_pi': True,
            'approve_pi': True,
            'location_access': [{'company_id': self.location.company_id, 'location_id': self.location.id}],
        }
        response = self.client.put(f'/api/v1/users/{user.id}/permissions/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        user.permission.refresh_from_db()
        self.assertTrue(user.permission.create_pi)
        self.assertTrue(user.permission.approve_pi)
        self.assertTrue(UserLocationAccess.objects.filter(user=user, location=self.location).exists())
        self.assertTrue(AuditLog.objects.filter(action='permission_change').exists())

    def test_access_with_mismatched_company_rejected(self):
        """Test an access pair whose location belongs to another company"""
        user = TestDataFactory.create_user()
        other_company = TestDataFactory.create_company()
        data = {'location_access': [{'company_id': other_company.id, 'location_id': self.location.id}]}
        response = self.client.put(f'/api/v1/users/{user.id}/permissions/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_malformed_access_list_rejected(self):
        """Test an access list that is not a list of pairs"""
        user = TestDataFactory.create_user()
        UserLocationAccess.objects.create(user=user, company=self.location.company, location=self.location)
        for payload in ({'location_id': self.location.id}, 'everything', ['x'], [{'company_id': 1}]):
            response = self.client.put(
                f'/api/v1/users/{user.id}/permissions/', {'location_access': payload}, format='json'
            )
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
            self.assertIn('location_access', response.data)
        self.assertEqual(UserLocationAccess.objects.filter(user=user).count(), 1)

    def test_cannot_deactivate_self(self):
        """Test an admin cannot deactivate their own account"""
        response = self.client.delete(f'/api/v1/users/{self.admin.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_non_admin_cannot_list_users(self):
        """Test user listing needs manage_users"""
        user = TestDataFactory.create_user()
        client = AuthenticatedAPIClient()
        client.authenticate_user(user)
        response = client.get('/api/v1/users/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class SoftwareSettingsTests(TestCase):
    """Test branding settings"""

    def setUp(self):
        cache.clear()
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)

    def test_read_defaults(self):
        """Test settings are created on first read"""
        response = self.client.get('/api/v1/settings/software/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['software_name'], 'DPMS v1.0')

    def test_update_settings(self):
        """Test changing the software name"""
        response = self.client.put('/api/v1/settings/software/', {'software_name': 'Foundry DPMS'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        response = self.client.get('/api/v1/settings/software/')
        self.assertEqual(response.data['software_name'], 'Foundry DPMS')


class SystemResetTests(TestCase):
    """Test the system reset"""

    def test_reset_keeps_admin_only(self):
        """Test reset clears data and every user except the admin account"""
        location = TestDataFactory.create_location()
        admin = TestDataFactory.create_admin(username='admin')
        TestDataFactory.create_user()
        TestDataFactory.create_item(location=location)
        client = AuthenticatedAPIClient()
        client.authenticate_user(admin)

        response = client.post('/api/v1/maintenance/reset-system/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Item.objects.count(), 0)
        self.assertEqual(Company.objects.count(), 0)
        self.assertEqual(list(admin.__class__.objects.values_list('username', flat=True)), ['admin'])
        self.assertTrue(AuditLog.objects.filter(action='system_reset').exists())

    def test_reset_requires_admin(self):
        """Test regular users cannot reset"""
        user = TestDataFactory.create_user(all_permissions=True)
        client = AuthenticatedAPIClient()
        client.authenticate_user(user)
        response = client.post('/api/v1/maintenance/reset-system/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class UploadedFileTests(TestCase):
    """Test storing and deleting uploaded files"""

    def setUp(self):
        self.media_root = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, self.media_root, ignore_errors=True)
        settings_override = override_settings(MEDIA_ROOT=self.media_root, MEDIA_URL='/media/')
        settings_override.enable()
        self.addCleanup(settings_override.disable)

    def _stored_path(self, url):
        return os.path.join(self.media_root, url[len('/media/'):])

    def test_sanitize_path_segment(self):
        """Test unsafe characters are collapsed into single underscores"""
        self.assertEqual(sanitize_path_segment('PO-01'), 'PO-01')
        self.assertEqual(sanitize_path_segment('PO 01 / rev #2'), 'PO_01_rev_2')
        self.assertEqual(sanitize_path_segment('../PO 01/..'), 'PO_01')
        self.assertEqual(sanitize_path_segment(''), 'unnamed')
        self.assertEqual(sanitize_path_segment(None), 'unnamed')
        self.assertEqual(sanitize_path_segment('///'), 'unnamed')

    def test_save_into_sanitized_subfolder(self):
        """Test a saved file lands under folder/subfolder and is reachable by URL"""
        upload = SimpleUploadedFile('Quote Final.PDF', b'%PDF-1.4')
        url = save_uploaded_file(upload, 'quotations', 'PO/01')
        self.assertTrue(url.startswith('/media/quotations/PO_01/'))
        self.assertTrue(url.endswith('_Quote_Final.pdf'))
        self.assertTrue(os.path.exists(self._stored_path(url)))

    def test_allowed_extensions(self):
        """Test only document and image types are accepted"""
        for name in ('a.pdf', 'a.png', 'a.jpg', 'a.jpeg', 'a.xlsx', 'a.docx'):
            save_uploaded_file(SimpleUploadedFile(name, b'data'), 'misc')
        for name in ('a.exe', 'a.txt', 'noextension'):
            with self.assertRaises(UploadError):
                save_uploaded_file(SimpleUploadedFile(name, b'data'), 'misc')

    def test_size_limit(self):
        """Test files above the size limit are refused"""
        self.assertEqual(settings.UPLOAD_MAX_BYTES, 10 * 1024 * 1024)
        with override_settings(UPLOAD_MAX_BYTES=8):
            save_uploaded_file(SimpleUploadedFile('small.pdf', b'12345678'), 'misc')
            with self.assertRaises(UploadError):
                save_uploaded_file(SimpleUploadedFile('big.pdf', b'123456789'), 'misc')

    def test_delete_limited_to_folder(self):
        """Test deletion only reaches files inside the given folder"""
        url = save_uploaded_file(SimpleUploadedFile('q.pdf', b'data'), 'quotations')
        for bad_url in (url, '/media/qc_attachments/../' + url[len('/media/'):], 'http://example.com/q.pdf', ''):
            with self.assertRaises(UploadError):
                delete_uploaded_file(bad_url, 'qc_attachments')
        self.assertTrue(os.path.exists(self._stored_path(url)))

        self.assertTrue(delete_uploaded_file(url, 'quotations'))
        self.assertFalse(os.path.exists(self._stored_path(url)))
        self.assertFalse(delete_uploaded_file(url, 'quotations'))
