"""
Test suite for companies and locations
Tests: CRUD, validation of GST/phone/pincode, soft delete and spreadsheet import
"""
from io import BytesIO

from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase
from openpyxl import Workbook
from rest_framework import status
from dpms.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from dpms.locations.models import Company, Location


def _xlsx_upload(headers, rows, name='companies.xlsx'):
    wb = Workbook()
    ws = wb.active
    ws.append(headers)
    for row in rows:
        ws.append(row)
    buffer = BytesIO()
    wb.save(buffer)
    return SimpleUploadedFile(
        name, buffer.getvalue(),
        content_type='application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'
    )


class CompanyAPITests(TestCase):
    """Test company endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user(permissions=['manage_company', 'manage_location'])
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_company(self):
        """Test creating a company with valid GST and contact details"""
        data = {
            'name': 'Shakti Castings',
            'address': 'GIDC Estate',
            'gst_no': '24aabcu9603r1za',
            'pincode': '380015',
            'contact_number': '9876543210',
        }
        response = self.client.post('/api/v1/companies/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['gst_no'], '24AABCU9603R1ZA')

    def test_invalid_gst_rejected(self):
        """Test a malformed GSTIN is refused"""
        response = self.client.post('/api/v1/companies/', {'name': 'Bad GST', 'gst_no': '1234'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('gst_no', response.data)

    def test_invalid_contact_number_rejected(self):
        """Test contact numbers must be 10-digit mobiles"""
        response = self.client.post(
            '/api/v1/companies/', {'name': 'Bad Phone', 'contact_number': '1234567890'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('contact_number', response.data)

    def test_duplicate_name_case_insensitive(self):
        """Test company names are unique regardless of case"""
        TestDataFactory.create_company(name='Shakti Castings')
        response = self.client.post('/api/v1/companies/', {'name': 'SHAKTI castings'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_soft_delete_deactivates_locations(self):
        """Test deleting a company deactivates it and its locations"""
        location = TestDataFactory.create_location()
        company = location.company
        response = self.client.delete(f'/api/v1/companies/{company.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        company.refresh_from_db()
        location.refresh_from_db()
        self.assertFalse(company.is_active)
        self.assertFalse(location.is_active)

    def test_active_list_excludes_inactive(self):
        """Test the active endpoint hides deactivated companies"""
        TestDataFactory.create_company(name='Active Co')
        TestDataFactory.create_company(name='Closed Co', is_active=False)
        response = self.client.get('/api/v1/companies/active/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        names = [c['name'] for c in response.data]
        self.assertIn('Active Co', names)
        self.assertNotIn('Closed Co', names)

    def test_create_requires_permission(self):
        """Test creating a company needs manage_company"""
        user = TestDataFactory.create_user()
        client = AuthenticatedAPIClient()
        client.authenticate_user(user)
        response = client.post('/api/v1/companies/', {'name': 'Nope'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class CompanyImportTests(TestCase):
    """Test company spreadsheet export, validation and import"""

    HEADERS = ['Company Name', 'Address', 'GST No', 'GST Date', 'City', 'Pincode', 'Contact Number']

    def setUp(self):
        self.user = TestDataFactory.create_user(permissions=['manage_company'])
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        TestDataFactory.create_company(name='Existing Co', gst_no='24AABCU9603R1ZA')

    def _rows(self):
        return [
            ['New Co', 'Address 1', '27AAPFU0939F1ZV', '2024-01-15', 'Pune', '411001', '9876543210'],
            ['New Co', 'Address 2', '29AAGCB7383J1Z4', '2024-01-15', 'Pune', '411001', ''],
            ['Existing Co', 'Address 3', '07AAACH7409R1ZZ', '2024-01-15', 'Delhi', '110001', ''],
            ['No GST Co', 'Address 4', '', '2024-01-15', 'Delhi', '110001', ''],
        ]

    def test_validate_classifies_rows(self):
        """Test each row lands in exactly one bucket"""
        upload = _xlsx_upload(self.HEADERS, self._rows())
        response = self.client.post('/api/v1/companies/validate/', {'file': upload}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_rows'], 4)
        self.assertEqual(len(response.data['valid']), 1)
        self.assertEqual(len(response.data['duplicates']), 1)
        self.assertEqual(len(response.data['already_exists']), 1)
        self.assertEqual(len(response.data['invalid']), 1)

    def test_import_creates_valid_rows_only(self):
        """Test import saves only the valid rows and reports the rest"""
        upload = _xlsx_upload(self.HEADERS, self._rows())
        response = self.client.post('/api/v1/companies/import/', {'file': upload}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['imported'], 1)
        self.assertEqual(len(response.data['errors']), 3)
        self.assertTrue(Company.objects.filter(name='New Co', gst_no='27AAPFU0939F1ZV').exists())

    def test_unreadable_file(self):
        """Test a non-Excel upload is rejected"""
        upload = SimpleUploadedFile('companies.xlsx', b'not a workbook')
        response = self.client.post('/api/v1/companies/validate/', {'file': upload}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_export(self):
        """Test exporting companies as xlsx"""
        response = self.client.get('/api/v1/companies/export/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('spreadsheetml', response['Content-Type'])


class LocationAPITests(TestCase):
    """Test location endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user(permissions=['manage_location'])
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.company = TestDataFactory.create_company()

    def test_create_location(self):
        """Test creating a location under a company"""
        response = self.client.post(
            '/api/v1/locations/', {'name': 'Plant 1', 'company': self.company.id}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['company_name'], self.company.name)

    def test_duplicate_location_name_per_company(self):
        """Test location names are unique within a company"""
        TestDataFactory.create_location(company=self.company, name='Plant 1')
        response = self.client.post(
            '/api/v1/locations/', {'name': 'plant 1', 'company': self.company.id}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_same_name_in_other_company(self):
        """Test two companies may each have a 'Plant 1'"""
        TestDataFactory.create_location(company=self.company, name='Plant 1')
        other = TestDataFactory.create_company()
        response = self.client.post('/api/v1/locations/', {'name': 'Plant 1', 'company': other.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_inactive_company_rejected(self):
        """Test locations cannot be added to an inactive company"""
        self.company.is_active = False
        self.company.save()
        response = self.client.post(
            '/api/v1/locations/', {'name': 'Plant 9', 'company': self.company.id}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_filter_by_company(self):
        """Test listing locations of one company"""
        TestDataFactory.create_location(company=self.company)
        TestDataFactory.create_location()
        response = self.client.get(f'/api/v1/locations/?company={self.company.id}')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)

    def test_soft_delete(self):
        """Test deleting a location only deactivates it"""
        location = TestDataFactory.create_location(company=self.company)
        response = self.client.delete(f'/api/v1/locations/{location.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Location.objects.get(pk=location.id).is_active)
