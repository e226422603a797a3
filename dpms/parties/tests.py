"""
Test suite for parties
Tests: CRUD, code normalisation, phone/GST validation and listing filters
"""
from django.test import TestCase
from rest_framework import status
from dpms.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from dpms.parties.models import Party


class PartyAPITests(TestCase):
    """Test party endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user(permissions=['manage_party'])
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_party(self):
        """Test creating a party"""
        data = {
            'name': 'Precision Pattern Works',
            'party_code': ' ppw01 ',
            'phone': '9123456780',
            'gst_no': '24aabcu9603r1za',
        }
        response = self.client.post('/api/v1/parties/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['party_code'], 'PPW01')
        self.assertEqual(response.data['gst_no'], '24AABCU9603R1ZA')

    def test_invalid_phone_rejected(self):
        """Test party phone numbers must be 10-digit mobiles"""
        response = self.client.post('/api/v1/parties/', {'name': 'X', 'phone': '12345'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('phone', response.data)

    def test_invalid_gst_rejected(self):
        """Test party GST numbers are checked"""
        response = self.client.post('/api/v1/parties/', {'name': 'X', 'gst_no': 'ABC'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_blank_name_rejected(self):
        """Test a name of spaces is refused"""
        response = self.client.post('/api/v1/parties/', {'name': '   '}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_is_paginated_and_searchable(self):
        """Test party listing supports search"""
        TestDataFactory.create_party(name='Alpha Foundry')
        TestDataFactory.create_party(name='Beta Tools')
        response = self.client.get('/api/v1/parties/?search=alpha')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['name'], 'Alpha Foundry')

    def test_soft_delete_hides_from_active(self):
        """Test deactivated parties drop out of the active list"""
        party = TestDataFactory.create_party(name='Gone Ltd')
        response = self.client.delete(f'/api/v1/parties/{party.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Party.objects.get(pk=party.id).is_active)
        response = self.client.get('/api/v1/parties/active/')
        self.assertNotIn('Gone Ltd', [p['name'] for p in response.data])

    def test_update_requires_permission(self):
        """Test changing a party needs manage_party"""
        party = TestDataFactory.create_party()
        user = TestDataFactory.create_user()
        client = AuthenticatedAPIClient()
        client.authenticate_user(user)
        response = client.patch(f'/api/v1/parties/{party.id}/', {'name': 'Renamed'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
