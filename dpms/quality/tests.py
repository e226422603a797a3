"""
Test suite for the quality module
Tests: pending pool, QC entry creation and editing, item decisions, approve and reject, attachments
"""
import os
import shutil
import tempfile
from urllib.parse import urlencode

from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase, override_settings
from rest_framework import status
from dpms.catalog.models import ItemProcessState
from dpms.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from dpms.inventory.models import InwardLine
from dpms.quality.models import QcEntry


class QcTestMixin:
    """Shared fixture: two items received from one vendor and waiting for QC"""

    def setUp(self):
        self.location = TestDataFactory.create_location()
        self.user = TestDataFactory.create_user(
            location=self.location, permissions=['view_qc', 'create_qc', 'edit_qc', 'approve_qc']
        )
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.vendor = TestDataFactory.create_party(name='Pattern House')
        self.item1, order1 = TestDataFactory.create_ordered_item(self.location, self.vendor)
        self.item2, order2 = TestDataFactory.create_ordered_item(self.location, self.vendor)
        self.inward = TestDataFactory.create_submitted_inward(
            self.location, [(self.item1, 'PO', order1.id), (self.item2, 'PO', order2.id)], vendor=self.vendor
        )
        self.line1, self.line2 = list(self.inward.lines.order_by('id'))

    def _create_entry(self, line_ids=None, **extra):
        data = {'inward_line_ids': line_ids or [self.line1.id, self.line2.id], 'party_id': self.vendor.id}
        data.update(extra)
        return self.client.post('/api/v1/quality-control/', data, format='json')


class QcEntryAPITests(QcTestMixin, TestCase):
    """Test the pending pool and QC entry creation"""

    def test_pending_lists_submitted_lines(self):
        """Test submitted inward lines wait for QC"""
        response = self.client.get('/api/v1/quality-control/pending/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([row['id'] for row in response.data], [self.line1.id, self.line2.id])
        self.assertEqual(response.data[0]['party_name'], 'Pattern House')

    def test_draft_inward_lines_not_pending(self):
        """Test lines of a draft inward are not offered for QC"""
        self.inward.status = 'DRAFT'
        self.inward.save()
        response = self.client.get('/api/v1/quality-control/pending/')
        self.assertEqual(response.data, [])

    def test_create_entry(self):
        """Test creating a QC entry holds its lines"""
        response = self._create_entry()
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['qc_no'], 'QC-01')
        self.assertEqual(response.data['status'], 'PENDING')
        self.assertEqual(response.data['summary'], {'total': 2, 'approved': 0, 'rejected': 0, 'pending': 2})

        response = self.client.get('/api/v1/quality-control/pending/')
        self.assertEqual(response.data, [])

    def test_line_on_two_entries_refused(self):
        """Test a line held by a pending entry cannot be taken again"""
        self._create_entry(line_ids=[self.line1.id])
        response = self._create_entry(line_ids=[self.line1.id])
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('inward_line_ids', response.data)

    def test_party_mismatch_refused(self):
        """Test lines must come from the entry's party"""
        other = TestDataFactory.create_party()
        response = self._create_entry(party_id=other.id)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_source_mismatch_refused(self):
        """Test lines must match the entry's source type"""
        response = self._create_entry(source_type='JOB_WORK')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_edit_entry_lines(self):
        """Test a pending entry without decisions can be edited"""
        entry_id = self._create_entry().data['id']
        response = self.client.put(
            f'/api/v1/quality-control/{entry_id}/', {'inward_line_ids': [self.line2.id]}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['items']), 1)

        response = self.client.get('/api/v1/quality-control/pending/')
        self.assertEqual([row['id'] for row in response.data], [self.line1.id])

    def test_create_requires_flag(self):
        """Test creating an entry needs create_qc"""
        user = TestDataFactory.create_user(location=self.location, permissions=['view_qc'])
        client = AuthenticatedAPIClient()
        client.authenticate_user(user)
        response = client.post(
            '/api/v1/quality-control/', {'inward_line_ids': [self.line1.id]}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class QcDecisionAPITests(QcTestMixin, TestCase):
    """Test item decisions and closing an entry"""

    def setUp(self):
        super().setUp()
        self.entry = TestDataFactory.create_qc_entry(
            self.location, [self.line1, self.line2], party=self.vendor, user=self.user
        )
        self.qc_item1, self.qc_item2 = list(self.entry.items.order_by('id'))

    def _decide(self, qc_item, approved, remarks=''):
        return self.client.post(
            f'/api/v1/quality-control/{self.entry.id}/approve-item/',
            {'qc_item_id': qc_item.id, 'is_approved': approved, 'remarks': remarks},
            format='json'
        )

    def test_decide_item(self):
        """Test recording an item decision"""
        response = self._decide(self.qc_item1, True, 'Dimensions OK')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['summary']['approved'], 1)
        self.qc_item1.refresh_from_db()
        self.assertTrue(self.qc_item1.is_approved)
        self.assertIsNotNone(self.qc_item1.decided_at)

    def test_approve_with_undecided_items_refused(self):
        """Test every item must be decided before approval"""
        self._decide(self.qc_item1, True)
        response = self.client.post(f'/api/v1/quality-control/{self.entry.id}/approve/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.entry.refresh_from_db()
        self.assertEqual(self.entry.status, 'PENDING')

    def test_approve_moves_items(self):
        """Test approval stocks passed items and drops failed ones"""
        self._decide(self.qc_item1, True)
        self._decide(self.qc_item2, False, 'Cracked')
        response = self.client.post(f'/api/v1/quality-control/{self.entry.id}/approve/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'APPROVED')

        self.item1.refresh_from_db()
        self.item2.refresh_from_db()
        self.assertEqual(self.item1.current_process, ItemProcessState.IN_STOCK)
        self.assertEqual(self.item1.current_location, self.location)
        self.assertEqual(self.item2.current_process, ItemProcessState.NOT_IN_STOCK)

        line1 = InwardLine.objects.get(pk=self.line1.pk)
        line2 = InwardLine.objects.get(pk=self.line2.pk)
        self.assertFalse(line1.is_qc_pending)
        self.assertTrue(line1.is_qc_approved)
        self.assertFalse(line2.is_qc_approved)

        response = self.client.post(f'/api/v1/quality-control/{self.entry.id}/approve/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_reject_returns_lines_to_pool(self):
        """Test rejecting an undecided entry frees its lines"""
        response = self.client.post(
            f'/api/v1/quality-control/{self.entry.id}/reject/', {'remarks': 'Wrong batch'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(QcEntry.objects.get(pk=self.entry.pk).status, 'REJECTED')

        response = self.client.get('/api/v1/quality-control/pending/')
        self.assertEqual(len(response.data), 2)
        self.item1.refresh_from_db()
        self.assertEqual(self.item1.current_process, ItemProcessState.IN_QC)

    def test_reject_after_decisions_refused(self):
        """Test an entry with decided items can only be approved"""
        self._decide(self.qc_item1, False)
        response = self.client.post(f'/api/v1/quality-control/{self.entry.id}/reject/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_edit_after_decisions_refused(self):
        """Test lines are locked once an item is decided"""
        self._decide(self.qc_item1, True)
        response = self.client.put(
            f'/api/v1/quality-control/{self.entry.id}/', {'inward_line_ids': [self.line1.id]}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_decide_item_of_other_entry(self):
        """Test an item id from another entry is not found"""
        other_item, order = TestDataFactory.create_ordered_item(self.location, self.vendor)
        inward = TestDataFactory.create_submitted_inward(self.location, [(other_item, 'PO', order.id)])
        other_entry = TestDataFactory.create_qc_entry(self.location, list(inward.lines.all()))
        response = self._decide(other_entry.items.first(), True)
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_decide_requires_flag(self):
        """Test decisions need approve_qc"""
        user = TestDataFactory.create_user(location=self.location, permissions=['view_qc'])
        self.client.authenticate_user(user)
        response = self._decide(self.qc_item1, True)
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class QcAttachmentTests(TestCase):
    """Test QC attachment upload and removal"""

    def setUp(self):
        self.media_root = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, self.media_root, ignore_errors=True)
        settings_override = override_settings(MEDIA_ROOT=self.media_root, MEDIA_URL='/media/')
        settings_override.enable()
        self.addCleanup(settings_override.disable)
        self.location = TestDataFactory.create_location()
        self.user = TestDataFactory.create_user(location=self.location, permissions=['create_qc', 'edit_qc'])
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def _upload(self, name='report.pdf', **extra):
        data = {'file': SimpleUploadedFile(name, b'%PDF')}
        data.update(extra)
        return self.client.post('/api/v1/quality-control/upload-attachment/', data, format='multipart')

    def _path(self, url):
        return os.path.join(self.media_root, url[len('/media/'):])

    def test_upload_and_delete(self):
        """Test an uploaded report can be removed by its URL"""
        response = self._upload(qc_no='QC-04')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        url = response.data['urls'][0]
        self.assertTrue(url.startswith('/media/qc_attachments/QC-04/'))
        self.assertTrue(os.path.exists(self._path(url)))

        response = self.client.delete(f'/api/v1/quality-control/attachment/?url={url}')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(os.path.exists(self._path(url)))

        response = self.client.delete(f'/api/v1/quality-control/attachment/?url={url}')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_upload_rejects_bad_type(self):
        """Test disallowed file types are refused"""
        response = self._upload(name='macro.xlsm')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_delete_outside_folder_refused(self):
        """Test files outside the QC attachment folder cannot be deleted"""
        os.makedirs(os.path.join(self.media_root, 'quotations'))
        target = os.path.join(self.media_root, 'quotations', 'quote.pdf')
        with open(target, 'wb') as f:
            f.write(b'%PDF')

        for url in ('/media/quotations/quote.pdf', '/media/qc_attachments/../quotations/quote.pdf'):
            query = urlencode({'url': url})
            response = self.client.delete(f'/api/v1/quality-control/attachment/?{query}')
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(os.path.exists(target))

        response = self.client.delete('/api/v1/quality-control/attachment/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
