"""
Test suite for the inventory module
Tests: inward drafts and submission, outward, job work, return flows and inward attachments
"""
import os
import shutil
import tempfile
from decimal import Decimal

from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase, override_settings
from rest_framework import status
from dpms.catalog.models import ItemProcessState
from dpms.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from dpms.inventory.models import Inward, InwardLine, JobWork


class InwardAPITests(TestCase):
    """Test receiving purchased items"""

    def setUp(self):
        self.location = TestDataFactory.create_location()
        self.user = TestDataFactory.create_user(
            location=self.location, permissions=['view_inward', 'create_inward', 'edit_inward']
        )
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.vendor = TestDataFactory.create_party()
        self.item, self.order = TestDataFactory.create_ordered_item(
            self.location, self.vendor, rate=Decimal('1200.00'), gst_percent=Decimal('12.00')
        )

    def _create_draft(self, item=None, source_type='PO', source_ref_id=None):
        line = {'item_id': (item or self.item).id, 'source_type': source_type}
        if source_ref_id is not None:
            line['source_ref_id'] = source_ref_id
        return self.client.post(
            '/api/v1/inwards/', {'vendor_id': self.vendor.id, 'items': [line]}, format='json'
        )

    def test_create_draft_inward_from_order(self):
        """Test a draft inward copies the order rate and GST"""
        response = self._create_draft()
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['inward_no'], 'INW-01')
        self.assertEqual(response.data['status'], 'DRAFT')

        line = InwardLine.objects.get(inward_id=response.data['id'])
        self.assertEqual(line.source_ref_id, self.order.id)
        self.assertEqual(line.rate, Decimal('1200.00'))
        self.assertEqual(line.gst_percent, Decimal('12.00'))
        self.assertEqual(line.item_type_name, self.item.item_type.name)

        # Drafts do not move the item
        self.item.refresh_from_db()
        self.assertEqual(self.item.current_process, ItemProcessState.IN_PO)

    def test_wrong_source_refused(self):
        """Test an item on a purchase order cannot come back as a job work return"""
        response = self._create_draft(source_type='JOB_WORK')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_item_without_approved_order_refused(self):
        """Test items of a pending order cannot be received"""
        item = TestDataFactory.create_item(location=self.location)
        indent = TestDataFactory.create_purchase_indent(self.location, [item], status='APPROVED')
        TestDataFactory.create_purchase_order(self.location, self.vendor, list(indent.items.all()))
        item.refresh_from_db()
        response = self._create_draft(item=item)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_item_on_two_drafts_refused(self):
        """Test an item can sit on one draft inward only"""
        self._create_draft()
        response = self._create_draft()
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_submit_moves_items_to_qc(self):
        """Test submitting puts items IN_QC at the inward location"""
        inward_id = self._create_draft().data['id']
        response = self.client.post(f'/api/v1/inwards/{inward_id}/submit/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'SUBMITTED')

        self.item.refresh_from_db()
        self.assertEqual(self.item.current_process, ItemProcessState.IN_QC)
        self.assertEqual(self.item.current_location, self.location)
        line = InwardLine.objects.get(inward_id=inward_id)
        self.assertTrue(line.is_qc_pending)
        self.assertIsNone(line.is_qc_approved)

        response = self.client.post(f'/api/v1/inwards/{inward_id}/submit/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_submit_rechecks_source(self):
        """Test a draft whose item moved meanwhile cannot be submitted"""
        inward_id = self._create_draft().data['id']
        self.item.set_state(ItemProcessState.NOT_IN_STOCK)
        response = self.client.post(f'/api/v1/inwards/{inward_id}/submit/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('error', response.data)
        self.assertEqual(Inward.objects.get(pk=inward_id).status, 'DRAFT')

    def test_submitted_inward_is_locked(self):
        """Test submitted inwards cannot be edited or deleted"""
        inward_id = self._create_draft().data['id']
        self.client.post(f'/api/v1/inwards/{inward_id}/submit/', {}, format='json')
        response = self.client.patch(f'/api/v1/inwards/{inward_id}/', {'remarks': 'late'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.delete(f'/api/v1/inwards/{inward_id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_delete_draft(self):
        """Test deleting a draft releases the item for another draft"""
        inward_id = self._create_draft().data['id']
        response = self.client.delete(f'/api/v1/inwards/{inward_id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        response = self._create_draft()
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['inward_no'], 'INW-02')

    def test_order_has_inward_after_receipt(self):
        """Test the order reports an inward once one references it"""
        self._create_draft()
        self.assertTrue(self.order.has_inward)

    def test_list_requires_view_flag(self):
        """Test listing inwards needs view_inward"""
        user = TestDataFactory.create_user(location=self.location)
        client = AuthenticatedAPIClient()
        client.authenticate_user(user)
        response = client.get('/api/v1/inwards/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class OutwardAPITests(TestCase):
    """Test sending stock items out and receiving them back"""

    def setUp(self):
        self.location = TestDataFactory.create_location()
        self.user = TestDataFactory.create_user(
            location=self.location, permissions=['view_movement', 'create_movement', 'create_inward']
        )
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.party = TestDataFactory.create_party(name='Foundry One')
        self.item = TestDataFactory.create_stock_item(self.location)

    def test_create_outward(self):
        """Test an outward moves items to OUTWARD with the party"""
        data = {'party_id': self.party.id, 'items': [{'item_id': self.item.id, 'remarks': 'For casting'}]}
        response = self.client.post('/api/v1/outwards/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['outward_no'], 'OUT-01')
        self.assertEqual(response.data['party_name'], 'Foundry One')

        self.item.refresh_from_db()
        self.assertEqual(self.item.current_process, ItemProcessState.OUTWARD)
        self.assertEqual(self.item.current_party, self.party)
        self.assertIsNone(self.item.current_location)

    def test_outward_of_non_stock_item_refused(self):
        """Test only in-stock items can go out"""
        item = TestDataFactory.create_item(location=self.location)
        data = {'party_id': self.party.id, 'items': [{'item_id': item.id}]}
        response = self.client.post('/api/v1/outwards/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_outward_of_item_stocked_elsewhere_refused(self):
        """Test items must be in stock at the current location"""
        item = TestDataFactory.create_stock_item(TestDataFactory.create_location())
        data = {'party_id': self.party.id, 'items': [{'item_id': item.id}]}
        response = self.client.post('/api/v1/outwards/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_inactive_party_refused(self):
        """Test items cannot be sent to an inactive party"""
        self.party.is_active = False
        self.party.save()
        data = {'party_id': self.party.id, 'items': [{'item_id': self.item.id}]}
        response = self.client.post('/api/v1/outwards/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_outward_return(self):
        """Test an outward item comes back through an inward"""
        outward = TestDataFactory.create_outward(self.location, self.party, [self.item])
        data = {'vendor_id': self.party.id, 'items': [{'item_id': self.item.id, 'source_type': 'OUTWARD_RETURN'}]}
        response = self.client.post('/api/v1/inwards/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        line = InwardLine.objects.get(inward_id=response.data['id'])
        self.assertEqual(line.source_ref_id, outward.id)
        self.assertIsNone(line.rate)

        response = self.client.post(f"/api/v1/inwards/{response.data['id']}/submit/", {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.item.refresh_from_db()
        self.assertEqual(self.item.current_process, ItemProcessState.IN_QC)
        self.assertIsNone(self.item.current_party)

    def test_outward_detail(self):
        """Test retrieving an outward with its lines"""
        outward = TestDataFactory.create_outward(self.location, self.party, [self.item])
        response = self.client.get(f'/api/v1/outwards/{outward.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['lines']), 1)


class JobWorkAPITests(TestCase):
    """Test job work dispatch, return and completion"""

    def setUp(self):
        self.location = TestDataFactory.create_location()
        self.user = TestDataFactory.create_user(
            location=self.location, permissions=['view_movement', 'create_movement', 'create_inward']
        )
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.party = TestDataFactory.create_party(name='Machining Works')
        self.item1 = TestDataFactory.create_stock_item(self.location)
        self.item2 = TestDataFactory.create_stock_item(self.location)

    def _return(self, item, job_work):
        data = {
            'vendor_id': self.party.id,
            'items': [{'item_id': item.id, 'source_type': 'JOB_WORK', 'source_ref_id': job_work.id}],
        }
        inward_id = self.client.post('/api/v1/inwards/', data, format='json').data['id']
        return self.client.post(f'/api/v1/inwards/{inward_id}/submit/', {}, format='json')

    def test_create_job_work(self):
        """Test job work moves items to IN_JOBWORK with rates"""
        data = {
            'to_party_id': self.party.id,
            'description': 'Core box machining',
            'items': [
                {'item_id': self.item1.id, 'rate': '450.00', 'gst_percent': '18.00'},
                {'item_id': self.item2.id, 'rate': '300.00'},
            ],
        }
        response = self.client.post('/api/v1/job-works/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['job_work_no'], 'JW-01')
        self.assertEqual(response.data['status'], 'PENDING')
        self.assertEqual(len(response.data['items']), 2)

        self.item1.refresh_from_db()
        self.assertEqual(self.item1.current_process, ItemProcessState.IN_JOBWORK)
        self.assertEqual(self.item1.current_party, self.party)

    def test_job_work_needs_items(self):
        """Test a job work without items is refused"""
        response = self.client.post('/api/v1/job-works/', {'to_party_id': self.party.id, 'items': []}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_return_completes_job_work(self):
        """Test the job work completes when its last item comes back"""
        job_work = TestDataFactory.create_job_work(self.location, self.party, [self.item1, self.item2])

        response = self._return(self.item1, job_work)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        job_work.refresh_from_db()
        self.assertEqual(job_work.status, 'PENDING')

        self._return(self.item2, job_work)
        job_work.refresh_from_db()
        self.assertEqual(job_work.status, 'COMPLETED')

        line = InwardLine.objects.filter(item=self.item2, source_type='JOB_WORK').get()
        self.assertEqual(line.rate, Decimal('50.00'))

    def test_manual_completion_needs_items_back(self):
        """Test a job work cannot be closed while items are still out"""
        job_work = TestDataFactory.create_job_work(self.location, self.party, [self.item1])
        response = self.client.post(f'/api/v1/job-works/{job_work.id}/status/', {'status': 'COMPLETED'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.patch(f'/api/v1/job-works/{job_work.id}/status/', {'status': 'IN_TRANSIT'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(JobWork.objects.get(pk=job_work.id).status, 'IN_TRANSIT')

    def test_completed_job_work_is_final(self):
        """Test a completed job work cannot change status"""
        job_work = TestDataFactory.create_job_work(self.location, self.party, [self.item1], status='COMPLETED')
        response = self.client.post(f'/api/v1/job-works/{job_work.id}/status/', {'status': 'PENDING'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_pending_lists_items_still_out(self):
        """Test the pending list shows only items not yet returned"""
        job_work = TestDataFactory.create_job_work(self.location, self.party, [self.item1, self.item2])
        self._return(self.item1, job_work)
        response = self.client.get('/api/v1/job-works/pending/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)
        self.assertEqual([row['item'] for row in response.data[0]['items']], [self.item2.id])

    def test_return_of_closed_job_work_refused(self):
        """Test items cannot come back against a completed job work"""
        job_work = TestDataFactory.create_job_work(self.location, self.party, [self.item1], status='COMPLETED')
        data = {
            'vendor_id': self.party.id,
            'items': [{'item_id': self.item1.id, 'source_type': 'JOB_WORK', 'source_ref_id': job_work.id}],
        }
        response = self.client.post('/api/v1/inwards/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class InwardAttachmentTests(TestCase):
    """Test inward attachment uploads"""

    def setUp(self):
        self.media_root = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, self.media_root, ignore_errors=True)
        settings_override = override_settings(MEDIA_ROOT=self.media_root, MEDIA_URL='/media/')
        settings_override.enable()
        self.addCleanup(settings_override.disable)
        self.location = TestDataFactory.create_location()
        self.user = TestDataFactory.create_user(location=self.location, permissions=['create_inward'])
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_upload_attachment(self):
        """Test attachments are stored under the inward number"""
        response = self.client.post(
            '/api/v1/inwards/upload-attachment/',
            {'file': SimpleUploadedFile('challan.jpg', b'JPEG'), 'inward_no': 'INW-03'}, format='multipart'
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        url = response.data['urls'][0]
        self.assertTrue(url.startswith('/media/inward_attachments/INW-03/'))
        self.assertTrue(os.path.exists(os.path.join(self.media_root, url[len('/media/'):])))

    @override_settings(UPLOAD_MAX_BYTES=4)
    def test_upload_too_large(self):
        """Test files above the size limit are refused"""
        response = self.client.post(
            '/api/v1/inwards/upload-attachment/',
            {'file': SimpleUploadedFile('challan.pdf', b'123456')}, format='multipart'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(os.path.exists(os.path.join(self.media_root, 'inward_attachments')))
