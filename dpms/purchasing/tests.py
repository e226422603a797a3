"""
Test suite for the purchasing module
Tests: purchase indent and purchase order lifecycle, item state moves, totals, edge cases and quotation uploads
"""
import os
import shutil
import tempfile
from decimal import Decimal
from unittest import mock

from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase, override_settings
from rest_framework import status
from dpms.catalog.models import ItemProcessState
from dpms.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from dpms.purchasing.models import PurchaseIndent, PurchaseOrder, DocumentStatus


class PurchaseOrderModelTests(TestCase):
    """Test PurchaseOrder total calculations"""

    def setUp(self):
        self.location = TestDataFactory.create_location()
        self.vendor = TestDataFactory.create_party()
        items = [TestDataFactory.create_item(location=self.location) for _ in range(2)]
        self.indent = TestDataFactory.create_purchase_indent(self.location, items, status='APPROVED')

    def test_totals_with_gst(self):
        """Test subtotal, GST and total"""
        lines = list(self.indent.items.all())
        order = TestDataFactory.create_purchase_order(
            self.location, self.vendor, lines, rate=Decimal('333.33'), gst_percent=Decimal('18.00')
        )
        self.assertEqual(order.get_subtotal(), Decimal('666.66'))
        self.assertEqual(order.get_gst_amount(), Decimal('120.00'))
        self.assertEqual(order.get_total(), Decimal('786.66'))

    def test_totals_without_gst(self):
        """Test an order without GST has no tax"""
        order = TestDataFactory.create_purchase_order(
            self.location, self.vendor, list(self.indent.items.all()), rate=Decimal('250.00')
        )
        self.assertEqual(order.get_gst_amount(), Decimal('0.00'))
        self.assertEqual(order.get_total(), Decimal('500.00'))

    def test_purchase_order_str(self):
        """Test purchase order string representation"""
        order = TestDataFactory.create_purchase_order(
            self.location, self.vendor, list(self.indent.items.all()), po_no='PO-05'
        )
        self.assertEqual(str(order), 'PO-05')


class PurchaseIndentAPITests(TestCase):
    """Test purchase indent endpoints"""

    def setUp(self):
        self.location = TestDataFactory.create_location()
        self.user = TestDataFactory.create_user(
            location=self.location, permissions=['view_pi', 'create_pi', 'edit_pi', 'approve_pi']
        )
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.item1 = TestDataFactory.create_item(location=self.location)
        self.item2 = TestDataFactory.create_item(location=self.location)

    def test_create_indent(self):
        """Test raising an indent moves its items to IN_PI"""
        data = {'type': 'NEW', 'item_ids': [self.item1.id, self.item2.id], 'remarks': 'New patterns'}
        response = self.client.post('/api/v1/purchase-indents/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['pi_no'], 'PI-01')
        self.assertEqual(response.data['status'], DocumentStatus.PENDING)
        self.assertEqual(response.data['item_count'], 2)

        self.item1.refresh_from_db()
        self.assertEqual(self.item1.current_process, ItemProcessState.IN_PI)

    def test_create_indent_numbers_increase(self):
        """Test the second indent gets the next number"""
        self.client.post('/api/v1/purchase-indents/', {'item_ids': [self.item1.id]}, format='json')
        response = self.client.post('/api/v1/purchase-indents/', {'item_ids': [self.item2.id]}, format='json')
        self.assertEqual(response.data['pi_no'], 'PI-02')

    def test_concurrent_number_clash(self):
        """Test a number taken between numbering and saving answers 400 and rolls back"""
        TestDataFactory.create_purchase_indent(self.location, [], pi_no='PI-01')
        with mock.patch('dpms.purchasing.serializers.generate_code', return_value='PI-01'):
            response = self.client.post('/api/v1/purchase-indents/', {'item_ids': [self.item1.id]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('error', response.data)
        self.assertEqual(PurchaseIndent.objects.filter(location=self.location).count(), 1)
        self.item1.refresh_from_db()
        self.assertEqual(self.item1.current_process, ItemProcessState.NOT_IN_STOCK)

    def test_item_already_on_indent_refused(self):
        """Test an item cannot be on two indents"""
        TestDataFactory.create_purchase_indent(self.location, [self.item1])
        response = self.client.post('/api/v1/purchase-indents/', {'item_ids': [self.item1.id]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('item_ids', response.data)

    def test_in_stock_item_refused(self):
        """Test only NOT_IN_STOCK items can be indented"""
        item = TestDataFactory.create_stock_item(self.location)
        response = self.client.post('/api/v1/purchase-indents/', {'item_ids': [item.id]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_item_of_other_location_refused(self):
        """Test items owned by another location are refused"""
        item = TestDataFactory.create_item(location=TestDataFactory.create_location())
        response = self.client.post('/api/v1/purchase-indents/', {'item_ids': [item.id]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_empty_indent_refused(self):
        """Test an indent needs at least one item"""
        response = self.client.post('/api/v1/purchase-indents/', {'item_ids': []}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_create_requires_flag(self):
        """Test raising an indent needs create_pi"""
        user = TestDataFactory.create_user(location=self.location, permissions=['view_pi'])
        client = AuthenticatedAPIClient()
        client.authenticate_user(user)
        response = client.post('/api/v1/purchase-indents/', {'item_ids': [self.item1.id]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_edit_swaps_items(self):
        """Test editing a pending indent frees removed items"""
        indent = TestDataFactory.create_purchase_indent(self.location, [self.item1])
        response = self.client.put(
            f'/api/v1/purchase-indents/{indent.id}/', {'item_ids': [self.item1.id, self.item2.id]}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['item_count'], 2)

        response = self.client.put(
            f'/api/v1/purchase-indents/{indent.id}/', {'item_ids': [self.item2.id]}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.item1.refresh_from_db()
        self.item2.refresh_from_db()
        self.assertEqual(self.item1.current_process, ItemProcessState.NOT_IN_STOCK)
        self.assertEqual(self.item2.current_process, ItemProcessState.IN_PI)

    def test_edit_approved_indent_refused(self):
        """Test approved indents are locked"""
        indent = TestDataFactory.create_purchase_indent(self.location, [self.item1], status='APPROVED')
        response = self.client.patch(f'/api/v1/purchase-indents/{indent.id}/', {'remarks': 'x'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_approve_indent(self):
        """Test approving a pending indent"""
        indent = TestDataFactory.create_purchase_indent(self.location, [self.item1])
        response = self.client.post(f'/api/v1/purchase-indents/{indent.id}/approve/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        indent.refresh_from_db()
        self.assertEqual(indent.status, DocumentStatus.APPROVED)
        self.assertEqual(indent.approved_by, self.user)

        response = self.client.post(f'/api/v1/purchase-indents/{indent.id}/reject/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_reject_frees_items(self):
        """Test rejecting an indent returns its items to NOT_IN_STOCK"""
        indent = TestDataFactory.create_purchase_indent(self.location, [self.item1])
        response = self.client.post(
            f'/api/v1/purchase-indents/{indent.id}/reject/', {'remarks': 'Not needed'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.item1.refresh_from_db()
        self.assertEqual(self.item1.current_process, ItemProcessState.NOT_IN_STOCK)

    def test_delete_indent(self):
        """Test deleting a pending indent hides it and frees its items"""
        indent = TestDataFactory.create_purchase_indent(self.location, [self.item1])
        response = self.client.delete(f'/api/v1/purchase-indents/{indent.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        indent.refresh_from_db()
        self.item1.refresh_from_db()
        self.assertFalse(indent.is_active)
        self.assertEqual(self.item1.current_process, ItemProcessState.NOT_IN_STOCK)

    def test_list_filters_by_status(self):
        """Test listing indents by status"""
        TestDataFactory.create_purchase_indent(self.location, [self.item1])
        TestDataFactory.create_purchase_indent(self.location, [self.item2], status='APPROVED')
        response = self.client.get('/api/v1/purchase-indents/?status=approved')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)

    def test_available_item_ids(self):
        """Test free items, plus the items of the indent being edited"""
        indent = TestDataFactory.create_purchase_indent(self.location, [self.item1])
        response = self.client.get('/api/v1/purchase-indents/available-item-ids/')
        self.assertEqual(response.data, [self.item2.id])
        response = self.client.get(f'/api/v1/purchase-indents/available-item-ids/?exclude_pi_id={indent.id}')
        self.assertEqual(sorted(response.data), sorted([self.item1.id, self.item2.id]))


class PurchaseOrderAPITests(TestCase):
    """Test purchase order endpoints"""

    def setUp(self):
        self.location = TestDataFactory.create_location()
        self.user = TestDataFactory.create_user(
            location=self.location, permissions=['view_po', 'create_po', 'edit_po', 'approve_po']
        )
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.vendor = TestDataFactory.create_party(name='Sharp Patterns')
        self.item1 = TestDataFactory.create_item(location=self.location)
        self.item2 = TestDataFactory.create_item(location=self.location)
        self.indent = TestDataFactory.create_purchase_indent(
            self.location, [self.item1, self.item2], status='APPROVED'
        )
        self.line1, self.line2 = list(self.indent.items.order_by('id'))

    def _payload(self, lines=None, **overrides):
        data = {
            'vendor_id': self.vendor.id,
            'gst_type': 'IGST',
            'gst_percent': '18.00',
            'items': lines or [
                {'purchase_indent_item_id': self.line1.id, 'rate': '1000.00'},
                {'purchase_indent_item_id': self.line2.id, 'rate': '500.00'},
            ],
        }
        data.update(overrides)
        return data

    def test_create_order(self):
        """Test placing an order moves items to IN_PO and totals the lines"""
        response = self.client.post('/api/v1/purchase-orders/', self._payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['po_no'], 'PO-01')
        self.assertEqual(response.data['vendor_name'], 'Sharp Patterns')
        self.assertEqual(response.data['subtotal'], '1500.00')
        self.assertEqual(response.data['gst_amount'], '270.00')
        self.assertEqual(response.data['total_amount'], '1770.00')
        self.assertFalse(response.data['has_inward'])

        self.item1.refresh_from_db()
        self.assertEqual(self.item1.current_process, ItemProcessState.IN_PO)

    def test_order_needs_approved_indent(self):
        """Test lines of a pending indent cannot be ordered"""
        item = TestDataFactory.create_item(location=self.location)
        pending = TestDataFactory.create_purchase_indent(self.location, [item])
        lines = [{'purchase_indent_item_id': pending.items.first().id, 'rate': '10.00'}]
        response = self.client.post('/api/v1/purchase-orders/', self._payload(lines=lines), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_indent_line_on_two_orders_refused(self):
        """Test an indent line can be held by one live order only"""
        TestDataFactory.create_purchase_order(self.location, self.vendor, [self.line1])
        lines = [{'purchase_indent_item_id': self.line1.id, 'rate': '10.00'}]
        response = self.client.post('/api/v1/purchase-orders/', self._payload(lines=lines), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_line_of_rejected_order_can_be_reordered(self):
        """Test a rejected order releases its indent lines"""
        TestDataFactory.create_purchase_order(self.location, self.vendor, [self.line1], status='REJECTED')
        lines = [{'purchase_indent_item_id': self.line1.id, 'rate': '10.00'}]
        response = self.client.post('/api/v1/purchase-orders/', self._payload(lines=lines), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_vendor_required(self):
        """Test an order needs a vendor"""
        data = self._payload()
        del data['vendor_id']
        response = self.client.post('/api/v1/purchase-orders/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('vendor_id', response.data)

    def test_gst_percent_out_of_range(self):
        """Test GST above 100 percent is refused"""
        response = self.client.post('/api/v1/purchase-orders/', self._payload(gst_percent='120'), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_reject_order_returns_items_to_indent(self):
        """Test rejecting an order puts its items back to IN_PI"""
        order = TestDataFactory.create_purchase_order(self.location, self.vendor, [self.line1])
        response = self.client.post(f'/api/v1/purchase-orders/{order.id}/reject/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.item1.refresh_from_db()
        self.assertEqual(self.item1.current_process, ItemProcessState.IN_PI)

    def test_edit_order_rate(self):
        """Test changing a line rate on a pending order"""
        order = TestDataFactory.create_purchase_order(self.location, self.vendor, [self.line1])
        lines = [{'purchase_indent_item_id': self.line1.id, 'rate': '750.00'}]
        response = self.client.patch(f'/api/v1/purchase-orders/{order.id}/', {'items': lines}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['subtotal'], '750.00')

    def test_edit_order_with_inward_refused(self):
        """Test an order that already has an inward is locked"""
        order = TestDataFactory.create_purchase_order(self.location, self.vendor, [self.line1])
        TestDataFactory.create_submitted_inward(self.location, [(self.item1, 'PO', order.id)], vendor=self.vendor)
        response = self.client.patch(f'/api/v1/purchase-orders/{order.id}/', {'remarks': 'late'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_delete_order(self):
        """Test deleting a pending order returns items to IN_PI"""
        order = TestDataFactory.create_purchase_order(self.location, self.vendor, [self.line1])
        response = self.client.delete(f'/api/v1/purchase-orders/{order.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(PurchaseOrder.objects.get(pk=order.id).is_active)
        self.item1.refresh_from_db()
        self.assertEqual(self.item1.current_process, ItemProcessState.IN_PI)

    def test_approved_orders_list_only_waiting_items(self):
        """Test approved orders are listed with items still IN_PO"""
        order = TestDataFactory.create_purchase_order(
            self.location, self.vendor, [self.line1, self.line2], status='APPROVED'
        )
        self.item2.refresh_from_db()
        self.item2.set_state(ItemProcessState.IN_QC, location=self.location)
        response = self.client.get('/api/v1/purchase-orders/approved/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['id'], order.id)
        self.assertEqual([line['item_id'] for line in response.data[0]['items']], [self.item1.id])

    def test_approved_items_for_edit(self):
        """Test indent lines already ordered are not offered again"""
        order = TestDataFactory.create_purchase_order(self.location, self.vendor, [self.line1])
        response = self.client.get('/api/v1/purchase-orders/approved-items-for-edit/')
        self.assertEqual([row['id'] for row in response.data], [self.line2.id])
        response = self.client.get(f'/api/v1/purchase-orders/approved-items-for-edit/?exclude_po_id={order.id}')
        self.assertEqual(sorted(row['id'] for row in response.data), sorted([self.line1.id, self.line2.id]))

    def test_indents_of_other_location_hidden(self):
        """Test documents are scoped to the current location"""
        other = TestDataFactory.create_location()
        TestDataFactory.create_purchase_indent(other, [TestDataFactory.create_item(location=other)])
        self.assertEqual(PurchaseIndent.objects.count(), 2)
        user = TestDataFactory.create_user(location=self.location, permissions=['view_pi'])
        client = AuthenticatedAPIClient()
        client.authenticate_user(user)
        response = client.get('/api/v1/purchase-indents/')
        self.assertEqual(response.data['count'], 1)


class QuotationUploadTests(TestCase):
    """Test quotation file uploads"""

    def setUp(self):
        self.media_root = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, self.media_root, ignore_errors=True)
        settings_override = override_settings(MEDIA_ROOT=self.media_root, MEDIA_URL='/media/')
        settings_override.enable()
        self.addCleanup(settings_override.disable)
        self.location = TestDataFactory.create_location()
        self.user = TestDataFactory.create_user(location=self.location, permissions=['create_po'])
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_upload_under_po_folder(self):
        """Test quotations are stored under the sanitized PO number"""
        files = [SimpleUploadedFile('quote.pdf', b'%PDF'), SimpleUploadedFile('drawing.png', b'PNG')]
        response = self.client.post(
            '/api/v1/purchase-orders/upload-quotation/', {'files': files, 'po_no': 'PO 07/A'}, format='multipart'
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(len(response.data['urls']), 2)
        for url in response.data['urls']:
            self.assertTrue(url.startswith('/media/quotations/PO_07_A/'))
            self.assertTrue(os.path.exists(os.path.join(self.media_root, url[len('/media/'):])))

    def test_upload_without_po_goes_to_draft(self):
        """Test uploads before the PO exists go to the draft folder"""
        response = self.client.post(
            '/api/v1/purchase-orders/upload-quotation/',
            {'file': SimpleUploadedFile('quote.pdf', b'%PDF')}, format='multipart'
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['urls'][0].startswith('/media/quotations/draft/'))

    def test_upload_rejects_bad_type(self):
        """Test disallowed file types are refused"""
        response = self.client.post(
            '/api/v1/purchase-orders/upload-quotation/',
            {'file': SimpleUploadedFile('quote.exe', b'MZ')}, format='multipart'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('error', response.data)

    def test_upload_needs_file_and_flag(self):
        """Test an empty upload is refused and the flag is required"""
        response = self.client.post('/api/v1/purchase-orders/upload-quotation/', {}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        user = TestDataFactory.create_user(location=self.location, permissions=['view_po'])
        self.client.authenticate_user(user)
        response = self.client.post(
            '/api/v1/purchase-orders/upload-quotation/',
            {'file': SimpleUploadedFile('quote.pdf', b'%PDF')}, format='multipart'
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
