"""
Test suite for the reports module
Tests: dashboard stats, inventory status, movement ledger and QC summary
"""
from django.test import TestCase
from django.utils import timezone
from rest_framework import status
from dpms.catalog.models import ItemProcessState
from dpms.core.test_utils import TestDataFactory, AuthenticatedAPIClient


class DashboardTests(TestCase):
    """Test dashboard stats"""

    def setUp(self):
        self.location = TestDataFactory.create_location()
        self.user = TestDataFactory.create_user(location=self.location)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.vendor = TestDataFactory.create_party()

    def test_dashboard_counts(self):
        """Test headline counts for the current location"""
        TestDataFactory.create_item(location=self.location)
        TestDataFactory.create_purchase_indent(self.location, [TestDataFactory.create_item(location=self.location)])
        stock = TestDataFactory.create_stock_item(self.location)
        TestDataFactory.create_job_work(self.location, self.vendor, [stock])
        item, order = TestDataFactory.create_ordered_item(self.location, self.vendor)
        TestDataFactory.create_submitted_inward(self.location, [(item, 'PO', order.id)], vendor=self.vendor)
        TestDataFactory.create_item(location=TestDataFactory.create_location())

        response = self.client.get('/api/v1/dashboard/stats/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['location']['id'], self.location.id)
        self.assertEqual(response.data['total_items'], 4)
        by_process = response.data['items_by_process']
        self.assertEqual(by_process[ItemProcessState.NOT_IN_STOCK], 1)
        self.assertEqual(by_process[ItemProcessState.IN_PI], 1)
        self.assertEqual(by_process[ItemProcessState.IN_JOBWORK], 1)
        self.assertEqual(by_process[ItemProcessState.IN_QC], 1)
        self.assertEqual(by_process[ItemProcessState.OUTWARD], 0)
        self.assertEqual(response.data['pending_pis'], 1)
        self.assertEqual(response.data['pending_pos'], 0)
        self.assertEqual(response.data['pending_qc'], 1)
        self.assertEqual(response.data['open_job_works'], 1)
        self.assertEqual(len(response.data['recent_inwards']), 1)
        self.assertEqual(response.data['recent_inwards'][0]['items'], 1)

    def test_dashboard_requires_flag(self):
        """Test the dashboard needs view_dashboard"""
        self.user.permission.view_dashboard = False
        self.user.permission.save()
        response = self.client.get('/api/v1/dashboard/stats/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class ItemReportTests(TestCase):
    """Test item reports"""

    def setUp(self):
        self.location = TestDataFactory.create_location()
        self.user = TestDataFactory.create_user(location=self.location, permissions=['view_reports'])
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.vendor = TestDataFactory.create_party(name='Cast Masters')

    def test_inventory_status_filters(self):
        """Test filtering the inventory status by process and search"""
        TestDataFactory.create_stock_item(self.location, main_part_name='Flywheel Pattern')
        TestDataFactory.create_stock_item(self.location, main_part_name='Gearbox Die')
        TestDataFactory.create_item(location=self.location, main_part_name='Flywheel Core')

        response = self.client.get('/api/v1/item-reports/inventory-status/?current_process=in_stock')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 2)
        self.assertEqual(response.data['results'][0]['holder_name'], self.location.name)

        response = self.client.get('/api/v1/item-reports/inventory-status/?search=flywheel')
        self.assertEqual(response.data['count'], 2)

    def test_reports_require_flag(self):
        """Test item reports need view_reports"""
        user = TestDataFactory.create_user(location=self.location)
        self.client.authenticate_user(user)
        response = self.client.get('/api/v1/item-reports/inventory-status/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_movement_ledger_needs_item(self):
        """Test the ledger asks for an item"""
        response = self.client.get('/api/v1/item-reports/movement-ledger/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.get('/api/v1/item-reports/movement-ledger/?item_id=abc')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_movement_ledger_events(self):
        """Test the ledger follows an item from indent to QC"""
        item, order = TestDataFactory.create_ordered_item(self.location, self.vendor)
        inward = TestDataFactory.create_submitted_inward(self.location, [(item, 'PO', order.id)], vendor=self.vendor)
        entry = TestDataFactory.create_qc_entry(self.location, list(inward.lines.all()), party=self.vendor)
        qc_item = entry.items.get()
        qc_item.is_approved = True
        qc_item.decided_at = timezone.now()
        qc_item.save()

        response = self.client.get(f'/api/v1/item-reports/movement-ledger/?item_id={item.id}')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['item']['id'], item.id)
        self.assertEqual([e['type'] for e in response.data['events']], ['PI', 'PO', 'INWARD', 'QC'])
        self.assertEqual(response.data['events'][1]['holder'], 'Cast Masters')
        self.assertEqual(response.data['events'][3]['details'], 'Approved')

    def test_movement_ledger_other_location_item(self):
        """Test the ledger only covers items of the current location"""
        foreign = TestDataFactory.create_stock_item(TestDataFactory.create_location())
        response = self.client.get(f'/api/v1/item-reports/movement-ledger/?item_id={foreign.id}')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_movement_ledger_includes_changes(self):
        """Test renames appear in the ledger"""
        item = TestDataFactory.create_stock_item(self.location, main_part_name='Bracket')
        item.change_logs.create(
            old_name='Bracket', new_name='Bracket B', old_revision='R0', new_revision='R1',
            change_type='MODIFICATION', is_reverted=True
        )
        response = self.client.get(f'/api/v1/item-reports/movement-ledger/?item_id={item.id}')
        self.assertEqual(len(response.data['events']), 1)
        self.assertEqual(response.data['events'][0]['type'], 'CHANGE')
        self.assertEqual(response.data['events'][0]['details'], 'Bracket -> Bracket B (reverted)')

    def test_qc_summary(self):
        """Test QC decision totals for the location"""
        items = [TestDataFactory.create_ordered_item(self.location, self.vendor) for _ in range(3)]
        inward = TestDataFactory.create_submitted_inward(
            self.location, [(item, 'PO', order.id) for item, order in items], vendor=self.vendor
        )
        entry = TestDataFactory.create_qc_entry(self.location, list(inward.lines.order_by('id')))
        first, second, _third = entry.items.order_by('id')
        for qc_item, decision in ((first, True), (second, False)):
            qc_item.is_approved = decision
            qc_item.decided_at = timezone.now()
            qc_item.save()

        response = self.client.get('/api/v1/item-reports/qc-summary/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total'], 3)
        self.assertEqual(response.data['approved'], 1)
        self.assertEqual(response.data['rejected'], 1)
        self.assertEqual(response.data['pending'], 1)
        self.assertEqual(len(response.data['recent']), 2)
