"""
Test suite for the catalog module
Tests: master tables, item CRUD and scoping, process-state rules, change/revert and spreadsheet import
"""
from io import BytesIO

from django.core.cache import cache
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase
from openpyxl import Workbook
from rest_framework import status
from dpms.core.models import AuditLog
from dpms.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from dpms.catalog.models import Item, ItemChangeLog, ItemProcessState, ItemType
from dpms.catalog.state import can_add_to_pi, get_state, is_in_stock


class MasterAPITests(TestCase):
    """Test the four master tables behind /masters/<kind>/"""

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user(permissions=['manage_item_type', 'manage_material'])
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_item_type(self):
        """Test creating an item type"""
        response = self.client.post('/api/v1/masters/item-types/', {'name': 'Core Box'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(ItemType.objects.filter(name='Core Box').exists())
        self.assertTrue(AuditLog.objects.filter(model_name='ItemType', action='create').exists())

    def test_duplicate_name_case_insensitive(self):
        """Test master names are unique regardless of case"""
        TestDataFactory.create_material(name='Cast Iron')
        response = self.client.post('/api/v1/masters/materials/', {'name': 'cast iron'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_each_master_has_own_flag(self):
        """Test owner types need manage_owner_type"""
        response = self.client.post('/api/v1/masters/owner-types/', {'name': 'Customer'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_unknown_master(self):
        """Test an unknown master kind is a 404"""
        response = self.client.get('/api/v1/masters/colours/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_active_list_refreshes_after_change(self):
        """Test the cached active list drops deactivated rows"""
        item_type = TestDataFactory.create_item_type(name='Pattern')
        response = self.client.get('/api/v1/masters/item-types/active/')
        self.assertIn('Pattern', [row['name'] for row in response.data])

        response = self.client.delete(f'/api/v1/masters/item-types/{item_type.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        response = self.client.get('/api/v1/masters/item-types/active/')
        self.assertNotIn('Pattern', [row['name'] for row in response.data])


class ItemStateTests(TestCase):
    """Test the process-state helpers"""

    def setUp(self):
        self.location = TestDataFactory.create_location()

    def test_new_item_can_go_on_indent(self):
        """Test a NOT_IN_STOCK item is free for a purchase indent"""
        item = TestDataFactory.create_item(location=self.location)
        self.assertTrue(can_add_to_pi(item))

    def test_item_on_indent_free_when_editing_same_indent(self):
        """Test an item already on the edited indent counts as free"""
        item = TestDataFactory.create_item(location=self.location)
        indent = TestDataFactory.create_purchase_indent(self.location, [item])
        item.refresh_from_db()
        self.assertEqual(get_state(item), ItemProcessState.IN_PI)
        self.assertFalse(can_add_to_pi(item))
        self.assertTrue(can_add_to_pi(item, exclude_pi=indent))

    def test_inactive_item_is_never_free(self):
        """Test deactivated items cannot enter any flow"""
        item = TestDataFactory.create_stock_item(self.location)
        item.is_active = False
        item.save()
        self.assertFalse(can_add_to_pi(item))
        self.assertFalse(is_in_stock(item))


class ItemAPITests(TestCase):
    """Test item endpoints"""

    def setUp(self):
        self.location = TestDataFactory.create_location()
        self.user = TestDataFactory.create_user(location=self.location, permissions=['manage_item'])
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.item_type = TestDataFactory.create_item_type()
        self.material = TestDataFactory.create_material()
        self.owner_type = TestDataFactory.create_owner_type()
        self.item_status = TestDataFactory.create_item_status()

    def _payload(self, **overrides):
        data = {
            'main_part_name': 'Pump Casing Pattern',
            'item_type': self.item_type.id,
            'material': self.material.id,
            'owner_type': self.owner_type.id,
            'status': self.item_status.id,
            'drawing_no': 'DRG-100',
            'revision_no': 'A',
        }
        data.update(overrides)
        return data

    def test_create_item(self):
        """Test a new item starts NOT_IN_STOCK at the current location"""
        response = self.client.post('/api/v1/items/', self._payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['current_name'], 'Pump Casing Pattern')
        self.assertEqual(response.data['current_process'], ItemProcessState.NOT_IN_STOCK)
        self.assertEqual(response.data['location'], self.location.id)

    def test_duplicate_main_part_name(self):
        """Test main part names are unique"""
        TestDataFactory.create_item(location=self.location, main_part_name='Pump Casing Pattern')
        response = self.client.post('/api/v1/items/', self._payload(drawing_no=''), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('main_part_name', response.data)

    def test_duplicate_drawing_no(self):
        """Test a drawing number belongs to one item only"""
        TestDataFactory.create_item(location=self.location, drawing_no='DRG-100')
        response = self.client.post('/api/v1/items/', self._payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('drawing_no', response.data)

    def test_blank_drawing_numbers_do_not_clash(self):
        """Test several items may have no drawing number"""
        TestDataFactory.create_item(location=self.location, drawing_no=None)
        response = self.client.post('/api/v1/items/', self._payload(drawing_no=''), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIsNone(response.data['drawing_no'])

    def test_inactive_master_rejected(self):
        """Test new items cannot use an inactive master"""
        self.material.is_active = False
        self.material.save()
        response = self.client.post('/api/v1/items/', self._payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('material', response.data)

    def test_main_part_name_is_immutable(self):
        """Test the main part name cannot change after creation"""
        item = TestDataFactory.create_item(location=self.location, main_part_name='Original')
        response = self.client.patch(f'/api/v1/items/{item.id}/', {'main_part_name': 'Renamed'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_scoped_to_location(self):
        """Test items of other locations are hidden"""
        TestDataFactory.create_item(location=self.location)
        TestDataFactory.create_item(location=TestDataFactory.create_location())
        response = self.client.get('/api/v1/items/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)

    def test_list_includes_items_held_here(self):
        """Test items owned elsewhere but in stock here are listed"""
        home = TestDataFactory.create_location()
        TestDataFactory.create_item(
            location=home, current_process=ItemProcessState.IN_STOCK, current_location=self.location
        )
        response = self.client.get('/api/v1/items/')
        self.assertEqual(response.data['count'], 1)

    def test_filter_by_process(self):
        """Test filtering items by process state"""
        TestDataFactory.create_item(location=self.location)
        TestDataFactory.create_stock_item(self.location)
        response = self.client.get('/api/v1/items/?current_process=IN_STOCK')
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['current_process'], 'IN_STOCK')

    def test_delete_item_in_flow_refused(self):
        """Test items inside a document flow cannot be deleted"""
        item = TestDataFactory.create_item(location=self.location, current_process=ItemProcessState.IN_PO)
        response = self.client.delete(f'/api/v1/items/{item.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        item.refresh_from_db()
        self.assertTrue(item.is_active)

    def test_delete_free_item(self):
        """Test deleting a NOT_IN_STOCK item deactivates it"""
        item = TestDataFactory.create_item(location=self.location)
        response = self.client.delete(f'/api/v1/items/{item.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        item.refresh_from_db()
        self.assertFalse(item.is_active)

    def test_patch_cannot_deactivate_item_in_flow(self):
        """Test is_active is not writable through update"""
        item = TestDataFactory.create_item(location=self.location, current_process=ItemProcessState.IN_PO)
        response = self.client.patch(f'/api/v1/items/{item.id}/', {'is_active': False}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['is_active'])
        item.refresh_from_db()
        self.assertTrue(item.is_active)

    def test_other_location_item_not_found(self):
        """Test items of another location cannot be read, edited or deleted"""
        item = TestDataFactory.create_item(location=TestDataFactory.create_location())
        url = f'/api/v1/items/{item.id}/'
        self.assertEqual(self.client.get(url).status_code, status.HTTP_404_NOT_FOUND)
        response = self.client.patch(url, {'revision_no': 'R9'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(self.client.delete(url).status_code, status.HTTP_404_NOT_FOUND)
        item.refresh_from_db()
        self.assertEqual(item.revision_no, 'R0')
        self.assertTrue(item.is_active)


class ItemChangeProcessTests(TestCase):
    """Test renaming in-stock items and reverting the change"""

    def setUp(self):
        self.location = TestDataFactory.create_location()
        self.user = TestDataFactory.create_user(
            location=self.location, permissions=['manage_changes', 'revert_changes']
        )
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.item = TestDataFactory.create_stock_item(self.location, main_part_name='Impeller')

    def test_change_in_stock_item(self):
        """Test renaming an in-stock item logs the change"""
        data = {
            'item_id': self.item.id,
            'new_name': 'Impeller Mk2',
            'new_revision': 'R1',
            'change_type': 'MODIFICATION',
            'remarks': 'Vane angle changed',
        }
        response = self.client.post('/api/v1/items/change-process/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.item.refresh_from_db()
        self.assertEqual(self.item.current_name, 'Impeller Mk2')
        self.assertEqual(self.item.main_part_name, 'Impeller')
        self.assertEqual(self.item.revision_no, 'R1')
        log = ItemChangeLog.objects.get(item=self.item)
        self.assertEqual(log.old_name, 'Impeller')
        self.assertEqual(log.old_revision, 'R0')

    def test_change_requires_in_stock(self):
        """Test items outside stock cannot be changed"""
        item = TestDataFactory.create_item(location=self.location, current_process=ItemProcessState.IN_QC)
        data = {'item_id': item.id, 'new_name': 'X', 'change_type': 'REPAIR'}
        response = self.client.post('/api/v1/items/change-process/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(ItemChangeLog.objects.filter(item=item).exists())

    def test_revert_latest_change(self):
        """Test reverting restores the previous name and revision"""
        for name in ('Impeller Mk2', 'Impeller Mk3'):
            self.client.post('/api/v1/items/change-process/', {
                'item_id': self.item.id, 'new_name': name, 'change_type': 'MODIFICATION',
            }, format='json')

        response = self.client.post(f'/api/v1/items/{self.item.id}/revert-change/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.item.refresh_from_db()
        self.assertEqual(self.item.current_name, 'Impeller Mk2')

        response = self.client.post(f'/api/v1/items/{self.item.id}/revert-change/', {}, format='json')
        self.item.refresh_from_db()
        self.assertEqual(self.item.current_name, 'Impeller')

        response = self.client.post(f'/api/v1/items/{self.item.id}/revert-change/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_change_logs_listed_newest_first(self):
        """Test the change history endpoint"""
        self.client.post('/api/v1/items/change-process/', {
            'item_id': self.item.id, 'new_name': 'Impeller Mk2', 'change_type': 'REPAIR',
        }, format='json')
        response = self.client.get(f'/api/v1/items/{self.item.id}/change-logs/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['change_type'], 'REPAIR')

    def test_other_location_item_cannot_be_changed(self):
        """Test change, revert and history are limited to the current location"""
        foreign = TestDataFactory.create_stock_item(TestDataFactory.create_location(), main_part_name='Foreign')
        foreign.change_logs.create(
            old_name='Foreign', new_name='Foreign B', old_revision='R0', new_revision='R1', change_type='REPAIR'
        )
        response = self.client.post('/api/v1/items/change-process/', {
            'item_id': foreign.id, 'new_name': 'Taken', 'change_type': 'REPAIR',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        response = self.client.post(f'/api/v1/items/{foreign.id}/revert-change/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        response = self.client.get(f'/api/v1/items/{foreign.id}/change-logs/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        foreign.refresh_from_db()
        self.assertEqual(foreign.current_name, 'Foreign')
        self.assertFalse(foreign.change_logs.filter(is_reverted=True).exists())


class ItemImportTests(TestCase):
    """Test item spreadsheet validation and import"""

    HEADERS = ['Main Part Name', 'Item Type', 'Material', 'Owner Type', 'Status', 'Drawing No']

    def setUp(self):
        self.location = TestDataFactory.create_location()
        self.user = TestDataFactory.create_user(location=self.location, permissions=['manage_item'])
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        TestDataFactory.create_item_type(name='Pattern')
        TestDataFactory.create_material(name='Wood')
        TestDataFactory.create_owner_type(name='Own')
        TestDataFactory.create_item_status(name='Good')
        TestDataFactory.create_item(location=self.location, main_part_name='Existing Part')

    def _upload(self, rows):
        wb = Workbook()
        ws = wb.active
        ws.append(self.HEADERS)
        for row in rows:
            ws.append(row)
        buffer = BytesIO()
        wb.save(buffer)
        return SimpleUploadedFile('items.xlsx', buffer.getvalue())

    def test_import_items(self):
        """Test valid rows are created and the rest reported"""
        rows = [
            ['Valve Body', 'pattern', 'WOOD', 'Own', 'Good', 'D-1'],
            ['Valve Body', 'Pattern', 'Wood', 'Own', 'Good', 'D-2'],
            ['Existing Part', 'Pattern', 'Wood', 'Own', 'Good', ''],
            ['Gear Blank', 'Die', 'Wood', 'Own', 'Good', ''],
        ]
        response = self.client.post(
            '/api/v1/items/import/', {'file': self._upload(rows)}, format='multipart'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['imported'], 1)
        self.assertEqual(len(response.data['errors']), 3)
        item = Item.objects.get(main_part_name='Valve Body')
        self.assertEqual(item.location, self.location)
        self.assertEqual(item.current_process, ItemProcessState.NOT_IN_STOCK)

    def test_validate_reports_unknown_master(self):
        """Test rows naming a missing master are invalid"""
        rows = [['Gear Blank', 'Die', 'Wood', 'Own', 'Good', '']]
        response = self.client.post(
            '/api/v1/items/validate/', {'file': self._upload(rows)}, format='multipart'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['invalid']), 1)
        self.assertIn('Item Type', response.data['invalid'][0]['message'])
