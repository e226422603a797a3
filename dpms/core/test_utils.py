"""
Test utilities and factories for creating test data
"""
from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from dpms.core.models import UserPermission, UserLocationAccess
from dpms.locations.models import Company, Location
from dpms.parties.models import Party
from dpms.catalog.models import ItemType, Material, OwnerType, ItemStatus, Item, ItemProcessState
from dpms.purchasing.models import PurchaseIndent, PurchaseIndentItem, PurchaseOrder, PurchaseOrderItem
from dpms.inventory.models import Inward, InwardLine, Outward, OutwardLine, JobWork, JobWorkItem
from dpms.quality.models import QcEntry, QcItem
from decimal import Decimal
import random
import string

User = get_user_model()


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_letters + string.digits, k=length))

    @staticmethod
    def create_company(name=None, **kwargs):
        """Create a test company"""
        if not name:
            name = f'Company_{TestDataFactory.random_string(6)}'
        return Company.objects.create(name=name, **kwargs)

    @staticmethod
    def create_location(company=None, name=None):
        """Create a test location (and a company when none is given)"""
        if not company:
            company = TestDataFactory.create_company()
        if not name:
            name = f'Location_{TestDataFactory.random_string(6)}'
        return Location.objects.create(company=company, name=name, address=f'Test Address {name}')

    @staticmethod
    def create_user(username=None, email=None, password='testpass123', role='QC_USER',
                    location=None, permissions=None, all_permissions=False, is_superuser=False):
        """
        Create a test user.

        `permissions` is a list of flag names to switch on; `all_permissions`
        switches every flag on. When `location` is given the user is granted
        access to it and it becomes the default location.
        """
        if not username:
            username = f'testuser_{TestDataFactory.random_string(6)}'
        if not email:
            email = f'{username}@test.com'
        user = User.objects.create_user(
            username=username,
            email=email,
            password=password,
            role=role,
            is_superuser=is_superuser,
        )
        permission, _ = UserPermission.objects.get_or_create(user=user)
        flags = UserPermission.FLAG_FIELDS if all_permissions else (permissions or [])
        for flag in flags:
            setattr(permission, flag, True)
        permission.save()

        if location:
            UserLocationAccess.objects.create(user=user, company=location.company, location=location)
            user.default_company = location.company
            user.default_location = location
            user.save(update_fields=['default_company', 'default_location'])
        return user

    @staticmethod
    def create_admin(location=None, username=None):
        """Create a QC_ADMIN user; admins pass every permission check"""
        return TestDataFactory.create_user(username=username, role='QC_ADMIN', location=location)

    @staticmethod
    def grant_location(user, location):
        return UserLocationAccess.objects.create(user=user, company=location.company, location=location)

    @staticmethod
    def create_party(name=None, company=None, **kwargs):
        """Create a test party"""
        if not name:
            name = f'Party_{TestDataFactory.random_string(6)}'
        return Party.objects.create(name=name, company=company, **kwargs)

    @staticmethod
    def create_item_type(name=None, is_active=True):
        return ItemType.objects.create(name=name or f'Type_{TestDataFactory.random_string(6)}', is_active=is_active)

    @staticmethod
    def create_material(name=None, is_active=True):
        return Material.objects.create(name=name or f'Material_{TestDataFactory.random_string(6)}', is_active=is_active)

    @staticmethod
    def create_owner_type(name=None, is_active=True):
        return OwnerType.objects.create(name=name or f'Owner_{TestDataFactory.random_string(6)}', is_active=is_active)

    @staticmethod
    def create_item_status(name=None, is_active=True):
        return ItemStatus.objects.create(name=name or f'Status_{TestDataFactory.random_string(6)}', is_active=is_active)

    @staticmethod
    def create_item(location=None, main_part_name=None, drawing_no=None, current_process=ItemProcessState.NOT_IN_STOCK,
                    current_location=None, current_party=None, item_type=None, material=None,
                    owner_type=None, status=None):
        """Create a test item with fresh masters unless they are given"""
        if not location:
            location = TestDataFactory.create_location()
        if not main_part_name:
            main_part_name = f'Part_{TestDataFactory.random_string(8)}'
        return Item.objects.create(
            main_part_name=main_part_name,
            current_name=main_part_name,
            drawing_no=drawing_no,
            revision_no='R0',
            item_type=item_type or TestDataFactory.create_item_type(),
            material=material or TestDataFactory.create_material(),
            owner_type=owner_type or TestDataFactory.create_owner_type(),
            status=status or TestDataFactory.create_item_status(),
            location=location,
            current_process=current_process,
            current_location=current_location,
            current_party=current_party,
        )

    @staticmethod
    def create_stock_item(location, **kwargs):
        """Create an item that is in stock at `location`"""
        return TestDataFactory.create_item(
            location=location, current_process=ItemProcessState.IN_STOCK, current_location=location, **kwargs
        )

    @staticmethod
    def create_purchase_indent(location, items, user=None, status='PENDING', pi_no=None, indent_type='NEW'):
        """Create an indent holding `items` and move them to IN_PI"""
        if not pi_no:
            pi_no = f'PI-{PurchaseIndent.objects.filter(location=location).count() + 1:02d}'
        indent = PurchaseIndent.objects.create(
            pi_no=pi_no,
            type=indent_type,
            status=status,
            location=location,
            created_by=user,
            approved_by=user if status != 'PENDING' else None,
            approved_at=timezone.now() if status != 'PENDING' else None,
        )
        for item in items:
            PurchaseIndentItem.objects.create(purchase_indent=indent, item=item)
            item.set_state(ItemProcessState.IN_PI)
        return indent

    @staticmethod
    def create_purchase_order(location, vendor, indent_lines, user=None, status='PENDING', rate=None,
                              gst_percent=None, po_no=None):
        """Create an order over approved indent lines and move their items to IN_PO"""
        if not po_no:
            po_no = f'PO-{PurchaseOrder.objects.filter(location=location).count() + 1:02d}'
        if rate is None:
            rate = Decimal('100.00')
        order = PurchaseOrder.objects.create(
            po_no=po_no,
            vendor=vendor,
            status=status,
            gst_type='IGST' if gst_percent is not None else None,
            gst_percent=gst_percent,
            location=location,
            created_by=user,
        )
        for line in indent_lines:
            PurchaseOrderItem.objects.create(purchase_order=order, purchase_indent_item=line, rate=rate)
            line.item.set_state(ItemProcessState.IN_PO)
        return order

    @staticmethod
    def create_ordered_item(location, vendor, user=None, rate=None, gst_percent=None):
        """An item on an approved indent and an approved order, ready to be inwarded"""
        item = TestDataFactory.create_item(location=location)
        indent = TestDataFactory.create_purchase_indent(location, [item], user=user, status='APPROVED')
        order = TestDataFactory.create_purchase_order(
            location, vendor, list(indent.items.all()), user=user, status='APPROVED', rate=rate,
            gst_percent=gst_percent
        )
        item.refresh_from_db()
        return item, order

    @staticmethod
    def create_outward(location, party, items, user=None, outward_no=None):
        """Create an outward and move its items to OUTWARD"""
        if not outward_no:
            outward_no = f'OUT-{Outward.objects.filter(location=location).count() + 1:02d}'
        outward = Outward.objects.create(outward_no=outward_no, location=location, party=party, created_by=user)
        for item in items:
            OutwardLine.objects.create(outward=outward, item=item)
            item.set_state(ItemProcessState.OUTWARD, party=party)
        return outward

    @staticmethod
    def create_job_work(location, party, items, user=None, job_work_no=None, status='PENDING'):
        """Create a job work and move its items to IN_JOBWORK"""
        if not job_work_no:
            job_work_no = f'JW-{JobWork.objects.filter(location=location).count() + 1:02d}'
        job_work = JobWork.objects.create(
            job_work_no=job_work_no, location=location, to_party=party, status=status, created_by=user
        )
        for item in items:
            JobWorkItem.objects.create(job_work=job_work, item=item, rate=Decimal('50.00'))
            item.set_state(ItemProcessState.IN_JOBWORK, party=party)
        return job_work

    @staticmethod
    def create_submitted_inward(location, lines, vendor=None, user=None, inward_no=None):
        """
        Create a submitted inward whose lines wait for QC.

        `lines` is a list of (item, source_type, source_ref_id); the items are
        moved to IN_QC at `location`.
        """
        if not inward_no:
            inward_no = f'INW-{Inward.objects.filter(location=location).count() + 1:02d}'
        inward = Inward.objects.create(
            inward_no=inward_no,
            location=location,
            vendor=vendor,
            status='SUBMITTED',
            submitted_at=timezone.now(),
            created_by=user,
        )
        for item, source_type, source_ref_id in lines:
            InwardLine.objects.create(
                inward=inward,
                item=item,
                source_type=source_type,
                source_ref_id=source_ref_id,
                item_type_name=item.item_type.name,
                material_name=item.material.name,
                drawing_no=item.drawing_no,
                revision_no=item.revision_no,
                is_qc_pending=True,
            )
            item.set_state(ItemProcessState.IN_QC, location=location)
        return inward

    @staticmethod
    def create_qc_entry(location, inward_lines, party=None, user=None, qc_no=None):
        """Create a pending QC entry over `inward_lines`"""
        if not qc_no:
            qc_no = f'QC-{QcEntry.objects.filter(location=location).count() + 1:02d}'
        entry = QcEntry.objects.create(qc_no=qc_no, location=location, party=party, created_by=user)
        for line in inward_lines:
            QcItem.objects.create(qc_entry=entry, inward_line=line)
        return entry


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_user(self, user, location=None):
        """Authenticate the client with a user, optionally pinning the working location"""
        refresh = RefreshToken.for_user(user)
        headers = {'HTTP_AUTHORIZATION': f'Bearer {refresh.access_token}'}
        if location is not None:
            headers['HTTP_X_COMPANY_ID'] = str(location.company_id)
            headers['HTTP_X_LOCATION_ID'] = str(location.id)
        self.credentials(**headers)
        return self

    def logout(self):
        """Remove authentication"""
        self.credentials()
