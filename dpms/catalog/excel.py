"""Item spreadsheet export, validation and import"""
from dpms.core.excel import ImportValidation, RowEntry, build_workbook, read_sheet, safe_text
from .models import Item, ItemType, Material, OwnerType, ItemStatus, ItemProcessState

EXPORT_HEADERS = [
    'Main Part Name', 'Current Name', 'Item Type', 'Drawing No', 'Revision No', 'Material',
    'Owner Type', 'Status', 'Location', 'Current Process', 'Held By', 'Is Active',
]

IMPORT_COLUMNS = {
    'mainpartname': 'main_part_name',
    'partname': 'main_part_name',
    'currentname': 'current_name',
    'itemtype': 'item_type',
    'type': 'item_type',
    'drawingno': 'drawing_no',
    'drawingnumber': 'drawing_no',
    'revisionno': 'revision_no',
    'revision': 'revision_no',
    'material': 'material',
    'ownertype': 'owner_type',
    'owner': 'owner_type',
    'status': 'status',
    'itemstatus': 'status',
}

MASTER_COLUMNS = [
    ('item_type', ItemType, 'Item Type'),
    ('material', Material, 'Material'),
    ('owner_type', OwnerType, 'Owner Type'),
    ('status', ItemStatus, 'Status'),
]


def export_items(queryset):
    rows = []
    for item in queryset.select_related(
        'item_type', 'material', 'owner_type', 'status', 'location', 'current_location', 'current_party'
    ):
        rows.append([
            item.main_part_name,
            item.current_name,
            item.item_type.name,
            item.drawing_no,
            item.revision_no,
            item.material.name,
            item.owner_type.name,
            item.status.name,
            item.location.name,
            item.get_current_process_display(),
            item.holder_name,
            'Yes' if item.is_active else 'No',
        ])
    return build_workbook(EXPORT_HEADERS, rows, 'Items')


def _active_masters(model):
    return {m.name.lower(): m for m in model.objects.filter(is_active=True)}


def validate_items(upload):
    """Classify every sheet row. Masters are matched by name, case-insensitively."""
    sheet = read_sheet(upload, IMPORT_COLUMNS)
    result = ImportValidation(total_rows=sheet.total_rows)

    masters = {field: _active_masters(model) for field, model, _label in MASTER_COLUMNS}
    existing_names = {n.lower() for n in Item.objects.values_list('main_part_name', flat=True)}
    existing_drawings = {
        d.lower(): name
        for d, name in Item.objects.exclude(drawing_no__isnull=True).exclude(drawing_no='')
        .values_list('drawing_no', 'main_part_name')
    }
    seen_names = set()
    seen_drawings = set()

    for record in sheet.rows:
        data = {key: safe_text(record.get(key)) for key in set(IMPORT_COLUMNS.values())}
        row = record['_row']

        if not data['main_part_name']:
            result.invalid.append(RowEntry(row, data, 'Main Part Name is mandatory.'))
            continue

        missing = None
        for field, _model, label in MASTER_COLUMNS:
            value = data[field]
            if not value:
                missing = f'{label} is mandatory.'
                break
            if value.lower() not in masters[field]:
                missing = f"{label} '{value}' not found or inactive."
                break
        if missing:
            result.invalid.append(RowEntry(row, data, missing))
            continue

        name_key = data['main_part_name'].lower()
        drawing_key = data['drawing_no'].lower() if data['drawing_no'] else None

        if name_key in seen_names:
            result.duplicates.append(RowEntry(row, data, 'Duplicate main part name in file.'))
            continue
        if drawing_key and drawing_key in seen_drawings:
            result.duplicates.append(RowEntry(row, data, f"Duplicate drawing no '{data['drawing_no']}' in file."))
            continue
        if name_key in existing_names:
            result.already_exists.append(RowEntry(row, data, f"Item '{data['main_part_name']}' already exists."))
            seen_names.add(name_key)
            continue
        if drawing_key and drawing_key in existing_drawings:
            result.already_exists.append(RowEntry(
                row, data, f"Drawing no '{data['drawing_no']}' is already used by '{existing_drawings[drawing_key]}'."
            ))
            seen_drawings.add(drawing_key)
            continue

        result.valid.append(RowEntry(row, data))
        seen_names.add(name_key)
        if drawing_key:
            seen_drawings.add(drawing_key)

    return result


def import_items(validation, location):
    """Create the valid rows at `location`. Returns the created items."""
    masters = {field: _active_masters(model) for field, model, _label in MASTER_COLUMNS}
    items = []
    for entry in validation.valid:
        data = entry.data
        items.append(Item(
            main_part_name=data['main_part_name'],
            current_name=data['current_name'] or data['main_part_name'],
            drawing_no=data['drawing_no'],
            revision_no=data['revision_no'],
            item_type=masters['item_type'][data['item_type'].lower()],
            material=masters['material'][data['material'].lower()],
            owner_type=masters['owner_type'][data['owner_type'].lower()],
            status=masters['status'][data['status'].lower()],
            location=location,
            current_process=ItemProcessState.NOT_IN_STOCK,
        ))
    return Item.objects.bulk_create(items)
