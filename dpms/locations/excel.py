"""Company spreadsheet export, validation and import"""
from dpms.core.excel import (
    ImportValidation, RowEntry, build_workbook, parse_date, read_sheet, safe_text,
)
from dpms.core.validators import GST_RE, PHONE_RE, PINCODE_RE
from .models import Company

EXPORT_HEADERS = [
    'Name', 'Address', 'GST No', 'GST Date', 'State', 'City', 'Pincode',
    'Contact Person', 'Contact Number', 'Is Active', 'Created At',
]

IMPORT_COLUMNS = {
    'name': 'name',
    'companyname': 'name',
    'address': 'address',
    'gstno': 'gst_no',
    'gstin': 'gst_no',
    'gstdate': 'gst_date',
    'state': 'state',
    'city': 'city',
    'pincode': 'pincode',
    'contactperson': 'contact_person',
    'contactnumber': 'contact_number',
}


def export_companies():
    rows = []
    for c in Company.objects.order_by('name'):
        rows.append([
            c.name,
            c.address,
            c.gst_no,
            c.gst_date.isoformat() if c.gst_date else '',
            c.state,
            c.city,
            c.pincode,
            c.contact_person,
            c.contact_number,
            'Yes' if c.is_active else 'No',
            c.created_at.strftime('%Y-%m-%d %H:%M'),
        ])
    return build_workbook(EXPORT_HEADERS, rows, 'Companies')


def _clean(record):
    data = {key: safe_text(record.get(key)) for key in set(IMPORT_COLUMNS.values()) if key != 'gst_date'}
    data['gst_date'] = record.get('gst_date')
    data['_row'] = record['_row']
    return data


def validate_companies(upload):
    """Classify every sheet row. Raises ExcelReadError for unreadable files."""
    sheet = read_sheet(upload, IMPORT_COLUMNS)
    result = ImportValidation(total_rows=sheet.total_rows)

    existing_names = {name.lower() for name in Company.objects.values_list('name', flat=True)}
    existing_gst = {
        gst.upper(): name
        for gst, name in Company.objects.exclude(gst_no__isnull=True).exclude(gst_no='').values_list('gst_no', 'name')
    }
    seen_names = set()
    seen_gst = set()

    for record in sheet.rows:
        data = _clean(record)
        row = data['_row']

        if not data['name']:
            result.invalid.append(RowEntry(row, data, 'Company Name is mandatory.'))
            continue
        if not data['address']:
            result.invalid.append(RowEntry(row, data, 'Address is mandatory.'))
            continue
        if not data['gst_no']:
            result.invalid.append(RowEntry(row, data, 'GST No. is mandatory.'))
            continue
        try:
            data['gst_date'] = parse_date(data['gst_date'])
        except ValueError as e:
            result.invalid.append(RowEntry(row, data, str(e)))
            continue
        if data['gst_date'] is None:
            result.invalid.append(RowEntry(row, data, 'GST Date is mandatory.'))
            continue
        if data['contact_number'] and not PHONE_RE.match(data['contact_number']):
            result.invalid.append(RowEntry(row, data, 'Invalid Contact Number. Must be a valid 10-digit Indian number.'))
            continue
        if data['pincode'] and not PINCODE_RE.match(data['pincode']):
            result.invalid.append(RowEntry(row, data, 'Pincode must be 6 digits.'))
            continue

        name_key = data['name'].lower()
        gst = data['gst_no'].upper()
        data['gst_no'] = gst

        if not GST_RE.match(gst):
            result.invalid.append(RowEntry(row, data, f"Invalid GST format '{gst}'. Must be a valid 15-character Indian GSTIN (e.g. 24AABCU9603R1ZA)."))
            continue
        if name_key in seen_names:
            result.duplicates.append(RowEntry(row, data, 'Duplicate company name in file.'))
            continue
        if gst in seen_gst:
            result.duplicates.append(RowEntry(row, data, f"Duplicate GST No. '{gst}' in file."))
            continue
        if name_key in existing_names:
            result.already_exists.append(RowEntry(row, data, f"Company '{data['name']}' already exists."))
            seen_names.add(name_key)
            continue
        if gst in existing_gst:
            result.already_exists.append(RowEntry(row, data, f"GST No. '{gst}' is already registered under company '{existing_gst[gst]}'."))
            seen_gst.add(gst)
            continue

        result.valid.append(RowEntry(row, data))
        seen_names.add(name_key)
        seen_gst.add(gst)

    return result


def import_companies(validation):
    """Create the valid rows of a validation result. Returns the created companies."""
    companies = [
        Company(
            name=entry.data['name'],
            address=entry.data['address'],
            gst_no=entry.data['gst_no'],
            gst_date=entry.data['gst_date'],
            state=entry.data['state'],
            city=entry.data['city'],
            pincode=entry.data['pincode'],
            contact_person=entry.data['contact_person'],
            contact_number=entry.data['contact_number'],
            is_active=True,
        )
        for entry in validation.valid
    ]
    return Company.objects.bulk_create(companies)
