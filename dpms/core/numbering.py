"""Sequential document numbers (PI-01, PO-02, ...) scoped to a location"""


def next_sequence(model, field, prefix, location=None):
    queryset = model.objects.filter(**{f'{field}__startswith': f'{prefix}-'})
    if location is not None:
        queryset = queryset.filter(location=location)

    highest = 0
    for value in queryset.values_list(field, flat=True):
        suffix = value[len(prefix) + 1:]
        if suffix.isdigit():
            highest = max(highest, int(suffix))
    return highest + 1


def generate_code(prefix, model, field, location=None):
    """
    Next free number for `prefix`, e.g. generate_code('PI', PurchaseIndent, 'pi_no', loc).

    Soft-deleted documents keep their numbers, so a number is never reused.
    Callers run this inside the same transaction that saves the document.
    """
    return f"{prefix}-{next_sequence(model, field, prefix, location):02d}"
