"""
Item process-state checks shared by the procurement, movement and QC flows.

An item may only be in one document flow at a time; these helpers answer
whether a flow may pick it up.
"""
from .models import ItemProcessState


def get_state(item, exclude_pi=None):
    """
    Effective state of an item.

    When editing a purchase indent, items that are IN_PI only because they
    already belong to that indent count as free.
    """
    state = item.current_process or ItemProcessState.NOT_IN_STOCK
    if state == ItemProcessState.IN_PI and exclude_pi is not None:
        exclude_id = getattr(exclude_pi, 'pk', exclude_pi)
        if item.pi_items.filter(purchase_indent_id=exclude_id).exists():
            return ItemProcessState.NOT_IN_STOCK
    return state


def can_add_to_pi(item, exclude_pi=None):
    return item.is_active and get_state(item, exclude_pi) == ItemProcessState.NOT_IN_STOCK


def is_in_stock(item):
    return item.is_active and item.current_process == ItemProcessState.IN_STOCK


def describe_state(state):
    return ItemProcessState(state).label if state in ItemProcessState.values else state
