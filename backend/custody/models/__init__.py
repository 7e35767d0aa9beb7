from .enums import UnitStatus, AssignmentStatus, ActivityAction, ItemType, HELD_UNIT_STATUSES
from .users import User, DEFAULT_PERMISSIONS, PERMISSION_RESOURCES, PERMISSION_ACTIONS
from .units import Unit
from .licenses import License, LicenseAssignment
from .consumables import Consumable, ConsumableAssignment
from .catalog import Accessory, Component, VmInventory
from .activities import Activity, LedgerSequence, AppendOnlyViolation

__all__ = [
    'UnitStatus', 'AssignmentStatus', 'ActivityAction', 'ItemType', 'HELD_UNIT_STATUSES',
    'User', 'DEFAULT_PERMISSIONS', 'PERMISSION_RESOURCES', 'PERMISSION_ACTIONS',
    'Unit',
    'License', 'LicenseAssignment',
    'Consumable', 'ConsumableAssignment',
    'Accessory', 'Component', 'VmInventory',
    'Activity', 'LedgerSequence', 'AppendOnlyViolation',
]
