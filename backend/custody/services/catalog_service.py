# Overview: Audited CRUD for catalog items without a custody lifecycle (accessories, components, VMs).

from __future__ import annotations

from ..models import ActivityAction, ItemType
from ..validation import ValidationError
from . import repository
from .activity_service import append_activity
from .concurrency import run_atomic


_REPOSITORIES = {
    ItemType.ACCESSORY: repository.accessories,
    ItemType.COMPONENT: repository.components,
    ItemType.VM: repository.vms,
}

_LABELS = {ItemType.VM: "VM"}


def _resolve(kind):
    try:
        item_type = ItemType(kind)
    except ValueError:
        raise ValidationError(f"Unknown catalog kind '{kind}'")
    if item_type not in _REPOSITORIES:
        raise ValidationError(f"'{item_type.value}' is not a catalog kind")
    return item_type, _REPOSITORIES[item_type]


def _label(item_type: ItemType) -> str:
    return _LABELS.get(item_type, item_type.value.capitalize())


def list_items(kind) -> list:
    _, repo = _resolve(kind)
    return repo.list()


def get_item(kind, item_id: int):
    _, repo = _resolve(kind)
    return repo.get(item_id)


def create_item(kind, payload: dict, *, acting_user_id: int | None = None):
    item_type, repo = _resolve(kind)

    def _op():
        item = repo.insert(payload)
        append_activity(
            action=ActivityAction.CREATE,
            item_type=item_type,
            item_id=item.id,
            user_id=acting_user_id,
            notes=f'{_label(item_type)} "{item.name}" created',
        )
        return item

    return run_atomic(_op, action=f"{item_type.value} create")


def update_item(kind, item_id: int, payload: dict, *, acting_user_id: int | None = None):
    item_type, repo = _resolve(kind)

    def _op():
        item = repo.update(item_id, payload)
        if item is None:
            return None
        append_activity(
            action=ActivityAction.UPDATE,
            item_type=item_type,
            item_id=item.id,
            user_id=acting_user_id,
            notes=f'{_label(item_type)} "{item.name}" updated',
        )
        return item

    return run_atomic(_op, action=f"{item_type.value} update")


def delete_item(kind, item_id: int, *, acting_user_id: int | None = None) -> bool:
    item_type, repo = _resolve(kind)

    def _op():
        item = repo.get_for_update(item_id)
        if item is None:
            return False
        name = item.name
        repo.delete(item_id)
        append_activity(
            action=ActivityAction.DELETE,
            item_type=item_type,
            item_id=item_id,
            user_id=acting_user_id,
            notes=f'{_label(item_type)} "{name}" deleted',
        )
        return True

    return run_atomic(_op, action=f"{item_type.value} delete")
