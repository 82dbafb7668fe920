"""
Workgroup settings data models.
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Dict, Iterable, Iterator, List, Optional

from shared.errors import ValidationError


class SettingType(IntEnum):
    """Setting categories as numbered by the workgroup service."""
    IMAGE = 0
    TEXT = 1
    BOT = 2


@dataclass(frozen=True)
class WorkgroupId:
    """Address of a workgroup, ``local@domain/resource``.

    Local part and domain compare case-insensitively, the resource does not.
    """
    domain: str
    local: Optional[str] = None
    resource: Optional[str] = None

    @classmethod
    def parse(cls, address: Optional[str]) -> "WorkgroupId":
        """Parse an address string, raising ValidationError when malformed."""
        if address is not None and not isinstance(address, str):
            raise ValidationError("Workgroup address must be a string", {"address": repr(address)})
        if address is None or not address.strip():
            raise ValidationError("Workgroup address must not be empty")

        address = address.strip()
        resource = None
        if "/" in address:
            address, resource = address.split("/", 1)
            if not resource:
                raise ValidationError("Workgroup resource must not be empty", {"address": address})

        local = None
        if "@" in address:
            local, address = address.split("@", 1)
            if not local:
                raise ValidationError("Workgroup local part must not be empty", {"address": address})

        if not address or "@" in address or any(ch.isspace() for ch in address):
            raise ValidationError("Invalid workgroup domain", {"domain": address})

        return cls(
            domain=address.lower(),
            local=local.lower() if local else None,
            resource=resource
        )

    def bare(self) -> "WorkgroupId":
        """Address without the resource part."""
        return WorkgroupId(domain=self.domain, local=self.local)

    def __str__(self) -> str:
        address = self.domain
        if self.local:
            address = f"{self.local}@{address}"
        if self.resource:
            address = f"{address}/{self.resource}"
        return address


@dataclass(frozen=True)
class SettingSlot:
    """A single setting; ``value`` is None when the key exists but is unset."""
    key: str
    value: Optional[str] = None
    type: int = SettingType.IMAGE

    @property
    def has_value(self) -> bool:
        return self.value is not None


@dataclass
class SettingsBundle:
    """All settings of one workgroup, keyed by setting name."""
    workgroup_id: WorkgroupId
    slots: Dict[str, SettingSlot] = field(default_factory=dict)

    @classmethod
    def from_slots(cls, workgroup_id: WorkgroupId, slots: Iterable[SettingSlot]) -> "SettingsBundle":
        # Later duplicates win, matching the remote service's own ordering
        return cls(workgroup_id=workgroup_id, slots={slot.key: slot for slot in slots})

    def get_setting(self, key: str) -> Optional[SettingSlot]:
        return self.slots.get(key)

    def settings_of_type(self, setting_type: int) -> List[SettingSlot]:
        return [slot for slot in self.slots.values() if slot.type == setting_type]

    def __contains__(self, key: object) -> bool:
        return key in self.slots

    def __iter__(self) -> Iterator[SettingSlot]:
        return iter(self.slots.values())

    def __len__(self) -> int:
        return len(self.slots)
