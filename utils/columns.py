"""Column role classification

Worksheets carry no fixed schema, so validation and aggregation address cells
by semantic role. Roles are resolved once per worksheet from the column keys
and labels and then looked up by key.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from core.enums import ColumnRole


DATE_TOKENS = ("tanggal", "tgl", "date")

SERVICE_TOKENS = {
    ColumnRole.SCREENING: "skrining",
    ColumnRole.TREATMENT: "pengobatan",
    ColumnRole.COUNSELING: "penyuluhan",
    ColumnRole.EMPOWERMENT: "pemberdayaan",
}

TIER_KEYS = {
    ColumnRole.TIER_A: "a",
    ColumnRole.TIER_B: "b",
    ColumnRole.TIER_C: "c",
}


def _token(word: str) -> re.Pattern:
    return re.compile(rf"(^|_){word}(_|$)")


_NIK = _token("nik")
_UMUR = _token("umur")


@dataclass(frozen=True)
class ColumnRoles:
    """Role assignment for one worksheet"""
    keys: tuple
    names: tuple = ()
    identifier: Optional[str] = None
    age: Optional[str] = None
    gender: Optional[str] = None
    dates: tuple = ()
    birth_date: Optional[str] = None
    address: Optional[str] = None
    services: Dict[ColumnRole, str] = field(default_factory=dict)
    tiers: Dict[ColumnRole, str] = field(default_factory=dict)

    def role_of(self, key: str) -> ColumnRole:
        if key == self.identifier:
            return ColumnRole.IDENTIFIER
        if key == self.age:
            return ColumnRole.AGE
        if key == self.gender:
            return ColumnRole.GENDER
        if key in self.names:
            return ColumnRole.NAME
        if key == self.birth_date:
            return ColumnRole.BIRTH_DATE
        if key in self.dates:
            return ColumnRole.DATE
        if key == self.address:
            return ColumnRole.ADDRESS
        for role, service_key in self.services.items():
            if key == service_key:
                return role
        for role, tier_key in self.tiers.items():
            if key == tier_key:
                return role
        return ColumnRole.OTHER

    def is_date(self, key: str) -> bool:
        return key in self.dates

    @property
    def service_keys(self) -> List[str]:
        return list(self.services.values())

    def address_detail_keys(self) -> List[str]:
        """Columns right of the address column with no other role"""
        if self.address is None:
            return []
        start = self.keys.index(self.address) + 1
        return [k for k in self.keys[start:] if self.role_of(k) == ColumnRole.OTHER]


def _first(keys: Sequence[str], predicate) -> Optional[str]:
    for key in keys:
        if predicate(key):
            return key
    return None


def classify_columns(keys: Sequence[str], labels: Optional[Sequence[str]] = None) -> ColumnRoles:
    """
    Resolve semantic roles for a worksheet

    Args:
        keys: Canonical column keys in physical order
        labels: Display labels aligned with keys (optional)

    Returns:
        ColumnRoles for the worksheet
    """
    keys = [str(k) for k in keys]
    labels = list(labels or [])
    label_of = {
        key: (str(labels[i]).lower() if i < len(labels) and labels[i] is not None else "")
        for i, key in enumerate(keys)
    }

    def mentions(key: str, *tokens: str) -> bool:
        text = f"{key.lower()} {label_of.get(key, '')}"
        return any(t in text for t in tokens)

    names = tuple(k for k in keys if "nama" in k.lower())

    identifier = _first(keys, lambda k: k.lower() == "nik" or label_of[k].strip() == "nik")
    if identifier is None:
        identifier = _first(keys, lambda k: bool(_NIK.search(k.lower())))

    age = _first(keys, lambda k: k.lower() == "umur")
    if age is None:
        age = _first(keys, lambda k: bool(_UMUR.search(k.lower())))

    gender = _first(
        keys,
        lambda k: k.lower() == "jk"
        or ("jenis" in k.lower() and "kelamin" in k.lower())
        or ("jenis" in label_of[k] and "kelamin" in label_of[k]),
    )

    dates = tuple(k for k in keys if mentions(k, *DATE_TOKENS))
    birth_date = _first(dates, lambda k: mentions(k, "lahir"))

    address = _first(keys, lambda k: k.lower() == "alamat")

    services = {}
    for role, token in SERVICE_TOKENS.items():
        key = _first(keys, lambda k, token=token: token in k.lower())
        if key is not None:
            services[role] = key

    tiers = {}
    for role, token in TIER_KEYS.items():
        key = _first(keys, lambda k, token=token: k.lower() == token)
        if key is not None:
            tiers[role] = key

    return ColumnRoles(
        keys=tuple(keys),
        names=names,
        identifier=identifier,
        age=age,
        gender=gender,
        dates=dates,
        birth_date=birth_date,
        address=address,
        services=services,
        tiers=tiers,
    )
