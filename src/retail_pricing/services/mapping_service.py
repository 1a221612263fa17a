"""
Mapping Service - vendor field-mapping contracts for CSV imports.

A mapping tells the importer which vendor CSV column feeds which product
field. Mappings move forward through draft -> approved -> active ->
deprecated and never return to draft; only approved or active mappings
may be applied to import rows.
"""
import html
import json
import logging
import re
from dataclasses import dataclass, asdict, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional


logger = logging.getLogger(__name__)


class MappingStatus(str, Enum):
    DRAFT = "draft"
    APPROVED = "approved"
    ACTIVE = "active"
    DEPRECATED = "deprecated"


ALLOWED_TRANSITIONS: dict[MappingStatus, set[MappingStatus]] = {
    MappingStatus.DRAFT: {MappingStatus.APPROVED, MappingStatus.DEPRECATED},
    MappingStatus.APPROVED: {MappingStatus.ACTIVE, MappingStatus.DEPRECATED},
    MappingStatus.ACTIVE: {MappingStatus.DEPRECATED},
    MappingStatus.DEPRECATED: set(),
}

USABLE_STATUSES = {MappingStatus.APPROVED, MappingStatus.ACTIVE}


class MappingNotFoundError(ValueError):
    pass


class DuplicateMappingError(ValueError):
    pass


class InvalidTransitionError(ValueError):
    pass


class MappingNotApprovedError(ValueError):
    """Import attempted with a mapping that is not approved or active."""


def _now() -> str:
    return datetime.now().isoformat(timespec='seconds')


def can_transition(current: MappingStatus, target: MappingStatus) -> bool:
    return MappingStatus(target) in ALLOWED_TRANSITIONS[MappingStatus(current)]


def transform_field_value(value: str, field_name: str):
    """Basic clean-up applied to a mapped CSV cell."""
    if field_name == 'upc':
        return re.sub(r'[^0-9]', '', value)
    if field_name in ('name', 'description'):
        return html.unescape(value)
    return value


@dataclass
class VendorFieldMapping:
    """Column mapping contract for one vendor feed."""
    mapping_id: int
    vendor_source: str
    column_mappings: dict[str, str]
    mapping_name: str = "Default"
    status: MappingStatus = MappingStatus.DRAFT
    approved_by: Optional[str] = None
    approved_at: Optional[str] = None
    last_used: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def usable(self) -> bool:
        return self.status in USABLE_STATUSES

    def to_dict(self) -> dict:
        data = asdict(self)
        data['status'] = self.status.value
        return data

    @classmethod
    def from_dict(cls, data: dict) -> 'VendorFieldMapping':
        return cls(
            mapping_id=int(data['mapping_id']),
            vendor_source=data['vendor_source'],
            column_mappings=dict(data.get('column_mappings') or {}),
            mapping_name=data.get('mapping_name') or "Default",
            status=MappingStatus(data.get('status', 'draft')),
            approved_by=data.get('approved_by'),
            approved_at=data.get('approved_at'),
            last_used=data.get('last_used'),
            created_at=data.get('created_at'),
            updated_at=data.get('updated_at'),
        )


@dataclass
class PreviewResult:
    """Sample rows run through a mapping."""
    mapping_id: int
    status: MappingStatus
    rows: list[dict] = field(default_factory=list)
    unmapped_fields: list[str] = field(default_factory=list)
    unused_columns: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def apply_mapping(column_mappings: dict[str, str], row: dict) -> dict:
    """Map one CSV row to product fields, skipping blank cells."""
    product = {}
    for product_field, csv_column in column_mappings.items():
        value = row.get(csv_column)
        if value is None:
            continue
        value = str(value).strip()
        if value:
            product[product_field] = transform_field_value(value, product_field)
    return product


class MappingService:
    """Service for managing vendor field-mapping contracts."""

    def __init__(self, store_path: Path):
        self.store_path = store_path

    def _load(self) -> list[VendorFieldMapping]:
        if not self.store_path.exists():
            return []
        with open(self.store_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        return [VendorFieldMapping.from_dict(m) for m in data.get('mappings', [])]

    def _write(self, mappings: list[VendorFieldMapping]):
        self.store_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.store_path, 'w', encoding='utf-8') as f:
            json.dump({'mappings': [m.to_dict() for m in mappings]}, f, indent=2)

    def _replace(self, mapping: VendorFieldMapping) -> VendorFieldMapping:
        mappings = [mapping if m.mapping_id == mapping.mapping_id else m for m in self._load()]
        self._write(mappings)
        return mapping

    def list_mappings(self, vendor_source: Optional[str] = None) -> list[VendorFieldMapping]:
        mappings = self._load()
        if vendor_source is not None:
            mappings = [m for m in mappings if m.vendor_source == vendor_source]
        return mappings

    def get_mapping(self, mapping_id: int) -> VendorFieldMapping:
        for mapping in self._load():
            if mapping.mapping_id == mapping_id:
                return mapping
        raise MappingNotFoundError(f"Vendor field mapping {mapping_id} not found")

    def find_mapping(self, vendor_source: str, mapping_name: str = "Default") -> Optional[VendorFieldMapping]:
        for mapping in self._load():
            if mapping.vendor_source == vendor_source and mapping.mapping_name == mapping_name:
                return mapping
        return None

    def create_mapping(self, vendor_source: str, column_mappings: dict[str, str],
                       mapping_name: str = "Default") -> VendorFieldMapping:
        """Create a draft mapping; (vendor_source, mapping_name) must be unique."""
        vendor_source = (vendor_source or '').strip()
        mapping_name = (mapping_name or 'Default').strip()
        if not vendor_source:
            raise ValueError("Vendor source is required")
        if not column_mappings:
            raise ValueError("At least one column mapping is required")
        if self.find_mapping(vendor_source, mapping_name):
            raise DuplicateMappingError(
                f"Mapping '{mapping_name}' already exists for vendor '{vendor_source}'"
            )

        mappings = self._load()
        now = _now()
        mapping = VendorFieldMapping(
            mapping_id=max((m.mapping_id for m in mappings), default=0) + 1,
            vendor_source=vendor_source,
            mapping_name=mapping_name,
            column_mappings={str(k).strip(): str(v).strip() for k, v in column_mappings.items()},
            created_at=now,
            updated_at=now,
        )
        mappings.append(mapping)
        self._write(mappings)
        logger.info("Created draft mapping %s:%s", vendor_source, mapping_name)
        return mapping

    def update_columns(self, mapping_id: int, column_mappings: dict[str, str]) -> VendorFieldMapping:
        """Replace the column mappings of a draft; approved contracts are frozen."""
        mapping = self.get_mapping(mapping_id)
        if mapping.status != MappingStatus.DRAFT:
            raise InvalidTransitionError(
                f"Mapping {mapping_id} is {mapping.status.value}; only drafts can be edited"
            )
        if not column_mappings:
            raise ValueError("At least one column mapping is required")
        mapping.column_mappings = {str(k).strip(): str(v).strip() for k, v in column_mappings.items()}
        mapping.updated_at = _now()
        return self._replace(mapping)

    def transition(self, mapping_id: int, target: MappingStatus, actor: Optional[str] = None) -> VendorFieldMapping:
        """Move a mapping to ``target`` if the lifecycle allows it."""
        mapping = self.get_mapping(mapping_id)
        target = MappingStatus(target)
        if not can_transition(mapping.status, target):
            raise InvalidTransitionError(
                f"Cannot move mapping {mapping_id} from {mapping.status.value} to {target.value}"
            )

        now = _now()
        if target == MappingStatus.APPROVED:
            mapping.approved_by = actor
            mapping.approved_at = now
        mapping.status = target
        mapping.updated_at = now
        logger.info("Mapping %d moved to %s by %s", mapping_id, target.value, actor or "system")
        return self._replace(mapping)

    def approve(self, mapping_id: int, approved_by: Optional[str] = None) -> VendorFieldMapping:
        return self.transition(mapping_id, MappingStatus.APPROVED, approved_by)

    def activate(self, mapping_id: int, actor: Optional[str] = None) -> VendorFieldMapping:
        return self.transition(mapping_id, MappingStatus.ACTIVE, actor)

    def deprecate(self, mapping_id: int, actor: Optional[str] = None) -> VendorFieldMapping:
        return self.transition(mapping_id, MappingStatus.DEPRECATED, actor)

    def preview(self, vendor_source: str, mapping_name: str, sample_rows: list[dict]) -> PreviewResult:
        """Run sample rows through a mapping of any status without recording use."""
        mapping = self.find_mapping(vendor_source, mapping_name)
        if mapping is None:
            raise MappingNotFoundError(f"No mapping '{mapping_name}' for vendor '{vendor_source}'")

        result = PreviewResult(mapping_id=mapping.mapping_id, status=mapping.status)
        seen_columns = set()
        for row in sample_rows:
            seen_columns.update(row.keys())
            result.rows.append(apply_mapping(mapping.column_mappings, row))

        result.unmapped_fields = sorted(
            f for f, column in mapping.column_mappings.items() if column not in seen_columns
        )
        mapped_columns = set(mapping.column_mappings.values())
        result.unused_columns = sorted(c for c in seen_columns if c not in mapped_columns)

        if not mapping.usable:
            result.warnings.append(
                f"Mapping is {mapping.status.value}; it must be approved before imports can use it"
            )
        for f in result.unmapped_fields:
            result.warnings.append(f"Column '{mapping.column_mappings[f]}' for field '{f}' is not in the sample")
        return result

    def map_row(self, vendor_source: str, row: dict, mapping_name: str = "Default") -> dict:
        """Map an import row; only approved or active mappings are allowed."""
        mapping = self.find_mapping(vendor_source, mapping_name)
        if mapping is None:
            raise MappingNotFoundError(
                f"No field mapping for vendor '{vendor_source}', mapping '{mapping_name}'. "
                "Mappings must be approved before import."
            )
        if not mapping.usable:
            raise MappingNotApprovedError(
                f"Field mapping {vendor_source}:{mapping_name} has status '{mapping.status.value}'. "
                "Only approved or active mappings can be used for import."
            )

        mapping.last_used = _now()
        self._replace(mapping)
        return apply_mapping(mapping.column_mappings, row)
