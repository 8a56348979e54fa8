# app/transfers/records.py

from dataclasses import dataclass, field, asdict
from datetime import datetime
from decimal import Decimal
from typing import Optional, List

GLOBAL_ROLES = ('super_admin',)


def _iso(value):
    return value.isoformat() if value else None


def _parse_datetime(value):
    return datetime.fromisoformat(value) if value else None


@dataclass
class ProductRef:
    """The product a transfer is opened for."""
    id: int
    name: str
    default_location_id: Optional[int]
    default_location_name: str
    total_stock: Decimal

    @classmethod
    def from_model(cls, product):
        return cls(
            id=product.id,
            name=product.name,
            default_location_id=product.location_id,
            default_location_name=product.location.name if product.location else '',
            total_stock=product.total_stock,
        )


@dataclass
class LotRecord:
    id: int
    product_id: int
    lot_number: int
    quantity: Decimal
    location_id: int
    location_name: str
    status: str = 'active'
    purchase_price: Decimal = Decimal('0')
    selling_price: Decimal = Decimal('0')
    received_date: Optional[datetime] = None
    expiry_date: Optional[datetime] = None
    notes: Optional[str] = None

    @property
    def is_offerable(self):
        return self.status == 'active' and self.quantity > 0

    @classmethod
    def from_model(cls, lot):
        return cls(
            id=lot.id,
            product_id=lot.product_id,
            lot_number=lot.lot_number,
            quantity=Decimal(str(lot.quantity)),
            location_id=lot.location_id,
            location_name=lot.location.name if lot.location else '',
            status=lot.status,
            purchase_price=Decimal(str(lot.purchase_price or 0)),
            selling_price=Decimal(str(lot.selling_price or 0)),
            received_date=lot.received_date,
            expiry_date=lot.expiry_date,
            notes=lot.notes,
        )

    def to_dict(self):
        data = asdict(self)
        for key in ('quantity', 'purchase_price', 'selling_price'):
            data[key] = str(data[key])
        data['received_date'] = _iso(self.received_date)
        data['expiry_date'] = _iso(self.expiry_date)
        return data

    @classmethod
    def from_dict(cls, data):
        data = dict(data)
        for key in ('quantity', 'purchase_price', 'selling_price'):
            data[key] = Decimal(data.get(key) or '0')
        data['received_date'] = _parse_datetime(data.get('received_date'))
        data['expiry_date'] = _parse_datetime(data.get('expiry_date'))
        return cls(**data)


@dataclass
class LocationRecord:
    id: int
    name: str
    type: str
    address: Optional[str] = None
    status: str = 'active'

    @classmethod
    def from_model(cls, location):
        return cls(
            id=location.id,
            name=location.name,
            type=location.type,
            address=location.address,
            status=location.status,
        )


@dataclass
class Actor:
    """Who is driving the workflow."""
    id: int
    role: str
    accessible_location_ids: Optional[List[int]] = None

    @property
    def is_location_scoped(self):
        return self.role not in GLOBAL_ROLES

    @classmethod
    def from_user(cls, user):
        return cls(id=user.id, role=user.role,
                   accessible_location_ids=user.accessible_location_ids())


@dataclass
class TransferCommand:
    product_id: int
    from_location_id: int
    to_location_id: int
    quantity: Decimal
    selected_lot_id: int
    notes: Optional[str] = None
    transfer_date: Optional[datetime] = None
    request_id: Optional[str] = None

    def to_dict(self):
        data = {
            'product_id': self.product_id,
            'from_location_id': self.from_location_id,
            'to_location_id': self.to_location_id,
            'quantity': str(self.quantity),
            'selected_lot_id': self.selected_lot_id,
        }
        if self.notes:
            data['notes'] = self.notes
        if self.request_id:
            data['request_id'] = self.request_id
        return data


# Workflow outcomes handed back to the host screen

@dataclass
class Cancelled:
    pass


@dataclass
class Submitted:
    record: dict
    message: str


@dataclass
class Failed:
    error: Exception
    message: str = field(default='')

    def __post_init__(self):
        if not self.message:
            self.message = getattr(self.error, 'message', None) or str(self.error)
