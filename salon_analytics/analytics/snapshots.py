"""
Appointment Snapshots

Typed, immutable read projection of a booking and the adapter that maps the
loosely-shaped join rows coming out of the datastore into it.

Join rows vary between call sites: `services` may be a single linked
service or a list of line items, product line items may nest one product
or a list of them, and dates arrive either as Python objects or ISO
strings. Everything downstream of `adapt_rows` sees only
`AppointmentSnapshot`.
"""

import math
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import Any, Iterable, List, Mapping, Optional, Tuple, Union

import polars as pl
import structlog

from salon_analytics.database.models import AppointmentStatus

logger = structlog.get_logger(__name__)

CANCELLED_STATUSES = (AppointmentStatus.CANCELLED, AppointmentStatus.NO_SHOW)

# Unnamed services are bucketed under this label
UNKNOWN_SERVICE = "Unknown"
# Minutes assumed for a service without a usable duration
DEFAULT_SERVICE_MINUTES = 60


class MalformedRecordError(ValueError):
    """A raw row that cannot be turned into a snapshot at all"""


@dataclass(frozen=True)
class ServiceLine:
    """Service line item; contributes its unit price"""
    name: Optional[str]
    unit_price: float
    duration_minutes: Optional[int] = None

    @property
    def revenue(self) -> float:
        return self.unit_price

    @property
    def label(self) -> str:
        return self.name or UNKNOWN_SERVICE

    @property
    def billed_minutes(self) -> int:
        """Duration used for efficiency; missing or zero falls back to an hour"""
        return self.duration_minutes or DEFAULT_SERVICE_MINUTES


@dataclass(frozen=True)
class ProductLine:
    """Product line item; contributes unit price times quantity"""
    name: Optional[str]
    unit_price: float
    quantity: int = 1

    @property
    def revenue(self) -> float:
        return self.unit_price * self.quantity


LineItem = Union[ServiceLine, ProductLine]


@dataclass(frozen=True)
class AppointmentSnapshot:
    """Read-only projection of one appointment used for aggregation"""
    id: str
    date: Optional[date] = None
    time: Optional[str] = None
    status: Optional[AppointmentStatus] = None
    created_at: Optional[datetime] = None
    email: Optional[str] = None
    user_ref: Optional[str] = None
    line_items: Tuple[LineItem, ...] = ()
    staff_ref: Optional[str] = None
    staff_name: Optional[str] = None

    @property
    def revenue(self) -> float:
        return sum(item.revenue for item in self.line_items)

    @property
    def service_lines(self) -> List[ServiceLine]:
        return [item for item in self.line_items if isinstance(item, ServiceLine)]

    @property
    def product_lines(self) -> List[ProductLine]:
        return [item for item in self.line_items if isinstance(item, ProductLine)]

    @property
    def service_revenue(self) -> float:
        return sum(line.revenue for line in self.service_lines)

    @property
    def is_cancelled(self) -> bool:
        return self.status in CANCELLED_STATUSES

    def customer_key(self, collapse_anonymous: bool = False) -> str:
        """email, else account reference, else an anonymous key"""
        if self.email:
            return self.email
        if self.user_ref:
            return self.user_ref
        if collapse_anonymous:
            return "anonymous"
        return f"anonymous:{self.id}"


# =============================================================================
# FIELD PARSERS
# =============================================================================

def parse_date(value: Any) -> Optional[date]:
    """Calendar date from a date, datetime or ISO string; None if unusable"""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError:
            return None
    return None


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Naive UTC datetime from a datetime or ISO string"""
    if value is None:
        return None
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            value = datetime.fromisoformat(text)
        except ValueError:
            return None
    elif isinstance(value, date) and not isinstance(value, datetime):
        value = datetime.combine(value, time.min)
    if not isinstance(value, datetime):
        return None
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def parse_time(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, time):
        return value.isoformat()
    text = str(value).strip()
    return text or None


def parse_status(value: Any) -> Optional[AppointmentStatus]:
    if isinstance(value, AppointmentStatus):
        return value
    if value is None:
        return None
    try:
        return AppointmentStatus(str(value).strip().lower())
    except ValueError:
        return None


def _to_finite(value: Any) -> Optional[float]:
    """Float from a number or numeric string; None for anything else, inf or nan"""
    if value is None or isinstance(value, bool):
        return None
    try:
        if isinstance(value, (int, float, Decimal)):
            number = float(value)
        else:
            number = float(str(value).strip())
    except (ArithmeticError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _to_float(value: Any) -> float:
    number = _to_finite(value)
    return 0.0 if number is None else number


def _to_int(value: Any) -> Optional[int]:
    number = _to_finite(value)
    return None if number is None else int(number)


def _as_list(value: Any) -> List[Any]:
    """Normalize a nested join (None, one mapping or a list) to a list"""
    if value is None:
        return []
    if isinstance(value, Mapping):
        return [value]
    if isinstance(value, (list, tuple)):
        return list(value)
    return []


def _clean_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


# =============================================================================
# ADAPTER
# =============================================================================

def _service_lines(row: Mapping[str, Any]) -> List[ServiceLine]:
    lines = []
    for service in _as_list(row.get("services")):
        if not isinstance(service, Mapping):
            continue
        lines.append(ServiceLine(
            name=_clean_str(service.get("name")),
            unit_price=_to_float(service.get("price")),
            duration_minutes=_to_int(service.get("duration")),
        ))
    return lines


def _product_lines(row: Mapping[str, Any]) -> List[ProductLine]:
    lines = []
    for item in _as_list(row.get("appointment_products")):
        if not isinstance(item, Mapping):
            continue
        quantity = _to_int(item.get("quantity"))
        if quantity is None:
            quantity = 1
        for product in _as_list(item.get("products")):
            if not isinstance(product, Mapping):
                continue
            lines.append(ProductLine(
                name=_clean_str(product.get("name")),
                unit_price=_to_float(product.get("price")),
                quantity=quantity,
            ))
    return lines


def _staff_name(row: Mapping[str, Any]) -> Optional[str]:
    for staff in _as_list(row.get("staff")):
        if isinstance(staff, Mapping):
            return _clean_str(staff.get("full_name"))
    return None


def snapshot_from_row(row: Mapping[str, Any], fallback_id: Optional[str] = None) -> AppointmentSnapshot:
    """
    Map one raw joined appointment row to an AppointmentSnapshot.

    Unusable field values become None (or 0 for prices) rather than failing
    the row; only a row that is not a mapping at all is rejected.

    Raises:
        MalformedRecordError: If the row is not a mapping
    """
    if not isinstance(row, Mapping):
        raise MalformedRecordError(f"Expected a mapping, got {type(row).__name__}")

    email = _clean_str(row.get("customer_email"))
    snapshot_id = _clean_str(row.get("id")) or fallback_id
    if snapshot_id is None:
        raise MalformedRecordError("Row has no id")

    return AppointmentSnapshot(
        id=snapshot_id,
        date=parse_date(row.get("appointment_date")),
        time=parse_time(row.get("appointment_time")),
        status=parse_status(row.get("status")),
        created_at=parse_timestamp(row.get("created_at")),
        email=email.lower() if email else None,
        user_ref=_clean_str(row.get("user_id")),
        line_items=tuple(_service_lines(row)) + tuple(_product_lines(row)),
        staff_ref=_clean_str(row.get("staff_id")),
        staff_name=_staff_name(row),
    )


def adapt_rows(rows: Iterable[Any]) -> List[AppointmentSnapshot]:
    """Adapt raw rows, skipping the ones that cannot be adapted"""
    snapshots = []
    skipped = 0
    for index, row in enumerate(rows):
        try:
            snapshots.append(snapshot_from_row(row, fallback_id=f"row-{index}"))
        except (MalformedRecordError, TypeError, ValueError, ArithmeticError) as e:
            skipped += 1
            logger.warning(
                "Skipping malformed appointment row",
                index=index,
                reason=str(e),
                error_type=type(e).__name__,
            )

    if skipped:
        logger.info("Adapted appointment rows", adapted=len(snapshots), skipped=skipped)
    return snapshots


# =============================================================================
# FRAMES
# =============================================================================

APPOINTMENT_SCHEMA = {
    "id": pl.Utf8,
    "date": pl.Date,
    "time": pl.Utf8,
    "status": pl.Utf8,
    "created_at": pl.Datetime("us"),
    "revenue": pl.Float64,
}

SERVICE_LINE_SCHEMA = {
    "appointment_id": pl.Utf8,
    "date": pl.Date,
    "time": pl.Utf8,
    "name": pl.Utf8,
    "unit_price": pl.Float64,
    "duration_minutes": pl.Int64,
}


def appointments_frame(snapshots: Iterable[AppointmentSnapshot]) -> pl.DataFrame:
    """One row per snapshot"""
    columns = {name: [] for name in APPOINTMENT_SCHEMA}
    for snap in snapshots:
        columns["id"].append(snap.id)
        columns["date"].append(snap.date)
        columns["time"].append(snap.time)
        columns["status"].append(snap.status.value if snap.status else None)
        columns["created_at"].append(snap.created_at)
        columns["revenue"].append(float(snap.revenue))
    return pl.DataFrame(columns, schema=APPOINTMENT_SCHEMA)


def service_lines_frame(snapshots: Iterable[AppointmentSnapshot]) -> pl.DataFrame:
    """One row per service line item, carrying its appointment's date and time"""
    columns = {name: [] for name in SERVICE_LINE_SCHEMA}
    for snap in snapshots:
        for line in snap.service_lines:
            columns["appointment_id"].append(snap.id)
            columns["date"].append(snap.date)
            columns["time"].append(snap.time)
            columns["name"].append(line.label)
            columns["unit_price"].append(float(line.unit_price))
            columns["duration_minutes"].append(line.billed_minutes)
    return pl.DataFrame(columns, schema=SERVICE_LINE_SCHEMA)
