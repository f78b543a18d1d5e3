"""Exception types raised by the storage layer and flows."""

from datetime import date


class FleetLogError(Exception):
    """Base class for FleetLog errors."""


class DuplicateActiveEntry(FleetLogError):
    """A non-omitted kilometer log already exists for the same key."""

    def __init__(self, tenant_id: str, unit_id: int, log_date: date, log_type: str):
        self.tenant_id = tenant_id
        self.unit_id = unit_id
        self.log_date = log_date
        self.log_type = log_type
        super().__init__(
            f"Unit {unit_id} already has a {log_type} entry for {log_date.isoformat()}"
        )


class DuplicateSaleNumber(FleetLogError):
    """An active fuel record already uses this sale number."""

    def __init__(self, tenant_id: str, sale_number: str):
        self.tenant_id = tenant_id
        self.sale_number = sale_number
        super().__init__(f"An active fuel record with sale number {sale_number} already exists")


class EntryNotFound(FleetLogError):
    """The requested record does not exist for this tenant."""

    def __init__(self, tenant_id: str, entry_id: int):
        self.tenant_id = tenant_id
        self.entry_id = entry_id
        super().__init__(f"Entry {entry_id} not found for tenant {tenant_id}")


class FuelRecordAlreadyPaid(FleetLogError):
    """The fuel record was paid before."""

    def __init__(self, tenant_id: str, record_id: int):
        self.tenant_id = tenant_id
        self.record_id = record_id
        super().__init__(f"Fuel record {record_id} is already paid")
