"""Hard-coded conversation flows: shift batch, fuel charge, fuel payments, kilometer admin."""

from dataclasses import dataclass

from fleetlog.flows.admin import KilometerAdminFlow
from fleetlog.flows.fuel import FuelEntryFlow
from fleetlog.flows.payments import FuelPaymentFlow
from fleetlog.flows.shifts import ShiftBatchWorkflow
from fleetlog.runtime.dispatcher import Dispatcher


@dataclass
class Flows:
    """The flows of the bot, as seen by command handlers."""

    shifts: ShiftBatchWorkflow
    fuel: FuelEntryFlow
    payments: FuelPaymentFlow
    admin: KilometerAdminFlow

    def register(self, dispatcher: Dispatcher) -> None:
        self.shifts.register(dispatcher)
        self.fuel.register(dispatcher)
        self.payments.register(dispatcher)
        self.admin.register(dispatcher)


__all__ = ["Flows", "FuelEntryFlow", "FuelPaymentFlow", "KilometerAdminFlow", "ShiftBatchWorkflow"]
