"""FleetLog - fuel-charge and odometer logging for vehicle fleets over chat."""

__version__ = "0.1.0"
