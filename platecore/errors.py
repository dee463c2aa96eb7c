"""Exception hierarchy for the pressure plate console."""


class PlateConsoleError(Exception):
    """Base class for errors raised by the console's data layer."""


class StorageError(PlateConsoleError):
    """Local store could not be read or written."""


class DeviceNotFoundError(PlateConsoleError):
    """No plate exists with the requested id."""

    def __init__(self, device_id: int) -> None:
        super().__init__(f"Device {device_id} not found")
        self.device_id = device_id


class ImportFormatError(PlateConsoleError):
    """Imported payload is not a JSON array of plate records."""
