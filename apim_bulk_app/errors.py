"""Exception types raised by the bulk export/import tool."""


class BulkError(Exception):
    """Base class for errors that abort a run before or during listing."""


class ConfigError(BulkError):
    """The configuration file is unreadable or lacks a required mapping."""


class FilterError(BulkError):
    """A filter value (usually an --api selector) could not be parsed."""


class PreflightError(BulkError):
    """apictl is missing or the environment cannot be reached."""


class ListingError(BulkError):
    """The entity listing returned no usable data."""
