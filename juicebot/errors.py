"""
Exceptions raised by the workload source and storage layers.
"""


class JuicebotError(Exception):
    """Base class for juicebot errors."""


class ConfigError(JuicebotError):
    """The YAML config file could not be read or parsed."""


class WorkloadNotFound(JuicebotError):
    """The requested workload does not exist in the backing store."""


class SourceUnavailable(JuicebotError):
    """The workload source could not be reached or returned an error."""


class Conflict(SourceUnavailable):
    """A concurrent modification was detected while updating a workload."""


class StorageError(JuicebotError):
    """The name history database failed."""
