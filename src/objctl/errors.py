"""Exception hierarchy shared by the config layer, the jobs and the controller."""

from __future__ import annotations


class ObjctlError(Exception):
    """Base exception for objctl."""
    pass


class ConfigError(ObjctlError):
    """Base exception for configuration file errors."""
    pass


class ConfigValidationError(ConfigError):
    """Raised when a configuration file is malformed or fails validation."""
    pass


class PipelineError(ObjctlError):
    """A job-fatal error raised inside a worker."""
    pass


class ConfigurationError(PipelineError):
    """A path the pipeline needs is unset or cannot be resolved."""
    pass


class ParseError(PipelineError):
    """The object parser rejected an artifact that should be loadable."""
    pass


class DiffError(PipelineError):
    """The diff engine failed."""
    pass


class JobCancelled(ObjctlError):
    """Raised at a status checkpoint once cancellation was requested.

    Not a failure: the job ends with no result and no error.
    """
    pass


class WorkerCrashed(ObjctlError):
    """A worker thread ended without reporting an outcome."""
    pass
