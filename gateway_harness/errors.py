"""
Exception hierarchy for the harness.

Transient gateway statuses (405/503) are not errors: the retrying executor
consumes them and hands the final response back to the caller.
"""


class HarnessError(Exception):
    """Base class for every harness failure."""


class ConfigurationError(HarnessError):
    """Raised when an environment value cannot be turned into configuration."""


class TransportError(HarnessError):
    """Connection, DNS or timeout failure while issuing a request."""


class CredentialError(HarnessError):
    """Neither registration nor login produced a usable token."""


class OrderResolutionError(HarnessError):
    """An order could not be correlated to an order number."""


class ScenarioStateError(HarnessError):
    """Operation not allowed in the scenario's current state."""
