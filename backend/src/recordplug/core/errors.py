"""Exception types raised by the plugin core and the code it dispatches to."""


class PluginConfigurationError(ValueError):
    """The host called into a plugin without the services it needs."""


class RegistryFrozenError(RuntimeError):
    """An event was registered after plugin construction finished."""


class InvalidPluginExecutionError(Exception):
    """Business logic rejected the operation.

    The host surfaces this as an operation failure and, depending on the
    stage, rolls back the enclosing transaction.
    """


class RecordNotFoundError(InvalidPluginExecutionError):
    def __init__(self, logical_name: str, id: str):
        super().__init__(f"{logical_name} with id '{id}' does not exist")
        self.logical_name = logical_name
        self.id = id


class BalanceIntegrityError(InvalidPluginExecutionError):
    """Leave balance lookup did not find exactly one record."""
