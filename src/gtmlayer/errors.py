"""gtmlayer exception hierarchy.

Shared by the store, the data layer, the extension registry and the
middleware so every module raises and catches the same types.
"""


class GTMError(Exception):
    """Base for all gtmlayer-specific errors."""


class ConfigurationError(GTMError):
    """Raised when configuration or startup wiring is invalid.

    Typically surfaces from ``install()`` or ``ExtensionRegistry.freeze()``
    at startup, never mid-request.
    """


class SerializationError(GTMError):
    """A value could not be represented as JSON.

    Raised by ``to_json()``, ``render()`` and ``dump()`` in place of the
    underlying ``TypeError``/``ValueError`` from :mod:`json`.
    """


class ExtensionNotFoundError(GTMError, KeyError):
    """No extension is registered under the requested name."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"No data layer extension registered as {name!r}")

    def __str__(self) -> str:
        return str(self.args[0])
