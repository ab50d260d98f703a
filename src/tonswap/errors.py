"""Error taxonomy shared by the adapters, the aggregator and the dispatcher."""


class SwapServiceError(Exception):
    """Base class for errors surfaced to clients as typed error frames."""

    kind = "SwapServiceError"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class BackendUnavailableError(SwapServiceError):
    """One backend failed (network, status or parse). Callers treat it as omission."""

    kind = "BackendUnavailable"

    def __init__(self, backend: str, message: str):
        super().__init__(f"{backend}: {message}")
        self.backend = backend


class AllBackendsUnavailableError(SwapServiceError):
    """No backend produced a quote."""

    kind = "AllBackendsUnavailable"


class MissingParameterError(SwapServiceError):
    """A request is missing a required field or carries an invalid one."""

    kind = "MissingParameter"


class UnsupportedRouteError(SwapServiceError):
    """The asset-kind combination cannot be settled (e.g. TON -> TON)."""

    kind = "UnsupportedRoute"


class MalformedMessageError(SwapServiceError):
    """An inbound frame could not be parsed."""

    kind = "MalformedMessage"
