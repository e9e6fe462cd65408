"""Custom exceptions for ecofinds."""


class EcofindsError(Exception):
    """Base exception for all ecofinds errors."""

    pass


# --- Configuration ---


class SessionNotFoundError(EcofindsError):
    """Raised when no saved session exists."""

    def __init__(self, path: str | None = None):
        self.path = path
        msg = "Not logged in. Run 'ecofinds login' first."
        if path:
            msg = f"Session not found at {path}. Run 'ecofinds login' first."
        super().__init__(msg)


class InvalidSchemaVersionError(EcofindsError):
    """Raised when the session file has an unsupported schema version."""

    def __init__(self, found: int, supported: int):
        self.found = found
        self.supported = supported
        super().__init__(
            f"Unsupported schema version {found}. This tool supports version {supported}."
        )


# --- Validation ---


class ListingValidationError(EcofindsError):
    """Raised when a listing draft fails local validation."""

    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(message)


# --- Transport / server ---


class GatewayError(EcofindsError):
    """Raised when a remote call fails."""

    def __init__(self, message: str, status_code: int | None = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class TransportError(GatewayError):
    """Raised when the request never produced a response (network, timeout)."""

    def __init__(self, method: str, path: str, reason: str):
        self.method = method
        self.path = path
        self.reason = reason
        super().__init__(f"{method} {path} failed: {reason}")


class ServerError(GatewayError):
    """Raised when the server answers with a non-success status or an unusable body."""

    def __init__(
        self, status_code: int | None, message: str, server_message: str | None = None
    ):
        # server_message is the human-readable text from the body, if any
        self.server_message = server_message
        super().__init__(message, status_code)


class NotAuthenticatedError(ServerError):
    """Raised on 401 responses."""

    def __init__(self, server_message: str | None = None):
        super().__init__(
            401,
            server_message or "Authentication required. Run 'ecofinds login' again.",
            server_message,
        )


class ProductNotFoundError(ServerError):
    """Raised when a product ID doesn't exist."""

    def __init__(self, product_id: str, server_message: str | None = None):
        self.product_id = product_id
        super().__init__(404, server_message or f"Product not found: {product_id}", server_message)


# --- Concurrency ---


class EntityLockedError(EcofindsError):
    """Raised when a mutation targets an entity whose lock is already held."""

    def __init__(self, entity_id: str):
        self.entity_id = entity_id
        super().__init__(f"Entity is busy: {entity_id}")


class CheckoutInProgressError(EcofindsError):
    """Raised when checkout is triggered outside the idle state."""

    def __init__(self, state: str):
        self.state = state
        super().__init__(f"Checkout cannot start while {state}")


def user_message(error: Exception, default: str) -> str:
    """Text for the error banner: the server's own message when it sent one."""
    return getattr(error, "server_message", None) or default
