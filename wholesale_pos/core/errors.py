"""Error taxonomy for the checkout core.

Every error is scoped to one submission attempt or one operator action; none
of them is allowed to take the process down. The HTTP layer maps them onto
status codes in ``wholesale_pos.routers.checkout``.
"""


class CheckoutError(Exception):
    """Base exception for all checkout errors."""

    pass


class ValidationError(CheckoutError):
    """Raised when operator input blocks progression.

    Covers missing customer/location, malformed PO numbers, quantity-rule
    violations and illegal screen transitions. User-correctable.
    """

    def __init__(self, errors: list[str] | str):
        if isinstance(errors, str):
            errors = [errors]
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


class NetworkError(CheckoutError):
    """Raised when a collaborator call fails."""

    def __init__(self, operation: str, message: str):
        self.operation = operation
        self.message = message
        super().__init__(f"{operation} failed: {message}")


class ParseError(NetworkError):
    """Raised when a collaborator response does not match its expected shape."""

    def __init__(self, operation: str, detail: str):
        self.detail = detail
        super().__init__(operation, f"unexpected response shape ({detail})")


class PaymentTermsPermissionError(CheckoutError):
    """Raised by a draft-order gateway that refuses the requested payment terms."""

    def __init__(self, message: str = "Access denied for payment terms"):
        self.message = message
        super().__init__(message)


class PartialFailureError(CheckoutError):
    """The draft order exists but a later best-effort step did not finish."""

    def __init__(self, step: str, draft_order_id: str, message: str):
        self.step = step
        self.draft_order_id = draft_order_id
        self.message = message
        super().__init__(f"{step} failed for {draft_order_id}: {message}")


class AttributeSchemaError(CheckoutError):
    """Raised when a draft line carries attributes outside its line kind."""

    def __init__(self, kind: str, keys: list[str]):
        self.kind = kind
        self.keys = keys
        super().__init__(f"Attributes {keys} are not valid for a {kind} line")
