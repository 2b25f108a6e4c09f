"""
Exception classes shared by the interaction layer and the giveaway system
"""


class InteractionError(Exception):
    """Request rejected before any handler runs; carries the HTTP status"""

    status = 400
    message = "Bad request"

    def __init__(self, message=None):
        super().__init__(message or self.message)


class MethodNotAllowed(InteractionError):
    status = 405
    message = "Method not allowed"


class MissingHeaders(InteractionError):
    status = 400
    message = "Missing headers"


class InvalidSignature(InteractionError):
    status = 401
    message = "Invalid signature"


class InvalidBody(InteractionError):
    status = 400
    message = "Invalid JSON"


class UnsupportedInteraction(InteractionError):
    status = 400
    message = "Invalid interaction type"


class UpstreamFailure(Exception):
    """Discord REST call returned a non-success status (or never answered)"""

    def __init__(self, operation, status=None, detail=""):
        self.operation = operation
        self.status = status
        self.detail = detail
        text = f"{operation} failed"
        if status is not None:
            text += f" [HTTP {status}]"
        if detail:
            text += f": {detail}"
        super().__init__(text)


class RegistrationError(Exception):
    """Handler table misconfigured; fatal at startup"""


class DuplicateRegistration(RegistrationError):
    def __init__(self, dispatch_key):
        self.dispatch_key = dispatch_key
        super().__init__(f"{dispatch_key} already registered")


class NoHandlersRegistered(RegistrationError):
    def __init__(self):
        super().__init__("No commands registered")
