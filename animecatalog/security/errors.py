"""Request rejection taxonomy.

Each rejection carries the HTTP status and the fixed plain-text message
returned to the caller. Messages never include internal detail.
"""


class RequestRejected(Exception):
    """Base class for every caller-visible rejection."""

    status_code: int = 400
    message: str = "Bad Request"

    def __init__(self, message: str | None = None):
        self.message = message or type(self).message
        super().__init__(self.message)


class MethodNotAllowed(RequestRejected):
    status_code = 405
    message = "Method Not Allowed"


class BotRejected(RequestRejected):
    status_code = 403
    message = "Bots Not Allowed"


class OriginRejected(RequestRejected):
    status_code = 403
    message = "Invalid Origin"


class RateLimited(RequestRejected):
    status_code = 429
    message = "Too Many Requests"


class MalformedRequest(RequestRejected):
    status_code = 400
    message = "Invalid Request"


class SignatureMissing(RequestRejected):
    status_code = 403
    message = "Missing Signature"


class SignatureInvalid(RequestRejected):
    status_code = 403
    message = "Invalid Signature"


class InvalidTimestamp(SignatureInvalid):
    message = "Invalid Timestamp"


class SignatureExpired(RequestRejected):
    status_code = 403
    message = "Expired"


class NotFound(RequestRejected):
    status_code = 404
    message = "Not Found"


class InternalError(RequestRejected):
    status_code = 500
    message = "Internal Error"
