"""
Domain Errors

Base class for errors raised by domain services. Each error carries a
stable machine readable ``code`` and an HTTP status used by the API
exception handler, so services never import REST framework.
"""


class DomainError(Exception):
    """Base class for all expected, caller-recoverable domain failures"""

    code = 'domain_error'
    http_status = 400
    default_message = 'Request cannot be processed.'

    def __init__(self, message: str | None = None, **details):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> dict:
        payload = {'code': self.code, 'detail': self.message}
        payload.update(self.details)
        return payload
