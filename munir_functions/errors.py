"""Typed failures raised by the dispatch handlers."""


class DispatchError(Exception):
    status = "INTERNAL"
    http_status = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidArgumentError(DispatchError):
    status = "INVALID_ARGUMENT"
    http_status = 400


class NotFoundError(DispatchError):
    status = "NOT_FOUND"
    http_status = 404


class InternalError(DispatchError):
    status = "INTERNAL"
    http_status = 500
