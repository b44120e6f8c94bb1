"""
Error types for the pipe optimizer.

AppError carries an HTTP status code so the Flask layer can render it directly.
4xx codes are client-caused ("fail"), everything else is server-caused ("error").
"""

from models import format_number


class AppError(Exception):
    status_code = 500

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    @property
    def status(self):
        return "fail" if str(self.status_code).startswith("4") else "error"

    def to_dict(self):
        return {"status": self.status, "message": self.message}


class ValidationError(AppError):
    status_code = 400


class InfeasibleRequestError(ValidationError):
    """A requested cut is longer than the usable part of the stock bar."""

    def __init__(self, length, usable_length):
        super().__init__(
            "Pipe length ({}) exceeds usable stock length ({})".format(
                format_number(length), format_number(usable_length)
            )
        )
        self.length = length
        self.usable_length = usable_length


class JobNotFoundError(AppError):
    status_code = 404

    def __init__(self, job_id):
        super().__init__("Job not found")
        self.job_id = job_id


class PersistenceError(AppError):
    status_code = 500
