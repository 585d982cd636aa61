"""Error taxonomy for the shortage API."""

DATABASE_SETUP_ERROR = "Database Setup Required"

DATABASE_SETUP_MESSAGE = (
    "The application database has not been set up correctly. "
    "Please follow these steps:\n"
    "1. Create the database: createdb dispomed\n"
    "2. Set DATABASE_URL=postgres://localhost:5432/dispomed in the environment\n"
    "3. Initialize the database schema: dispomed-init-db\n"
    "For more details, please refer to the README.md file."
)

MISSING_DATABASE_PGCODE = "3D000"


class ShortageAPIError(Exception):
    """Base class for errors surfaced with a dedicated HTTP status."""
    status_code = 500

    def __init__(self, error: str, message: str = None):
        super().__init__(message or error)
        self.error = error
        self.message = message

    def as_json(self) -> dict:
        body = {"error": self.error}
        if self.message:
            body["message"] = self.message
        return body


class ValidationError(ShortageAPIError):
    status_code = 400


class NotFound(ShortageAPIError):
    status_code = 404


def is_database_missing(error: BaseException) -> bool:
    """
    Tell whether an exception means the database itself does not exist.

    psycopg2 exposes the SQLSTATE as ``pgcode``; SQLAlchemy wraps driver
    errors and keeps the original on ``orig``.
    """
    candidates = [error, getattr(error, "orig", None)]
    for candidate in candidates:
        if candidate is None:
            continue
        code = getattr(candidate, "pgcode", None) or getattr(candidate, "code", None)
        if code == MISSING_DATABASE_PGCODE:
            return True
        text = str(candidate)
        if "database" in text and "does not exist" in text:
            return True
    return False
