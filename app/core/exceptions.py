"""
Typed failures raised by the program service.

Every error carries the code and HTTP status it maps to, so the handlers in
app.core.error_handlers translate by type and never by message text.
"""
from fastapi import status


class ProgramServiceError(Exception):
    code = "PROGRAM_SERVICE_ERROR"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidProgramDataError(ProgramServiceError):
    code = "INVALID_PROGRAM_DATA"
    status_code = status.HTTP_400_BAD_REQUEST


class ProgramNotFoundError(ProgramServiceError):
    code = "PROGRAM_NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, value: str, field: str = "ID"):
        super().__init__(f"Program not found with {field}: {value}")


class EducationalAreaNotFoundError(ProgramServiceError):
    code = "EDUCATIONAL_AREA_NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, program_id: str, area_id: str):
        super().__init__(
            f"Educational area with ID {area_id} not found in program {program_id}"
        )


class DuplicateProgramError(ProgramServiceError):
    code = "DUPLICATE_PROGRAM"
    status_code = status.HTTP_409_CONFLICT


class ConcurrentModificationError(ProgramServiceError):
    code = "CONCURRENT_MODIFICATION"
    status_code = status.HTTP_409_CONFLICT


class AuthenticationRequiredError(ProgramServiceError):
    code = "AUTHENTICATION_REQUIRED"
    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)


class AuthorizationDeniedError(ProgramServiceError):
    code = "INSUFFICIENT_PERMISSIONS"
    status_code = status.HTTP_403_FORBIDDEN
