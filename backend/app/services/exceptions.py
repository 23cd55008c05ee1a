from __future__ import annotations


class CompanyNotFoundError(LookupError):
    def __init__(self, message: str = "Company not found") -> None:
        super().__init__(message)


class AccessDeniedError(PermissionError):
    def __init__(self, message: str = "User does not have access to this company") -> None:
        super().__init__(message)


class ReportNotFoundError(LookupError):
    def __init__(self, message: str = "Report not found") -> None:
        super().__init__(message)


class ReportSchemaError(ValueError):
    """Generated report content failed schema validation (a defect, not user error)."""


class SettingsValidationError(ValueError):
    pass
