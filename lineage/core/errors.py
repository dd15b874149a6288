"""
Domain exceptions raised by the service layer.

Each error carries the HTTP status the API answers with; the handlers
registered in main.py turn them into JSON responses.
"""
from typing import List


class LineageError(Exception):
    """Base class for domain errors."""
    status_code: int = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(LineageError):
    status_code = 400

    def __init__(self, errors: List[str]):
        super().__init__(f"Validation failed: {', '.join(errors)}")
        self.errors = errors


class PermissionDeniedError(LineageError):
    status_code = 403


class NotFoundError(LineageError):
    status_code = 404

    def __init__(self, entity: str, entity_id: str):
        super().__init__(f"{entity} with id {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id


class BusinessRuleError(LineageError):
    status_code = 409

    def __init__(self, rule: str):
        super().__init__(f"Business rule violation: {rule}")
        self.rule = rule
