"""
Custom exceptions for the Case Activity service.
"""

class BaseCaseActivityError(Exception):
    """Base class for exceptions in this module."""
    pass

class NotFoundError(BaseCaseActivityError):
    """Raised when a referenced case, client, lawyer or user does not exist."""
    def __init__(self, entity: str, entity_id: str):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} with ID '{entity_id}' not found.")

class TemplateNotFoundError(NotFoundError):
    """Raised when no built-in or stored email template exists for a key."""
    def __init__(self, template_key: str):
        super().__init__("Email template", template_key)
        self.template_key = template_key

class ValidationError(BaseCaseActivityError):
    """Raised when the input to a case mutation is malformed."""
    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid value for '{field}': {reason}")

class CaseNumberConflictError(BaseCaseActivityError):
    """Raised when a case number could not be allocated without colliding."""
    def __init__(self, case_number: str):
        self.case_number = case_number
        super().__init__(f"Case number '{case_number}' is already taken.")

class ConfigurationError(BaseCaseActivityError):
    """Raised when a configuration issue is detected."""
    pass

class NotificationDeliveryError(BaseCaseActivityError):
    """Raised by batch jobs when not a single recipient of an item could be notified."""
    def __init__(self, case_id: str, activity: str):
        self.case_id = case_id
        self.activity = activity
        super().__init__(f"No notification could be delivered for '{activity}' on case '{case_id}'.")

class JobAlreadyRunningError(BaseCaseActivityError):
    """Raised when a scheduled job is triggered while a previous run is still in progress."""
    def __init__(self, job_name: str):
        self.job_name = job_name
        super().__init__(f"Job '{job_name}' is already running.")
