from rest_framework import status


class WorkflowError(Exception):
    """Base class for rejected job/application operations.

    A raised WorkflowError guarantees that no state was changed.
    """
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Operation not allowed"

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class AuthorizationError(WorkflowError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "You are not authorized to perform this action"


class InvalidTransitionError(WorkflowError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid status transition"


class NotFoundError(WorkflowError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class ConflictError(WorkflowError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "The record was modified by another request. Please reload and try again."


class DuplicateApplicationError(ConflictError):
    default_message = "You have already applied for this job"


class InvalidInputError(WorkflowError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid input"
