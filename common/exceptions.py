import logging

from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


def first_error_message(detail):
    """
    Pick the first human-readable message out of a DRF error structure
    """
    if isinstance(detail, dict):
        for key, value in detail.items():
            message = first_error_message(value)
            if message is None:
                continue
            if key in ('non_field_errors', 'detail'):
                return message
            return f"{key}: {message}"
        return None
    if isinstance(detail, (list, tuple)):
        for item in detail:
            message = first_error_message(item)
            if message is not None:
                return message
        return None
    return str(detail)


def api_exception_handler(exc, context):
    """
    DRF exception handler that always answers with a `message` key,
    keeping the full detail under `errors` for validation failures.
    """
    response = exception_handler(exc, context)

    if response is None:
        return None

    if response.status_code >= 500:
        logger.error("%s failed: %s", context['view'].__class__.__name__, exc)

    detail = response.data
    body = {'message': first_error_message(detail) or 'Request failed'}
    if isinstance(detail, list) or (isinstance(detail, dict) and set(detail) != {'detail'}):
        body['errors'] = detail
    response.data = body
    return response


class TransitionError(ValueError):
    """
    Raised when a status change is not allowed from the current status
    """

    def __init__(self, entity, current, target):
        self.entity = entity
        self.current = current
        self.target = target
        super().__init__(f"{entity} cannot move from '{current}' to '{target}'.")
