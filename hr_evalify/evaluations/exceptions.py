from django.utils.translation import gettext_lazy as _
from rest_framework import status
from rest_framework.exceptions import APIException


class StateConflict(APIException):
    """The evaluation is not (or no longer) in a status allowing the action.

    Rendered as 409 with the stored status so clients can reload and retry.
    """

    status_code = status.HTTP_409_CONFLICT
    default_detail = _("Evaluation state changed, reload and try again.")
    default_code = "state_conflict"

    def __init__(self, detail=None, current_status=None):
        super().__init__(detail)
        self.current_status = current_status
        # Keep non-string values intact in the response body.
        self.detail = {
            "detail": self.detail,
            "current_status": current_status,
            "retryable": True,
        }


class RoutingNotConfigured(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = _("No evaluator setup is configured for this department.")
    default_code = "routing_not_configured"

    def __init__(self, department_id=None):
        if department_id is None:
            detail = self.default_detail
        else:
            detail = _(
                "No evaluator setup is configured for department %(department)s."
            ) % {"department": department_id}
        super().__init__(detail)
        self.department_id = department_id
