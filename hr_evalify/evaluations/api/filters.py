import django_filters

from hr_evalify.employees.api.permissions import resolve_caller
from hr_evalify.evaluations.models import Evaluation


class EvaluationFilter(django_filters.FilterSet):
    status = django_filters.ChoiceFilter(choices=Evaluation.Status.choices)
    period = django_filters.ChoiceFilter(choices=Evaluation.Period.choices)
    year = django_filters.NumberFilter(field_name="year")
    # Admin/HR only; ignored for everybody else.
    department = django_filters.NumberFilter(method="filter_department")

    class Meta:
        model = Evaluation
        fields = ["status", "year", "period", "department"]

    def filter_department(self, queryset, name, value):
        request = getattr(self, "request", None)
        if request is None or not resolve_caller(request.user).is_elevated:
            return queryset
        return queryset.filter(evaluee__department_id=value)
