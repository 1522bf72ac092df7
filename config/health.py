from __future__ import annotations

from typing import Any

from django.db import connection
from django.http import JsonResponse


def check_db() -> dict[str, Any]:
    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1;")
            cursor.fetchone()
    except Exception as exc:  # noqa: BLE001 - health must degrade, not crash
        return {"ok": False, "error": str(exc)}
    else:
        return {"ok": True}


def check_routing() -> dict[str, Any]:
    """Count active departments that have no active evaluator setup.

    Evaluations cannot be opened for employees of those departments.
    """
    from hr_evalify.evaluations.models import EvaluatorSetup  # noqa: PLC0415
    from hr_evalify.org.models import Department  # noqa: PLC0415

    try:
        routed = EvaluatorSetup.objects.filter(is_active=True).values("department_id")
        unrouted = (
            Department.objects.filter(is_active=True).exclude(pk__in=routed).count()
        )
    except Exception as exc:  # noqa: BLE001 - health must degrade, not crash
        return {"ok": False, "error": str(exc)}
    else:
        return {"ok": True, "unrouted_departments": unrouted}


def health(request):
    components = {"db": check_db(), "routing": check_routing()}
    all_ok = all(v.get("ok", False) for v in components.values())
    some_ok = any(v.get("ok", False) for v in components.values())

    status = "ok" if all_ok else ("degraded" if some_ok else "down")
    return JsonResponse(
        {"status": status, "components": components},
        status=200 if all_ok else 503,
    )
