from collections import defaultdict
from contextlib import suppress

from django.apps import apps
from django.contrib.auth import get_user_model
from django.contrib.auth.models import Group
from django.contrib.auth.models import Permission
from django.contrib.contenttypes.models import ContentType
from django.core.management.base import BaseCommand
from django.utils.translation import gettext as _

from hr_evalify.employees.api.permissions import ALL_ROLES
from hr_evalify.employees.api.permissions import ROLE_ADMIN
from hr_evalify.employees.api.permissions import ROLE_EMPLOYEE
from hr_evalify.employees.api.permissions import ROLE_EVALUATOR
from hr_evalify.employees.api.permissions import ROLE_HR
from hr_evalify.employees.api.permissions import ROLE_MANAGER
from hr_evalify.employees.api.permissions import ROLE_REVIEWER

FULL_ACTIONS = ("add", "change", "delete", "view")
MANAGE_ACTIONS = ("add", "change", "view")
APPROVE_ACTIONS = ("change", "view")
READ_ACTIONS = ("view",)

# Django model permissions only gate the admin site; the workflow itself is
# enforced by the evaluation services against the bound participants.
ROLE_APP_ACTIONS = {
    ROLE_HR: {
        "evaluations": FULL_ACTIONS,
        "employees": FULL_ACTIONS,
        "org": FULL_ACTIONS,
        "notifications": MANAGE_ACTIONS,
        "users": MANAGE_ACTIONS,
        "audit": READ_ACTIONS,
    },
    ROLE_MANAGER: {
        "evaluations": APPROVE_ACTIONS,
        "employees": READ_ACTIONS,
        "org": READ_ACTIONS,
        "notifications": READ_ACTIONS,
    },
    ROLE_REVIEWER: {
        "evaluations": APPROVE_ACTIONS,
        "employees": READ_ACTIONS,
        "notifications": READ_ACTIONS,
    },
    ROLE_EVALUATOR: {
        "evaluations": MANAGE_ACTIONS,
        "employees": READ_ACTIONS,
        "notifications": READ_ACTIONS,
    },
    ROLE_EMPLOYEE: {
        "evaluations": READ_ACTIONS,
        "notifications": READ_ACTIONS,
    },
}

ROLE_MODEL_ACTIONS = {
    ("evaluations", "evaluatorsetup"): {
        ROLE_MANAGER: READ_ACTIONS,
        ROLE_REVIEWER: READ_ACTIONS,
        ROLE_EVALUATOR: READ_ACTIONS,
    },
    ("evaluations", "answer"): {
        ROLE_EVALUATOR: FULL_ACTIONS,
    },
}


class Command(BaseCommand):
    help = _("Create default evaluation role groups and permissions")

    def handle(self, *args, **options):
        user_model = get_user_model()
        models = self._collect_models(user_model)
        roles = self._build_roles(models)
        self._apply_roles(roles)
        self.stdout.write(self.style.SUCCESS("RBAC setup complete"))

    def _collect_models(self, user_model):
        """Gather models from target apps to drive permission creation."""

        collected: list[type] = [user_model]
        labels = {label for rules in ROLE_APP_ACTIONS.values() for label in rules}
        labels.update(app_label for app_label, _unused in ROLE_MODEL_ACTIONS)
        for label in sorted(labels):
            with suppress(LookupError):
                for model in apps.get_app_config(label).get_models():
                    if model not in collected:
                        collected.append(model)
        return collected

    def _build_roles(self, models):
        """Construct per-role permission id sets."""

        admin_perm_ids: set[int] = set()
        role_perm_ids: dict[str, set[int]] = defaultdict(set)

        for model in models:
            ct = ContentType.objects.get_for_model(model)
            perms_by_codename = {
                perm.codename: perm for perm in Permission.objects.filter(content_type=ct)
            }
            if not perms_by_codename:
                continue
            admin_perm_ids.update(perm.pk for perm in perms_by_codename.values())

            model_name = model._meta.model_name  # noqa: SLF001
            app_label = model._meta.app_label  # noqa: SLF001
            for role_name, app_rules in ROLE_APP_ACTIONS.items():
                actions = app_rules.get(app_label, ())
                self._add_actions(
                    role_perm_ids[role_name], perms_by_codename, model_name, actions
                )
            for role_name, actions in ROLE_MODEL_ACTIONS.get(
                (app_label, model_name), {}
            ).items():
                self._add_actions(
                    role_perm_ids[role_name], perms_by_codename, model_name, actions
                )

        roles = {ROLE_ADMIN: admin_perm_ids}
        for role_name in ALL_ROLES:
            if role_name != ROLE_ADMIN:
                roles[role_name] = role_perm_ids.get(role_name, set())
        return roles

    def _add_actions(self, bucket, perms_by_codename, model_name, actions):
        for action in actions:
            perm = perms_by_codename.get(f"{action}_{model_name}")
            if perm:
                bucket.add(perm.pk)

    def _apply_roles(self, roles):
        """Create/update groups and assign permissions."""
        for role_name, perm_ids in roles.items():
            group, _ = Group.objects.get_or_create(name=role_name)
            perms = Permission.objects.filter(pk__in=perm_ids)
            group.permissions.set(list(perms))  # type: ignore[arg-type]
            msg = f"Ensured group '{role_name}' with permissions ({perms.count()})"
            self.stdout.write(self.style.SUCCESS(msg))
