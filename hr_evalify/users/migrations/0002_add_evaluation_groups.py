from django.db import migrations

EVALUATION_GROUPS = ["Admin", "HR", "Manager", "Reviewer", "Evaluator", "Employee"]


def create_evaluation_groups(apps, schema_editor):
    Group = apps.get_model("auth", "Group")
    for name in EVALUATION_GROUPS:
        Group.objects.get_or_create(name=name)


def remove_evaluation_groups(apps, schema_editor):
    Group = apps.get_model("auth", "Group")
    Group.objects.filter(name__in=EVALUATION_GROUPS).delete()


class Migration(migrations.Migration):

    dependencies = [
        ("users", "0001_initial"),
        ("auth", "0012_alter_user_first_name_max_length"),
    ]

    operations = [
        migrations.RunPython(create_evaluation_groups, remove_evaluation_groups),
    ]
