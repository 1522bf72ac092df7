from django.contrib import admin

from hr_evalify.org import models


@admin.register(models.Department)
class DepartmentAdmin(admin.ModelAdmin):
    list_display = ["id", "name", "manager", "is_active"]
    search_fields = ["name", "description"]
    list_filter = ["is_active", "created_at"]
