from django.contrib import admin

from hr_evalify.employees import models


@admin.register(models.Employee)
class EmployeeAdmin(admin.ModelAdmin):
    list_display = ["id", "user", "employee_id", "position", "department", "is_active"]
    search_fields = ["employee_id", "position", "user__username", "user__email"]
    list_filter = ["department", "is_active", "is_exempt", "created_at"]
    list_select_related = ["user", "department"]
