from django.contrib import admin

from hr_evalify.evaluations import models


class EvaluationItemInline(admin.TabularInline):
    model = models.EvaluationItem
    extra = 0
    fields = ["order", "title", "max_score", "weight"]


@admin.register(models.EvaluationTemplate)
class EvaluationTemplateAdmin(admin.ModelAdmin):
    list_display = ["id", "name", "position", "is_active"]
    search_fields = ["name", "description", "position"]
    list_filter = ["is_active"]
    inlines = [EvaluationItemInline]


@admin.register(models.EvaluationItem)
class EvaluationItemAdmin(admin.ModelAdmin):
    list_display = ["id", "template", "title", "max_score", "weight", "order"]
    search_fields = ["title", "description"]
    list_filter = ["template"]


class QuestionInline(admin.TabularInline):
    model = models.Question
    extra = 0
    fields = ["order", "text", "min_score", "max_score", "weight", "is_active"]


@admin.register(models.Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ["id", "name", "position", "order", "is_active"]
    search_fields = ["name", "description"]
    list_filter = ["is_active"]
    inlines = [QuestionInline]


@admin.register(models.Question)
class QuestionAdmin(admin.ModelAdmin):
    list_display = ["id", "category", "text", "min_score", "max_score", "weight"]
    search_fields = ["text", "description"]
    list_filter = ["category", "is_active"]


@admin.register(models.EvaluatorSetup)
class EvaluatorSetupAdmin(admin.ModelAdmin):
    list_display = ["id", "department", "evaluator", "reviewer", "manager", "is_active"]
    list_filter = ["is_active", "department"]
    list_select_related = ["department"]


class AnswerInline(admin.TabularInline):
    model = models.Answer
    extra = 0
    readonly_fields = ["question", "score", "comment"]
    can_delete = False


@admin.register(models.Evaluation)
class EvaluationAdmin(admin.ModelAdmin):
    list_display = [
        "id",
        "evaluee",
        "year",
        "period",
        "status",
        "final_score",
        "final_grade",
    ]
    list_filter = ["status", "year", "period"]
    search_fields = ["evaluee__user__username", "evaluee__employee_id"]
    readonly_fields = ["final_score", "final_percentage", "final_grade"]
    inlines = [AnswerInline]
