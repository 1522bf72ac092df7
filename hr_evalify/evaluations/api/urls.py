from rest_framework.routers import SimpleRouter

from hr_evalify.evaluations.api.views import EvaluationViewSet
from hr_evalify.evaluations.api.views import EvaluatorSetupViewSet

router = SimpleRouter()
router.register("evaluations", EvaluationViewSet, basename="evaluations")
router.register(
    "evaluator-setups",
    EvaluatorSetupViewSet,
    basename="evaluator-setups",
)

urlpatterns = router.urls
