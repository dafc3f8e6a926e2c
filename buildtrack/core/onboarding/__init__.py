"""Client onboarding questionnaire."""

from .steps import (
    StepStatus,
    StepDefinition,
    StepProgress,
    LAUNCH_KIT_STEPS,
    GROWTH_KIT_STEPS,
    get_step_catalog,
    get_step_definition,
    evaluate_step,
    onboarding_percent,
)
from .draft import OnboardingDraft
from .service import OnboardingService

__all__ = [
    "StepStatus",
    "StepDefinition",
    "StepProgress",
    "LAUNCH_KIT_STEPS",
    "GROWTH_KIT_STEPS",
    "get_step_catalog",
    "get_step_definition",
    "evaluate_step",
    "onboarding_percent",
    "OnboardingDraft",
    "OnboardingService",
]
