from abc import ABC, abstractmethod
from typing import List

from smcr_service.app.catalogs.core_functions import ALL_SMFS, CERTIFICATION_FUNCTIONS
from smcr_service.app.catalogs.role_training import (
    CERTIFICATION_CORE_MODULES,
    FUNCTION_SPECIFIC_MODULES,
    SENIOR_MANAGER_CORE_MODULES,
    TrainingModuleDefinition,
)

class TrainingModuleStrategy(ABC):
    @abstractmethod
    def modules_for(self, function_id: str) -> List[TrainingModuleDefinition]:
        """
        Lists the training modules a holder of the given function must complete.

        Args:
            function_id: Catalog id of the function, e.g. ``smf16`` or ``cf30``.

        Returns:
            Module definitions in the order they should appear on the plan.
        """
        pass

class SeniorManagerTrainingStrategy(TrainingModuleStrategy):
    def modules_for(self, function_id: str) -> List[TrainingModuleDefinition]:
        return SENIOR_MANAGER_CORE_MODULES + FUNCTION_SPECIFIC_MODULES.get(function_id, [])

class CertificationTrainingStrategy(TrainingModuleStrategy):
    def modules_for(self, function_id: str) -> List[TrainingModuleDefinition]:
        return CERTIFICATION_CORE_MODULES + FUNCTION_SPECIFIC_MODULES.get(function_id, [])

class DefaultStrategy(TrainingModuleStrategy):
    def modules_for(self, function_id: str) -> List[TrainingModuleDefinition]:
        return []

def get_training_strategy(function_id: str) -> TrainingModuleStrategy:
    if any(smf.id == function_id for smf in ALL_SMFS):
        return SeniorManagerTrainingStrategy()
    if any(cf.id == function_id for cf in CERTIFICATION_FUNCTIONS):
        return CertificationTrainingStrategy()
    return DefaultStrategy()

def get_training_modules_for_role(function_id: str) -> List[TrainingModuleDefinition]:
    return get_training_strategy(function_id).modules_for(function_id)
