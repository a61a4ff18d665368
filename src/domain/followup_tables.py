"""Default follow-up targets and disease labels."""

from types import MappingProxyType
from typing import Mapping

from domain.followup_models import MonitoringType

DEFAULT_TARGETS: Mapping[MonitoringType, Mapping[str, float]] = MappingProxyType({
    MonitoringType.BLOOD_PRESSURE: MappingProxyType({"systolic_max": 135, "diastolic_max": 85}),
    MonitoringType.GLYCEMIA_TYPE1: MappingProxyType({"min": 0.70, "max": 1.30}),
    MonitoringType.GLYCEMIA_TYPE2: MappingProxyType({"min": 0.80, "max": 1.30}),
    MonitoringType.WEIGHT: MappingProxyType({}),
})

DISEASE_LABELS: Mapping[str, str] = MappingProxyType({
    "hypertension": "Hypertension Artérielle (HTA)",
    "diabetes_type_1": "Diabète de Type 1",
    "diabetes_type_2": "Diabète de Type 2",
    "obesity": "Obésité",
})
