# src/composition_root.py

import logging
import os
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Union

from dotenv import load_dotenv
from pydantic import BaseModel, ValidationError

from application.api.clinical_models import (
    DifferentialRequest,
    DifferentialResponse,
    DoseAdjustmentRequest,
    DoseAdjustmentResponse,
    ErrorResponse,
    FollowUpRequest,
    FollowUpResponse,
    InteractionCheckRequest,
    InteractionCheckResponse,
    ProtocolEnforcementRequest,
    ProtocolEnforcementResponse,
    SafetyReviewRequest,
    SafetyReviewResponse,
)
from application.clinical.differential_ranker import DifferentialRanker, cannot_miss
from application.clinical.dose_adjuster import DoseAdjuster
from application.clinical.followup_stats import FollowUpStatsEngine
from application.clinical.interaction_detector import InteractionDetector
from application.clinical.protocol_enforcer import ProtocolEnforcer
from application.clinical.safety_review import ClinicalSafetyReview, PatientSafetyContext
from application.clinical.substance_resolver import SubstanceResolver
from config.engine_config import ClinicalEngineConfig
from domain.clinical_errors import ClinicalValidationError
from domain.knowledge_base import ClinicalKnowledgeBase, build_knowledge_base

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    """Applies the shared log format; level from argument, LOG_LEVEL or INFO."""
    level_name = (level or os.getenv("LOG_LEVEL") or "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format=LOG_FORMAT,
    )


# --- Engine Bootstrap ---

@dataclass
class ClinicalEngines:
    """Every clinical component, built over one knowledge base and config."""
    config: ClinicalEngineConfig
    knowledge_base: ClinicalKnowledgeBase
    resolver: SubstanceResolver
    detector: InteractionDetector
    adjuster: DoseAdjuster
    ranker: DifferentialRanker
    enforcer: ProtocolEnforcer
    follow_up: FollowUpStatsEngine
    safety_review: ClinicalSafetyReview


def bootstrap_clinical_engines(
    config: Optional[ClinicalEngineConfig] = None,
    knowledge_base: Optional[ClinicalKnowledgeBase] = None,
) -> ClinicalEngines:
    """Initializes the knowledge base, configuration and all engines.

    Loads .env first so environment overrides apply to the configuration.
    """
    load_dotenv()

    config = config or ClinicalEngineConfig.from_env()
    knowledge_base = knowledge_base or build_knowledge_base()

    resolver = SubstanceResolver(knowledge_base, config.resolver)
    detector = InteractionDetector(knowledge_base, resolver)
    adjuster = DoseAdjuster(knowledge_base, resolver, config.dose)
    ranker = DifferentialRanker(knowledge_base)

    engines = ClinicalEngines(
        config=config,
        knowledge_base=knowledge_base,
        resolver=resolver,
        detector=detector,
        adjuster=adjuster,
        ranker=ranker,
        enforcer=ProtocolEnforcer(knowledge_base, resolver),
        follow_up=FollowUpStatsEngine(knowledge_base, config.follow_up),
        safety_review=ClinicalSafetyReview(ranker, detector, adjuster, config.safety_score),
    )
    logger.info(f"Clinical engines ready: {knowledge_base.get_stats()}")
    return engines


# --- Facade ---

class ClinicalEngineFacade:
    """JSON boundary over the clinical engines.

    Each method accepts a request model (or its dict form) and returns the
    matching response model, or an ErrorResponse when the input is invalid.

    Example:
        >>> facade = ClinicalEngineFacade()
        >>> response = facade.check_interactions({"medications": ["warfarin", "ibuprofen"]})
        >>> response.safety_level
        'unsafe'
    """

    def __init__(self, engines: Optional[ClinicalEngines] = None):
        self.engines = engines or bootstrap_clinical_engines()

    def _handle(
        self,
        operation: str,
        request_cls: type,
        request: Union[BaseModel, Dict[str, Any]],
        handler: Callable[[Any], BaseModel],
    ) -> BaseModel:
        try:
            parsed = request if isinstance(request, request_cls) else request_cls.model_validate(request)
        except ValidationError as e:
            logger.warning(f"{operation}: invalid request ({e.error_count()} errors)")
            return ErrorResponse(error="invalid_request", message=str(e))

        try:
            return handler(parsed)
        except ClinicalValidationError as e:
            logger.warning(f"{operation}: {e} (field={e.field})")
            return ErrorResponse(**e.to_dict())

    def check_interactions(
        self, request: Union[InteractionCheckRequest, Dict[str, Any]]
    ) -> Union[InteractionCheckResponse, ErrorResponse]:
        def run(req: InteractionCheckRequest) -> InteractionCheckResponse:
            summary = self.engines.detector.analyze(req.medications)
            return InteractionCheckResponse.model_validate(summary.to_dict())

        return self._handle("check_interactions", InteractionCheckRequest, request, run)

    def adjust_dose(
        self, request: Union[DoseAdjustmentRequest, Dict[str, Any]]
    ) -> Union[DoseAdjustmentResponse, ErrorResponse]:
        def run(req: DoseAdjustmentRequest) -> DoseAdjustmentResponse:
            profile = req.profile.to_profile()
            renal = self.engines.adjuster.estimate_renal_function(profile)
            adjustments = self.engines.adjuster.adjust(
                req.drug,
                profile,
                original_dose_mg=req.original_dose_mg,
                original_dose=req.original_dose,
                renal_function=renal,
            )
            return DoseAdjustmentResponse.model_validate({
                "drug": req.drug,
                "renal_function": renal.to_dict() if renal else None,
                "adjustments": [a.to_dict() for a in adjustments],
            })

        return self._handle("adjust_dose", DoseAdjustmentRequest, request, run)

    def rank_differentials(
        self, request: Union[DifferentialRequest, Dict[str, Any]]
    ) -> Union[DifferentialResponse, ErrorResponse]:
        def run(req: DifferentialRequest) -> DifferentialResponse:
            ranker = self.engines.ranker
            key = ranker.resolve_symptom_key(" ".join([req.complaint, *req.symptoms]))
            ranked = ranker.rank(key) if key is not None else []
            return DifferentialResponse.model_validate({
                "symptom_key": key.value if key else None,
                "differentials": [d.to_dict() for d in ranked],
                "cannot_miss": [d.to_dict() for d in cannot_miss(ranked)],
            })

        return self._handle("rank_differentials", DifferentialRequest, request, run)

    def enforce_protocol(
        self, request: Union[ProtocolEnforcementRequest, Dict[str, Any]]
    ) -> Union[ProtocolEnforcementResponse, ErrorResponse]:
        def run(req: ProtocolEnforcementRequest) -> ProtocolEnforcementResponse:
            result = self.engines.enforcer.enforce(req.diagnosis, req.analysis)
            return ProtocolEnforcementResponse.model_validate(result.to_dict())

        return self._handle("enforce_protocol", ProtocolEnforcementRequest, request, run)

    def follow_up_summary(
        self, request: Union[FollowUpRequest, Dict[str, Any]]
    ) -> Union[FollowUpResponse, ErrorResponse]:
        def run(req: FollowUpRequest) -> FollowUpResponse:
            enrollment = req.enrollment.to_enrollment()
            measurements = [m.to_measurement() for m in req.measurements]
            summary = self.engines.follow_up.summarize(enrollment, measurements, req.reference_time)
            return FollowUpResponse.model_validate(summary.to_dict())

        return self._handle("follow_up_summary", FollowUpRequest, request, run)

    def review_safety(
        self, request: Union[SafetyReviewRequest, Dict[str, Any]]
    ) -> Union[SafetyReviewResponse, ErrorResponse]:
        def run(req: SafetyReviewRequest) -> SafetyReviewResponse:
            context = PatientSafetyContext(
                patient_id=req.patient_id,
                chief_complaint=req.chief_complaint,
                symptoms=list(req.symptoms),
                current_medications=list(req.current_medications),
                proposed_medications=list(req.proposed_medications),
                dose_profile=req.dose_profile.to_profile(),
            )
            report = self.engines.safety_review.review(context)
            return SafetyReviewResponse.model_validate(report.to_dict())

        return self._handle("review_safety", SafetyReviewRequest, request, run)


# Global instance for easy access
_facade_instance: Optional[ClinicalEngineFacade] = None


def get_clinical_facade() -> ClinicalEngineFacade:
    """Get the global facade, bootstrapping the engines on first use."""
    global _facade_instance
    if _facade_instance is None:
        _facade_instance = ClinicalEngineFacade()
    return _facade_instance
