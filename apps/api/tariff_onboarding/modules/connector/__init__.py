from .schemas import PipelineResult, TariffDraft
from .service import PipelineOutcome, StepResult, build_product_patch, connect_tariff, convert_tariff

__all__ = [
    "PipelineOutcome",
    "PipelineResult",
    "StepResult",
    "TariffDraft",
    "build_product_patch",
    "connect_tariff",
    "convert_tariff",
]
