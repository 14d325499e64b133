"""Source selection and destination resolution."""

from omniroute.planner.destination import (
    DestinationResolver,
    DestinationSwap,
    HoldingValuation,
    LiquidationSummary,
    RequiredAsset,
)
from omniroute.planner.sources import (
    ConsumptionRecord,
    ConvertedConsumption,
    DirectConsumption,
    Holding,
    SourceSelector,
    auto_select_sources,
    plan_total,
)

__all__ = [
    "Holding",
    "ConsumptionRecord",
    "DirectConsumption",
    "ConvertedConsumption",
    "SourceSelector",
    "auto_select_sources",
    "plan_total",
    "DestinationResolver",
    "DestinationSwap",
    "HoldingValuation",
    "LiquidationSummary",
    "RequiredAsset",
]
