"""Flow — пошаговое оформление сделки (INPUT → REVIEW → SUCCESS)."""

from .state_machine import (
    FlowConfig,
    FlowStep,
    FlowTransitionResult,
    SellLinePreview,
    TradeAction,
    TradeFlowStateMachine,
)

__all__ = [
    "TradeFlowStateMachine",
    "FlowConfig",
    "FlowStep",
    "FlowTransitionResult",
    "SellLinePreview",
    "TradeAction",
]
