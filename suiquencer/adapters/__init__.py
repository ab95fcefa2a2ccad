"""
Protocol adapters: one builder per (step kind, protocol) pair.
"""

from suiquencer.adapters.base import AssemblyContext, StepAdapter
from suiquencer.adapters.custom import MoveCallAdapter
from suiquencer.adapters.navi import NaviLendingAdapter
from suiquencer.adapters.scallop import ScallopLendingAdapter
from suiquencer.adapters.staking import AftermathStakeAdapter, NativeStakeAdapter, VoloStakeAdapter
from suiquencer.adapters.swap import AggregatorSwapAdapter
from suiquencer.adapters.transfer import NativeTransferAdapter
from suiquencer.registry.adapter_registry import AdapterRegistry


def default_adapter_registry() -> AdapterRegistry:
    return AdapterRegistry(
        [
            NativeTransferAdapter(),
            AggregatorSwapAdapter(),
            MoveCallAdapter(),
            NativeStakeAdapter(),
            AftermathStakeAdapter(),
            VoloStakeAdapter(),
            NaviLendingAdapter(),
            ScallopLendingAdapter(),
        ]
    )


__all__ = [
    "AssemblyContext",
    "StepAdapter",
    "AdapterRegistry",
    "default_adapter_registry",
    "NativeTransferAdapter",
    "AggregatorSwapAdapter",
    "MoveCallAdapter",
    "NativeStakeAdapter",
    "AftermathStakeAdapter",
    "VoloStakeAdapter",
    "NaviLendingAdapter",
    "ScallopLendingAdapter",
]
