"""Public API for the fil_terminator package.

Only symbols imported here are considered part of the stable,
supported external interface.
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

# ----------------------------------------------------------------------
# Adapters
# ----------------------------------------------------------------------
from fil_terminator.adapters.lotus import LotusChainState
from fil_terminator.adapters.penalty import ProtocolPenaltyModel

# ----------------------------------------------------------------------
# Batch API
# ----------------------------------------------------------------------
from fil_terminator.batch.runner import (
    batch_calculate,
    batch_strategy,
    calculate_strategy,
    calculate_termination_fee,
    expiration_distribution,
)
from fil_terminator.batch.scheduler import TaskOutcome, run_tasks

# ----------------------------------------------------------------------
# Config API
# ----------------------------------------------------------------------
from fil_terminator.config import LotusConfig, TerminatorConfig

# ----------------------------------------------------------------------
# Domain types
# ----------------------------------------------------------------------
from fil_terminator.core.domain.epochs import (
    EPOCHS_PER_DAY,
    MAINNET_GENESIS,
    epoch_to_time,
    epochs_to_days,
    parse_time,
    time_to_epoch,
)
from fil_terminator.core.domain.errors import ErrorKind, TaskError, TerminatorError
from fil_terminator.core.domain.ranges import parse_sector_numbers
from fil_terminator.core.domain.types import (
    CalculationRequest,
    CalculationResult,
    Sector,
    SectorResult,
    SectorStrategy,
    SmoothedEstimate,
    StrategyResult,
    StrategyTask,
)

# ----------------------------------------------------------------------
# Fee engine
# ----------------------------------------------------------------------
from fil_terminator.core.fees.strategy import FleetSummary, choose_action, summarize_fleet
from fil_terminator.core.network.projection_config import ProjectionConfig
from fil_terminator.core.network.projector import project_network_params

# ----------------------------------------------------------------------
# Ports
# ----------------------------------------------------------------------
from fil_terminator.core.ports.chain_state import ChainState, SnapshotHandle
from fil_terminator.core.ports.penalty_model import PenaltyModel

# ----------------------------------------------------------------------
# Public API definition
# ----------------------------------------------------------------------

__all__ = [
    # Entry points
    "calculate_termination_fee",
    "calculate_strategy",
    "batch_calculate",
    "batch_strategy",
    "expiration_distribution",
    "run_tasks",
    "TaskOutcome",

    # Config
    "LotusConfig",
    "TerminatorConfig",
    "ProjectionConfig",

    # Adapters and ports
    "LotusChainState",
    "ProtocolPenaltyModel",
    "ChainState",
    "PenaltyModel",
    "SnapshotHandle",

    # Domain
    "CalculationRequest",
    "CalculationResult",
    "Sector",
    "SectorResult",
    "SectorStrategy",
    "SmoothedEstimate",
    "StrategyResult",
    "StrategyTask",
    "ErrorKind",
    "TaskError",
    "TerminatorError",

    # Fee engine helpers
    "choose_action",
    "summarize_fleet",
    "FleetSummary",
    "project_network_params",
    "parse_sector_numbers",

    # Time
    "EPOCHS_PER_DAY",
    "MAINNET_GENESIS",
    "epoch_to_time",
    "epochs_to_days",
    "parse_time",
    "time_to_epoch",

    # Version
    "__version__",
]

# ----------------------------------------------------------------------
# Package version
# ----------------------------------------------------------------------

try:
    __version__ = version("fil-terminator")
except PackageNotFoundError:
    __version__ = "0.0.0"
