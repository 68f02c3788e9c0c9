"""
Result type definitions for instruction building and batch runs
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple, TYPE_CHECKING

if TYPE_CHECKING:
    from solders.instruction import Instruction
    from ..infra.solana_signer import Signer
    from ..errors import ClmmBatchError


@dataclass(frozen=True)
class BuildResult:
    """
    Output of the instruction builder

    Attributes:
        instructions: Ordered instructions for one transaction
        signers: Extra signers required besides the authority
            (e.g. ephemeral wrapped-SOL token accounts)
        amount_0_max: Token 0 limit encoded in the instruction
        amount_1_max: Token 1 limit encoded in the instruction
    """
    instructions: Tuple["Instruction", ...]
    signers: Tuple["Signer", ...] = ()
    amount_0_max: int = 0
    amount_1_max: int = 0


class RunStage(Enum):
    """Pipeline stage of a single request"""
    FETCH_POOL = "fetch_pool"
    FETCH_CONFIG = "fetch_config"
    FETCH_POSITION = "fetch_position"
    BUILD = "build"
    SUBMIT = "submit"


@dataclass(frozen=True)
class SubmissionOutcome:
    """
    A confirmed liquidity increase

    Attributes:
        index: Position of the request in the input list
        pool_address: Pool the liquidity was added to
        position_address: Position that received the liquidity
        liquidity_delta: Liquidity added
        signature: Transaction signature (base58)
    """
    index: int
    pool_address: str
    position_address: str
    liquidity_delta: int
    signature: str

    def __str__(self) -> str:
        return f"SubmissionOutcome(#{self.index}, {self.signature[:16]}...)"


@dataclass
class RunReport:
    """
    Result of one batch run under the fail-fast policy

    Requests before `failed_index` completed (their outcomes are listed in
    input order); the failing request and everything after it were not
    fulfilled, except for `orphaned` ones that were already in flight when
    a bounded-concurrency run aborted.

    Attributes:
        total: Number of requests in the run
        outcomes: Outcomes of the completed prefix, in input order
        failed_index: Index of the failing request, None on success
        failed_stage: Stage the failing request was in
        error: The error that aborted the run
        orphaned: Outcomes of later requests that finished after the abort
    """
    total: int
    outcomes: List[SubmissionOutcome] = field(default_factory=list)
    failed_index: Optional[int] = None
    failed_stage: Optional[RunStage] = None
    error: Optional["ClmmBatchError"] = None
    orphaned: List[SubmissionOutcome] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.error is None

    @property
    def completed(self) -> int:
        """Number of requests fulfilled before the run stopped"""
        return len(self.outcomes)

    @property
    def signatures(self) -> List[str]:
        return [outcome.signature for outcome in self.outcomes]

    def raise_for_failure(self) -> None:
        """Re-raise the error that aborted the run, if any"""
        if self.error is not None:
            raise self.error

    def __str__(self) -> str:
        if self.succeeded:
            return f"RunReport(SUCCESS, {self.completed}/{self.total})"
        stage = self.failed_stage.value if self.failed_stage else "n/a"
        return (
            f"RunReport(FAILED at #{self.failed_index} [{stage}], "
            f"{self.completed}/{self.total} completed, error={self.error})"
        )
