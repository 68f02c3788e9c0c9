"""
Orchestrator - batch liquidity increase under a fail-fast policy

Drives every request through fetch pool -> fetch config -> aggregate ->
fetch position -> compute bounds -> build -> submit. The first failure
stops the run; requests before it stay fulfilled, nothing after it starts.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

from .clmm import AmmPool, StateFetcher, build_increase_liquidity, tick_to_sqrt_price_x64
from .context import ChainContext
from .errors import ClmmBatchError, RunCancelled, UnexpectedError
from .infra import Signer, TxBuilder, CorrelationContext, RequestLog, ensure_unique_signers
from .types import PositionRequest, BuildResult, RunStage, SubmissionOutcome, RunReport

logger = logging.getLogger(__name__)

Builder = Callable[..., BuildResult]


@dataclass
class _Attempt:
    """One request's pass through the pipeline"""
    index: int
    request: PositionRequest
    log: RequestLog
    stage: RunStage = RunStage.FETCH_POOL
    outcome: Optional[SubmissionOutcome] = None
    error: Optional[ClmmBatchError] = None


class Orchestrator:
    """
    Runs increase-liquidity requests for one authority

    Usage:
        orchestrator = Orchestrator(context)
        report = orchestrator.run(context.wallet, requests)
        report.raise_for_failure()

    With max_workers > 1 requests are processed on a thread pool; log
    lines and outcomes are still emitted in request order.
    """

    def __init__(
        self,
        context: ChainContext,
        fetcher: Optional[StateFetcher] = None,
        builder: Optional[Builder] = None,
        submitter: Optional[TxBuilder] = None,
        max_workers: int = 1,
    ):
        self._context = context
        self._fetcher = fetcher or StateFetcher(context.rpc, context.program_id)
        self._builder = builder or build_increase_liquidity
        self._submitter = submitter or TxBuilder(context.rpc, context.tx_config)
        self._max_workers = max(1, max_workers)
        self._cancelled = threading.Event()

    @property
    def max_workers(self) -> int:
        return self._max_workers

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self):
        """Let the in-flight request finish, start no further ones"""
        if not self._cancelled.is_set():
            logger.warning("Cancellation requested, no further requests will start")
        self._cancelled.set()

    def run(self, authority: Signer, requests: Sequence[PositionRequest]) -> RunReport:
        """
        Process requests in order, stopping at the first failure

        Returns:
            RunReport with one outcome per completed request
        """
        requests = list(requests)
        report = RunReport(total=len(requests))
        logger.info(f"Starting run: {len(requests)} request(s), authority={authority.pubkey}, workers={self._max_workers}")

        if self._max_workers == 1 or len(requests) <= 1:
            self._run_sequential(authority, requests, report)
        else:
            self._run_concurrent(authority, requests, report)

        if report.succeeded:
            logger.info(f"Run complete: {report.completed}/{report.total} request(s) fulfilled")
        else:
            logger.error(f"Run aborted: {report}")
        return report

    def _run_sequential(self, authority: Signer, requests: List[PositionRequest], report: RunReport):
        for index, request in enumerate(requests):
            if self._cancelled.is_set():
                self._record_cancel(report, index)
                return
            attempt = self._attempt(index, request, authority, buffered=False)
            if not self._record(report, attempt):
                return

    def _run_concurrent(self, authority: Signer, requests: List[PositionRequest], report: RunReport):
        # Lowest index that failed so far; requests after it must not start
        first_failure: List[Optional[int]] = [None]
        failure_lock = threading.Lock()

        def task(index: int, request: PositionRequest) -> Optional[_Attempt]:
            if self._cancelled.is_set():
                return None
            with failure_lock:
                if first_failure[0] is not None and index > first_failure[0]:
                    return None
            attempt = self._attempt(index, request, authority, buffered=True)
            if attempt.error is not None:
                with failure_lock:
                    if first_failure[0] is None or index < first_failure[0]:
                        first_failure[0] = index
            return attempt

        with ThreadPoolExecutor(max_workers=self._max_workers, thread_name_prefix="increase") as executor:
            futures = [executor.submit(task, i, request) for i, request in enumerate(requests)]

            aborted = False
            for index, future in enumerate(futures):
                if aborted:
                    if future.cancel():
                        continue
                    attempt = future.result()
                    if attempt is not None and attempt.outcome is not None:
                        attempt.log.flush()
                        report.orphaned.append(attempt.outcome)
                        logger.warning(f"Request #{index} completed after the run aborted: {attempt.outcome.signature}")
                    continue

                attempt = future.result()
                if attempt is None:
                    self._record_cancel(report, index)
                    aborted = True
                elif not self._record(report, attempt):
                    aborted = True

                if aborted:
                    for pending in futures[index + 1:]:
                        pending.cancel()

    def _record(self, report: RunReport, attempt: _Attempt) -> bool:
        """Add an attempt to the report, False if it failed"""
        attempt.log.flush()
        if attempt.error is not None:
            report.failed_index = attempt.index
            report.failed_stage = attempt.stage
            report.error = attempt.error
            return False
        report.outcomes.append(attempt.outcome)
        return True

    def _record_cancel(self, report: RunReport, index: int):
        report.failed_index = index
        report.error = RunCancelled(index)
        logger.warning(f"Run cancelled before request #{index}")

    def _attempt(self, index: int, request: PositionRequest, authority: Signer, buffered: bool) -> _Attempt:
        attempt = _Attempt(index=index, request=request, log=RequestLog(logger, buffered=buffered))
        with CorrelationContext(f"increase_{index}"):
            try:
                attempt.outcome = self._process(attempt, authority)
            except ClmmBatchError as e:
                attempt.error = e
                attempt.log.error(f"Request #{index} failed at stage {attempt.stage.value}: {e}")
            except Exception as e:
                attempt.error = UnexpectedError(index, attempt.stage.value, e)
                attempt.log.error(f"Request #{index} failed at stage {attempt.stage.value}: {attempt.error}")
        return attempt

    def _process(self, attempt: _Attempt, authority: Signer) -> SubmissionOutcome:
        request = attempt.request
        log = attempt.log
        log.info(f"Processing {request}")

        attempt.stage = RunStage.FETCH_POOL
        pool_state = self._fetcher.get_pool_state(request.pool_address)

        attempt.stage = RunStage.FETCH_CONFIG
        amm_config = self._fetcher.get_amm_config(pool_state.amm_config)

        pool = AmmPool(self._context, request.pool_address, pool_state, amm_config, self._fetcher)
        log.info(f"Pool {pool.address}: tick {pool.tick_current} priceX64 {pool.sqrt_price_x64} price {pool.token_price()}")

        attempt.stage = RunStage.FETCH_POSITION
        position = self._fetcher.get_personal_position(request.position_address)

        attempt.stage = RunStage.BUILD
        for side, tick in (("lower", position.tick_lower), ("upper", position.tick_upper)):
            log.info(
                f"Position {position.address}: {side} tick {tick} "
                f"priceX64 {tick_to_sqrt_price_x64(tick)} price {pool.tick_price(tick)}"
            )
        result = self._builder(
            authority.pubkey,
            pool,
            position,
            request.liquidity_delta,
            request.slippage_bps,
        )
        signers = ensure_unique_signers([authority, *result.signers])
        log.info(
            f"Built {len(result.instructions)} instruction(s), {len(signers)} signer(s), "
            f"max amounts ({result.amount_0_max}, {result.amount_1_max})"
        )

        attempt.stage = RunStage.SUBMIT
        signature = self._submitter.submit(list(result.instructions), signers)
        log.info(f"Liquidity increased by {request.liquidity_delta}: {signature}")

        return SubmissionOutcome(
            index=attempt.index,
            pool_address=request.pool_address,
            position_address=request.position_address,
            liquidity_delta=request.liquidity_delta,
            signature=signature,
        )


def run(
    context: ChainContext,
    authority: Signer,
    requests: Sequence[PositionRequest],
    **kwargs,
) -> RunReport:
    """Run a batch with a fresh Orchestrator (kwargs as in its constructor)"""
    return Orchestrator(context, **kwargs).run(authority, requests)
