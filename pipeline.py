# Filename: pipeline.py

import logging

from config import BotConfig
from filters import check_eligibility, evaluate_risk
from models import PipelineStage, PoolCandidate, SwapOutcome

logger = logging.getLogger("PoolEventPipeline")

BANNER = "*" * 48
TOKEN_URL = "https://gmgn.ai/sol/token/{}"


class PoolEventPipeline:
    """
    fetch -> eligibility -> risk check -> execute, for one candidate.

    Every stage short-circuits: a failure or rejection ends the run with a
    SwapOutcome naming the stage. Nothing is kept between runs.
    """

    def __init__(self, config: BotConfig, details_fetcher, risk_checker, swap_executor):
        self.config = config
        self.details_fetcher = details_fetcher
        self.risk_checker = risk_checker
        self.swap_executor = swap_executor

    async def run(self, candidate: PoolCandidate) -> SwapOutcome:
        logger.info(BANNER)
        logger.info(f"New liquidity pool found: {candidate.signature}")
        try:
            outcome = await self._run_stages(candidate)
        finally:
            logger.info(BANNER)
        return outcome

    async def _run_stages(self, candidate: PoolCandidate) -> SwapOutcome:
        # 1. Fetch
        logger.info("Fetching transaction details...")
        fetched = await self.details_fetcher.fetch(candidate.signature)
        if not fetched.ok:
            logger.info(f"[PIPELINE] Skipped {candidate.signature}: {fetched.error}")
            return SwapOutcome.stopped(PipelineStage.FETCH, fetched.error)
        details = fetched.value

        # 2. Eligibility
        reason = check_eligibility(details, self.config)
        if reason:
            return self._rejected(PipelineStage.ELIGIBILITY, details.token_mint, reason)

        # 3. Risk check
        checked = await self.risk_checker.check(details.token_mint)
        if not checked.ok:
            return self._failed(PipelineStage.RISK_CHECK, details.token_mint, checked.error)
        reason = evaluate_risk(checked.value, self.config)
        if reason:
            return self._rejected(PipelineStage.RISK_CHECK, details.token_mint, reason)

        # 4. Execute
        logger.info(f"Token found: {TOKEN_URL.format(details.token_mint)}")
        swapped = await self.swap_executor.swap(details.base_mint, details.token_mint)
        if not swapped.ok:
            return self._failed(PipelineStage.EXECUTE, details.token_mint, swapped.error)

        logger.info(f"Transaction successful! View at: {swapped.value}")
        return SwapOutcome(
            succeeded=True,
            reference=swapped.value,
            stage=PipelineStage.EXECUTE,
        )

    def _rejected(self, stage: PipelineStage, token_mint: str, reason: str) -> SwapOutcome:
        logger.warning(f"[PIPELINE] EligibilityRejection at {stage.value} for {token_mint}: {reason}")
        return SwapOutcome.stopped(stage, reason)

    def _failed(self, stage: PipelineStage, token_mint: str, error: str) -> SwapOutcome:
        logger.error(f"[PIPELINE] AdapterError at {stage.value} for {token_mint}: {error}")
        return SwapOutcome.stopped(stage, error)
