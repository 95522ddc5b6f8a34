# Filename: simulated_trader.py

import logging
import uuid
from typing import List, Tuple

from config import BotConfig
from models import Result

logger = logging.getLogger("SimulatedTrader")


class SimulatedSwapExecutor:
    """
    Dry-run executor used when SIMULATION_MODE is on.
    Nothing is quoted, signed or submitted; every swap "succeeds".
    """

    def __init__(self, config: BotConfig):
        self.config = config
        self.swaps: List[Tuple[str, str]] = []

    async def swap(self, input_mint: str, output_mint: str) -> Result[str]:
        self.swaps.append((input_mint, output_mint))
        reference = f"sim-{uuid.uuid4().hex[:16]}"
        logger.info(
            f"[SIM] Would swap {self.config.swap_amount} lamports of {input_mint} "
            f"for {output_mint} (slippage {self.config.slippage_bps} bps) -> {reference}"
        )
        return Result.success(reference)

    async def close(self):
        pass
