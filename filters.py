# Filename: filters.py

from typing import Optional

from loguru import logger

from config import BotConfig
from models import RiskVerdict, TransactionDetails


def check_eligibility(details: TransactionDetails, config: BotConfig) -> Optional[str]:
    """Synchronous gate run before the risk check. Returns a rejection reason or None."""
    if not details.base_mint or not details.token_mint:
        logger.warning("[FILTER ❌] Missing required mint addresses")
        return "missing mint address"

    if config.ignore_pump_fun and is_excluded_platform(details.token_mint, config.pump_fun_suffix):
        logger.warning(f"[FILTER ❌] {details.token_mint}: Ignoring Pump.fun tokens")
        return f"token mint ends with '{config.pump_fun_suffix}'"

    return None


def is_excluded_platform(token_mint: str, suffix: str) -> bool:
    if not suffix:
        return False
    return token_mint.lower().endswith(suffix.lower())


def evaluate_risk(verdict: RiskVerdict, config: BotConfig) -> Optional[str]:
    """Any single failing condition rejects the token."""
    if not verdict.passed:
        logger.warning("[FILTER ❌] Rug check provider reported an unsuccessful result")
        return "rug check unsuccessful"

    disallowed = sorted(verdict.warnings.intersection(config.not_allowed_warnings))
    if disallowed:
        logger.warning(f"[FILTER ❌] Disallowed rug check warnings: {', '.join(disallowed)}")
        return f"disallowed warnings: {', '.join(disallowed)}"

    if verdict.rating > config.max_single_holder_rating:
        logger.warning(
            f"[FILTER ❌] Single holder ownership rating {verdict.rating} "
            f"above {config.max_single_holder_rating}"
        )
        return f"rating {verdict.rating} above {config.max_single_holder_rating}"

    return None
