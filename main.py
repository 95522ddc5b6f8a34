# Filename: main.py

import asyncio
import logging
import signal
import sys

from dotenv import load_dotenv

from config import BotConfig, load_config
from data_sources import DetailsFetcher
from errors import ConfigurationError
from pipeline import PoolEventPipeline
from retry_policy import RetryPolicy
from rugcheck import RiskChecker
from simulated_trader import SimulatedSwapExecutor
from trader import SwapExecutor, load_wallet
from websocket_listener import WebSocketListener

logger = logging.getLogger("Main")

SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM)


def setup_logging(level: str = "INFO"):
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler()],
        force=True,
    )


def build_executor(config: BotConfig, policy: RetryPolicy):
    if config.simulation_mode:
        logger.info("🧪 Running in SIMULATION mode")
        return SimulatedSwapExecutor(config)

    logger.info("💰 Running in REAL TRADING mode")
    return SwapExecutor(config, policy, wallet=load_wallet(config.private_key))


async def run(config: BotConfig):
    policy = RetryPolicy.from_config(config)
    executor = build_executor(config, policy)
    pipeline = PoolEventPipeline(
        config,
        details_fetcher=DetailsFetcher(config, policy),
        risk_checker=RiskChecker(config, policy),
        swap_executor=executor,
    )
    listener = WebSocketListener(config, pipeline, policy)

    loop = asyncio.get_running_loop()
    for sig in SHUTDOWN_SIGNALS:
        loop.add_signal_handler(sig, listener.stop)

    try:
        await listener.start()
    finally:
        for sig in SHUTDOWN_SIGNALS:
            loop.remove_signal_handler(sig)
        await executor.close()


def main() -> int:
    load_dotenv()
    setup_logging()

    try:
        config = load_config()
    except ConfigurationError as e:
        logger.error(str(e))
        logger.error("Please check your .env file and ensure all required variables are set.")
        return 1

    setup_logging(config.log_level)
    logger.info(f"🚀 Starting pool sniper: {config!r}")

    try:
        asyncio.run(run(config))
    except ConfigurationError as e:
        logger.error(str(e))
        return 1
    except KeyboardInterrupt:
        logger.info("❌ Bot stopped by user.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
