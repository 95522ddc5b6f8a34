"""
Configuration for the Raydium pool sniper.

Settings are resolved once at startup from DEFAULT_CONFIG, an optional
config.json and the process environment, then frozen into a BotConfig that
every component receives through its constructor.
"""

import os
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple
from urllib.parse import urlparse

from errors import ConfigurationError

logger = logging.getLogger("config")

# Default configuration
DEFAULT_CONFIG = {
    "SIMULATION_MODE": False,

    # Endpoints
    "HELIUS_WSS_URI": "",
    "HELIUS_HTTPS_URI": "",
    "HELIUS_API_ENDPOINT": "https://api.helius.xyz",
    "HELIUS_API_KEY": "",
    "JUP_HTTPS_QUOTE_URI": "https://quote-api.jup.ag/v6/quote",
    "JUP_HTTPS_SWAP_URI": "https://quote-api.jup.ag/v6/swap",
    "RUG_CHECK_URL": "https://api.rugcheck.xyz/v1/tokens",

    # Wallet
    "PRIV_KEY_WALLET": "",

    # Liquidity pool
    "RAYDIUM_PROGRAM_ID": "675kPX9MHTjS2zt1qfr1NYHuzeLXfQM9H24wFSUt1Mp8",
    "WSOL_PC_MINT": "So11111111111111111111111111111111111111112",
    "COMMITMENT": "processed",
    "IGNORE_PUMP_FUN": True,
    "PUMP_FUN_SUFFIX": "pump",

    # Swap
    "SWAP_AMOUNT": 10_000_000,  # 0.01 SOL in lamports
    "SWAP_SLIPPAGE_BPS": 200,  # 2%
    "SWAP_DYNAMIC_SLIPPAGE_MAX_BPS": 300,
    "SWAP_PRIORITY_MAX_LAMPORTS": 1_000_000,
    "SWAP_PRIORITY_LEVEL": "veryHigh",

    # Rug check
    "RUG_CHECK_SINGLE_HOLDER_OWNERSHIP": 30.0,
    "RUG_CHECK_NOT_ALLOWED": [
        "Freeze Authority still enabled",
        "Large Amount of LP Unlocked",
        "Copycat token",
    ],

    # Timing
    "HTTP_TIMEOUT_SECONDS": 5.0,
    "TX_MAX_RETRIES": 3,
    "RECONNECT_DELAY_SECONDS": 5.0,
    "TX_CONFIRM_INTERVAL_SECONDS": 0.75,
    "TX_CONFIRM_TIMEOUT_SECONDS": 20.0,

    # System
    "LOG_LEVEL": "INFO",
}

REQUIRED_KEYS = (
    "HELIUS_WSS_URI",
    "HELIUS_HTTPS_URI",
    "HELIUS_API_ENDPOINT",
    "HELIUS_API_KEY",
    "JUP_HTTPS_QUOTE_URI",
    "JUP_HTTPS_SWAP_URI",
    "RUG_CHECK_URL",
    "RAYDIUM_PROGRAM_ID",
    "WSOL_PC_MINT",
)

HTTP_URL_KEYS = (
    "HELIUS_HTTPS_URI",
    "HELIUS_API_ENDPOINT",
    "JUP_HTTPS_QUOTE_URI",
    "JUP_HTTPS_SWAP_URI",
    "RUG_CHECK_URL",
)

TRUE_VALUES = ("true", "1", "yes", "on")


@dataclass(frozen=True)
class BotConfig:
    helius_wss_uri: str
    helius_https_uri: str
    helius_api_endpoint: str
    helius_api_key: str
    jup_quote_uri: str
    jup_swap_uri: str
    rug_check_url: str
    private_key: str
    simulation_mode: bool
    raydium_program_id: str
    native_mint: str
    commitment: str
    ignore_pump_fun: bool
    pump_fun_suffix: str
    swap_amount: int
    slippage_bps: int
    dynamic_slippage_max_bps: int
    priority_max_lamports: int
    priority_level: str
    max_single_holder_rating: float
    not_allowed_warnings: Tuple[str, ...]
    http_timeout: float
    tx_max_retries: int
    reconnect_delay: float
    confirm_interval: float
    confirm_timeout: float
    log_level: str

    def __repr__(self) -> str:
        # Never print the wallet key or API key
        return (
            f"BotConfig(program={self.raydium_program_id}, simulation={self.simulation_mode}, "
            f"amount={self.swap_amount}, slippage_bps={self.slippage_bps}, "
            f"ignore_pump_fun={self.ignore_pump_fun})"
        )


def load_config(config_file: Optional[str] = None,
                environ: Optional[Mapping[str, str]] = None) -> BotConfig:
    """
    Build the frozen configuration.

    Order of precedence (last wins): DEFAULT_CONFIG, config.json, environment.

    Args:
        config_file: Path of an optional JSON file (defaults to $CONFIG_FILE or config.json)
        environ: Environment mapping (defaults to os.environ)

    Returns:
        Validated BotConfig

    Raises:
        ConfigurationError: when the file is unreadable or any setting is invalid
    """
    environ = os.environ if environ is None else environ
    config_file = config_file or environ.get("CONFIG_FILE", "config.json")

    raw = dict(DEFAULT_CONFIG)

    if os.path.exists(config_file):
        try:
            with open(config_file, "r") as f:
                file_config = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Cannot read {config_file}: {e}")
        if not isinstance(file_config, dict):
            raise ConfigurationError(f"{config_file} must contain a JSON object")
        raw.update({k: v for k, v in file_config.items() if k in DEFAULT_CONFIG})
        logger.info(f"Configuration loaded from: {config_file}")

    env_config, problems = load_config_from_env(environ)
    raw.update(env_config)

    return validate_config(raw, problems)


def load_config_from_env(environ: Mapping[str, str]) -> Tuple[Dict[str, Any], List[str]]:
    """
    Read overrides for every DEFAULT_CONFIG key from the environment.

    Returns:
        (overrides, parse problems)
    """
    config = {}
    problems = []

    for key, default_value in DEFAULT_CONFIG.items():
        env_value = environ.get(key)
        if env_value is None:
            continue
        try:
            config[key] = _coerce(env_value, default_value)
        except ValueError as parse_err:
            problems.append(f"{key}: cannot parse {env_value!r} ({parse_err})")

    return config, problems


def _coerce(value: Any, default_value: Any) -> Any:
    if isinstance(default_value, bool):
        if isinstance(value, bool):
            return value
        return str(value).strip().lower() in TRUE_VALUES
    if isinstance(default_value, int):
        return int(value)
    if isinstance(default_value, float):
        return float(value)
    if isinstance(default_value, list):
        if isinstance(value, (list, tuple)):
            return [str(v) for v in value]
        return [part.strip() for part in str(value).split(",") if part.strip()]
    return str(value).strip()


def _valid_url(value: str, schemes: Tuple[str, ...]) -> bool:
    parsed = urlparse(value)
    return parsed.scheme in schemes and bool(parsed.netloc)


def validate_config(raw: Dict[str, Any], problems: Optional[List[str]] = None) -> BotConfig:
    problems = list(problems or [])

    # Values coming from config.json have not been coerced yet
    values = {}
    for key, default_value in DEFAULT_CONFIG.items():
        try:
            values[key] = _coerce(raw[key], default_value)
        except (TypeError, ValueError) as e:
            problems.append(f"{key}: invalid value {raw[key]!r} ({e})")
            values[key] = default_value

    missing = [key for key in REQUIRED_KEYS if not values[key]]
    if not values["SIMULATION_MODE"] and not values["PRIV_KEY_WALLET"]:
        missing.append("PRIV_KEY_WALLET")
    if missing:
        problems.append(f"Missing required settings: {', '.join(missing)}")

    for key in HTTP_URL_KEYS:
        if values[key] and not _valid_url(values[key], ("http", "https")):
            problems.append(f"Invalid URL in {key}: {values[key]}")
    if values["HELIUS_WSS_URI"] and not _valid_url(values["HELIUS_WSS_URI"], ("ws", "wss")):
        problems.append(f"Invalid URL in HELIUS_WSS_URI: {values['HELIUS_WSS_URI']}")

    if values["SWAP_AMOUNT"] <= 0:
        problems.append("SWAP_AMOUNT must be positive")
    for key in ("SWAP_SLIPPAGE_BPS", "SWAP_DYNAMIC_SLIPPAGE_MAX_BPS"):
        if not 0 <= values[key] <= 10_000:
            problems.append(f"{key} must be between 0 and 10000")
    for key in ("HTTP_TIMEOUT_SECONDS", "RECONNECT_DELAY_SECONDS",
                "TX_CONFIRM_INTERVAL_SECONDS", "TX_CONFIRM_TIMEOUT_SECONDS",
                "TX_MAX_RETRIES", "RUG_CHECK_SINGLE_HOLDER_OWNERSHIP",
                "SWAP_PRIORITY_MAX_LAMPORTS"):
        if values[key] < 0:
            problems.append(f"{key} must not be negative")
    if values["COMMITMENT"] not in ("processed", "confirmed", "finalized"):
        problems.append(f"COMMITMENT must be processed, confirmed or finalized (got {values['COMMITMENT']})")
    if values["LOG_LEVEL"].upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
        problems.append(f"Unknown LOG_LEVEL: {values['LOG_LEVEL']}")

    if problems:
        raise ConfigurationError(problems)

    return BotConfig(
        helius_wss_uri=values["HELIUS_WSS_URI"],
        helius_https_uri=values["HELIUS_HTTPS_URI"],
        helius_api_endpoint=values["HELIUS_API_ENDPOINT"].rstrip("/"),
        helius_api_key=values["HELIUS_API_KEY"],
        jup_quote_uri=values["JUP_HTTPS_QUOTE_URI"],
        jup_swap_uri=values["JUP_HTTPS_SWAP_URI"],
        rug_check_url=values["RUG_CHECK_URL"].rstrip("/"),
        private_key=values["PRIV_KEY_WALLET"],
        simulation_mode=values["SIMULATION_MODE"],
        raydium_program_id=values["RAYDIUM_PROGRAM_ID"],
        native_mint=values["WSOL_PC_MINT"],
        commitment=values["COMMITMENT"],
        ignore_pump_fun=values["IGNORE_PUMP_FUN"],
        pump_fun_suffix=values["PUMP_FUN_SUFFIX"],
        swap_amount=values["SWAP_AMOUNT"],
        slippage_bps=values["SWAP_SLIPPAGE_BPS"],
        dynamic_slippage_max_bps=values["SWAP_DYNAMIC_SLIPPAGE_MAX_BPS"],
        priority_max_lamports=values["SWAP_PRIORITY_MAX_LAMPORTS"],
        priority_level=values["SWAP_PRIORITY_LEVEL"],
        max_single_holder_rating=values["RUG_CHECK_SINGLE_HOLDER_OWNERSHIP"],
        not_allowed_warnings=tuple(values["RUG_CHECK_NOT_ALLOWED"]),
        http_timeout=values["HTTP_TIMEOUT_SECONDS"],
        tx_max_retries=values["TX_MAX_RETRIES"],
        reconnect_delay=values["RECONNECT_DELAY_SECONDS"],
        confirm_interval=values["TX_CONFIRM_INTERVAL_SECONDS"],
        confirm_timeout=values["TX_CONFIRM_TIMEOUT_SECONDS"],
        log_level=values["LOG_LEVEL"].upper(),
    )
