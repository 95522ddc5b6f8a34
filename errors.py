# Filename: errors.py

class ConfigurationError(ValueError):
    """Missing or invalid settings at startup. Fatal."""

    def __init__(self, problems):
        if isinstance(problems, str):
            problems = [problems]
        self.problems = list(problems)
        super().__init__("Invalid configuration:\n" + "\n".join(f"  - {p}" for p in self.problems))


class TransportError(Exception):
    """Subscription channel failure. Recovered by a delayed reconnect."""

    def __init__(self, message: str, close_code: int = None):
        super().__init__(message)
        self.close_code = close_code


class AdapterError(Exception):
    """Failure talking to an external service (details, risk check, swap)."""

    def __init__(self, service: str, message: str, status: int = None):
        super().__init__(f"{service}: {message}")
        self.status = status
