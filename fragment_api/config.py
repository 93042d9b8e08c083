import os
from dataclasses import dataclass, field
from dotenv import load_dotenv
from .exceptions import ConfigError

# Load environment variables from .env file
load_dotenv()


@dataclass
class Config:

    # Default credentials, used when a call does not pass its own
    seed: str = field(default_factory=lambda: os.getenv('FRAGMENT_SEED', ''))
    cookies: str = field(default_factory=lambda: os.getenv('FRAGMENT_COOKIES', ''))
    auth_key: str = field(default_factory=lambda: os.getenv('FRAGMENT_AUTH_KEY', ''))
    wallet_type: str = field(default_factory=lambda: os.getenv('FRAGMENT_WALLET_TYPE', 'v4r2'))

    # "base64" for the v2 API, "raw" for integrations that expect verbatim secrets
    credential_encoding: str = field(default_factory=lambda: os.getenv('FRAGMENT_CREDENTIAL_ENCODING', 'base64').lower())

    # Transport
    api_base_url: str = field(default_factory=lambda: os.getenv('FRAGMENT_API_BASE_URL', 'https://api.fragment-api.net'))
    request_timeout: float = field(default_factory=lambda: float(os.getenv('REQUEST_TIMEOUT', '30')))

    # Create/pay retry settings
    create_max_attempts: int = field(default_factory=lambda: int(os.getenv('CREATE_MAX_ATTEMPTS', '5')))
    pay_max_attempts: int = field(default_factory=lambda: int(os.getenv('PAY_MAX_ATTEMPTS', '5')))
    retry_base_delay: float = field(default_factory=lambda: float(os.getenv('RETRY_BASE_DELAY', '1.0')))  # seconds, multiplied by attempt number

    # Reconciliation: "timed" polls for a wall-clock window, "fixed" polls a set number of times
    reconcile_mode: str = field(default_factory=lambda: os.getenv('RECONCILE_MODE', 'timed').lower())
    check_attempts: int = field(default_factory=lambda: int(os.getenv('CHECK_ATTEMPTS', '5')))
    check_interval: float = field(default_factory=lambda: float(os.getenv('CHECK_INTERVAL', '1.0')))
    reconcile_window: float = field(default_factory=lambda: float(os.getenv('RECONCILE_WINDOW', '120')))  # 2 minutes
    reconcile_interval: float = field(default_factory=lambda: float(os.getenv('RECONCILE_INTERVAL', '15')))

    # Auth key issuance
    auth_max_attempts: int = field(default_factory=lambda: int(os.getenv('AUTH_MAX_ATTEMPTS', '3')))
    auth_base_delay: float = field(default_factory=lambda: float(os.getenv('AUTH_BASE_DELAY', '0.5')))

    log_level: str = field(default_factory=lambda: os.getenv('LOG_LEVEL', 'INFO').upper())

    def reload_env(self) -> bool:
        """Reload credentials from .env file"""
        load_dotenv(override=True)

        changed = False
        for attr, key in (('seed', 'FRAGMENT_SEED'), ('cookies', 'FRAGMENT_COOKIES'), ('auth_key', 'FRAGMENT_AUTH_KEY')):
            value = os.getenv(key, '')
            if value and value != getattr(self, attr):
                setattr(self, attr, value)
                changed = True
        return changed


    def validate(self):
        """Validate configuration values"""
        if not self.api_base_url:
            raise ConfigError("FRAGMENT_API_BASE_URL must not be empty")

        if self.credential_encoding not in ('base64', 'raw'):
            raise ConfigError(
                f"Invalid FRAGMENT_CREDENTIAL_ENCODING '{self.credential_encoding}'. Must be one of: base64, raw"
            )

        if self.reconcile_mode not in ('timed', 'fixed'):
            raise ConfigError(f"Invalid RECONCILE_MODE '{self.reconcile_mode}'. Must be one of: timed, fixed")

        if self.wallet_type not in ('v4r2', 'v5r1'):
            raise ConfigError(f"Invalid FRAGMENT_WALLET_TYPE '{self.wallet_type}'. Must be one of: v4r2, v5r1")

        for name in ('create_max_attempts', 'pay_max_attempts', 'check_attempts', 'auth_max_attempts'):
            if getattr(self, name) < 1:
                raise ConfigError(f"{name.upper()} must be at least 1")

        for name in ('retry_base_delay', 'check_interval', 'reconcile_interval', 'auth_base_delay'):
            if getattr(self, name) < 0:
                raise ConfigError(f"{name.upper()} must not be negative")

        if self.reconcile_window <= 0:
            raise ConfigError("RECONCILE_WINDOW must be positive")

        if self.request_timeout <= 0:
            raise ConfigError("REQUEST_TIMEOUT must be positive")


settings = Config()
