from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv

load_dotenv()


class Settings(BaseSettings):
    PROJECT_NAME: str = "MEV Shield"
    SERVICE_NAME: str = "mev-shield"  # Reported by the liveness probe

    # Private relays (write cascade candidates, in tie-break order)
    FLASHBOTS_RPC: str = "https://rpc.flashbots.net"
    BLOX_PROTECT: str = ""
    EDEN_RPC: str = ""

    # Read-only upstreams per network
    READ_RPC: str = ""  # mainnet
    SEPOLIA_READ_RPC: str = ""
    GOERLI_READ_RPC: str = ""
    HOLESKY_READ_RPC: str = ""

    # Timeouts
    RELAY_TIMEOUT_SECONDS: float = 3.5  # Per relay attempt
    READ_TIMEOUT_SECONDS: float = 8.0

    # Retention
    STATS_TTL_SECONDS: int = 604800  # 7 days, refreshed on every write
    STATUS_TTL_SECONDS: int = 86400  # 24h

    # Score given to relays with no recorded attempts (0 = try them last)
    UNTRIED_ENDPOINT_SCORE: float = 0.0

    # Key/value backend: "memory" or "sql"
    KV_BACKEND: str = "memory"
    KV_MEMORY_MAXSIZE: int = 10000
    DATABASE_URL: str = "sqlite:///./mev_shield.db"
    KV_PURGE_INTERVAL_SECONDS: int = 3600  # 0 disables the purge loop

    # Error tracking
    SENTRY_DSN: str = ""
    ENVIRONMENT: str = "production"

    model_config = SettingsConfigDict(case_sensitive=True, env_file=".env", extra="ignore")


settings = Settings()
