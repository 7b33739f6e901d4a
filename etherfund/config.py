"""EtherFund — Central Configuration via Pydantic Settings."""

from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables / .env file."""

    # ── Chain ──
    rpc_url: str = "http://127.0.0.1:8545"
    contract_address: str = ""
    contract_abi_path: Optional[str] = None  # Hardhat/Truffle artifact or raw ABI array
    start_block: int = 0
    sender_address: Optional[str] = None
    signer_private_key: Optional[str] = None
    rpc_timeout_seconds: float = 20.0
    confirmation_timeout_seconds: float = 120.0

    # ── Content Store (IPFS) ──
    ipfs_host: str = "ipfs.infura.io"
    ipfs_port: int = 5001
    ipfs_protocol: str = "https"
    ipfs_project_id: Optional[str] = None
    ipfs_project_secret: Optional[str] = None
    ipfs_auth_token: Optional[str] = None  # Sent verbatim as Authorization header
    ipfs_timeout_seconds: float = 30.0
    content_cache_size: int = 256

    # ── Read Model ──
    update_fetch_concurrency: int = 4
    recent_activity_limit: int = 5
    dashboard_controller_limit: int = 256  # Campaigns whose dashboard state is kept
    explorer_tx_url: str = "https://etherscan.io/tx/"

    # ── App ──
    log_level: str = "INFO"

    @property
    def ipfs_api_url(self) -> str:
        """Base URL of the IPFS HTTP RPC API."""
        return f"{self.ipfs_protocol}://{self.ipfs_host}:{self.ipfs_port}/api/v0"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
