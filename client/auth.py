"""
Authentication: wallet setup and API credential derivation for order submission.
"""

from py_clob_client.client import ClobClient
from py_clob_client.clob_types import ApiCreds

from config import Config


def build_clob_client(cfg: Config) -> ClobClient:
    """
    Build an authenticated ClobClient able to sign and post orders.
    Steps:
      1. Create L1 client with private key (EIP-712 order signing)
      2. Derive or create API credentials (L2)
      3. Return fully authenticated client

    Never called in watch-only mode.
    """
    if cfg.watch_only:
        raise ValueError("build_clob_client requires PRIVATE_KEY (watch-only mode has none)")

    client = ClobClient(
        host=cfg.clob_host,
        chain_id=cfg.chain_id,
        key=cfg.private_key,
        signature_type=cfg.signature_type,
        funder=cfg.polymarket_profile_address or None,
    )

    # Derive L2 credentials (creates if first time, derives if already exist)
    creds: ApiCreds = client.create_or_derive_api_creds()
    client.set_api_creds(creds)

    return client
