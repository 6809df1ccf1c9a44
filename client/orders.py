"""
Order submission gateway. Signs limit orders with py_clob_client (EIP-712,
domain-separated by the CTF exchange contract and chain id) and posts them GTC.

Without a private key the gateway is watch-only: it logs the intended order
and reports success without building a client or touching the network.
"""

from __future__ import annotations

import logging

from py_clob_client.client import ClobClient
from py_clob_client.clob_types import OrderArgs, OrderType, PartialCreateOrderOptions
from py_clob_client.order_builder.constants import BUY, SELL

from client.auth import build_clob_client
from config import Config
from scanner.models import OrderRequest, Side

logger = logging.getLogger(__name__)


class OrderGateway:
    """Signs and posts single orders. Rejections are logged, never retried here."""

    def __init__(
        self,
        cfg: Config,
        client: ClobClient | None = None,
        neg_risk: bool = True,
    ) -> None:
        self._tick_size = cfg.order_tick_size
        self._neg_risk = neg_risk
        self._watch_only = cfg.watch_only and client is None
        if self._watch_only:
            self._client = None
            logger.warning("No private key configured. Orders run in WATCH-ONLY mode.")
        else:
            self._client = client if client is not None else build_clob_client(cfg)

    @property
    def watch_only(self) -> bool:
        return self._watch_only

    def submit(self, request: OrderRequest) -> bool:
        """
        Sign and post one GTC limit order. Returns True if the venue accepted it.
        """
        if self._client is None:
            logger.info(
                "[WATCH-ONLY] Would %s token %s: %s @ %s",
                request.side.value, request.token_id, request.size, request.price,
            )
            return True

        try:
            args = OrderArgs(
                token_id=request.token_id,
                price=float(request.price),
                size=float(request.size),
                side=BUY if request.side == Side.BUY else SELL,
            )
            options = PartialCreateOrderOptions(tick_size=self._tick_size, neg_risk=self._neg_risk)
            signed = self._client.create_order(args, options)
            resp = self._client.post_order(signed, OrderType.GTC)
        except Exception as e:
            # py_clob_client raises PolyApiException on non-2xx
            logger.error(
                "[REAL-EXECUTION] Order submission failed for %s %s: %s",
                request.side.value, request.token_id, e,
            )
            return False

        if not isinstance(resp, dict) or not resp.get("success", False):
            error = resp.get("errorMsg", "") if isinstance(resp, dict) else resp
            logger.error(
                "[REAL-EXECUTION] Order rejected for %s %s: %s",
                request.side.value, request.token_id, error,
            )
            return False

        logger.info(
            "[REAL-EXECUTION] Order accepted: %s %s %s @ %s id=%s",
            request.side.value, request.size, request.token_id, request.price,
            resp.get("orderID", resp.get("order_id", "?")),
        )
        return True
