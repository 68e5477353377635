"""Wrapper around py-clob-client for authenticated Polymarket order placement."""
import logging

from eth_account import Account
from py_clob_client.client import ClobClient
from py_clob_client.clob_types import OrderArgs, OrderType, PartialCreateOrderOptions
from py_clob_client.order_builder.constants import BUY, SELL

logger = logging.getLogger(__name__)

CLOB_HOST = "https://clob.polymarket.com"
# 0 = EOA: the wallet signs and funds its own orders
EOA_SIGNATURE_TYPE = 0


class PolymarketClient:
    """Authenticated CLOB client. Calls are blocking; run them in a thread from async code."""

    def __init__(self, private_key: str, chain_id: int = 137):
        if not private_key:
            raise ValueError("POLYMARKET_PRIVATE_KEY is required to place bets")

        self.chain_id = chain_id
        self.account = Account.from_key(private_key)
        self.address = self.account.address

        self.client = ClobClient(
            host=CLOB_HOST,
            key=private_key,
            chain_id=chain_id,
            signature_type=EOA_SIGNATURE_TYPE,
            funder=self.address,
        )
        self.client.set_api_creds(self.client.create_or_derive_api_creds())

        logger.info(
            "Polymarket client initialized",
            extra={"address": self.address, "chain_id": chain_id},
        )

    def place_bet(self, token_id: str, price: float, size: float, side: str = "BUY") -> dict:
        """Create and post a GTC limit order for `size` shares at `price`.

        Exchange rejections propagate to the caller.
        """
        side = side.upper()
        if side not in (BUY, SELL):
            raise ValueError(f"side must be BUY or SELL, got {side!r}")

        options = PartialCreateOrderOptions(
            tick_size=self.client.get_tick_size(token_id),
            neg_risk=self.client.get_neg_risk(token_id),
        )
        order_args = OrderArgs(
            price=price,
            size=size,
            side=side,
            token_id=token_id,
        )
        signed_order = self.client.create_order(order_args, options)
        resp = self.client.post_order(signed_order, OrderType.GTC)

        logger.info(
            "Order posted",
            extra={
                "token_id": token_id,
                "side": side,
                "price": price,
                "size": size,
                "response": str(resp)[:200],
            },
        )
        return resp
