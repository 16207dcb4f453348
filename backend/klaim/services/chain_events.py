"""Reconcile Klaim contract events into the ``assets`` table.

Logs are polled with ``eth_getLogs`` and applied as upserts keyed by on-chain
identifiers (token id, ip id, listing id). Applying an event twice leaves the
row as it was, so a window that failed half way is simply fetched again.
"""
from dataclasses import dataclass, field
from typing import Callable, Optional
import httpx
import structlog
from eth_abi import decode as abi_decode
from eth_utils import keccak
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from klaim.config import settings
from klaim.core.errors import KlaimError, ErrorKind
from klaim.core.redis import get_redis
from klaim.database import AsyncSessionLocal
from klaim.models.asset import Asset

logger = structlog.get_logger(__name__)

CURSOR_KEY = "klaim:events:last_block"

IP_ASSET_CREATED = "IPAssetCreated(address,uint256,address,string,uint256)"
IP_LISTED = "IPListed(bytes32,address,address,uint256)"
IP_SOLD = "IPSold(bytes32,address,address,address,uint256)"


def event_topic(signature: str) -> str:
    return "0x" + keccak(text=signature).hex().removeprefix("0x")


TOPICS = {
    event_topic(IP_ASSET_CREATED): "IPAssetCreated",
    event_topic(IP_LISTED): "IPListed",
    event_topic(IP_SOLD): "IPSold",
}


@dataclass
class ChainEvent:
    name: str
    block_number: int
    log_index: int
    transaction_hash: str
    args: dict = field(default_factory=dict)

    @property
    def position(self) -> tuple[int, int]:
        return (self.block_number, self.log_index)


def _topic_address(topic: str) -> str:
    return "0x" + topic[-40:].lower()


def _hex_int(value) -> int:
    return int(value, 16) if isinstance(value, str) else int(value)


def _data_bytes(data: str) -> bytes:
    return bytes.fromhex(data.removeprefix("0x"))


def decode_log(log: dict) -> Optional[ChainEvent]:
    """Decode a raw JSON-RPC log, or return None if it is not a Klaim event."""
    topics = [t.lower() for t in log.get("topics", [])]
    if not topics or topics[0] not in TOPICS:
        return None
    name = TOPICS[topics[0]]
    data = _data_bytes(log.get("data", "0x"))

    if name == "IPAssetCreated":
        metadata_uri, license_terms_id = abi_decode(["string", "uint256"], data)
        args = {
            "ip_id": _topic_address(topics[1]),
            "token_id": int(topics[2], 16),
            "owner": _topic_address(topics[3]),
            "metadata_uri": metadata_uri,
            "license_terms_id": license_terms_id,
        }
    elif name == "IPListed":
        (price,) = abi_decode(["uint256"], data)
        args = {
            "listing_id": topics[1],
            "seller": _topic_address(topics[2]),
            "ip_id": _topic_address(topics[3]),
            "price": price,
        }
    else:
        # Solidity caps indexed params at three, so a deployed IPSold carries
        # ipId in data even though the published ABI marks it indexed.
        if len(topics) > 4:
            ip_id = _topic_address(topics[4])
            (price,) = abi_decode(["uint256"], data)
        else:
            ip_id, price = abi_decode(["address", "uint256"], data)
            ip_id = ip_id.lower()
        args = {
            "listing_id": topics[1],
            "buyer": _topic_address(topics[2]),
            "seller": _topic_address(topics[3]),
            "ip_id": ip_id,
            "price": price,
        }

    return ChainEvent(
        name=name,
        block_number=_hex_int(log["blockNumber"]),
        log_index=_hex_int(log["logIndex"]),
        transaction_hash=log.get("transactionHash", "").lower(),
        args=args,
    )


# ---------------------------------------------------------------------------
# Idempotent upserts
# ---------------------------------------------------------------------------

async def _find_asset(db: AsyncSession, *conditions) -> Optional[Asset]:
    for condition in conditions:
        asset = await db.scalar(select(Asset).where(condition).limit(1))
        if asset:
            return asset
    return None


async def apply_asset_created(db: AsyncSession, event: ChainEvent) -> Asset:
    a = event.args
    asset = await _find_asset(
        db,
        Asset.token_id == a["token_id"],
        Asset.ip_id == a["ip_id"],
        # Draft uploaded through the API before the mint landed
        (Asset.metadata_uri == a["metadata_uri"]) & Asset.token_id.is_(None) & Asset.ip_id.is_(None),
    )
    if not asset:
        asset = Asset(is_listed=False)
        db.add(asset)

    asset.token_id = a["token_id"]
    asset.ip_id = a["ip_id"]
    asset.metadata_uri = asset.metadata_uri or a["metadata_uri"]
    asset.license_terms_id = a["license_terms_id"]
    asset.transaction_hash = event.transaction_hash
    asset.creator_address = asset.creator_address or a["owner"]
    # A replayed creation must not hand a sold asset back to its creator.
    if asset.current_owner is None:
        asset.current_owner = a["owner"]
    await db.flush()
    return asset


async def apply_listed(db: AsyncSession, event: ChainEvent) -> Asset:
    a = event.args
    asset = await _find_asset(db, Asset.ip_id == a["ip_id"])
    if not asset:
        asset = Asset(ip_id=a["ip_id"], current_owner=a["seller"], is_listed=False)
        db.add(asset)
    elif asset.listing_id == a["listing_id"] and not asset.is_listed:
        # This listing was already sold; replay is a no-op.
        return asset

    asset.is_listed = True
    asset.listing_id = a["listing_id"]
    asset.price = a["price"]
    await db.flush()
    return asset


async def apply_sold(db: AsyncSession, event: ChainEvent) -> Asset:
    a = event.args
    asset = await _find_asset(db, Asset.listing_id == a["listing_id"], Asset.ip_id == a["ip_id"])
    if not asset:
        asset = Asset(ip_id=a["ip_id"])
        db.add(asset)

    asset.listing_id = a["listing_id"]
    asset.is_listed = False
    asset.current_owner = a["buyer"]
    asset.price = a["price"]
    await db.flush()
    return asset


HANDLERS: dict[str, Callable] = {
    "IPAssetCreated": apply_asset_created,
    "IPListed": apply_listed,
    "IPSold": apply_sold,
}


async def apply_event(db: AsyncSession, event: ChainEvent) -> Asset:
    asset = await HANDLERS[event.name](db, event)
    logger.info(
        "chain_event_applied",
        event_name=event.name,
        block=event.block_number,
        log_index=event.log_index,
        asset_id=asset.id,
    )
    return asset


# ---------------------------------------------------------------------------
# JSON-RPC polling
# ---------------------------------------------------------------------------

async def rpc_call(client: httpx.AsyncClient, method: str, params: list):
    resp = await client.post(
        settings.RPC_URL,
        json={"jsonrpc": "2.0", "method": method, "params": params, "id": 1},
    )
    if resp.status_code != 200:
        raise KlaimError(ErrorKind.internal, f"RPC {method} failed with HTTP {resp.status_code}")
    data = resp.json()
    if data.get("error"):
        raise KlaimError(ErrorKind.internal, f"RPC {method} error: {data['error']}")
    return data.get("result")


async def fetch_block_number(client: httpx.AsyncClient) -> int:
    return int(await rpc_call(client, "eth_blockNumber", []), 16)


async def fetch_logs(client: httpx.AsyncClient, addresses: list[str], from_block: int, to_block: int) -> list[dict]:
    result = await rpc_call(client, "eth_getLogs", [{
        "address": addresses,
        "fromBlock": hex(from_block),
        "toBlock": hex(to_block),
        "topics": [list(TOPICS)],
    }])
    return result or []


async def poll_chain_events(session_factory=AsyncSessionLocal) -> int:
    """Apply all new events up to the chain head. Returns the number applied.

    The Redis cursor only advances after a window's changes are committed.
    """
    contracts = settings.watched_contracts
    if not contracts:
        return 0

    redis = await get_redis()
    cursor = await redis.get(CURSOR_KEY)
    from_block = int(cursor) + 1 if cursor is not None else settings.EVENT_START_BLOCK

    applied = 0
    client = httpx.AsyncClient(timeout=30.0)
    try:
        head = await fetch_block_number(client)
        while from_block <= head:
            to_block = min(from_block + settings.EVENT_BLOCK_BATCH - 1, head)
            logs = await fetch_logs(client, contracts, from_block, to_block)
            events = sorted(
                (e for e in map(decode_log, logs) if e is not None),
                key=lambda e: e.position,
            )
            async with session_factory() as db:
                for event in events:
                    await apply_event(db, event)
                await db.commit()
            await redis.set(CURSOR_KEY, to_block)
            applied += len(events)
            from_block = to_block + 1
    finally:
        await client.aclose()

    if applied:
        logger.info("chain_events_synced", applied=applied, last_block=from_block - 1)
    return applied


async def chain_event_job():
    """Scheduler entry point; a failed run is retried on the next tick."""
    try:
        await poll_chain_events()
    except Exception:
        logger.exception("chain_event_poll_failed")
