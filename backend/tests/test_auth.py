import asyncio
import pytest
from unittest.mock import AsyncMock, patch
from eth_account import Account
from sqlalchemy import select, func
from sqlalchemy.exc import OperationalError
from klaim.models.user import User
from klaim.services.wallet_auth import build_login_message
from helpers import sign_login, login

ADDRESS = "0x742d35Cc6634C0532925a3b844Bc9e7595f2bD18"


async def _user(SessionLocal, wallet):
    async with SessionLocal() as db:
        return await db.scalar(select(User).where(User.wallet_address == wallet.lower()))


@pytest.mark.asyncio
async def test_nonce_returns_200(test_db, client):
    r = await client.post("/api/auth/nonce", json={"walletAddress": ADDRESS})
    assert r.status_code == 200
    nonce = r.json()["nonce"]
    assert len(nonce) == 32
    int(nonce, 16)


@pytest.mark.asyncio
async def test_nonce_creates_user_with_placeholder_profile(test_db, client):
    r = await client.post("/api/auth/nonce", json={"walletAddress": ADDRESS})
    user = await _user(test_db, ADDRESS)
    assert user.wallet_address == ADDRESS.lower()
    assert user.nonce == r.json()["nonce"]
    assert user.profile_name == "Klaim User"


@pytest.mark.asyncio
async def test_nonce_upsert_is_case_insensitive(test_db, client):
    r1 = await client.post("/api/auth/nonce", json={"walletAddress": ADDRESS})
    r2 = await client.post("/api/auth/nonce", json={"walletAddress": ADDRESS.lower()})
    r3 = await client.get(f"/api/auth/nonce/{ADDRESS.upper().replace('0X', '0x')}")
    nonces = [r.json()["nonce"] for r in (r1, r2, r3)]
    assert len(set(nonces)) == 3

    async with test_db() as db:
        count = await db.scalar(select(func.count()).select_from(User))
    assert count == 1
    assert (await _user(test_db, ADDRESS)).nonce == nonces[-1]


@pytest.mark.asyncio
@pytest.mark.parametrize("wallet", ["", "0x123", "742d35Cc6634C0532925a3b844Bc9e7595f2bD18", "0x" + "g" * 40])
async def test_nonce_rejects_malformed_address(test_db, client, wallet):
    r = await client.post("/api/auth/nonce", json={"walletAddress": wallet})
    assert r.status_code == 422


@pytest.mark.asyncio
async def test_verify_round_trip_then_replay_rejected(test_db, client):
    acct = Account.create()
    r = await client.post("/api/auth/nonce", json={"walletAddress": acct.address})
    signature = sign_login(acct, r.json()["nonce"])

    r = await client.post("/api/auth/verify", json={"walletAddress": acct.address, "signature": signature})
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["token"]
    assert body["token_type"] == "bearer"
    assert body["wallet_address"] == acct.address.lower()

    r = await client.post("/api/auth/verify", json={"walletAddress": acct.address, "signature": signature})
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_login_alias_accepts_original_body_shape(test_db, client):
    acct = Account.create()
    r = await client.get(f"/api/auth/nonce/{acct.address}")
    signed = sign_login(acct, r.json()["nonce"])
    r = await client.post("/api/auth/login", json={"wallet": acct.address, "signature": signed})
    assert r.status_code == 200, r.text


@pytest.mark.asyncio
async def test_success_rotates_nonce(test_db, client):
    acct = Account.create()
    r = await client.post("/api/auth/nonce", json={"walletAddress": acct.address})
    issued = r.json()["nonce"]
    await client.post("/api/auth/verify", json={
        "walletAddress": acct.address, "signature": sign_login(acct, issued),
    })
    user = await _user(test_db, acct.address)
    assert user.nonce != issued


@pytest.mark.asyncio
async def test_mismatched_signer_rejected_without_rotation(test_db, client):
    owner, attacker = Account.create(), Account.create()
    r = await client.post("/api/auth/nonce", json={"walletAddress": owner.address})
    nonce = r.json()["nonce"]

    r = await client.post("/api/auth/verify", json={
        "walletAddress": owner.address, "signature": sign_login(attacker, nonce),
    })
    assert r.status_code == 401
    assert "token" not in r.json()
    assert (await _user(test_db, owner.address)).nonce == nonce

    # The legitimate owner can still use the same nonce.
    r = await client.post("/api/auth/verify", json={
        "walletAddress": owner.address, "signature": sign_login(owner, nonce),
    })
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_address_match_is_case_insensitive(test_db, client):
    acct = Account.create()
    r = await client.post("/api/auth/nonce", json={"walletAddress": acct.address.lower()})
    r = await client.post("/api/auth/verify", json={
        "walletAddress": acct.address,  # checksummed, mixed case
        "signature": sign_login(acct, r.json()["nonce"]),
    })
    assert r.status_code == 200, r.text


@pytest.mark.asyncio
async def test_signature_without_0x_prefix(test_db, client):
    acct = Account.create()
    r = await client.post("/api/auth/nonce", json={"walletAddress": acct.address})
    r = await client.post("/api/auth/verify", json={
        "walletAddress": acct.address,
        "signature": sign_login(acct, r.json()["nonce"]).removeprefix("0x"),
    })
    assert r.status_code == 200, r.text


@pytest.mark.asyncio
async def test_verify_invalid_signature(test_db, client):
    await client.post("/api/auth/nonce", json={"walletAddress": ADDRESS})
    r = await client.post("/api/auth/verify", json={
        "walletAddress": ADDRESS,
        "signature": "0x" + "00" * 65,
    })
    assert r.status_code == 401


@pytest.mark.asyncio
@pytest.mark.parametrize("signature", ["", "0xzz", "0x" + "ab" * 10, "hello"])
async def test_malformed_signature_rejected_before_lookup(test_db, client, signature):
    with patch("klaim.routers.auth.verify_login", new=AsyncMock()) as verify:
        r = await client.post("/api/auth/verify", json={"walletAddress": ADDRESS, "signature": signature})
    assert r.status_code == 422
    verify.assert_not_awaited()


@pytest.mark.asyncio
async def test_verify_unknown_wallet(test_db, client):
    acct = Account.create()
    r = await client.post("/api/auth/verify", json={
        "walletAddress": acct.address, "signature": sign_login(acct, "whatever"),
    })
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_fixed_nonce_scenario(test_db, client):
    nonce = "7ce0eb57f2a94c1d8b3e6a0f5d2c7b19"
    acct = Account.create()
    async with test_db() as db:
        db.add(User(wallet_address=acct.address.lower(), nonce=nonce, profile_name="Klaim User"))
        await db.commit()

    assert build_login_message(nonce) == f"Sign this message to log in: {nonce}"
    signature = sign_login(acct, nonce)

    r = await client.post("/api/auth/verify", json={"walletAddress": acct.address, "signature": signature})
    assert r.status_code == 200
    r = await client.post("/api/auth/verify", json={"walletAddress": acct.address, "signature": signature})
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_concurrent_verification_only_one_wins(file_db, client):
    acct = Account.create()
    r = await client.post("/api/auth/nonce", json={"walletAddress": acct.address})
    payload = {"walletAddress": acct.address, "signature": sign_login(acct, r.json()["nonce"])}

    responses = await asyncio.gather(
        client.post("/api/auth/verify", json=payload),
        client.post("/api/auth/verify", json=payload),
    )
    assert sorted(r.status_code for r in responses) == [200, 401]


@pytest.mark.asyncio
async def test_storage_failure_is_generic_500(test_db, client):
    failure = OperationalError("UPDATE users ...", {}, Exception("connection reset"))
    with patch("klaim.routers.auth.issue_nonce", new=AsyncMock(side_effect=failure)):
        r = await client.post("/api/auth/nonce", json={"walletAddress": ADDRESS})
    assert r.status_code == 500
    assert r.json() == {"detail": "Internal server error"}


@pytest.mark.asyncio
async def test_me_with_valid_token(test_db, client):
    acct, token = await login(client)
    r = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 200
    assert r.json()["wallet_address"] == acct.address.lower()


@pytest.mark.asyncio
async def test_concurrent_first_nonce_requests_create_one_user(file_db, client):
    acct = Account.create()
    responses = await asyncio.gather(*(
        client.post("/api/auth/nonce", json={"walletAddress": acct.address}) for _ in range(4)
    ))
    assert [r.status_code for r in responses] == [200] * 4

    async with file_db() as db:
        count = await db.scalar(select(func.count()).select_from(User))
    assert count == 1
    live = (await _user(file_db, acct.address)).nonce
    assert live in {r.json()["nonce"] for r in responses}


@pytest.mark.asyncio
async def test_nonce_insert_race_falls_back_to_update(test_db, client):
    first = await client.post("/api/auth/nonce", json={"walletAddress": ADDRESS})
    # Lookup misses as if another request inserted the row in between.
    with patch("klaim.services.nonces.get_user_by_wallet", new=AsyncMock(return_value=None)):
        r = await client.post("/api/auth/nonce", json={"walletAddress": ADDRESS.lower()})
    assert r.status_code == 200
    assert r.json()["nonce"] != first.json()["nonce"]

    async with test_db() as db:
        count = await db.scalar(select(func.count()).select_from(User))
    assert count == 1
    assert (await _user(test_db, ADDRESS)).nonce == r.json()["nonce"]
