from eth_account import Account
from eth_account.messages import encode_defunct
from klaim.services.wallet_auth import build_login_message


def sign_login(account, nonce: str) -> str:
    signed = account.sign_message(encode_defunct(text=build_login_message(nonce)))
    return "0x" + signed.signature.hex().removeprefix("0x")


async def login(client, account=None):
    """Run the full nonce/sign/verify handshake and return (account, token)."""
    account = account or Account.create()
    r = await client.post("/api/auth/nonce", json={"walletAddress": account.address})
    assert r.status_code == 200, r.text
    r = await client.post("/api/auth/verify", json={
        "walletAddress": account.address,
        "signature": sign_login(account, r.json()["nonce"]),
    })
    assert r.status_code == 200, r.text
    return account, r.json()["token"]
