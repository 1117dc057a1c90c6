"""Key derivation via cosmpy and encrypted keystore management via eth-account.

The keystore file wraps a Web3 Secret Storage (v3) document, which is
chain-agnostic for 32-byte secp256k1 keys, together with the bech32
address so the address can be read without the password.
"""

from __future__ import annotations

import json
from pathlib import Path

from cosmpy.aerial.wallet import LocalWallet
from cosmpy.crypto.keypairs import PrivateKey
from eth_account import Account

from agent_cosmos_ai.wallet.address import convert_prefix

KEYSTORE_FILE = "keystore.json"


def wallet_from_mnemonic(mnemonic: str, prefix: str) -> LocalWallet:
    """Derive the first BIP-44 account (``m/44'/118'/0'/0/0``) from a mnemonic."""
    return LocalWallet.from_mnemonic(" ".join(mnemonic.split()), prefix=prefix)


def wallet_from_private_key(key: bytes, prefix: str) -> LocalWallet:
    return LocalWallet(PrivateKey(bytes(key)), prefix=prefix)


def create_wallet(
    wallet_dir: Path,
    password: str,
    prefix: str,
    mnemonic: str | None = None,
    *,
    kdf: str | None = None,
    iterations: int | None = None,
) -> str:
    """Save an encrypted keystore for a new or imported key.

    Parameters
    ----------
    wallet_dir:
        Directory where ``keystore.json`` will be written.
    password:
        Password used to encrypt the private key.
    prefix:
        Bech32 prefix of the address recorded in the file.
    mnemonic:
        Import this mnemonic instead of generating a fresh key.

    Returns
    -------
    str
        The bech32 address of the wallet.

    Raises
    ------
    FileExistsError
        If a keystore already exists in *wallet_dir*.
    """
    keystore_path = wallet_dir / KEYSTORE_FILE
    if keystore_path.exists():
        raise FileExistsError(
            f"Wallet already exists at {keystore_path}. "
            "Delete it first if you want to create a new one."
        )

    if mnemonic:
        wallet = wallet_from_mnemonic(mnemonic, prefix)
    else:
        wallet = LocalWallet.generate(prefix=prefix)

    address = str(wallet.address())
    encrypted = Account.encrypt(
        wallet.signer().private_key_bytes, password, kdf=kdf, iterations=iterations
    )
    document = {"address": address, "prefix": prefix, "keystore": encrypted}

    wallet_dir.mkdir(parents=True, exist_ok=True)
    keystore_path.write_text(json.dumps(document, indent=2), encoding="utf-8")
    return address


def load_address(wallet_dir: Path, prefix: str | None = None) -> str | None:
    """Read the wallet address from a keystore file without decrypting.

    Returns ``None`` if no keystore file exists.
    """
    keystore_path = wallet_dir / KEYSTORE_FILE
    if not keystore_path.exists():
        return None

    data = json.loads(keystore_path.read_text(encoding="utf-8"))
    address = data.get("address", "")
    if not address:
        return None
    return convert_prefix(address, prefix) if prefix else address


def decrypt_key(wallet_dir: Path, password: str) -> bytes:
    """Decrypt the private key from the keystore.

    Returns
    -------
    bytes
        The raw 32-byte private key.

    Raises
    ------
    FileNotFoundError
        If no keystore file exists.
    ValueError
        If the password is incorrect.
    """
    keystore_path = wallet_dir / KEYSTORE_FILE
    if not keystore_path.exists():
        raise FileNotFoundError(f"No keystore found at {keystore_path}")

    data = json.loads(keystore_path.read_text(encoding="utf-8"))
    try:
        return bytes(Account.decrypt(data["keystore"], password))
    except Exception as exc:
        raise ValueError(f"Failed to decrypt keystore: {exc}") from exc
