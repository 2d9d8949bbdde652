"""Bundled contract ABIs (CATTV ERC-20 token and the CatFeeder contract)."""

import json
from functools import cache
from pathlib import Path

ABI_DIR = Path(__file__).parent


@cache
def get_contract_abi(contract_name: str) -> list[dict]:
    """Return the ABI stored as ``{contract_name}.json`` next to this module.

    Raises:
        FileNotFoundError: No bundled ABI for ``contract_name``
    """
    abi_path = ABI_DIR / f"{contract_name}.json"
    if not abi_path.exists():
        raise FileNotFoundError(f"No bundled ABI for contract {contract_name!r} ({abi_path})")
    return json.loads(abi_path.read_text())
