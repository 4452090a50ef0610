"""
Explorer Source Verification

Submits deployed contracts to an Etherscan-compatible API and polls until
the explorer reports a result. Explorers index new contracts with some lag,
so each verification waits `delay` seconds before submitting.

Sources are submitted as a solc standard JSON input (the `input` the
compiler was run with), together with the exact compiler version.
"""

import asyncio
import json
from pathlib import Path
from typing import Any, Dict, Optional, Union

import httpx

from ..constants import VERIFY_DELAY, VERIFY_POLL_ATTEMPTS, VERIFY_POLL_INTERVAL
from ..exceptions import VerificationError
from ..logger import get_logger

logger = get_logger(__name__)

VERIFIED = "Pass - Verified"
PENDING = "Pending in queue"
ALREADY_VERIFIED = "Already Verified"


def load_standard_json(path: Union[str, Path]) -> Dict[str, Any]:
    """Read a solc standard JSON input file; it must carry a `sources` table."""
    path = Path(path)
    try:
        with open(path) as f:
            data = json.load(f)
    except FileNotFoundError:
        raise VerificationError(f"Standard JSON input not found: {path}") from None
    except json.JSONDecodeError as e:
        raise VerificationError(f"Standard JSON input {path} is not valid JSON: {e}") from e

    if not isinstance(data, dict) or not data.get("sources"):
        raise VerificationError(f"Standard JSON input {path} has no sources")
    return data


class ExplorerVerifier:
    """
    Etherscan v2 API client for `verifysourcecode` / `checkverifystatus`.

    Args:
        api_url: explorer API endpoint
        api_key: explorer API key (from BEAMDAO_EXPLORER_API_KEY)
        chain_id: chain id passed as `chainid`
        sources: solc standard JSON input the contracts were compiled from
        compiler_version: solc version string, e.g. "v0.8.19+commit.7dd6d404"
        delay: seconds to wait before submitting
        client: optional pre-built AsyncClient (shared, or a mock transport)
    """

    def __init__(
        self,
        api_url: str,
        api_key: str,
        chain_id: int,
        sources: Dict[str, Any],
        compiler_version: str,
        delay: float = VERIFY_DELAY,
        poll_attempts: int = VERIFY_POLL_ATTEMPTS,
        poll_interval: float = VERIFY_POLL_INTERVAL,
        client: Optional[httpx.AsyncClient] = None,
    ):
        if not api_key:
            raise VerificationError("Explorer API key is not set")
        if not sources or not sources.get("sources"):
            raise VerificationError("No standard JSON input to verify against")
        if not compiler_version:
            raise VerificationError("Compiler version is not set")
        self.api_url = api_url
        self.api_key = api_key
        self.chain_id = chain_id
        self.delay = delay
        self.poll_attempts = poll_attempts
        self.poll_interval = poll_interval
        self.sources = sources
        self.compiler_version = compiler_version
        self._client = client

    @classmethod
    def from_config(cls, config, client: Optional[httpx.AsyncClient] = None) -> "ExplorerVerifier":
        """Build from an `ExplorerConfig`, reading its standard JSON input file."""
        if not config.standard_json:
            raise VerificationError("explorer.standard_json is not set")
        return cls(
            api_url=config.api_url,
            api_key=config.api_key,
            chain_id=config.chain_id,
            sources=load_standard_json(config.standard_json),
            compiler_version=config.compiler_version,
            delay=config.verify_delay,
            client=client,
        )

    async def _request(self, method: str, **kwargs) -> Dict[str, Any]:
        client = self._client or httpx.AsyncClient(timeout=30.0)
        try:
            response = await client.request(method, self.api_url, **kwargs)
            response.raise_for_status()
            return response.json()
        except httpx.RequestError as e:
            raise VerificationError(f"Explorer unreachable: {e}") from e
        except (json.JSONDecodeError, httpx.HTTPStatusError) as e:
            raise VerificationError(f"Explorer returned an invalid response: {e}") from e
        finally:
            if self._client is None:
                await client.aclose()

    def qualified_name(self, contract_name: str) -> str:
        """`path/To.sol:Name` for the source file declaring `contract_name`."""
        if ":" in contract_name:
            return contract_name
        for source_path in self.sources["sources"]:
            if Path(source_path).stem == contract_name:
                return f"{source_path}:{contract_name}"
        raise VerificationError(f"No source file for {contract_name} in the standard JSON input")

    async def is_verified(self, address: str) -> bool:
        result = await self._request("GET", params={
            "chainid": self.chain_id,
            "apikey": self.api_key,
            "module": "contract",
            "action": "getabi",
            "address": address,
        })
        return result.get("status") == "1"

    async def verify(self, address: str, contract_name: str, constructor_args: bytes = b"") -> str:
        """
        Verify `address` as `contract_name`.

        Returns the explorer's final status string.

        Raises:
            VerificationError: submission rejected, verification failed or
                the explorer never left the pending state
        """
        logger.info(f"Verifying {contract_name} at {address}, can take some time")
        await asyncio.sleep(self.delay)

        qualified_name = self.qualified_name(contract_name)

        if await self.is_verified(address):
            logger.info(f"{contract_name} at {address} is already verified")
            return ALREADY_VERIFIED

        submission = await self._request("POST", params={"chainid": self.chain_id}, data={
            "apikey": self.api_key,
            "module": "contract",
            "action": "verifysourcecode",
            "contractaddress": address,
            "sourceCode": json.dumps(self.sources),
            "codeformat": "solidity-standard-json-input",
            "contractname": qualified_name,
            "compilerversion": self.compiler_version,
            "constructorArguements": constructor_args.hex(),
        })
        if submission.get("status") != "1":
            raise VerificationError(
                f"Verification submission for {contract_name} failed: {submission.get('result')}"
            )

        guid = submission["result"]
        logger.debug(f"Verification submitted for {address}, GUID {guid}")

        for _ in range(self.poll_attempts):
            await asyncio.sleep(self.poll_interval)
            status = await self._request("GET", params={
                "chainid": self.chain_id,
                "apikey": self.api_key,
                "module": "contract",
                "action": "checkverifystatus",
                "guid": guid,
            })
            outcome = status.get("result")
            if outcome == VERIFIED:
                logger.info(f"{contract_name} verified successfully")
                return outcome
            if outcome != PENDING:
                raise VerificationError(f"Verification of {contract_name} failed: {outcome}")

        raise VerificationError(f"Verification of {contract_name} timed out")
