"""
Chain helpers shared by workflow steps.

  - call_view: encode a view call, eth_call it at a block, decode the result
  - submit_write: sign a report for a payload and deliver it to a receiver
  - require_success: turn a WriteResult into a tx hash or an error
  - address_from_topic: the address packed into an indexed log topic
"""

from __future__ import annotations

from typing import Any, Sequence

from eth_utils import to_checksum_address

from chainpilot.connectors.evm_connector import decode_function_result, encode_function_data
from chainpilot.core.context import WorkflowContext
from chainpilot.errors import ChainPilotError, DecodeError, WriteReportError
from chainpilot.models import EVMConfig, TxStatus, WriteResult

ZERO_HASH = "0x" + "00" * 32


async def call_view(
    ctx: WorkflowContext,
    evm: EVMConfig,
    address: str,
    abi: list[dict],
    fn_name: str,
    args: Sequence[Any] = (),
    *,
    block: str | int = "finalized",
) -> Any:
    """
    Read `fn_name(*args)` from `address` on the chain named by `evm`.

    Reads default to the finalized block.

    Raises:
        NetworkNotFoundError: Unknown chain selector name.
        ContractReadError: The RPC call failed.
        DecodeError: The result could not be decoded.
    """
    client = ctx.evm(evm.chain_selector_name)
    data = encode_function_data(abi, fn_name, args)
    raw = await client.call_contract(address, data, block=block)
    value = decode_function_result(abi, fn_name, raw)
    ctx.logger.debug(
        "contract_read",
        chain=evm.chain_selector_name,
        address=address,
        function=fn_name,
        block=block,
    )
    return value


async def submit_write(
    ctx: WorkflowContext,
    evm: EVMConfig,
    receiver: str,
    encoded_payload: bytes,
) -> WriteResult:
    """
    Sign `encoded_payload` and write it to `receiver` with the configured
    gas limit. Never raises for report or write failures; they come back
    as a FATAL WriteResult.
    """
    client = ctx.evm(evm.chain_selector_name)
    try:
        report = ctx.report(encoded_payload)
    except (ChainPilotError, ValueError) as e:
        ctx.logger.error("report_signing_failed", error=str(e))
        return WriteResult(status=TxStatus.FATAL, error_message=f"report signing failed: {e}")

    result = await client.write_report(receiver, report, gas_limit=evm.gas_limit_int)
    ctx.logger.info(
        "write_report_finished",
        chain=evm.chain_selector_name,
        receiver=receiver,
        status=result.status.value,
        tx_hash=result.tx_hash.hex() if result.tx_hash else None,
    )
    return result


def require_success(result: WriteResult) -> str:
    """
    Hex tx hash of a successful write.

    A success without a hash yields the 32-byte zero hash.

    Raises:
        WriteReportError: The write did not succeed.
    """
    if not result.ok:
        reason = result.error_message or result.status.value
        raise WriteReportError(f"Failed to write report: {reason}", status=result.status.value)
    if not result.tx_hash:
        return ZERO_HASH
    return "0x" + result.tx_hash.hex()


def address_from_topic(topic: bytes) -> str:
    """Checksummed address from the low 20 bytes of a 32-byte topic."""
    if len(topic) != 32:
        raise DecodeError(f"Log topic must be 32 bytes, got {len(topic)}")
    return to_checksum_address(topic[12:])
