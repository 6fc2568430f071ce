"""
ReportSigner — Turns an ABI-encoded payload into a signed Report.

The receiver contract gets `onReport(metadata, report)`. Metadata is
`abi.encodePacked(bytes32 workflowId, bytes10 workflowName, address owner)`;
the signature is an EIP-191 signature over `keccak256(report)`.
"""

from __future__ import annotations

import hashlib

from eth_abi.packed import encode_packed
from eth_account.messages import encode_defunct
from eth_account.signers.local import LocalAccount
from web3 import Web3

from chainpilot.models import Report

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


def workflow_id(workflow_name: str) -> bytes:
    return Web3.keccak(text=workflow_name)


def workflow_name_tag(workflow_name: str) -> bytes:
    """First 10 bytes of sha256(name), as receivers compare it."""
    return hashlib.sha256(workflow_name.encode("utf-8")).digest()[:10]


class ReportSigner:
    """Signs reports for one workflow with the platform's sender key."""

    def __init__(self, workflow_name: str, account: LocalAccount | None = None):
        self.workflow_name = workflow_name
        self._account = account

    @property
    def owner(self) -> str:
        return self._account.address if self._account else ZERO_ADDRESS

    def metadata(self) -> bytes:
        return encode_packed(
            ["bytes32", "bytes10", "address"],
            [workflow_id(self.workflow_name), workflow_name_tag(self.workflow_name), self.owner],
        )

    def sign(self, encoded_payload: bytes) -> Report:
        """
        Produce a Report for `encoded_payload`.

        Without a sender key the report carries no signatures; the write
        step reports that as a FATAL result rather than failing here.
        """
        signatures: list[bytes] = []
        if self._account is not None:
            digest = Web3.keccak(encoded_payload)
            signed = self._account.sign_message(encode_defunct(primitive=digest))
            signatures.append(bytes(signed.signature))
        return Report(
            raw_report=encoded_payload,
            metadata=self.metadata(),
            signatures=signatures,
        )
