"""Paper mode — simulated signer and static wallet directory."""

from arbcore.paper.signer import PaperSigner, SubmissionRecord, check_bracket
from arbcore.paper.wallets import StaticWalletDirectory

__all__ = [
    "PaperSigner",
    "StaticWalletDirectory",
    "SubmissionRecord",
    "check_bracket",
]
