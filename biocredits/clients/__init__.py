"""
BioCredits — External Service Clients

Credit store backends (in-memory, Redis, smart contract) and the wallet
signer used for decryption challenges.
"""

from biocredits.clients.contract import ContractStore
from biocredits.clients.redis import RedisStore
from biocredits.clients.store import CasStore, CreditStore, MemoryStore, build_store
from biocredits.clients.wallet import Signer, WalletSigner, recover_signer

__all__ = [
    "CasStore",
    "CreditStore",
    "MemoryStore",
    "RedisStore",
    "ContractStore",
    "build_store",
    "Signer",
    "WalletSigner",
    "recover_signer",
]
