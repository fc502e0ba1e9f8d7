from soroban_warranty.client import WarrantyTrackerClient
from soroban_warranty.config import ClientConfig, load_config
from soroban_warranty.constants import Method, WarrantyStatus
from soroban_warranty.models import InvocationResult, ResultKind, WarrantyData
from soroban_warranty.pipeline import ContractPipeline
from soroban_warranty.signer import ExternalSigner, KeypairSigner, SignResult

__all__ = [
    "ClientConfig",
    "ContractPipeline",
    "ExternalSigner",
    "InvocationResult",
    "KeypairSigner",
    "Method",
    "ResultKind",
    "SignResult",
    "WarrantyData",
    "WarrantyStatus",
    "WarrantyTrackerClient",
    "load_config",
]
