from domain.models.contract import (
    BILLABLE_TYPES,
    CLOUD_RESOLD_TYPES,
    BillingSnapshot,
    Consumption,
    Contract,
    ContractBillingMonth,
    ContractFile,
    ContractStatus,
    ContractType,
    PaymentTerm,
    TIERED_TYPES,
    UpdatedBy,
)
from domain.models.support import AssetSupport, BillingAccountSKU, CloudAsset, SupportTier
from domain.models.tier import CustomerTier, PackageType, Tier

__all__ = [
    "BILLABLE_TYPES",
    "CLOUD_RESOLD_TYPES",
    "TIERED_TYPES",
    "AssetSupport",
    "BillingAccountSKU",
    "BillingSnapshot",
    "CloudAsset",
    "Consumption",
    "Contract",
    "ContractBillingMonth",
    "ContractFile",
    "ContractStatus",
    "ContractType",
    "CustomerTier",
    "PackageType",
    "PaymentTerm",
    "SupportTier",
    "Tier",
    "UpdatedBy",
]
