from domain.exceptions.contract_exceptions import (
    AcceleratorNotFoundError,
    ContractIntegrityError,
    ContractNotFoundError,
    ContractValidationError,
    DomainError,
    InvalidBillingMonthError,
    TierNotFoundError,
)

__all__ = [
    "AcceleratorNotFoundError",
    "ContractIntegrityError",
    "ContractNotFoundError",
    "ContractValidationError",
    "DomainError",
    "InvalidBillingMonthError",
    "TierNotFoundError",
]
