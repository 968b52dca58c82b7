from __future__ import annotations


class DomainError(Exception):
    """Base class for all domain-layer exceptions.

    Carries HTTP-mapping metadata so the presentation layer can produce
    RFC 9457 Problem Details without knowing exception internals.
    """

    def __init__(
        self,
        detail: str = "",
        *,
        title: str = "Domain Error",
        status_code: int = 400,
        error_type: str = "about:blank",
    ) -> None:
        super().__init__(detail)
        self.detail = detail
        self.title = title
        self.status_code = status_code
        self.error_type = error_type


class ContractValidationError(DomainError):
    def __init__(self, reason: str = "") -> None:
        self.reason = reason
        super().__init__(
            detail=f"Contract validation failed: {reason}",
            title="Invalid Contract",
            status_code=400,
            error_type="https://api.contracts.example/problems/contract-validation",
        )


class InvalidBillingMonthError(DomainError):
    def __init__(self, value: str = "") -> None:
        self.value = value
        super().__init__(
            detail=f"Invalid billing month: {value!r} (expected YYYY-MM)",
            title="Invalid Billing Month",
            status_code=400,
            error_type="https://api.contracts.example/problems/invalid-billing-month",
        )


class ContractNotFoundError(DomainError):
    def __init__(self, contract_id: str = "") -> None:
        self.contract_id = contract_id
        super().__init__(
            detail=f"Contract not found: {contract_id}",
            title="Contract Not Found",
            status_code=404,
            error_type="https://api.contracts.example/problems/contract-not-found",
        )


class AcceleratorNotFoundError(DomainError):
    def __init__(self, accelerator_id: str = "") -> None:
        self.accelerator_id = accelerator_id
        super().__init__(
            detail=f"Accelerator not found: {accelerator_id}",
            title="Accelerator Not Found",
            status_code=404,
            error_type="https://api.contracts.example/problems/accelerator-not-found",
        )


class TierNotFoundError(DomainError):
    def __init__(self, tier: str = "") -> None:
        self.tier = tier
        super().__init__(
            detail=f"Tier not found: {tier}",
            title="Tier Not Found",
            status_code=404,
            error_type="https://api.contracts.example/problems/tier-not-found",
        )


class ContractIntegrityError(DomainError):
    def __init__(self, contract_id: str = "", reason: str = "") -> None:
        self.contract_id = contract_id
        self.reason = reason
        super().__init__(
            detail=f"Contract {contract_id} is inconsistent: {reason}",
            title="Contract Data Integrity Error",
            status_code=500,
            error_type="https://api.contracts.example/problems/contract-integrity",
        )
