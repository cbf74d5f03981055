"""Response models for the anchor's SEP-6 endpoints."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Sep6Model(BaseModel):
    """Base model: tolerate unknown fields, accept field names or aliases."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)


class AssetDetails(Sep6Model):
    enabled: bool = False
    min_amount: Optional[float] = None
    max_amount: Optional[float] = None
    fee_fixed: Optional[float] = None
    fee_percent: Optional[float] = None
    authentication_required: bool = False


class FieldDetails(Sep6Model):
    description: str = ""
    optional: bool = False


class WithdrawTypeDetails(Sep6Model):
    fields: Dict[str, FieldDetails] = Field(default_factory=dict)


class WithdrawDetails(AssetDetails):
    types: Dict[str, WithdrawTypeDetails] = Field(default_factory=dict)


class EndpointDetails(Sep6Model):
    enabled: bool = False
    authentication_required: bool = False


class Features(Sep6Model):
    account_creation: bool = True
    claimable_balances: bool = False


class SupplyComponents(Sep6Model):
    amount: Optional[float] = None
    claimable_balances_amount: Optional[float] = None
    liquidity_pools_amount: Optional[float] = None


class SupplyDetails(Sep6Model):
    circulating_supply: Optional[float] = None
    circulating_supply_components: Optional[SupplyComponents] = None
    hotwallet_reserves: Optional[float] = None
    coldwallet_reserves: Optional[float] = None
    total_reserves: Optional[float] = None


class InfoResponse(Sep6Model):
    deposit: Dict[str, AssetDetails] = Field(default_factory=dict)
    withdraw: Dict[str, WithdrawDetails] = Field(default_factory=dict)
    transaction: EndpointDetails = Field(default_factory=EndpointDetails)
    transactions: EndpointDetails = Field(default_factory=EndpointDetails)
    features: Features = Field(default_factory=Features)
    fee: EndpointDetails = Field(default_factory=EndpointDetails)
    deposit_exchange: EndpointDetails = Field(
        default_factory=EndpointDetails, alias="deposit-exchange"
    )
    withdraw_exchange: EndpointDetails = Field(
        default_factory=EndpointDetails, alias="withdraw-exchange"
    )
    supply: Dict[str, SupplyDetails] = Field(default_factory=dict)


class Transaction(Sep6Model):
    """A deposit/withdrawal as reported by the anchor (also the callback payload)."""

    id: str
    kind: str = ""
    status: str = ""
    more_info_url: Optional[str] = None
    amount_in: Optional[str] = None
    amount_out: Optional[str] = None
    amount_fee: Optional[str] = None
    started_at: Optional[str] = None
    completed_at: Optional[str] = None
    stellar_transaction_id: Optional[str] = None
    external_transaction_id: Optional[str] = None


class TransactionResponse(Sep6Model):
    transaction: Transaction


class TransactionsResponse(Sep6Model):
    transactions: List[Transaction] = Field(default_factory=list)


class FinancialAccountField(Sep6Model):
    value: str
    description: str = ""


class DepositResponse(Sep6Model):
    how: str = ""
    instructions: Dict[str, FinancialAccountField] = Field(default_factory=dict)
    id: Optional[str] = None
    eta: Optional[int] = None
    min_amount: Optional[float] = None
    max_amount: Optional[float] = None
    fee_fixed: Optional[float] = None
    fee_percent: Optional[float] = None
    extra_info: Optional[Dict[str, Any]] = None
