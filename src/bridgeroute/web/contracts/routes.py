"""Bridge route request and response contracts."""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from web3 import Web3

HEX_ADDRESS_PATTERN = r"^0x[a-fA-F0-9]{40}$"


class BridgeRouteRequest(BaseModel):
    """Request for the cheapest routes funding a target chain."""

    model_config = ConfigDict(populate_by_name=True)

    target_chain: str = Field(..., alias="targetChain", description="Chain to fund (e.g., polygon)")
    amount: Decimal = Field(..., gt=0, description="Amount required on the target chain")
    token_address: str = Field(
        ..., alias="tokenAddress", pattern=HEX_ADDRESS_PATTERN, description="Token contract address"
    )
    user_address: str = Field(
        ..., alias="userAddress", pattern=HEX_ADDRESS_PATTERN, description="Owner wallet address"
    )

    @field_validator("target_chain")
    @classmethod
    def normalize_target_chain(cls, v: str) -> str:
        # Unsupported chains are rejected by RouteService (UNSUPPORTED_CHAIN)
        return v.strip().lower()

    @field_validator("token_address", "user_address")
    @classmethod
    def validate_address(cls, v: str) -> str:
        if not Web3.is_address(v):
            raise ValueError(f"Invalid address checksum: {v}")
        return v


class BridgeRouteModel(BaseModel):
    """A single planned bridge transfer."""

    sourceChain: str
    amount: float
    fee: float
    estimatedTime: int = Field(..., description="Seconds")
    protocol: str
    gasToken: str
    sourceBalance: float


class RouteResponseModel(BaseModel):
    """Aggregate route plan."""

    routes: list[BridgeRouteModel] = Field(default_factory=list)
    totalFee: float
    totalAmount: float
    estimatedTotalTime: int
    availableBalance: float
    requiredAmount: float
    insufficientFunds: bool
    noValidRoutes: bool
    targetChain: Optional[str] = None
    shortfall: float


class RouteEnvelope(BaseModel):
    """Response wrapper for the route endpoint."""

    success: bool = Field(..., description="Whether the requirement can be met")
    data: Optional[RouteResponseModel] = None
    error: Optional[str] = Field(None, description="Error message if not successful")
    code: Optional[str] = Field(None, description="Error code (VALIDATION_ERROR, EXECUTION_ERROR, ...)")
