from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class TaxRegime(str, Enum):
    GENERAL = "GENERAL"
    SIMPLIFIED = "SIMPLIFIED"


class RateBucket(BaseModel):
    rate: Decimal
    base: Decimal = Field(default=Decimal("0"))
    tax: Decimal = Field(default=Decimal("0"))


class GeneralRegimeSummary(BaseModel):
    buckets: list[RateBucket] = Field(default_factory=list)
    deductible_tax: Decimal = Field(default=Decimal("0"))
    regularizations_in_favor_of_taxpayer: Decimal = Field(default=Decimal("0"))
    total_favor_state: Decimal = Field(default=Decimal("0"))
    total_favor_taxpayer: Decimal = Field(default=Decimal("0"))
    amount_payable: Decimal = Field(default=Decimal("0"))
    amount_recoverable: Decimal = Field(default=Decimal("0"))

    def bucket(self, rate: Decimal | int | str) -> RateBucket:
        wanted = Decimal(str(rate))
        for b in self.buckets:
            if b.rate == wanted:
                return b
        return RateBucket(rate=wanted)


class SimplifiedRegimeSummary(BaseModel):
    rate: Decimal = Field(default=Decimal("0.07"))
    turnover: Decimal = Field(default=Decimal("0"))
    tax_due: Decimal = Field(default=Decimal("0"))
    exempt_base: Decimal = Field(default=Decimal("0"))
    exempt_tax: Decimal = Field(default=Decimal("0"))
    total_payable: Decimal = Field(default=Decimal("0"))
    document_count: int = 0


class SupplierAnnexRow(BaseModel):
    order: int
    supplier_nif: Optional[str] = None
    supplier_name: str = ""
    annex_type: str  # "FR" or "OT"
    date: date
    document_number: str
    total: Decimal
    base: Decimal
    vat_supported: Decimal
    vat_deductible: Decimal
    vat_deductible_percent: Decimal = Field(default=Decimal("100"))


class RegularizationAnnexRow(BaseModel):
    order: int
    operation: str = "Anulação"
    client_nif: str = "999999999"
    client_name: str = ""
    document_type: str
    date: date
    document_number: str
    total: Decimal
    base: Decimal
    vat: Decimal
    reference_period: str  # YYYY-MM
    destination_field: str = "26"


class Model7Report(BaseModel):
    year: int
    month: int
    regime: TaxRegime
    general: Optional[GeneralRegimeSummary] = None
    simplified: Optional[SimplifiedRegimeSummary] = None
    supplier_annex: list[SupplierAnnexRow] = Field(default_factory=list)
    regularization_annex: list[RegularizationAnnexRow] = Field(default_factory=list)

    # Metadata
    valid_sales_count: int = 0
    valid_purchases_count: int = 0
    regularization_count: int = 0
