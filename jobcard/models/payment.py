from pydantic import BaseModel, ConfigDict, Field, model_validator
from typing import Optional
from decimal import Decimal
from uuid import UUID, uuid4


class PaymentType(BaseModel):
    """Entrée du catalogue des moyens de paiement (clés camelCase du fichier source)."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    code: Optional[str] = Field(default=None, alias="cd")
    name: Optional[str] = None
    location_code: Optional[str] = Field(default=None, alias="locationCd")
    account_code: Optional[str] = Field(default=None, alias="accountCode")
    gl_code: Optional[str] = Field(default=None, alias="glCode")
    txn_code: Optional[str] = Field(default=None, alias="txnCode")
    generated_id: Optional[str] = Field(default=None, exclude=True)

    @model_validator(mode="before")
    @classmethod
    def _assign_generated_id(cls, data):
        # Identifiant de secours uniquement quand le code est absent
        if isinstance(data, dict) and not (data.get("cd") or data.get("code")):
            if not data.get("generated_id"):
                data = {**data, "generated_id": uuid4().hex}
        return data

    @property
    def identifier(self) -> str:
        return self.code or self.generated_id


class Payment(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    payment_type: PaymentType
    amount: Decimal = Decimal("0")
    foreign_amount: Optional[Decimal] = None
    exchange_rate: Optional[Decimal] = None
    currency: Optional[str] = None

    @model_validator(mode="after")
    def _convert_foreign_amount(self):
        # Le montant en devise de règlement découle toujours du couple devise/taux
        if self.foreign_amount is not None and self.exchange_rate is not None:
            self.amount = self.foreign_amount * self.exchange_rate
        return self
