"""Product snapshot — the read model the catalogue hands to the commerce core.

Pricing and checkout work on snapshots passed in by the catalogue
collaborator, never on live references. An order line copies the fields it
needs at checkout time, which is what keeps order prices frozen.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from inventory.stock.record import InventoryRecord


class ProductStatus(Enum):
    ACTIVE = "active"
    DRAFT = "draft"
    ARCHIVED = "archived"


class ProductSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    image: str = ""
    price: float = Field(ge=0.0)
    status: ProductStatus = ProductStatus.ACTIVE
    # Keyed by variant signature ("Size=M")
    variant_adjustments: dict[str, float] = Field(default_factory=dict)
    inventory: InventoryRecord = Field(default_factory=InventoryRecord)

    @property
    def is_active(self) -> bool:
        return self.status == ProductStatus.ACTIVE

    def adjustment_for(self, signature: str, fallback: float = 0.0) -> float:
        """Price adjustment for a variant, preferring the catalogue's own figure."""
        if not signature:
            return 0.0
        return self.variant_adjustments.get(signature, fallback)

    def with_inventory(self, inventory: InventoryRecord) -> "ProductSnapshot":
        return self.model_copy(update={"inventory": inventory})
