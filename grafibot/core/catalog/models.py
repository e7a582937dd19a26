"""
Catalog models: raw inventory rows and consolidated products.
"""

from dataclasses import dataclass, field

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

ACTIVE_STATUS = 1


class RawProduct(BaseModel):
    """Single warehouse-scoped row returned by the inventory API."""

    model_config = ConfigDict(
        populate_by_name=True,
        extra="ignore",
        coerce_numbers_to_str=True,
    )

    product_id: int = Field(alias="ID_Producto")
    name: str = Field(alias="Producto")
    code: str = Field(alias="Codigo_Producto")
    price: float = Field(alias="Precio_Venta")
    stock: int = Field(default=0, alias="Existencias")
    status: int = Field(default=0, alias="Estado_Producto")
    warehouse: str = Field(
        default="",
        validation_alias=AliasChoices("Almacen", "ID_Almacen", "warehouse"),
    )


@dataclass
class ConsolidatedProduct:
    """One logical product aggregated across warehouses."""
    product_id: int
    name: str
    code: str
    price: float
    total_stock: int
    status: int = ACTIVE_STATUS
    warehouses: list[str] = field(default_factory=list)

    @property
    def is_available(self) -> bool:
        """In stock and active."""
        return self.total_stock > 0 and self.status == ACTIVE_STATUS

    def search_text(self) -> str:
        """Text representation used for the embedding."""
        warehouses = ", ".join(self.warehouses) if self.warehouses else "sin almacén"
        return (
            f"Producto: {self.name}, Código: {self.code}, Precio: {self.price:.2f}, "
            f"Existencias: {self.total_stock}, Almacenes: {warehouses}"
        )

    def to_payload(self) -> dict:
        """Convert to the dictionary exchanged with the agent."""
        return {
            "ID_Producto": self.product_id,
            "Producto": self.name,
            "Codigo_Producto": self.code,
            "Precio_Venta": self.price,
            "Existencias_Total": self.total_stock,
            "Estado_Producto": self.status,
            "Almacenes_Disponibles": list(self.warehouses),
        }
