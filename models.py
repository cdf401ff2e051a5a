"""Data shapes shared by the services and the client-side state managers."""

from dataclasses import asdict, dataclass
from typing import Optional

ROLES = ("admin", "user")


@dataclass
class Product:
    """A catalog item, or the snapshot of one embedded in a cart entry."""

    id: str
    name: str
    price: float
    description: str = ""
    image: Optional[str] = None
    category: Optional[str] = None
    rating: Optional[float] = None
    stock: Optional[int] = None
    featured: bool = False

    @classmethod
    def from_dict(cls, data: dict) -> "Product":
        """Build from a stored record; unknown keys are ignored."""
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", "")),
            price=float(data.get("price", 0)),
            description=data.get("description") or "",
            image=data.get("image"),
            category=data.get("category"),
            rating=data.get("rating"),
            stock=data.get("stock"),
            featured=bool(data.get("featured", False)),
        )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class CartEntry:
    product: Product
    quantity: int = 1

    @property
    def line_total(self) -> float:
        return self.product.price * self.quantity

    def to_dict(self) -> dict:
        return {"product": self.product.to_dict(), "quantity": self.quantity}

    @classmethod
    def from_dict(cls, data: dict) -> "CartEntry":
        quantity = int(data["quantity"])
        if quantity < 1:
            raise ValueError(f"stored quantity {quantity} is not positive")
        return cls(product=Product.from_dict(data["product"]), quantity=quantity)


@dataclass
class Identity:
    """The authenticated account as remembered by the session."""

    id: str
    name: str
    email: str
    role: str = "user"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    @classmethod
    def from_dict(cls, data: dict) -> "Identity":
        role = data.get("role")
        if role not in ROLES:
            raise ValueError(f"unknown role {role!r}")
        return cls(id=str(data["id"]), name=str(data.get("name", "")),
                   email=str(data["email"]), role=role)

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "email": self.email, "role": self.role}


def strip_password(user: dict) -> dict:
    """Copy of a user record without its credential."""
    return {k: v for k, v in user.items() if k != "password"}
