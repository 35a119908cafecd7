"""
FamilyHub — Data Models.

Every row belongs to a family (the household tenant). Dates and timestamps
are kept as ISO text exactly as stored; parsing happens in the core helpers,
which tolerate malformed values.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum


class Priority(str, Enum):
    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class QuantityUnit(str, Enum):
    """Known measurement units for shopping items and ingredients.

    Units are persisted as plain text, so a unit outside this menu is kept
    as-is rather than rejected.
    """

    PIECE = "Stk"
    KILOGRAM = "kg"
    GRAM = "g"
    LITRE = "L"
    MILLILITRE = "ml"
    PACK = "Packung"
    BUNCH = "Bund"
    TABLESPOON = "EL"
    TEASPOON = "TL"
    PINCH = "Prise"
    CAN = "Dose"
    JAR = "Glas"
    PORTION = "Portion"


class AgendaItemType(str, Enum):
    EVENT = "event"
    TODO = "todo"
    BIRTHDAY = "birthday"
    SHOPPING = "shopping"


@dataclass
class Family:
    id: str
    name: str
    created_at: str = ""


@dataclass
class Profile:
    """A family member, linked to a Telegram account."""

    id: str
    family_id: str
    name: str
    telegram_user_id: int | None = None
    notifications: bool = True


@dataclass
class CalendarEvent:
    id: str
    family_id: str
    title: str
    event_date: str                   # ISO date YYYY-MM-DD
    event_time: str | None = None     # HH:MM or HH:MM:SS
    description: str | None = None
    created_by_id: str | None = None
    created_at: str = ""


@dataclass
class TodoComment:
    id: str
    todo_id: str
    text: str
    user_id: str | None = None
    created_at: str = ""


@dataclass
class Todo:
    """A family task.

    Related profiles are resolved to a single optional reference each; the
    store never hands out lists for a to-one relation.
    """

    id: str
    family_id: str
    task: str
    description: str | None = None
    is_done: bool = False
    due_at: str | None = None         # ISO timestamp YYYY-MM-DDTHH:MM[:SS]
    priority: Priority = Priority.NONE
    assigned_to_id: str | None = None
    created_by_id: str | None = None
    done_by_id: str | None = None
    done_at: str | None = None
    created_at: str = ""
    assigned: Profile | None = None
    creator: Profile | None = None
    done_by: Profile | None = None
    comments: list[TodoComment] = field(default_factory=list)


@dataclass
class Contact:
    id: str
    family_id: str
    first_name: str
    last_name: str
    birthdate: str | None = None      # ISO date; month/day drive the calendar
    contact_family_id: str | None = None
    phone: str | None = None
    phone_landline: str | None = None
    email: str | None = None
    street: str | None = None
    house_number: str | None = None
    zip: str | None = None
    city: str | None = None
    country: str | None = None
    created_at: str = ""

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass
class ContactFamily:
    """A household grouping of contacts sharing one address."""

    id: str
    family_id: str
    family_name: str
    street: str | None = None
    house_number: str | None = None
    zip: str | None = None
    city: str | None = None
    country: str | None = None
    created_at: str = ""
    contacts: list[Contact] = field(default_factory=list)


@dataclass
class ShoppingItem:
    id: str
    family_id: str
    name: str
    quantity: str                     # decimal as text, e.g. "2" or "0.50"
    unit: str
    created_by_id: str | None = None
    store: str | None = None
    deal_date: str | None = None      # ISO date of the store promotion
    created_at: str = ""


@dataclass
class ShoppingPurchaseItem:
    id: str
    purchase_id: str
    name: str
    quantity: str
    unit: str


@dataclass
class ShoppingPurchase:
    id: str
    family_id: str
    purchased_at: str
    purchased_by_id: str | None = None
    items: list[ShoppingPurchaseItem] = field(default_factory=list)


@dataclass
class RecipeIngredient:
    name: str
    quantity: str
    unit: str
    add_to_shopping: bool = True
    order_index: int = 0
    id: str = ""
    recipe_id: str = ""


@dataclass
class Recipe:
    id: str
    family_id: str
    name: str
    instructions: str | None = None
    servings: int | None = None       # baseline for scaling
    image_url: str | None = None
    created_by_id: str | None = None
    created_at: str = ""
    ingredients: list[RecipeIngredient] = field(default_factory=list)


@dataclass
class RecipeCooking:
    id: str
    recipe_id: str
    family_id: str
    marked_at: str
    marked_by_id: str | None = None
    cooked_at: str | None = None
    cooked_by_id: str | None = None


@dataclass
class Note:
    id: str
    family_id: str
    title: str
    content: str = ""
    created_by_id: str | None = None
    created_at: str = ""


# ---------------------------------------------------------------------------
# Derived view models (never persisted)
# ---------------------------------------------------------------------------


@dataclass
class AgendaItem:
    """One entry of the unified agenda, built fresh on every aggregation."""

    kind: AgendaItemType
    id: str
    title: str
    date: date
    source: CalendarEvent | Todo | Contact | ShoppingItem
    time: str | None = None           # HH:MM
    description: str | None = None
    age: int | None = None            # birthdays only

    @property
    def key(self) -> tuple[str, str]:
        return (self.kind.value, self.id)


@dataclass
class CalendarDay:
    date: date
    is_current_month: bool
    items: list[AgendaItem] = field(default_factory=list)
