"""Core data models for Jar Tracker."""

from enum import Enum

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator


class RecordModel(BaseModel):
    """Base for persisted records; accepts both field names and backup keys."""

    model_config = ConfigDict(populate_by_name=True)


# --- Taxonomy defaults ---

DEFAULT_CATEGORY = "Other"
DEFAULT_CATEGORY_ICON = "\U0001f4e6"

DEFAULT_CATEGORIES: list[tuple[str, str]] = [
    ("Fruits", "\U0001f34e"),
    ("Vegetables", "\U0001f955"),
    ("Preserves", "\U0001f36f"),
    ("Pickles", "\U0001f952"),
    ("Sauces", "\U0001f345"),
    ("Meats", "\U0001f969"),
    ("Drinks", "\U0001f9c3"),
    ("Meals", "\U0001f372"),
    (DEFAULT_CATEGORY, DEFAULT_CATEGORY_ICON),
]

DEFAULT_JAR_SIZES: list[str] = [
    "Quarter-pint (4 oz)",
    "Half-pint (8 oz)",
    "Pint (16 oz)",
    "1.5 pint (24 oz)",
    "Quart (32 oz)",
    "Half-gallon (64 oz)",
    "Gallon (128 oz)",
    "Quarter-liter (250 ml)",
    "Half-liter (500 ml)",
    "Liter (1000 ml)",
    "Three Liter (3000 ml)",
]

# Category ids written by the first app releases, mapped to display names.
LEGACY_CATEGORY_IDS: dict[str, str] = {name.lower(): name for name, _ in DEFAULT_CATEGORIES}

LEGACY_JAR_SIZES: dict[str, str] = {
    "8 oz": "Half-pint (8 oz)",
    "16 oz": "Pint (16 oz)",
    "Pint": "Pint (16 oz)",
    "Quart": "Quart (32 oz)",
    "Half Pint": "Half-pint (8 oz)",
}


class DateFormat(str, Enum):
    """Supported display date formats."""

    US = "MM/DD/YYYY"
    INTERNATIONAL = "DD/MM/YYYY"
    TEXT_MONTH = "MMM DD, YYYY"


class BatchStatus(str, Enum):
    """Batch list filter by jar availability."""

    ALL = "all"
    AVAILABLE = "available"
    USED = "used"


class RecipeSource(str, Enum):
    """Where a batch's resolved recipe content came from."""

    OVERRIDE = "override"
    RECIPE = "recipe"
    NONE = "none"


# --- Stored entities ---


class ItemType(RecordModel):
    """A named product, e.g. "Strawberry Jam"."""

    id: int | None = None
    name: str
    category: str | None = None
    recipe: str | None = None
    recipe_image: str | None = None
    notes: str | None = None
    low_stock_threshold: int | None = Field(default=None, alias="lowStockThreshold")


class Jar(RecordModel):
    """One physical jar."""

    id: int | None = None
    item_type_id: int = Field(alias="itemTypeId")
    batch_id: str | None = Field(default=None, alias="batchId")
    fill_date: str = Field(alias="fillDateISO")
    used: bool = False
    used_date: str | None = Field(default=None, alias="usedDateISO")
    jar_size: str | None = Field(default=None, alias="jarSize")
    location: str | None = None
    recipe_id: int | None = Field(default=None, alias="recipeId")

    @field_validator("used_date", mode="before")
    @classmethod
    def _blank_used_date_is_missing(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @model_validator(mode="after")
    def _clear_used_date_when_available(self) -> "Jar":
        if not self.used:
            self.used_date = None
        return self


class Recipe(RecordModel):
    """Reusable recipe content that batches can link to."""

    id: int | None = None
    name: str
    content: str = ""
    image: str | None = None
    created_date: str | None = None
    last_used_date: str | None = None


class Category(RecordModel):
    """A category taxonomy entry."""

    id: int | None = None
    name: str
    icon: str = DEFAULT_CATEGORY_ICON
    is_default: bool = Field(default=False, alias="isDefault")


class JarSize(RecordModel):
    """A jar size taxonomy entry."""

    id: int | None = None
    name: str
    is_default: bool = Field(default=False, alias="isDefault")
    hidden: bool = False


class BatchRecipeOverride(RecordModel):
    """Batch-local recipe text/image keyed by batch id."""

    batch_id: str = Field(alias="batchId")
    recipe: str | None = None
    recipe_image: str | None = None


class BackupPayload(RecordModel):
    """The single JSON document produced by export and consumed by import."""

    item_types: list[ItemType] = Field(default_factory=list, alias="itemTypes")
    jars: list[Jar] = Field(default_factory=list)
    categories: list[Category] | None = Field(
        default=None,
        validation_alias=AliasChoices("categories", "customCategories"),
        serialization_alias="categories",
    )
    jar_sizes: list[JarSize] | None = Field(
        default=None,
        validation_alias=AliasChoices("jar_sizes", "jarSizes", "customJarSizes"),
        serialization_alias="jarSizes",
    )
    recipes: list[Recipe] | None = None
    batch_recipes: list[BatchRecipeOverride] = Field(
        default_factory=list, alias="batchRecipes"
    )


# --- Derived views and results ---


class Batch(BaseModel):
    """Jars created together, reconstructed by grouping on batch id."""

    batch_id: str
    item_type_id: int
    name: str
    category: str = DEFAULT_CATEGORY
    fill_date: str
    jar_size: str | None = None
    location: str | None = None
    notes: str | None = None
    recipe_id: int | None = None
    total_jars: int = 0
    used_jars: int = 0
    available_jars: int = 0
    jar_ids: list[int] = Field(default_factory=list)


class CreatedBatch(BaseModel):
    """Result of creating a batch of jars."""

    batch_id: str
    jar_ids: list[int]


class UseResult(BaseModel):
    """Outcome of marking a jar used."""

    success: bool
    message: str
    jar: Jar | None = None


class DeleteResult(BaseModel):
    """Outcome of deleting a jar."""

    success: bool
    batch_deleted: bool = False
    batch_id: str | None = None


class BatchRecipe(BaseModel):
    """Resolved recipe content for a batch."""

    batch_id: str
    content: str = ""
    image: str | None = None
    source: RecipeSource = RecipeSource.NONE
    recipe_id: int | None = None
    recipe: Recipe | None = None
    stale_link: bool = False


# --- Statistics ---


class JarStats(BaseModel):
    """Totals over every jar."""

    total: int = 0
    available: int = 0
    used: int = 0


class StockLevel(BaseModel):
    """Jar counts for one item type."""

    item_type_id: int
    name: str
    category: str = DEFAULT_CATEGORY
    category_icon: str = DEFAULT_CATEGORY_ICON
    total: int = 0
    used: int = 0
    available: int = 0
    threshold: int | None = None


class YearlyStats(BaseModel):
    """Canned and used counts for a calendar year."""

    year: int
    canned: int = 0
    used: int = 0
    still_available: int = 0


class CategoryStats(BaseModel):
    """Canned and used counts for a category within a year."""

    category: str
    icon: str = DEFAULT_CATEGORY_ICON
    canned: int = 0
    used: int = 0
    still_available: int = 0


class ItemTypeStats(BaseModel):
    """Canned and used counts for an item type within a year."""

    item_type_id: int
    name: str
    category: str = DEFAULT_CATEGORY
    canned: int = 0
    used: int = 0
    still_available: int = 0


class MonthlyStats(BaseModel):
    """Canned and used counts for one month."""

    year: int
    month: int = Field(ge=1, le=12)
    canned: int = 0
    used: int = 0


class JarSizeCount(BaseModel):
    """Jar count for one jar size within a filtered set."""

    jar_size: str
    count: int = 0
    used: int = 0
