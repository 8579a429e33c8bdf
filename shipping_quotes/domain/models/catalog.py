from dataclasses import dataclass
from typing import Any, List, Optional


@dataclass(frozen=True)
class CatalogEntry:
    """Domain model for a SKU code and its Yampi SKU id."""

    code: str
    sku_id: int

    @classmethod
    def from_raw(cls, code: Any, sku_id: Any) -> Optional["CatalogEntry"]:
        """
        Build an entry from loosely typed source data.

        Returns None when the code is blank or the id is not a positive integer.
        """
        if code is None or sku_id is None or isinstance(sku_id, bool):
            return None
        code = str(code).strip()
        if not code:
            return None
        try:
            numeric = float(sku_id)
        except (TypeError, ValueError):
            return None
        if not numeric.is_integer() or numeric <= 0:
            return None
        return cls(code=code, sku_id=int(numeric))

    def keys(self) -> List[str]:
        """Normalized keys the entry is stored under."""
        return [self.code, self.code.upper(), self.code.lower()]


@dataclass
class SeedLoadResult:
    """Outcome of a seed load; callers may log it and move on."""

    loaded: int = 0
    skipped: int = 0
    source: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None
