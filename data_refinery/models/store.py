"""Department store enumeration."""
from enum import Enum


class StoreType(str, Enum):
    """Stores whose raw sales exports can be refined.

    The value is the display name sent to the suggestion model; ``suffix`` is
    appended to exported file names.
    """
    HYUNDAI = "현대백화점"
    SHINSEGAE = "신세계백화점"
    LOTTE = "롯데백화점"

    @property
    def suffix(self) -> str:
        return _EXPORT_SUFFIXES[self]


_EXPORT_SUFFIXES = {
    StoreType.HYUNDAI: "hyundai_processed",
    StoreType.SHINSEGAE: "shinsegae_processed",
    StoreType.LOTTE: "lotte_processed",
}
