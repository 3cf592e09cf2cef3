# core/interfaces/asset_directory.py
from abc import ABC, abstractmethod
from typing import Optional


class AssetDirectory(ABC):
    """Read-only view of the external asset registry."""

    @abstractmethod
    def get_asset_name(self, asset_id: str) -> Optional[str]:
        """Return the display name for asset_id, or None if the asset is unknown."""
        ...
