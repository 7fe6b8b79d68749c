"""Exception types raised by dayblocks.

Guard rejections (moving onto a pinned or past block, etc.) are NOT
exceptions; they come back as EngineResult(accepted=False). These types
cover programming errors and unusable configuration only.
"""


class DayblocksError(Exception):
    """Base class for dayblocks errors."""

    pass


class UnknownBlockError(DayblocksError, KeyError):
    """Raised when a block id does not exist at the active resolution."""

    def __init__(self, block_id: str):
        super().__init__(block_id)
        self.block_id = block_id

    def __str__(self) -> str:
        return f"Unknown block id: {self.block_id}"


class SettingsError(DayblocksError, ValueError):
    """Raised when a settings file is present but cannot be used."""

    pass
