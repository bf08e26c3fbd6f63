"""
Exception types raised by gridboard.
Layout geometry problems are never raised; they are repaired by the engine
and reported through LayoutEngine.validation.
"""


class GridBoardError(Exception):
    """Base class for gridboard errors."""


class ConfigError(GridBoardError):
    """An explicitly requested config file could not be read."""


class UnsupportedVersionError(GridBoardError):
    """A stored payload was written by a newer schema version."""

    def __init__(self, version: int, supported: int):
        super().__init__(f"Layout version {version} is newer than supported version {supported}")
        self.version = version
        self.supported = supported
