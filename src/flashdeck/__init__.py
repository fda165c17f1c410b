"""flashdeck: spaced-repetition review scheduling."""

from flashdeck.consts import VERSION

__version__ = VERSION
