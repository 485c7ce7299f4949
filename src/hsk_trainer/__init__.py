"""HSK vocabulary trainer."""

from hsk_trainer.consts import VERSION

__version__ = VERSION
